"""Human-readable markdown view of the unified payload (write-only)."""

from datetime import datetime, timezone
from typing import Any, Dict, List

DEFAULT_PROGRESS_ICON = '○'


def _render_progress(item: Dict[str, Any], lines: List[str]) -> None:
    icon = item.get('icon') or DEFAULT_PROGRESS_ICON
    reset = ' (↻)' if item.get('resetFrequency') == 'daily' else ''
    current = item.get('current', 0)
    unit = f" {item['unit']}" if item.get('unit') else ''

    lines.append(f"## {icon} {item.get('title', '')}{reset}")
    if item.get('type') == 'progress':
        total = item.get('total') or 0
        percent = round(current / total * 100) if total else 0
        lines.append(f"{current} / {total}{unit} ({percent}%)")
    else:
        lines.append(f"{current}{unit}")
    lines.append('')


def _section_date(timestamp: Any) -> str:
    try:
        moment = datetime.fromtimestamp(int(timestamp) / 1000, timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return 'unknown'
    return moment.strftime('%Y-%m-%d')


def render_markdown(data: Dict[str, Any]) -> str:
    """
    Render the payload as markdown.

    Sections: active progress items, archived progress items, archive
    sections grouped by date, and a custom icon count.

    Args:
        data: Unified payload

    Returns:
        Markdown text
    """
    lines = ['# Progress', '']

    items = data.get('progressItems') or []
    active = [item for item in items if not item.get('archived')]
    archived = [item for item in items if item.get('archived')]

    for item in active:
        _render_progress(item, lines)

    if archived:
        lines.append('### Archived')
        for item in archived:
            icon = item.get('icon') or DEFAULT_PROGRESS_ICON
            lines.append(f"- ~~{icon} {item.get('title', '')}~~")
        lines.append('')

    sections = data.get('archiveSections') or []
    if sections:
        lines.extend(['# Archive', ''])
        for section in sections:
            lines.append(f"## {_section_date(section.get('timestamp'))}")
            for task in section.get('tasks') or []:
                lines.append(f"- [x] {task.get('content', '')}")
            lines.append('')

    icons = data.get('customIcons') or []
    if icons:
        lines.extend(['# Custom Icons', '', f"{len(icons)} custom icon(s)", ''])

    return '\n'.join(lines)
