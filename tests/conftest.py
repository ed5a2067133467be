"""Shared pytest fixtures for all tests."""

import pytest

from storage.native_backend import NativeBackend
from storage.structured_backend import StructuredBackend


@pytest.fixture
def native_backend(tmp_path):
    """
    Create a native backend rooted in a temporary directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        NativeBackend instance
    """
    return NativeBackend(tmp_path / 'data')


@pytest.fixture
def structured_backend(tmp_path):
    """
    Create a structured backend over a temporary SQLite file.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        StructuredBackend instance
    """
    return StructuredBackend(tmp_path / 'storage.db')


@pytest.fixture(params=['native', 'structured'])
def backend(request, tmp_path):
    """
    Run a test once against each storage substrate.
    """
    if request.param == 'native':
        return NativeBackend(tmp_path / 'data')
    return StructuredBackend(tmp_path / 'storage.db')


@pytest.fixture
def sample_bytes():
    """Ten bytes 1..10, the canonical small upload."""
    return bytes(range(1, 11))
