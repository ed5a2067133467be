"""Asset API routes."""

from fastapi import APIRouter, File, HTTPException, UploadFile, status
from fastapi.responses import Response

from engine.schemas.assets import (
    AssetResponse,
    DeleteAssetResponse,
    ListAssetsResponse,
    UnusedAssetsRequest,
    UnusedAssetsResponse,
    UploadResponse,
    VerifyAssetsResponse,
)
from engine.schemas.common import ErrorResponse
from engine.service_locator import get_engine
from storage.paths import is_valid_asset_filename

router = APIRouter(prefix="/assets", tags=["Assets"])


def _check_folder(folder: str) -> None:
    if not folder or folder.startswith('.') or '/' in folder or '\\' in folder:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid asset folder: {folder}"
        )


def _check_filename(filename: str) -> None:
    if not is_valid_asset_filename(filename):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid asset filename: {filename}"
        )


@router.post("/{folder}", response_model=UploadResponse)
async def upload_asset(folder: str, file: UploadFile = File(...)):
    """
    Upload a binary asset into a folder.

    Identical content already stored in the folder is not written again; the
    response then carries is_duplicate=true and the existing filename.

    Parameters:
        - folder: Asset folder (e.g. "covers")
        - file: File to upload (multipart/form-data)

    Returns:
        - success, path (stored filename), is_duplicate, existing_filename, error
    """
    _check_folder(folder)
    engine = get_engine()

    content = await file.read()
    result = await engine.upload(file.filename or "", content, folder)

    return UploadResponse(
        success=result.success,
        path=result.path,
        is_duplicate=result.is_duplicate,
        existing_filename=result.existing_filename,
        error=result.error,
    )


@router.get("/{folder}", response_model=ListAssetsResponse)
async def list_assets(folder: str):
    """
    List assets in a folder, newest first.
    """
    _check_folder(folder)
    entries = await get_engine().assets.list_assets(folder)

    return ListAssetsResponse(
        folder=folder,
        assets=[AssetResponse.from_entry(entry) for entry in entries],
    )


@router.delete("/{folder}/{filename}", response_model=DeleteAssetResponse)
async def delete_asset(folder: str, filename: str):
    """
    Delete an asset.

    Raises:
        - 404: Asset not found
    """
    _check_folder(folder)
    _check_filename(filename)

    deleted = await get_engine().assets.delete(filename, folder)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Asset not found: {filename}"
        )

    return DeleteAssetResponse(deleted=True, filename=filename)


@router.get("/{folder}/{filename}/blob", responses={404: {"model": ErrorResponse}})
async def get_asset_blob(folder: str, filename: str):
    """
    Return an asset's bytes, served from the blob cache.

    Raises:
        - 404: Asset not found
    """
    _check_folder(folder)
    _check_filename(filename)

    handle = await get_engine().load_asset_blob(filename, folder)
    return Response(content=handle.data, media_type=handle.mime_type)


@router.post("/{folder}/unused", response_model=UnusedAssetsResponse)
async def unused_assets(folder: str, request: UnusedAssetsRequest):
    """
    Find (and optionally delete) assets not mentioned in any reference text.

    Parameters:
        - references: Documents that may mention asset filenames
        - clean: Delete the unreferenced assets when true
    """
    _check_folder(folder)
    assets = get_engine().assets

    unused = await assets.find_unused(folder, request.references)
    deleted = []
    if request.clean:
        deleted = await assets.clean_unused(folder, request.references)

    return UnusedAssetsResponse(unused=unused, deleted=deleted)


@router.get("/{folder}/verify", response_model=VerifyAssetsResponse)
async def verify_assets(folder: str):
    """
    List assets whose bytes are missing or no longer match their hash.
    """
    _check_folder(folder)
    damaged = await get_engine().assets.verify_assets(folder)
    return VerifyAssetsResponse(folder=folder, damaged=damaged)
