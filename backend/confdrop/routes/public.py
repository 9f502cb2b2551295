"""Public API routes: listing and download."""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse

from confdrop.dependencies import get_download_service, get_registry
from confdrop.rate_limit import limiter, public_limit
from confdrop.schemas.file import FileListResponse
from confdrop.services.download import DownloadService
from confdrop.services.registry import FileRegistry

router = APIRouter(prefix="/api", tags=["files"])


@router.get("/files", response_model=FileListResponse)
@limiter.limit(public_limit)
async def list_files(
    request: Request,
    registry: FileRegistry = Depends(get_registry),
):
    """List every file, expired ones included, without storage details."""
    files = await registry.list_public()
    return FileListResponse(files=files)


@router.get("/download/{file_id}")
@limiter.limit(public_limit)
async def download_file(
    request: Request,
    file_id: str,
    downloads: DownloadService = Depends(get_download_service),
):
    """Download a non-expired file under its original filename."""
    resolved = await downloads.resolve(file_id)
    return FileResponse(
        path=resolved.path,
        filename=resolved.record.filename,
        media_type="application/octet-stream",
    )
