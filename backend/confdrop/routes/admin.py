"""Admin API routes. Everything except login requires an admin token."""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from pydantic import ValidationError as PydanticValidationError

from confdrop.dependencies import (
    get_auth_service,
    get_registry,
    get_storage,
    get_upload_service,
    require_admin,
)
from confdrop.exceptions import UploadRejected, ValidationError
from confdrop.rate_limit import limiter, login_limit
from confdrop.schemas.auth import LoginRequest, LoginResponse
from confdrop.schemas.common import MessageResponse
from confdrop.schemas.file import FileMetadata, FileResponse, StatsResponse
from confdrop.services.auth import AdminAuthService
from confdrop.services.file_storage import FileStorageService
from confdrop.services.registry import FileRegistry
from confdrop.services.upload import UploadService

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/login", response_model=LoginResponse)
@limiter.limit(login_limit)
async def login(
    request: Request,
    body: LoginRequest,
    auth: AdminAuthService = Depends(get_auth_service),
):
    """Exchange the admin code for a session token. Replaces any previous session."""
    session = await auth.login(body.code)
    return LoginResponse(message="Login successful.", token=session.token)


@router.post("/files", response_model=FileResponse, dependencies=[Depends(require_admin)])
async def create_file(
    file: Optional[UploadFile] = File(default=None),
    name: str = Form(default=""),
    network: str = Form(default=""),
    expiry_date: str = Form(default="", alias="expiryDate"),
    description: str = Form(default=""),
    uploads: UploadService = Depends(get_upload_service),
):
    """Upload a file with its name, network, expiry date and description."""
    if file is None:
        raise UploadRejected("No file uploaded.")
    uploads.check_extension(file.filename)

    # One byte past the limit is enough to reject
    contents = await file.read(uploads.max_bytes + 1)
    uploads.check_size(len(contents))

    try:
        meta = FileMetadata(
            name=name,
            network=network,
            expiry_date=expiry_date or None,
            description=description,
        )
    except PydanticValidationError as e:
        raise ValidationError("Invalid expiry date.") from e

    record = await uploads.handle(file.filename, contents, meta)
    return FileResponse(message="File added successfully.", file=record)


@router.put("/files/{file_id}", response_model=FileResponse, dependencies=[Depends(require_admin)])
async def update_file(
    file_id: str,
    body: FileMetadata,
    registry: FileRegistry = Depends(get_registry),
):
    """Update name, network, expiry date and description."""
    record = await registry.update(file_id, body)
    return FileResponse(message="File updated successfully.", file=record)


@router.delete("/files/{file_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
async def delete_file(
    file_id: str,
    registry: FileRegistry = Depends(get_registry),
    storage: FileStorageService = Depends(get_storage),
):
    """Delete a file record and its stored bytes."""
    record = await registry.delete(file_id)
    await storage.delete(record.stored_filename)
    return MessageResponse(message="File deleted successfully.")


@router.get("/stats", response_model=StatsResponse, dependencies=[Depends(require_admin)])
async def get_stats(registry: FileRegistry = Depends(get_registry)):
    """Total, active and expired file counts plus total downloads."""
    return StatsResponse(stats=await registry.stats())
