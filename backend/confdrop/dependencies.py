"""FastAPI dependencies. Services live on app.state and are built by create_app.

Usage in routes:
    @router.get("/files")
    async def list_files(registry: FileRegistry = Depends(get_registry)):
        ...
"""
from typing import Optional

from fastapi import Depends, Header, Request
from fastapi.security.utils import get_authorization_scheme_param

from confdrop.services.auth import AdminAuthService, AdminSession
from confdrop.services.download import DownloadService
from confdrop.services.file_storage import FileStorageService
from confdrop.services.registry import FileRegistry
from confdrop.services.upload import UploadService


def get_registry(request: Request) -> FileRegistry:
    return request.app.state.registry


def get_storage(request: Request) -> FileStorageService:
    return request.app.state.storage


def get_auth_service(request: Request) -> AdminAuthService:
    return request.app.state.auth


def get_upload_service(request: Request) -> UploadService:
    return request.app.state.uploads


def get_download_service(request: Request) -> DownloadService:
    return request.app.state.downloads


async def require_admin(
    admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    auth: AdminAuthService = Depends(get_auth_service),
) -> AdminSession:
    """Accepts X-Admin-Token or a Bearer token. Raises AuthError otherwise."""
    token = admin_token
    if not token and authorization:
        scheme, param = get_authorization_scheme_param(authorization)
        if scheme.lower() == "bearer":
            token = param
    return auth.authorize(token)
