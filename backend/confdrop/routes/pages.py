"""HTML pages served from PUBLIC_DIR."""
from fastapi import APIRouter, Request
from fastapi.responses import FileResponse

from confdrop.exceptions import NotFoundError

router = APIRouter(tags=["pages"], include_in_schema=False)


def _page(request: Request, name: str) -> FileResponse:
    path = request.app.state.settings.PUBLIC_DIR / name
    if not path.is_file():
        raise NotFoundError("Page not found.")
    return FileResponse(path, media_type="text/html")


@router.get("/")
async def index(request: Request):
    return _page(request, "index.html")


@router.get("/admin")
async def admin(request: Request):
    return _page(request, "admin.html")
