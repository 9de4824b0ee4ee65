"""Storefront files served verbatim from the configured directory.

No templating, caching headers or range handling.
"""

from fastapi import APIRouter, Request
from fastapi.responses import Response

from payrelay.common.errors import NotFoundError

STATIC_FILES: dict[str, tuple[str, str]] = {
    "/": ("index.html", "text/html"),
    "/style.css": ("style.css", "text/css"),
    "/script.js": ("script.js", "text/javascript"),
}

router = APIRouter()


def _serve(request: Request, route: str) -> Response:
    filename, media_type = STATIC_FILES[route]
    path = request.app.state.settings.static_dir / filename
    if not path.is_file():
        raise NotFoundError(f"{filename} not found")
    return Response(content=path.read_bytes(), media_type=media_type)


@router.get("/", include_in_schema=False)
def index(request: Request):
    return _serve(request, "/")


@router.get("/style.css", include_in_schema=False)
def stylesheet(request: Request):
    return _serve(request, "/style.css")


@router.get("/script.js", include_in_schema=False)
def script(request: Request):
    return _serve(request, "/script.js")
