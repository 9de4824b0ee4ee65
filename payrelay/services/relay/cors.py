"""CORS applied to an explicit set of paths only."""

from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send


class PathScopedCORSMiddleware(CORSMiddleware):
    """Starlette's CORS middleware, bypassed for paths outside `paths`."""

    def __init__(self, app: ASGIApp, paths: list[str], **kwargs) -> None:
        super().__init__(app, **kwargs)
        self.paths = frozenset(paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["path"] not in self.paths:
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)
