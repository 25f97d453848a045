"""Static marketing site serving.

WHAT: StaticFiles with a home-page fallback for unknown paths
WHY: Old or mistyped links should land on the home page, not a bare error;
     the fallback keeps status 404 so crawlers don't index phantom pages
"""

from pathlib import Path

from starlette.exceptions import HTTPException
from starlette.responses import FileResponse
from starlette.staticfiles import StaticFiles

INDEX_DOCUMENT = "index.html"


class SiteStaticFiles(StaticFiles):
    """Serve the site directory; unmatched paths get ``index.html`` with 404."""

    def __init__(self, directory: Path):
        super().__init__(directory=directory, html=True)
        self.index_path = Path(directory) / INDEX_DOCUMENT

    async def get_response(self, path, scope):
        try:
            return await super().get_response(path, scope)
        except HTTPException as exc:
            if exc.status_code != 404:
                raise
            return FileResponse(self.index_path, status_code=404)
