"""Single-page app fallback."""
import os

from fastapi import FastAPI, HTTPException
from fastapi.responses import FileResponse

API_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def mount_spa(app: FastAPI, static_dir: str) -> None:
    """Serve built assets, falling back to index.html for client-side routes.

    Register after every other route so API paths win. Unknown ``/api``
    paths answer 404 for every method instead of reaching the bundle.
    """
    root = os.path.abspath(static_dir)

    @app.api_route("/api", methods=API_METHODS, include_in_schema=False)
    @app.api_route("/api/{full_path:path}", methods=API_METHODS, include_in_schema=False)
    async def unknown_api(full_path: str = ""):
        raise HTTPException(status_code=404, detail="Not Found")

    @app.get("/{full_path:path}", include_in_schema=False)
    async def spa(full_path: str):
        candidate = os.path.abspath(os.path.join(root, full_path))
        inside = os.path.commonpath([root, candidate]) == root
        if full_path and inside and os.path.isfile(candidate):
            return FileResponse(candidate)

        index = os.path.join(root, "index.html")
        if not os.path.isfile(index):
            raise HTTPException(status_code=404, detail="Frontend bundle not found")
        return FileResponse(index)
