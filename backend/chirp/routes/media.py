"""
Chirp Backend — Media Route
=============================

What:  GET /api/v1/media/{path}: serves images stored by LocalMediaHost.
How:   The path is resolved under the storage root; anything escaping it
       or missing is a 404. With the Cloudinary backend images are served
       by Cloudinary and this route always answers 404.
"""

import mimetypes

from fastapi import APIRouter
from fastapi.responses import FileResponse

from chirp.exceptions import NotFoundError
from chirp.routes import API_PREFIX
from chirp.services.local_media_service import LocalMediaHost
from chirp.services.media import media_host

router = APIRouter(prefix=f"{API_PREFIX}/media", tags=["Media"])


@router.get(
    "/{file_path:path}",
    summary="Serve a locally stored image",
    responses={200: {"description": "Image file"}, 404: {"description": "Image not found"}},
)
async def serve_media(file_path: str) -> FileResponse:
    if not isinstance(media_host, LocalMediaHost):
        raise NotFoundError(resource="image", resource_id=file_path)

    path = media_host.resolve(file_path)
    if path is None:
        raise NotFoundError(resource="image", resource_id=file_path)

    media_type, _ = mimetypes.guess_type(path.name)
    return FileResponse(
        path=str(path),
        media_type=media_type or "application/octet-stream",
        headers={"Cache-Control": "public, max-age=86400"},
    )
