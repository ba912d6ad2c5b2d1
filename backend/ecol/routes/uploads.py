"""
Ecol Backend: Uploaded File Route
=================================

Serves item icons and uploaded point images from STORAGE_ROOT. The
image_url fields returned by /items and /points point here.
"""

from fastapi import APIRouter
from fastapi.responses import FileResponse

from ecol.exceptions import NotFoundError
from ecol.services.file_service import file_service

router = APIRouter(tags=["Uploads"])


@router.get(
    "/uploads/{file_path:path}",
    summary="Serve an uploaded or seeded image",
    responses={
        200: {"description": "Image file"},
        400: {"description": "Invalid path or file not found"},
    },
)
async def serve_upload(file_path: str) -> FileResponse:
    # resolve() rejects paths escaping the storage root
    full_path = file_service.resolve(file_path)

    if not full_path.is_file():
        raise NotFoundError(resource="file", resource_id=file_path)

    # media type is guessed from the extension (svg icons, png/jpg uploads)
    return FileResponse(
        path=str(full_path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
