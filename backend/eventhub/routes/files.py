"""
EventHub Backend — Stored File Route
======================================

Serves gallery images written by FileService. The URL path after
/api/files/ is the file's path relative to STORAGE_ROOT; anything resolving
outside the root is rejected with 400.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from eventhub.dependencies import get_file_service
from eventhub.schemas.common import ErrorResponse
from eventhub.services.file_service import FileService

router = APIRouter(prefix="/api", tags=["Files"])


@router.get(
    "/files/{file_path:path}",
    responses={
        200: {"description": "Image file"},
        400: {"description": "Path outside storage", "model": ErrorResponse},
        404: {"description": "File not found", "model": ErrorResponse},
    },
    summary="Serve an uploaded image",
)
async def serve_file(file_path: str, files: FileService = Depends(get_file_service)) -> FileResponse:
    full_path = files.resolve(file_path)
    # Media type is guessed from the extension; stored names always carry one
    return FileResponse(path=str(full_path), headers={"Cache-Control": "public, max-age=86400"})
