"""
api/routes/files.py
-------------------
Plan / metrics file uploads.

POST   /api/files/upload  — multipart: file, fileType (plan|metrics), sessionId
DELETE /api/files/{id}    — Remove an upload before it is used
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from cost_assistant.core.config import settings
from cost_assistant.core.exceptions import UploadError, UploadNotFoundError
from cost_assistant.db.session import get_db
from cost_assistant.dependencies import get_current_user_id
from cost_assistant.schemas.files import DeleteResponse, UploadedFileRead, UploadResponse
from cost_assistant.services.file_service import FileService

router = APIRouter(prefix="/api/files", tags=["Files"])


@router.post(
    "/upload",
    response_model=UploadResponse,
    summary="Upload a billing plan or usage metrics file",
)
async def upload_file(
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)],
    file: UploadFile = File(...),
    file_type: str = Form(..., alias="fileType"),
    session_id: str = Form(..., alias="sessionId", min_length=1),
    thread_id: Optional[str] = Query(default=None, alias="threadId"),
) -> UploadResponse:
    """
    The file is decoded to text and held until a chat turn references it
    through fileIds. CSV, JSON and plain text are accepted.
    """
    # one byte past the limit is enough for decode_upload to reject it
    raw = await file.read(settings.MAX_UPLOAD_BYTES + 1)
    try:
        upload = await FileService.save_upload(
            db,
            user_id=user_id,
            session_id=session_id,
            file_type=file_type,
            filename=file.filename or "upload.txt",
            content_type=file.content_type,
            raw=raw,
            thread_id=thread_id,
        )
    except UploadError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return UploadResponse(file=UploadedFileRead.model_validate(upload))


@router.delete(
    "/{file_id}",
    response_model=DeleteResponse,
    summary="Delete an uploaded file",
)
async def delete_file(
    file_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)],
) -> DeleteResponse:
    try:
        await FileService.delete_upload(db, user_id, file_id)
    except UploadNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return DeleteResponse(deleted=True)
