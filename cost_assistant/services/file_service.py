"""
services/file_service.py
------------------------
Storage for uploaded plan/metrics files.

Uploads are decoded to text at upload time; the chat pipeline only ever
needs the text. Binary files are rejected.
"""

from typing import Dict, List, Optional

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cost_assistant.core.config import settings
from cost_assistant.core.exceptions import UploadError, UploadNotFoundError
from cost_assistant.core.logging import get_logger
from cost_assistant.models.uploaded_file import FILE_TYPES, UploadedFile

logger = get_logger(__name__)


def decode_upload(raw: bytes) -> str:
    if len(raw) > settings.MAX_UPLOAD_BYTES:
        raise UploadError(
            f"File exceeds the {settings.MAX_UPLOAD_BYTES} byte upload limit"
        )
    for encoding in ("utf-8-sig", "latin-1"):
        try:
            text = raw.decode(encoding)
            break
        except UnicodeDecodeError:
            continue
    if "\x00" in text:
        raise UploadError("Binary files are not supported; upload CSV, JSON or text")
    if not text.strip():
        raise UploadError("Uploaded file is empty")
    return text


class FileService:

    @staticmethod
    async def save_upload(
        db: AsyncSession,
        user_id: str,
        session_id: str,
        file_type: str,
        filename: str,
        content_type: Optional[str],
        raw: bytes,
        thread_id: Optional[str] = None,
    ) -> UploadedFile:
        """
        Store one upload. A session holds at most one pending file per
        type; uploading a second plan replaces the first.
        """
        if file_type not in FILE_TYPES:
            raise UploadError(f"fileType must be one of {', '.join(FILE_TYPES)}")
        content = decode_upload(raw)

        await db.execute(
            delete(UploadedFile).where(
                UploadedFile.user_id == user_id,
                UploadedFile.session_id == session_id,
                UploadedFile.file_type == file_type,
                UploadedFile.consumed.is_(False),
            )
        )
        upload = UploadedFile(
            user_id=user_id,
            session_id=session_id,
            thread_id=thread_id,
            file_type=file_type,
            filename=filename,
            content_type=content_type,
            size_bytes=len(raw),
            content=content,
        )
        db.add(upload)
        await db.commit()
        await db.refresh(upload)
        logger.info(
            "File uploaded",
            file_id=upload.id,
            file_type=file_type,
            session_id=session_id,
            size_bytes=upload.size_bytes,
        )
        return upload

    @staticmethod
    async def delete_upload(db: AsyncSession, user_id: str, file_id: str) -> None:
        result = await db.execute(
            delete(UploadedFile).where(
                UploadedFile.id == file_id,
                UploadedFile.user_id == user_id,
            )
        )
        if result.rowcount == 0:
            raise UploadNotFoundError(file_id)
        await db.commit()
        logger.info("File deleted", file_id=file_id)

    @staticmethod
    async def load_uploads(
        db: AsyncSession,
        user_id: str,
        file_ids: List[str],
        session_id: Optional[str] = None,
        thread_id: Optional[str] = None,
    ) -> List[UploadedFile]:
        """
        Fetch the caller's pending uploads by id; every id must resolve.

        Consumed files never resolve again. With a session id only that
        session's files resolve; with a thread id, files bound to another
        thread do not.
        """
        if not file_ids:
            return []
        query = select(UploadedFile).where(
            UploadedFile.id.in_(file_ids),
            UploadedFile.user_id == user_id,
            UploadedFile.consumed.is_(False),
        )
        if session_id is not None:
            query = query.where(UploadedFile.session_id == session_id)
        if thread_id is not None:
            query = query.where(
                or_(UploadedFile.thread_id.is_(None), UploadedFile.thread_id == thread_id)
            )
        result = await db.execute(query.order_by(UploadedFile.created_at.asc()))
        uploads = list(result.scalars().all())
        found = {u.id for u in uploads}
        missing = [fid for fid in file_ids if fid not in found]
        if missing:
            raise UploadNotFoundError(missing[0])
        return uploads

    @staticmethod
    async def mark_consumed(db: AsyncSession, uploads: List[UploadedFile]) -> None:
        if not uploads:
            return
        await db.execute(
            update(UploadedFile)
            .where(UploadedFile.id.in_([u.id for u in uploads]))
            .values(consumed=True)
        )
        await db.commit()

    @staticmethod
    async def discard_pending(db: AsyncSession, user_id: str, session_id: str) -> int:
        """Drop the unconsumed uploads of a finished upload session."""
        result = await db.execute(
            delete(UploadedFile).where(
                UploadedFile.user_id == user_id,
                UploadedFile.session_id == session_id,
                UploadedFile.consumed.is_(False),
            )
        )
        await db.commit()
        if result.rowcount:
            logger.info(
                "Pending uploads discarded",
                session_id=session_id,
                count=result.rowcount,
            )
        return result.rowcount


def bound_thread(uploads: List[UploadedFile]) -> Optional[str]:
    """The thread the uploads were attached to at upload time, if any."""
    threads = {u.thread_id for u in uploads if u.thread_id}
    if len(threads) > 1:
        raise UploadError("Uploaded files belong to different threads")
    return threads.pop() if threads else None


def texts_by_type(uploads: List[UploadedFile]) -> Dict[str, str]:
    """Upload text keyed by file type; several files of one type are concatenated."""
    texts: Dict[str, List[str]] = {}
    for upload in uploads:
        texts.setdefault(upload.file_type, []).append(upload.content)
    return {file_type: "\n\n".join(parts) for file_type, parts in texts.items()}
