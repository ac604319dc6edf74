"""
schemas/files.py
----------------
Pydantic models for plan/metrics uploads.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from cost_assistant.schemas.chat import UtcDatetime


class UploadedFileRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    filename: str
    file_type: str = Field(alias="fileType")
    size_bytes: int = Field(alias="size")
    content_type: Optional[str] = Field(default=None, alias="contentType")
    session_id: str = Field(alias="sessionId")
    thread_id: Optional[str] = Field(default=None, alias="threadId")
    created_at: UtcDatetime = Field(alias="createdAt")


class UploadResponse(BaseModel):
    file: UploadedFileRead


class DeleteResponse(BaseModel):
    deleted: bool
