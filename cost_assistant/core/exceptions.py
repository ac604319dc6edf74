"""
core/exceptions.py
------------------
Domain exceptions raised by the service layer.

Services never build HTTP responses; routes and the global handlers in
main.py translate these into JSON error bodies.
"""


class CostAssistantError(Exception):
    """Base class for all application errors."""


class LLMServiceError(CostAssistantError):
    """The LLM collaborator timed out, failed, or returned nothing usable."""

    public_message = "AI service error"


class ThreadNotFoundError(CostAssistantError):
    """The thread does not exist or belongs to another user."""

    def __init__(self, thread_id: str) -> None:
        super().__init__(f"Thread '{thread_id}' not found")
        self.thread_id = thread_id


class UploadError(CostAssistantError):
    """An uploaded file was rejected (bad type, too large, not text)."""


class UploadNotFoundError(CostAssistantError):
    def __init__(self, file_id: str) -> None:
        super().__init__(f"File '{file_id}' not found")
        self.file_id = file_id
