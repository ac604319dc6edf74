"""
models/__init__.py
------------------
Re-export all models so create_all can import Base and discover
all tables via a single import:

    from cost_assistant.models import Base
"""

from cost_assistant.db.base import Base
from cost_assistant.models.analysis import Analysis
from cost_assistant.models.conversation import Conversation
from cost_assistant.models.message import Message
from cost_assistant.models.uploaded_file import UploadedFile

__all__ = ["Base", "Analysis", "Conversation", "Message", "UploadedFile"]
