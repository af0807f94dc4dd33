"""
Models package initialization.
"""

from .base import Base, BaseModel
from .chat_thread import DEFAULT_THREAD_TITLE, ChatThread
from .message import Message, MessageSender

__all__ = [
    "Base",
    "BaseModel",
    "DEFAULT_THREAD_TITLE",
    # Chat models
    "ChatThread",
    "Message",
    "MessageSender",
]
