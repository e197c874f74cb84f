"""Per-keyword message handlers."""

from .base import MessageContext, MessageHandler
from .registry import KEYWORDS, HandlerRegistry

__all__ = ["KEYWORDS", "HandlerRegistry", "MessageContext", "MessageHandler"]
