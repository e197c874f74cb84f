"""Handler registry: maps record keywords to handler instances."""

from __future__ import annotations

import importlib
from collections.abc import Mapping

import structlog

from ..errors import HandlerConfigError
from .base import MessageHandler

logger = structlog.get_logger()

KEYWORDS = ("account", "campaign", "contact", "lead", "opportunity")


class HandlerRegistry:
    """Registry of message handlers, keyed by record keyword."""

    def __init__(self) -> None:
        self._handlers: dict[str, MessageHandler] = {}

    @classmethod
    def from_config(cls, handlers: Mapping[str, str]) -> HandlerRegistry:
        """Build a registry from ``{"lead": "package.module:ClassName"}`` entries."""
        registry = cls()
        for keyword, path in handlers.items():
            handler = _load_handler(path)()
            if handler.keyword != keyword:
                raise HandlerConfigError(
                    f"{path} handles {handler.keyword!r}, configured for {keyword!r}"
                )
            registry.register(handler)
        return registry

    def register(self, handler: MessageHandler) -> None:
        """Register a handler for its keyword, replacing any previous one."""
        key = handler.keyword
        if key not in KEYWORDS:
            raise HandlerConfigError(f"unknown keyword {key!r}, expected one of {KEYWORDS}")
        self._handlers[key] = handler
        logger.info("handler_registered", keyword=key, handler=type(handler).__name__)

    def get(self, keyword: str) -> MessageHandler | None:
        """Look up a handler by keyword. Returns None if none is registered."""
        return self._handlers.get(keyword)

    def require(self, keyword: str) -> MessageHandler:
        handler = self.get(keyword)
        if handler is None:
            raise HandlerConfigError(f"no handler configured for keyword {keyword!r}")
        return handler

    @property
    def keywords(self) -> list[str]:
        """Keywords that have registered handlers."""
        return list(self._handlers.keys())


def _load_handler(path: str) -> type[MessageHandler]:
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise HandlerConfigError(f"handler path {path!r} must look like 'module:ClassName'")
    try:
        handler_cls = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as exc:
        raise HandlerConfigError(f"cannot load handler {path!r}: {exc}") from exc
    if not (isinstance(handler_cls, type) and issubclass(handler_cls, MessageHandler)):
        raise HandlerConfigError(f"{path!r} is not a MessageHandler subclass")
    return handler_cls
