"""
Registry mapping handler prefixes and slash commands to handler records.

Populated once at startup and only read afterwards.
"""

import logging
from typing import Optional

from .errors import ConfigurationError, DuplicateHandlerError
from .models import Handler

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Routing table used by the dispatcher."""

    def __init__(self):
        self._handlers: dict[str, Handler] = {}
        self._commands: dict[str, str] = {}

    def register(self, handler: Handler) -> None:
        """
        Register a handler under its prefix.

        Registering the same record twice is a no-op.

        Raises:
            DuplicateHandlerError: If a different handler already owns the
                prefix or the slash command
        """
        if not handler.prefix:
            raise ConfigurationError("Handler prefix must not be empty")

        existing = self._handlers.get(handler.prefix)
        if existing is not None:
            if existing is handler:
                return
            raise DuplicateHandlerError(
                f"Prefix '{handler.prefix}' is already registered to another handler"
            )

        if handler.slash_command:
            owner = self._commands.get(handler.slash_command)
            if owner is not None:
                raise DuplicateHandlerError(
                    f"Slash command '{handler.slash_command}' is already "
                    f"registered to '{owner}'"
                )
            self._commands[handler.slash_command] = handler.prefix

        self._handlers[handler.prefix] = handler
        logger.info(f"Registered handler '{handler.prefix}'")

    def lookup(self, prefix: str) -> Optional[Handler]:
        """Get the handler for a prefix, or None."""
        return self._handlers.get(prefix)

    def lookup_command(self, command: str) -> Optional[Handler]:
        """Get the handler that owns a slash command, or None."""
        prefix = self._commands.get(command)
        return self._handlers.get(prefix) if prefix is not None else None

    def prefixes(self) -> list[str]:
        return list(self._handlers.keys())

    def commands(self) -> list[str]:
        return list(self._commands.keys())

    def __len__(self) -> int:
        return len(self._handlers)
