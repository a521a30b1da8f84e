"""
Collaborator interfaces consumed by the engine.

The remote item backend, the tag backend and user-facing notifications are
external to cortex; the engine only depends on these protocols. Store methods
are coroutines. A failed call either raises or returns an Exception instance;
both count as failure.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Optional, Protocol

from rich.console import Console

from cortex.models.items import Item

logger = logging.getLogger(__name__)

NotificationKind = Literal["success", "error", "info"]


class ItemStore(Protocol):
    async def list(self, scope: Optional[str] = None) -> List[Item]:
        ...

    async def create(self, draft: Dict[str, Any]) -> Item:
        ...

    async def update(self, item_id: str, patch: Dict[str, Any]) -> Optional[Exception]:
        ...

    async def move(self, item_id: str, target_space_id: Optional[str]) -> Optional[Exception]:
        ...

    async def delete(self, item_id: str) -> Optional[Exception]:
        ...

    async def restore(self, item_id: str) -> Optional[Exception]:
        ...


class TagStore(Protocol):
    async def upsert(self, tag_name: str) -> None:
        ...

    async def set_item_tags(self, item_id: str, tags: List[str]) -> None:
        ...


class NotificationSink(Protocol):
    """Fire-and-forget user feedback. The return value is never consumed."""

    def notify(self, message: str, kind: NotificationKind = "info") -> None:
        ...


class LoggingNotificationSink:
    """Routes notifications to the log; the default when no UI is attached."""

    def notify(self, message: str, kind: NotificationKind = "info") -> None:
        if kind == "error":
            logger.error(message)
        else:
            logger.info(message)


_STYLES = {"success": "green", "error": "red", "info": "cyan"}


class ConsoleNotificationSink:
    """Prints notifications with rich markup, used by the CLI."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def notify(self, message: str, kind: NotificationKind = "info") -> None:
        style = _STYLES.get(kind, "white")
        self.console.print(f"[{style}]{message}[/{style}]")
