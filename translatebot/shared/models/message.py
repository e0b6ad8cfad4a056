"""Inbound chat message metadata."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MessageMeta:
    """What the transport tells us about the sender of a message."""

    username: str
    display_name: str | None = None
    is_moderator: bool = False
    is_broadcaster: bool = False
    message_id: str | None = None

    @property
    def login(self) -> str:
        return self.username.lower()
