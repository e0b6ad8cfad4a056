"""Shared command guards: role checks for channel and bot owners."""

from __future__ import annotations

from translatebot.shared.models.channel_config import ChannelConfig, normalize_channel_name
from translatebot.shared.models.message import MessageMeta


def is_channel_owner(channel: str, meta: MessageMeta) -> bool:
    """The broadcaster of ``channel``."""
    return meta.is_broadcaster or meta.login == normalize_channel_name(channel)


def is_moderator(channel: str, meta: MessageMeta) -> bool:
    """A moderator of ``channel``, or its owner."""
    return meta.is_moderator or is_channel_owner(channel, meta)


def is_bot_owner(channel: str, meta: MessageMeta, bot_owner: str | None) -> bool:
    """The configured bot owner; the channel owner when none is configured."""
    if bot_owner:
        return meta.login == bot_owner.lower()
    return is_channel_owner(channel, meta)


def can_use_commands(channel: str, meta: MessageMeta, config: ChannelConfig) -> bool:
    """Apply the channel's ``moderator_only`` gate."""
    if not config.moderator_only:
        return True
    return is_moderator(channel, meta)
