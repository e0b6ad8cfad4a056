"""Data models for the translate bot."""

from .channel_config import ChannelConfig, normalize_channel_name
from .credential import CredentialState
from .message import MessageMeta

__all__ = [
    "ChannelConfig",
    "CredentialState",
    "MessageMeta",
    "normalize_channel_name",
]
