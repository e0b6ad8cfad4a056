from .config import get_settings, validate_env_vars
from .guards import can_use_commands, is_bot_owner, is_channel_owner, is_moderator
from .logging import setup_logging

__all__ = [
    "can_use_commands",
    "get_settings",
    "is_bot_owner",
    "is_channel_owner",
    "is_moderator",
    "setup_logging",
    "validate_env_vars",
]
