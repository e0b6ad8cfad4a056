"""Chat command components."""

from .commands import CommandHandler

__all__ = ["CommandHandler"]
