"""Twitch chat translation bot."""

__version__ = "1.0.0"
