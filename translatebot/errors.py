"""Exception types raised across the translate bot."""

from __future__ import annotations


class TranslateBotError(Exception):
    """Base class for all bot errors."""


class StorageError(TranslateBotError):
    """A persisted record could not be written."""


class UnknownSettingError(TranslateBotError):
    """A channel setting name is not one of the recognized keys."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Unknown setting: {key}")
        self.key = key


class TokenExchangeError(TranslateBotError):
    """The OAuth token endpoint returned an error or a malformed payload."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RefreshError(TranslateBotError):
    """Every refresh attempt failed. ``cause`` holds the last underlying error."""

    def __init__(self, attempts: int, cause: BaseException | None) -> None:
        detail = f"{type(cause).__name__}: {cause}" if cause else "unknown error"
        super().__init__(f"Token refresh failed after {attempts} attempt(s): {detail}")
        self.attempts = attempts
        self.cause = cause


class TranslationError(TranslateBotError):
    """The translation backend failed, timed out or returned nothing."""


class CorruptRecordError(StorageError):
    """A persisted record exists but could not be parsed."""

    def __init__(self, key: str, cause: BaseException) -> None:
        super().__init__(f"Corrupt record '{key}': {cause}")
        self.key = key
        self.cause = cause
