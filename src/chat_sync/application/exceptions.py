from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class AuthError(AppError):
    """Credential missing, rejected or expired. The caller must re-authenticate."""


class NetworkError(AppError):
    """Transient failure of a snapshot call. Safe to retry that call."""


class ValidationError(AppError):
    """Input rejected locally, never sent to the network."""


class ChannelConnectionError(AppError):
    """The realtime transport could not be established."""
