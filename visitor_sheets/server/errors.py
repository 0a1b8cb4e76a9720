from __future__ import annotations

from typing import Optional


class VisitorSheetsError(Exception):
    """Base class for every failure the tracking chain can raise."""


class ConfigError(VisitorSheetsError):
    """Credential descriptor or spreadsheet id is missing or malformed."""


class CredentialError(VisitorSheetsError):
    """The service-account private key could not be parsed."""


class _RemoteError(VisitorSheetsError):
    def __init__(self, message: str, *, status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class AuthExchangeError(_RemoteError):
    """The OAuth endpoint rejected the assertion or returned an unusable response."""


class SheetWriteError(_RemoteError):
    """The Sheets API rejected a read or an append."""
