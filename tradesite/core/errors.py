# tradesite/core/errors.py
from typing import Any, List, Optional


class TradesiteError(Exception):
    """Base class for every error raised by tradesite."""


class ConfigurationError(TradesiteError):
    """No remote endpoint configured. Expected in static-only deployments."""


class TransientNetworkError(TradesiteError):
    """The remote API could not be reached or answered with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_rejection(self) -> bool:
        # 4xx means the server understood and refused; retrying will not help
        return self.status_code is not None and 400 <= self.status_code < 500


NetworkError = TransientNetworkError


class PayloadTooLarge(TransientNetworkError):
    def __init__(self, message: str = "Request payload too large"):
        super().__init__(message, status_code=413)


class NotFoundError(TradesiteError):
    """Update/delete target is absent (locally or on the server)."""


class ValidationError(TradesiteError):
    """A document failed schema validation."""

    def __init__(self, message: str, errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.errors = errors or []


class InvalidSectionError(ValidationError):
    def __init__(self, section: str):
        super().__init__(f"Invalid section: {section}")
        self.section = section


class StorageQuotaError(TradesiteError):
    """The local cache could not persist a value."""


class StorageError(TradesiteError):
    """A shard could not be written or verified."""
