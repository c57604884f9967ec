"""Domain exceptions for the cat locator service."""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class CatLocatorDomainException(Exception):
    """Base exception for all domain-related errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.metadata = metadata or {}
        self.timestamp = datetime.now(timezone.utc)


class UnknownDeviceException(CatLocatorDomainException):
    """Raised when a device identifier has no room assignment."""

    def __init__(self, device_id: str):
        message = f"Unknown device: {device_id}"
        super().__init__(message, "UNKNOWN_DEVICE", {"device_id": device_id})
        self.device_id = device_id


class InvalidReadingException(CatLocatorDomainException):
    """Raised when a submitted signal-strength value cannot be parsed."""

    def __init__(self, raw_value: str, reason: str):
        message = f"Invalid signal strength '{raw_value}': {reason}"
        super().__init__(
            message,
            "INVALID_READING",
            {"raw_value": raw_value, "reason": reason}
        )
        self.raw_value = raw_value
        self.reason = reason


class StorageException(CatLocatorDomainException):
    """Raised when locking, querying or writing the database fails.

    The surrounding transaction is always rolled back before this reaches
    the caller.
    """
    pass


class LockTimeoutException(StorageException):
    """Raised when the inference critical section cannot be entered in time."""

    def __init__(self, timeout_seconds: float):
        message = f"Timed out after {timeout_seconds}s waiting for the reading store lock"
        super().__init__(
            message,
            "LOCK_TIMEOUT",
            {"timeout_seconds": timeout_seconds}
        )
        self.timeout_seconds = timeout_seconds


class NotificationDeliveryException(CatLocatorDomainException):
    """Raised when a webhook notification cannot be delivered.

    Never propagates past the notifier.
    """

    def __init__(self, url: str, reason: str):
        message = f"Failed to deliver notification to {url}: {reason}"
        super().__init__(
            message,
            "NOTIFICATION_DELIVERY_FAILED",
            {"url": url, "reason": reason}
        )
        self.url = url
        self.reason = reason


class ConfigurationException(CatLocatorDomainException):
    """Raised when configuration or provisioning data is invalid."""
    pass
