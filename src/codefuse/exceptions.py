from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CodefuseError(Exception):
    """Base exception for errors in the codefuse package."""


@dataclass(frozen=True)
class BundleIOError(CodefuseError):
    """Raised when the filesystem cannot be walked or read while building a bundle."""

    path: str
    cause: OSError

    def __str__(self) -> str:
        reason = self.cause.strerror or str(self.cause)
        return f"{self.path}: {reason}"


@dataclass(frozen=True)
class ConfigError(CodefuseError):
    """Raised when the configuration is missing, unreadable or malformed."""

    message: str
    path: str = ""

    def __str__(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message


@dataclass(frozen=True)
class ReviewError(CodefuseError):
    """Raised when the review service cannot be reached or rejects a bundle."""

    message: str
    status_code: int | None = None

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.message} (status={self.status_code})"
