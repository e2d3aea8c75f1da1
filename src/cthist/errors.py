"""Exception hierarchy."""

from __future__ import annotations


class CthistError(Exception):
    """Base class for cthist errors."""


class InvalidIdentifierError(CthistError, ValueError):
    """Raised when requested identifiers do not match the registry pattern."""

    def __init__(self, invalid: list[str]) -> None:
        self.invalid = invalid
        preview = ", ".join(invalid[:5])
        super().__init__(f"Input contains TRNs that are not well-formed: {preview}")


class StoreCorruptError(CthistError):
    """Raised when the checkpoint CSV cannot be parsed at all."""


class StoreLockedError(CthistError):
    """Raised when another run holds the lock on the same output file."""
