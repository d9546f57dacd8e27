"""Custom exception hierarchy for refstore."""

from __future__ import annotations


class StoreError(Exception):
    """Base exception for all refstore errors."""


class StoreConfigError(StoreError):
    """Invalid store construction options."""


class InvalidPathError(StoreConfigError):
    """A reference binding was given an unusable field path."""

    def __init__(self, message: str, *, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class CapabilityError(StoreError):
    """Operation called on a store that was built without that capability."""

    def __init__(self, message: str, *, capability: str = "") -> None:
        self.capability = capability
        super().__init__(message)


class MissingPrimaryKeyError(StoreError):
    """An entity written to a store lacks the store's primary-key field."""

    def __init__(self, message: str, *, primary_key: str = "") -> None:
        self.primary_key = primary_key
        super().__init__(message)


class PageFormatError(StoreError):
    """A page loader returned something that is not a valid page."""


class PrimaryKeyMismatchError(StoreError):
    """A fetched entity's primary key differs from the key it was fetched under."""

    def __init__(self, message: str, *, key: object = None, primary_key: str = "") -> None:
        self.key = key
        self.primary_key = primary_key
        super().__init__(message)
