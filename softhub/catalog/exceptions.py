# -*- coding: utf-8 -*-
"""
Catalog Exceptions - Error hierarchy for the catalog cache.

Author
------
SoftHub Contributors

License
-------
MIT License
Copyright (c) 2026 SoftHub Contributors
See LICENSE file for full text.

Created
-------
2026-10-18

Modified
--------
2026-10-18
"""

# Standard library
from typing import Optional


class CatalogError(Exception):
    """Base class for all catalog cache errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    cause : Optional[Exception]
        Underlying exception, if any.
    """

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message} (caused by: {self.cause})"
        return self.message


class TransportError(CatalogError):
    """Network failure or unexpected HTTP status from the remote catalog."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.url = url
        self.status_code = status_code


class NotFound(TransportError):
    """Remote endpoint answered 404."""


class ParseError(CatalogError):
    """Response body did not have the expected JSON shape."""


class StoreError(CatalogError):
    """Local database could not be opened, queried or committed."""
