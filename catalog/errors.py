from typing import Optional


class CatalogError(Exception):
    """Base class for catalog cache errors."""


class LoadError(CatalogError):
    """The remote menu could not be loaded."""


class NetworkError(LoadError):
    def __init__(self, url: str, status: Optional[int] = None, message: str = ""):
        self.url = url
        self.status = status
        detail = message or (f"HTTP {status}" if status is not None else "request failed")
        super().__init__(f"{detail} ({url})")


class ParseError(LoadError):
    """The response body is not a JSON object envelope."""


class StorageError(CatalogError):
    """Schema, read or write fault in the local store."""
