from typing import Optional


class ValidationFailure(Exception):
    """A user action was rejected; nothing was mutated."""

    def __init__(self, title: str, description: Optional[str] = None):
        super().__init__(title if description is None else f"{title}: {description}")
        self.title = title
        self.description = description


class CatalogError(Exception):
    """The external catalog store failed or returned a malformed row."""


class ProductNotFound(CatalogError):
    pass
