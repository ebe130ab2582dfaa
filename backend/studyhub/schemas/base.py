"""Base schema configuration."""

from math import ceil

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class PageMixin(BaseModel):
    """Paging metadata shared by list endpoints."""

    total: int
    page: int
    limit: int
    total_pages: int


def total_pages(total: int, limit: int) -> int:
    """Number of pages needed for `total` rows at `limit` per page."""
    return ceil(total / limit) if limit else 0
