"""
catalog/models.py -- Domain dataclasses for the storefront catalog.

These are pure data containers with zero logic. Persistence and the few
derived values (a product's "new" flag, category names) live in
catalog/store.py.

id is None before the record is written to the database. Timestamps are
ISO 8601 strings set by the store.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Article:
    title: str
    description: str
    image: Optional[str] = None  # hosted image URL
    tags: list[str] = field(default_factory=list)
    id: Optional[int] = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class Category:
    name: str
    image: Optional[str] = None
    id: Optional[int] = None


@dataclass
class CategoryRef:
    """The slice of a Category embedded in a product."""

    id: int
    name: str


@dataclass
class Product:
    """A catalog product.

    categories holds CategoryRef entries when read from the store. On create,
    only category_ids is consulted.

    is_new is derived on read: True while created_at is within the last 7 days.
    """

    name: str
    description: str
    images: list[str] = field(default_factory=list)
    category_ids: list[int] = field(default_factory=list)
    categories: list[CategoryRef] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    hot: bool = False
    is_new: bool = False
    id: Optional[int] = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class ImageSlide:
    name: str
    image: str
    id: Optional[int] = None


@dataclass
class ProductPage:
    """One page of a filtered product listing."""

    items: list[Product]
    total: int
    total_pages: int
    page: int
    limit: int
