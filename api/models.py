"""
API request and response models for the storefront admin REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
catalog/models.py, which own the internal domain representation. Route
handlers map between the two via the from_domain() factories.

Wire format: JSON keys are camelCase (isAdmin, createdAt, totalPages) via
the shared alias generator. Python code uses snake_case field names.
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from catalog.models import Article, Category, CategoryRef, ImageSlide, Product, ProductPage

T = TypeVar("T")

_WIRE = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ---------------------------------------------------------------------------
# Auth request models
#
# Registration takes no schema at all: POST /api/auth/register reads the raw
# JSON so the "admin already exists" check runs whatever the body holds, and
# auth.accounts.register() validates the fields itself.
#
# Login fields are optional at the schema level so missing ones produce the
# documented message instead of a generic schema error. Passwords are never
# stripped: the stored secret is exactly what was typed.
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login."""

    email: Optional[str] = Field(default=None, max_length=255)
    # bcrypt never sees more than 72 bytes
    password: Optional[str] = Field(default=None, max_length=72)


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Envelope returned on every 4xx/5xx response.

    detail carries diagnostics (the traceback of an unexpected failure, or
    request validation errors) and is null in production for 500s.
    """

    model_config = ConfigDict(frozen=True)

    message: str
    code: str
    detail: Optional[str] = None


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str


class DataResponse(BaseModel, Generic[T]):
    """Success envelope for catalog endpoints: {success, message, data}."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: Optional[str] = None
    data: T


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Catalog response models
# ---------------------------------------------------------------------------


class ArticleOut(BaseModel):
    model_config = _WIRE

    id: int
    title: str
    description: str
    image: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    created_at: str
    updated_at: str

    @classmethod
    def from_domain(cls, article: Article) -> "ArticleOut":
        return cls(
            id=article.id,
            title=article.title,
            description=article.description,
            image=article.image,
            tags=article.tags,
            created_at=article.created_at,
            updated_at=article.updated_at,
        )


class CategoryOut(BaseModel):
    model_config = _WIRE

    id: int
    name: str
    image: Optional[str] = None

    @classmethod
    def from_domain(cls, category: Category) -> "CategoryOut":
        return cls(id=category.id, name=category.name, image=category.image)


class CategoryRefOut(BaseModel):
    model_config = _WIRE

    id: int
    name: str

    @classmethod
    def from_domain(cls, ref: CategoryRef) -> "CategoryRefOut":
        return cls(id=ref.id, name=ref.name)


class ProductOut(BaseModel):
    model_config = _WIRE

    id: int
    name: str
    description: str
    images: list[str] = Field(default_factory=list)
    categories: list[CategoryRefOut] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    hot: bool = False
    is_new: bool = False
    created_at: str
    updated_at: str

    @classmethod
    def from_domain(cls, product: Product) -> "ProductOut":
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            images=product.images,
            categories=[CategoryRefOut.from_domain(c) for c in product.categories],
            tags=product.tags,
            hot=product.hot,
            is_new=product.is_new,
            created_at=product.created_at,
            updated_at=product.updated_at,
        )


class Pagination(BaseModel):
    model_config = _WIRE

    total_product: int
    total_pages: int
    current_page: int
    limit: int


class ProductListResponse(BaseModel):
    """Response for GET /api/product."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str = "Products fetched successfully"
    data: list[ProductOut]
    pagination: Pagination

    @classmethod
    def from_page(cls, page: ProductPage) -> "ProductListResponse":
        return cls(
            data=[ProductOut.from_domain(p) for p in page.items],
            pagination=Pagination(
                total_product=page.total,
                total_pages=page.total_pages,
                current_page=page.page,
                limit=page.limit,
            ),
        )


class SlideOut(BaseModel):
    model_config = _WIRE

    id: int
    name: str
    image: str

    @classmethod
    def from_domain(cls, slide: ImageSlide) -> "SlideOut":
        return cls(id=slide.id, name=slide.name, image=slide.image)
