"""
catalog/store.py -- SQLAlchemy-backed persistence layer for the catalog.

Uses SQLAlchemy Core (not ORM) so the dataclasses in catalog/models.py stay
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change (Settings.database_url), not a rewrite.

Pattern: Repository + Data Mapper. CatalogStore is the repository (one clean
interface per entity). The _row_to_* functions are the mappers. Route
handlers never touch SQL directly.

Storage notes:
  tags and image URL lists are JSON arrays serialized as TEXT.
  Product <-> Category is a join table (product_categories) with a position
  column so categories come back in the order they were attached.
  Deleting a category detaches it from every product.

Security: all queries use bound parameters. No f-strings in SQL. Name
filters use LIKE with autoescape so % and _ in user input match literally.

Usage:
    store = CatalogStore(settings.database_url)
    category_id = store.create_category(Category(name="Tires", image=url))
    product_id = store.create_product(Product(name="...", description="...", category_ids=[category_id]))
    page = store.list_products(name="tire", page=1, limit=10)
    store.close()
"""

import json
import logging
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
    select,
)
from sqlalchemy.engine import Engine

from catalog.models import Article, Category, CategoryRef, ImageSlide, Product, ProductPage
from core.database import make_engine

logger = logging.getLogger("shopadmin.catalog")

# A product counts as "new" for this long after creation.
_NEW_PRODUCT_WINDOW = timedelta(days=7)

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_articles = Table(
    "articles",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("description", Text, nullable=False),
    Column("image", Text),
    Column("tags", Text),  # JSON array serialized as text
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_categories = Table(
    "categories",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("image", Text),
)

_products = Table(
    "products",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("description", Text, nullable=False),
    Column("images", Text),  # JSON array of URLs
    Column("tags", Text),  # JSON array
    Column("hot", Boolean, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_product_categories = Table(
    "product_categories",
    metadata,
    Column("product_id", Integer, ForeignKey("products.id"), nullable=False),
    Column("category_id", Integer, ForeignKey("categories.id"), nullable=False),
    Column("position", Integer, nullable=False, server_default="0"),
    UniqueConstraint("product_id", "category_id", name="uq_product_category"),
)

_slides = Table(
    "image_slides",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("image", Text, nullable=False),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _dump_list(values: Iterable[str]) -> str:
    return json.dumps(list(values))


def _load_list(raw: Optional[str]) -> list:
    if not raw:
        return []
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return []


def _merge(existing: list, additions: Iterable) -> list:
    """Append additions to existing, dropping duplicates, keeping order."""
    merged = list(existing)
    for value in additions:
        if value not in merged:
            merged.append(value)
    return merged


def _is_new(created_at: str) -> bool:
    try:
        created = datetime.fromisoformat(created_at)
    except ValueError:
        return False
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc) - created < _NEW_PRODUCT_WINDOW


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CatalogStore:
    """Repository for articles, categories, products and image slides."""

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Articles
    # ------------------------------------------------------------------

    def create_article(self, article: Article) -> int:
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _articles.insert().values(
                    title=article.title,
                    description=article.description,
                    image=article.image,
                    tags=_dump_list(article.tags),
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_article(self, article_id: int) -> Optional[Article]:
        with self.engine.connect() as conn:
            row = conn.execute(_articles.select().where(_articles.c.id == article_id)).fetchone()
        return _row_to_article(row) if row is not None else None

    def list_articles(self) -> list[Article]:
        """Return all articles, newest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(_articles.select().order_by(_articles.c.id.desc())).fetchall()
        return [_row_to_article(r) for r in rows]

    def update_article(self, article_id: int, **fields) -> bool:
        """Update title, description, image and/or tags.

        Returns True if a row was updated, False if article_id was not found.
        """
        if "tags" in fields:
            fields["tags"] = _dump_list(fields["tags"])
        fields["updated_at"] = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(_articles.update().where(_articles.c.id == article_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete_article(self, article_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_articles.delete().where(_articles.c.id == article_id))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def create_category(self, category: Category) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(_categories.insert().values(name=category.name, image=category.image))
            conn.commit()
            return result.inserted_primary_key[0]

    def get_category(self, category_id: int) -> Optional[Category]:
        with self.engine.connect() as conn:
            row = conn.execute(_categories.select().where(_categories.c.id == category_id)).fetchone()
        return _row_to_category(row) if row is not None else None

    def find_category_by_name(self, fragment: str) -> Optional[Category]:
        """Return the first category whose name contains fragment (case-insensitive)."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _categories.select()
                .where(func.lower(_categories.c.name).contains(fragment.lower(), autoescape=True))
                .order_by(_categories.c.id)
                .limit(1)
            ).fetchone()
        return _row_to_category(row) if row is not None else None

    def list_categories(self) -> list[Category]:
        with self.engine.connect() as conn:
            rows = conn.execute(_categories.select().order_by(_categories.c.name)).fetchall()
        return [_row_to_category(r) for r in rows]

    def missing_category_ids(self, category_ids: Iterable[int]) -> list[int]:
        """Return the ids from category_ids that do not exist, in input order."""
        wanted = list(category_ids)
        if not wanted:
            return []
        with self.engine.connect() as conn:
            found = set(conn.execute(select(_categories.c.id).where(_categories.c.id.in_(wanted))).scalars())
        return [cid for cid in wanted if cid not in found]

    def update_category(self, category_id: int, **fields) -> bool:
        """Update name and/or image. Returns False if category_id was not found."""
        with self.engine.connect() as conn:
            result = conn.execute(_categories.update().where(_categories.c.id == category_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete_category(self, category_id: int) -> bool:
        """Delete a category and detach it from every product."""
        with self.engine.begin() as conn:
            conn.execute(_product_categories.delete().where(_product_categories.c.category_id == category_id))
            result = conn.execute(_categories.delete().where(_categories.c.id == category_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def create_product(self, product: Product) -> int:
        """Insert a product and link its category_ids. Returns the new id.

        Callers validate category_ids first (missing_category_ids).
        """
        now = _now_iso()
        with self.engine.begin() as conn:
            result = conn.execute(
                _products.insert().values(
                    name=product.name,
                    description=product.description,
                    images=_dump_list(product.images),
                    tags=_dump_list(product.tags),
                    hot=product.hot,
                    created_at=now,
                    updated_at=now,
                )
            )
            product_id = result.inserted_primary_key[0]
            self._link_categories(conn, product_id, _merge([], product.category_ids), start=0)
        return product_id

    def get_product(self, product_id: int) -> Optional[Product]:
        with self.engine.connect() as conn:
            row = conn.execute(_products.select().where(_products.c.id == product_id)).fetchone()
            if row is None:
                return None
            product = _row_to_product(row)
            self._attach_categories(conn, [product])
        return product

    def list_products(
        self,
        category_id: Optional[int] = None,
        name: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> ProductPage:
        """Return one page of products matching the filters, newest first.

        category_id restricts to products linked to that category. name is a
        case-insensitive substring match on the product name.
        """
        conditions = []
        if category_id is not None:
            conditions.append(
                _products.c.id.in_(
                    select(_product_categories.c.product_id).where(_product_categories.c.category_id == category_id)
                )
            )
        if name:
            conditions.append(func.lower(_products.c.name).contains(name.lower(), autoescape=True))

        count_stmt = select(func.count()).select_from(_products)
        page_stmt = _products.select().order_by(_products.c.id.desc()).offset((page - 1) * limit).limit(limit)
        if conditions:
            count_stmt = count_stmt.where(*conditions)
            page_stmt = page_stmt.where(*conditions)

        with self.engine.connect() as conn:
            total = conn.execute(count_stmt).scalar() or 0
            rows = conn.execute(page_stmt).fetchall()
            items = [_row_to_product(r) for r in rows]
            self._attach_categories(conn, items)

        total_pages = -(-total // limit) if limit else 0
        return ProductPage(items=items, total=total, total_pages=total_pages, page=page, limit=limit)

    def update_product(
        self,
        product_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        hot: Optional[bool] = None,
        add_category_ids: Iterable[int] = (),
        add_tags: Iterable[str] = (),
        add_images: Iterable[str] = (),
    ) -> bool:
        """Apply a partial update.

        name, description and hot replace the stored value when given.
        Categories, tags and images are appended; values already present are
        skipped. Returns False if product_id was not found.
        """
        with self.engine.begin() as conn:
            row = conn.execute(_products.select().where(_products.c.id == product_id)).fetchone()
            if row is None:
                return False
            values: dict = {
                "images": _dump_list(_merge(_load_list(row.images), add_images)),
                "tags": _dump_list(_merge(_load_list(row.tags), add_tags)),
                "updated_at": _now_iso(),
            }
            if name:
                values["name"] = name
            if description:
                values["description"] = description
            if hot is not None:
                values["hot"] = hot
            conn.execute(_products.update().where(_products.c.id == product_id).values(**values))

            existing = list(
                conn.execute(
                    select(_product_categories.c.category_id)
                    .where(_product_categories.c.product_id == product_id)
                    .order_by(_product_categories.c.position)
                ).scalars()
            )
            new_ids = [cid for cid in _merge(existing, add_category_ids) if cid not in existing]
            self._link_categories(conn, product_id, new_ids, start=len(existing))
        return True

    def delete_product(self, product_id: int) -> bool:
        with self.engine.begin() as conn:
            conn.execute(_product_categories.delete().where(_product_categories.c.product_id == product_id))
            result = conn.execute(_products.delete().where(_products.c.id == product_id))
        return result.rowcount > 0

    @staticmethod
    def _link_categories(conn, product_id: int, category_ids: list[int], start: int) -> None:
        if not category_ids:
            return
        conn.execute(
            _product_categories.insert(),
            [
                {"product_id": product_id, "category_id": cid, "position": start + offset}
                for offset, cid in enumerate(category_ids)
            ],
        )

    @staticmethod
    def _attach_categories(conn, products: list[Product]) -> None:
        """Fill product.categories / category_ids for every product in one query."""
        by_id = {p.id: p for p in products}
        if not by_id:
            return
        rows = conn.execute(
            select(_product_categories.c.product_id, _categories.c.id, _categories.c.name)
            .join(_categories, _categories.c.id == _product_categories.c.category_id)
            .where(_product_categories.c.product_id.in_(list(by_id)))
            .order_by(_product_categories.c.product_id, _product_categories.c.position)
        ).fetchall()
        for product_id, category_id, category_name in rows:
            product = by_id[product_id]
            product.categories.append(CategoryRef(id=category_id, name=category_name))
            product.category_ids.append(category_id)

    # ------------------------------------------------------------------
    # Image slides
    # ------------------------------------------------------------------

    def create_slide(self, slide: ImageSlide) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(_slides.insert().values(name=slide.name, image=slide.image))
            conn.commit()
            return result.inserted_primary_key[0]

    def get_slide(self, slide_id: int) -> Optional[ImageSlide]:
        with self.engine.connect() as conn:
            row = conn.execute(_slides.select().where(_slides.c.id == slide_id)).fetchone()
        return _row_to_slide(row) if row is not None else None

    def list_slides(self) -> list[ImageSlide]:
        with self.engine.connect() as conn:
            rows = conn.execute(_slides.select().order_by(_slides.c.id)).fetchall()
        return [_row_to_slide(r) for r in rows]

    def delete_slide(self, slide_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_slides.delete().where(_slides.c.id == slide_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_article(row) -> Article:
    return Article(
        id=row.id,
        title=row.title,
        description=row.description,
        image=row.image,
        tags=_load_list(row.tags),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_category(row) -> Category:
    return Category(id=row.id, name=row.name, image=row.image)


def _row_to_product(row) -> Product:
    # categories are filled in afterwards by _attach_categories()
    return Product(
        id=row.id,
        name=row.name,
        description=row.description,
        images=_load_list(row.images),
        tags=_load_list(row.tags),
        hot=bool(row.hot),
        is_new=_is_new(row.created_at),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_slide(row) -> ImageSlide:
    return ImageSlide(id=row.id, name=row.name, image=row.image)
