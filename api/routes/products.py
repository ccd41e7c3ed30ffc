"""
api/routes/products.py -- Product CRUD routes.

Routes:
  POST   /api/product        -- create (admin; multipart: name, description,
                                category, tag, hot?, image x1..5)
  GET    /api/product        -- filtered, paginated list
  GET    /api/product/{id}   -- detail
  PUT    /api/product/{id}   -- partial update (admin; multipart)
  DELETE /api/product/{id}   -- delete (admin)

category and tag are comma-separated form values; category holds category
ids that must exist.

List query params:
  category -- a numeric category id, or a case-insensitive fragment of a
              category name (404 if no category matches)
  name     -- case-insensitive fragment of the product name
  page     -- 1-based page number (default 1)
  limit    -- page size (default 10, max 100)

Update semantics: name/description/hot replace the stored value when sent;
category, tag and image values are appended to what the product already has.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Path, Query, Request, UploadFile

from api.models import DataResponse, MessageResponse, ProductListResponse, ProductOut
from api.uploads import MAX_ID, clean, parse_ids, read_images, split_list, store_with_images, to_id
from auth.dependencies import require_admin
from catalog.models import Product
from catalog.store import CatalogStore
from core.errors import NotFoundError, ValidationError

router = APIRouter()

_FOLDER = "product"
_MAX_IMAGES = 5


def _get_or_404(store: CatalogStore, product_id: int) -> Product:
    product = store.get_product(product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def _check_categories(store: CatalogStore, category_ids: list[int]) -> None:
    missing = store.missing_category_ids(category_ids)
    if missing:
        raise ValidationError(f"Unknown category id(s): {', '.join(str(m) for m in missing)}")


@router.post(
    "/product",
    response_model=DataResponse[ProductOut],
    status_code=201,
    dependencies=[Depends(require_admin)],
)
async def create_product(
    request: Request,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    tag: Optional[str] = Form(None),
    hot: bool = Form(False),
    image: Optional[list[UploadFile]] = File(None),
) -> DataResponse[ProductOut]:
    """Create a product. Images are uploaded first, all or nothing."""
    name, description = clean(name), clean(description)
    if not name:
        raise ValidationError("Please provide name")
    if not description:
        raise ValidationError("Please provide description")
    category_ids = parse_ids(category, "category")
    if not category_ids:
        raise ValidationError("Please provide category")
    tags = split_list(tag)
    if not tags:
        raise ValidationError("Please provide tag")
    images = await read_images(request, image, max_count=_MAX_IMAGES)
    if not images:
        raise ValidationError("Please provide image")

    store: CatalogStore = request.app.state.catalog
    _check_categories(store, category_ids)

    def write(urls: list[str]) -> int:
        return store.create_product(
            Product(
                name=name,
                description=description,
                images=urls,
                category_ids=category_ids,
                tags=tags,
                hot=hot,
            )
        )

    product_id = await store_with_images(request, images, _FOLDER, write)
    return DataResponse(
        message="Product successfully created",
        data=ProductOut.from_domain(_get_or_404(store, product_id)),
    )


@router.get("/product", response_model=ProductListResponse)
def list_products(
    request: Request,
    category: Optional[str] = None,
    name: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> ProductListResponse:
    store: CatalogStore = request.app.state.catalog

    category_id: Optional[int] = None
    category = clean(category)
    if category:
        category_id = to_id(category)
        if category_id is None:
            match = store.find_category_by_name(category)
            if match is None:
                raise NotFoundError(f"Category with name '{category}' not found.")
            category_id = match.id

    result = store.list_products(category_id=category_id, name=clean(name) or None, page=page, limit=limit)
    if result.total == 0:
        raise NotFoundError("No products found")
    if page > result.total_pages:
        raise NotFoundError("This page does not exist.")
    return ProductListResponse.from_page(result)


@router.get("/product/{product_id}", response_model=DataResponse[ProductOut])
def get_product(request: Request, product_id: int = Path(ge=1, le=MAX_ID)) -> DataResponse[ProductOut]:
    store: CatalogStore = request.app.state.catalog
    return DataResponse(
        message="Product fetched successfully",
        data=ProductOut.from_domain(_get_or_404(store, product_id)),
    )


@router.put(
    "/product/{product_id}",
    response_model=DataResponse[ProductOut],
    dependencies=[Depends(require_admin)],
)
async def update_product(
    request: Request,
    product_id: int = Path(ge=1, le=MAX_ID),
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    tag: Optional[str] = Form(None),
    hot: Optional[bool] = Form(None),
    image: Optional[list[UploadFile]] = File(None),
) -> DataResponse[ProductOut]:
    store: CatalogStore = request.app.state.catalog
    _get_or_404(store, product_id)

    category_ids = parse_ids(category, "category")
    _check_categories(store, category_ids)
    images = await read_images(request, image, max_count=_MAX_IMAGES)

    def write(urls: list[str]) -> None:
        # The product can disappear between the lookup and this write.
        if not store.update_product(
            product_id,
            name=clean(name) or None,
            description=clean(description) or None,
            hot=hot,
            add_category_ids=category_ids,
            add_tags=split_list(tag),
            add_images=urls,
        ):
            raise NotFoundError("Product not found")

    await store_with_images(request, images, _FOLDER, write)
    return DataResponse(
        message="Product updated successfully",
        data=ProductOut.from_domain(_get_or_404(store, product_id)),
    )


@router.delete(
    "/product/{product_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_admin)],
)
def delete_product(request: Request, product_id: int = Path(ge=1, le=MAX_ID)) -> MessageResponse:
    store: CatalogStore = request.app.state.catalog
    if not store.delete_product(product_id):
        raise NotFoundError("Product not found")
    return MessageResponse(message="Product deleted successfully")
