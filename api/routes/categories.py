"""
api/routes/categories.py -- Category CRUD routes.

Routes:
  POST   /api/category        -- create (admin; multipart: name, image)
  GET    /api/category        -- list; 404 when there are none
  GET    /api/category/{id}   -- detail
  PUT    /api/category/{id}   -- update (admin; name required, image optional)
  DELETE /api/category/{id}   -- delete (admin); detaches it from products
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Path, Request, UploadFile

from api.models import CategoryOut, DataResponse, MessageResponse
from api.uploads import MAX_ID, clean, read_images, store_with_images
from auth.dependencies import require_admin
from catalog.models import Category
from catalog.store import CatalogStore
from core.errors import NotFoundError, ValidationError

router = APIRouter()

_FOLDER = "category"


def _get_or_404(store: CatalogStore, category_id: int) -> Category:
    category = store.get_category(category_id)
    if category is None:
        raise NotFoundError("Category not found")
    return category


@router.post(
    "/category",
    response_model=DataResponse[CategoryOut],
    status_code=201,
    dependencies=[Depends(require_admin)],
)
async def create_category(
    request: Request,
    name: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
) -> DataResponse[CategoryOut]:
    name = clean(name)
    if not name:
        raise ValidationError("Category name is required")
    if image is None or not image.filename:
        raise ValidationError("Image is required")
    images = await read_images(request, [image], max_count=1)

    store: CatalogStore = request.app.state.catalog
    category_id = await store_with_images(
        request,
        images,
        _FOLDER,
        lambda urls: store.create_category(Category(name=name, image=urls[0])),
    )
    return DataResponse(
        message="Category created successfully",
        data=CategoryOut.from_domain(_get_or_404(store, category_id)),
    )


@router.get("/category", response_model=DataResponse[list[CategoryOut]])
def list_categories(request: Request) -> DataResponse[list[CategoryOut]]:
    store: CatalogStore = request.app.state.catalog
    categories = store.list_categories()
    if not categories:
        raise NotFoundError("No categories found")
    return DataResponse(
        message="Categories fetched successfully",
        data=[CategoryOut.from_domain(c) for c in categories],
    )


@router.get("/category/{category_id}", response_model=DataResponse[CategoryOut])
def get_category(request: Request, category_id: int = Path(ge=1, le=MAX_ID)) -> DataResponse[CategoryOut]:
    store: CatalogStore = request.app.state.catalog
    return DataResponse(
        message="Category fetched successfully",
        data=CategoryOut.from_domain(_get_or_404(store, category_id)),
    )


@router.put(
    "/category/{category_id}",
    response_model=DataResponse[CategoryOut],
    dependencies=[Depends(require_admin)],
)
async def update_category(
    request: Request,
    category_id: int = Path(ge=1, le=MAX_ID),
    name: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
) -> DataResponse[CategoryOut]:
    """Rename a category and optionally replace its image."""
    name = clean(name)
    if not name:
        raise ValidationError("Name is required")

    store: CatalogStore = request.app.state.catalog
    _get_or_404(store, category_id)
    images = await read_images(request, [image] if image else [], max_count=1)

    def write(urls: list[str]) -> None:
        fields: dict = {"name": name}
        if urls:
            fields["image"] = urls[0]
        if not store.update_category(category_id, **fields):
            raise NotFoundError("Category not found")

    await store_with_images(request, images, _FOLDER, write)
    return DataResponse(
        message="Category updated successfully",
        data=CategoryOut.from_domain(_get_or_404(store, category_id)),
    )


@router.delete(
    "/category/{category_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_admin)],
)
def delete_category(request: Request, category_id: int = Path(ge=1, le=MAX_ID)) -> MessageResponse:
    store: CatalogStore = request.app.state.catalog
    if not store.delete_category(category_id):
        raise NotFoundError("Category not found")
    return MessageResponse(message="Category deleted successfully")
