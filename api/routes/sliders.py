"""
api/routes/sliders.py -- Home page image slider routes.

Routes:
  POST   /api/imageSlider        -- add a slide (admin; multipart: name, image)
  GET    /api/imageSlider        -- list slides in insertion order
  GET    /api/imageSlider/{id}   -- one slide
  DELETE /api/imageSlider/{id}   -- remove a slide (admin)
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Path, Request, UploadFile

from api.models import DataResponse, MessageResponse, SlideOut
from api.uploads import MAX_ID, clean, read_images, store_with_images
from auth.dependencies import require_admin
from catalog.models import ImageSlide
from catalog.store import CatalogStore
from core.errors import NotFoundError, ValidationError

router = APIRouter()


@router.post(
    "/imageSlider",
    response_model=DataResponse[SlideOut],
    status_code=201,
    dependencies=[Depends(require_admin)],
)
async def create_slide(
    request: Request,
    name: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
) -> DataResponse[SlideOut]:
    name = clean(name)
    if not name:
        raise ValidationError("Please provide name")
    if image is None or not image.filename:
        raise ValidationError("Please provide image")
    images = await read_images(request, [image], max_count=1)

    store: CatalogStore = request.app.state.catalog
    slide_id = await store_with_images(
        request,
        images,
        "slider",
        lambda urls: store.create_slide(ImageSlide(name=name, image=urls[0])),
    )
    return DataResponse(message="Image added successfully", data=SlideOut.from_domain(store.get_slide(slide_id)))


@router.get("/imageSlider", response_model=DataResponse[list[SlideOut]])
def list_slides(request: Request) -> DataResponse[list[SlideOut]]:
    store: CatalogStore = request.app.state.catalog
    return DataResponse(
        message="Images fetched successfully",
        data=[SlideOut.from_domain(s) for s in store.list_slides()],
    )


@router.get("/imageSlider/{slide_id}", response_model=DataResponse[SlideOut])
def get_slide(request: Request, slide_id: int = Path(ge=1, le=MAX_ID)) -> DataResponse[SlideOut]:
    store: CatalogStore = request.app.state.catalog
    slide = store.get_slide(slide_id)
    if slide is None:
        raise NotFoundError("Image not found")
    return DataResponse(message="Image fetched successfully", data=SlideOut.from_domain(slide))


@router.delete(
    "/imageSlider/{slide_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_admin)],
)
def delete_slide(request: Request, slide_id: int = Path(ge=1, le=MAX_ID)) -> MessageResponse:
    store: CatalogStore = request.app.state.catalog
    if not store.delete_slide(slide_id):
        raise NotFoundError("Image not found")
    return MessageResponse(message="Image deleted successfully")
