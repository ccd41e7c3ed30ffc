"""
api/routes/articles.py -- Article CRUD routes.

Routes:
  POST   /api/article        -- create (admin; multipart: title, description, tag, image?)
  GET    /api/article        -- list, newest first
  GET    /api/article/{id}   -- detail
  PUT    /api/article/{id}   -- update (admin; multipart, same fields, all optional
                                but title or description must be given)
  DELETE /api/article/{id}   -- delete (admin)

tag is a comma-separated string. A new image replaces the old one.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Path, Request, UploadFile

from api.models import ArticleOut, DataResponse, MessageResponse
from api.uploads import MAX_ID, clean, read_images, split_list, store_with_images
from auth.dependencies import require_admin
from catalog.models import Article
from catalog.store import CatalogStore
from core.errors import NotFoundError, ValidationError

router = APIRouter()

_FOLDER = "article"


def _get_or_404(store: CatalogStore, article_id: int) -> Article:
    article = store.get_article(article_id)
    if article is None:
        raise NotFoundError("Article not found")
    return article


@router.post(
    "/article",
    response_model=DataResponse[ArticleOut],
    status_code=201,
    dependencies=[Depends(require_admin)],
)
async def create_article(
    request: Request,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    tag: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
) -> DataResponse[ArticleOut]:
    """Create an article, uploading its image first when one is attached."""
    title, description = clean(title), clean(description)
    if not title or not description:
        raise ValidationError("Please provide title and description")
    images = await read_images(request, [image] if image else [], max_count=1)

    store: CatalogStore = request.app.state.catalog

    def write(urls: list[str]) -> int:
        return store.create_article(
            Article(
                title=title,
                description=description,
                image=urls[0] if urls else None,
                tags=split_list(tag),
            )
        )

    article_id = await store_with_images(request, images, _FOLDER, write)
    return DataResponse(
        message="Article created successfully",
        data=ArticleOut.from_domain(_get_or_404(store, article_id)),
    )


@router.get("/article", response_model=DataResponse[list[ArticleOut]])
def list_articles(request: Request) -> DataResponse[list[ArticleOut]]:
    store: CatalogStore = request.app.state.catalog
    return DataResponse(
        message="Articles fetched successfully",
        data=[ArticleOut.from_domain(a) for a in store.list_articles()],
    )


@router.get("/article/{article_id}", response_model=DataResponse[ArticleOut])
def get_article(request: Request, article_id: int = Path(ge=1, le=MAX_ID)) -> DataResponse[ArticleOut]:
    store: CatalogStore = request.app.state.catalog
    return DataResponse(
        message="Article fetched successfully",
        data=ArticleOut.from_domain(_get_or_404(store, article_id)),
    )


@router.put(
    "/article/{article_id}",
    response_model=DataResponse[ArticleOut],
    dependencies=[Depends(require_admin)],
)
async def update_article(
    request: Request,
    article_id: int = Path(ge=1, le=MAX_ID),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    tag: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
) -> DataResponse[ArticleOut]:
    """Replace the fields that were sent. At least title or description is required."""
    title, description = clean(title), clean(description)
    if not title and not description:
        raise ValidationError("Please provide title or description")

    store: CatalogStore = request.app.state.catalog
    _get_or_404(store, article_id)
    images = await read_images(request, [image] if image else [], max_count=1)

    fields: dict = {}
    if title:
        fields["title"] = title
    if description:
        fields["description"] = description
    if tag is not None:
        fields["tags"] = split_list(tag)

    def write(urls: list[str]) -> None:
        if urls:
            fields["image"] = urls[0]
        if not store.update_article(article_id, **fields):
            raise NotFoundError("Article not found")

    await store_with_images(request, images, _FOLDER, write)
    return DataResponse(
        message="Article updated successfully",
        data=ArticleOut.from_domain(_get_or_404(store, article_id)),
    )


@router.delete(
    "/article/{article_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_admin)],
)
def delete_article(request: Request, article_id: int = Path(ge=1, le=MAX_ID)) -> MessageResponse:
    store: CatalogStore = request.app.state.catalog
    if not store.delete_article(article_id):
        raise NotFoundError("Article not found")
    return MessageResponse(message="Article deleted successfully")
