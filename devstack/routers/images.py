"""Project image endpoints."""

import uuid

from fastapi import APIRouter, File, Form, UploadFile, status

from devstack.auth import CurrentUser
from devstack.database import DbSession
from devstack.deps import StorageDep
from devstack.schemas.project import ImageRead, ImageReorderRequest
from devstack.schemas.responses import MessageResponse, SuccessResponse
from devstack.services import image_service

router = APIRouter(prefix="/images", tags=["images"])


@router.post(
    "/upload",
    response_model=SuccessResponse[ImageRead],
    status_code=status.HTTP_201_CREATED,
    summary="Upload a project image",
)
async def upload_image(
    db: DbSession,
    user: CurrentUser,
    storage: StorageDep,
    project_id: uuid.UUID = Form(...),
    file: UploadFile = File(...),
    is_primary: bool = Form(False),
    alt_text: str | None = Form(None, max_length=255),
) -> SuccessResponse[ImageRead]:
    """
    Upload a JPEG, PNG or WebP image.

    - Free plan: 5MB per image, 5 images per project
    - Pro plan: 10MB per image, 10 images per project
    - ``is_primary`` inserts the image first and shifts the others down
    """
    data = await file.read()
    image = await image_service.upload_image(
        db,
        user,
        project_id,
        content_type=file.content_type,
        data=data,
        storage=storage,
        is_primary=is_primary,
        alt_text=alt_text,
    )
    return SuccessResponse(data=ImageRead.model_validate(image))


@router.put("/reorder", response_model=SuccessResponse[list[ImageRead]], summary="Reorder images")
async def reorder_images(
    reorder_in: ImageReorderRequest,
    db: DbSession,
    user: CurrentUser,
) -> SuccessResponse[list[ImageRead]]:
    """The first image becomes the project's primary image."""
    images = await image_service.reorder_images(
        db, user, reorder_in.project_id, reorder_in.image_ids
    )
    return SuccessResponse(data=[ImageRead.model_validate(i) for i in images])


@router.delete("/{image_id}", response_model=MessageResponse, summary="Delete an image")
async def delete_image(
    image_id: uuid.UUID,
    db: DbSession,
    user: CurrentUser,
    storage: StorageDep,
) -> MessageResponse:
    await image_service.delete_image(db, user, image_id, storage)
    return MessageResponse(message="Image deleted successfully")
