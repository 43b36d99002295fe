"""Request ingestion helpers (uploads -> ``BatchImage``)."""

from __future__ import annotations

import base64
import mimetypes
from typing import Sequence

from fastapi import HTTPException, UploadFile, status

from .types import BatchImage

DEFAULT_MAX_IMAGE_BYTES = 5 * 1024 * 1024


def resolve_image_type(upload: UploadFile) -> str:
    """Accept any ``image/*`` upload, guessing from the filename when the client sent no type."""

    content_type = upload.content_type
    if (not content_type or content_type == "application/octet-stream") and upload.filename:
        guessed_type, _ = mimetypes.guess_type(upload.filename)
        content_type = guessed_type or content_type

    if not content_type or not content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"'{upload.filename or 'upload'}' is not a valid image file",
        )
    return content_type


def encode_data_url(image_bytes: bytes, content_type: str) -> str:
    subtype = content_type.split("/", 1)[1]
    encoded = base64.b64encode(image_bytes).decode("ascii")
    return f"data:image/{subtype};base64,{encoded}"


async def read_batch_images(
    uploads: Sequence[UploadFile],
    *,
    max_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
) -> list[BatchImage]:
    """Load every upload into memory, keeping the order in which they were sent."""

    images: list[BatchImage] = []
    for position, upload in enumerate(uploads, start=1):
        content_type = resolve_image_type(upload)
        image_bytes = await upload.read()
        await upload.close()

        if not image_bytes:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Image {position} is empty",
            )
        if len(image_bytes) > max_bytes:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Image {position} is larger than {max_bytes // (1024 * 1024)}MB",
            )
        images.append(
            BatchImage(
                payload=encode_data_url(image_bytes, content_type),
                label=position,
                mime_type=content_type,
            )
        )
    return images


__all__ = ["DEFAULT_MAX_IMAGE_BYTES", "encode_data_url", "read_batch_images", "resolve_image_type"]
