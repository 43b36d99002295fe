"""OCR stage: submit every image of the batch to Mathpix, one at a time."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from .errors import OcrAllEmpty, OcrCallFailed
from .transport import ServiceCallError, TracedHttpClient
from .types import BatchImage, MathpixCredentials

logger = logging.getLogger("image_answer.pipeline")

EMPTY_IMAGE_TEXT = "[no text recognized]"
_ENTRY_SEPARATOR = "\n\n"


def _redact(secret: str) -> str:
    if len(secret) <= 4:
        return "***"
    return secret[:4] + "***"


def _abbreviate_src(payload: str) -> str:
    prefix, _, data = payload.partition(",")
    return f"{prefix},<{len(data)} base64 chars>"


def _error_message(body: Any, index: int, status: int | None = None) -> str:
    if isinstance(body, Mapping):
        detail = body.get("error")
        if isinstance(detail, str) and detail.strip():
            return f"Image {index}: {detail}"
        if isinstance(detail, Mapping):
            return f"Image {index}: {detail.get('message') or detail}"
    if status is not None:
        return f"Mathpix error {status} on image {index}"
    return f"Mathpix error on image {index}"


class OcrBatchProcessor:
    """Turn an ordered batch of images into one labelled text block.

    Images are processed strictly in order. The first failing call aborts the
    batch; images that come back without text keep their slot with a
    placeholder line. The batch fails as a whole only when no image produced
    any text, and only after every image was attempted.
    """

    def __init__(self, client: TracedHttpClient, url: str) -> None:
        self._client = client
        self._url = url

    async def run(
        self,
        images: Sequence[BatchImage],
        credentials: MathpixCredentials,
    ) -> str:
        entries: list[str] = []
        recognized = 0

        for position, image in enumerate(images, start=1):
            logger.info("Procesando imagen %s/%s", position, len(images))
            text = await self._recognize(position, image, credentials)
            if text.strip():
                recognized += 1
                entries.append(f"OCR {position}: {text}")
            else:
                logger.warning("Imagen %s no devolvió texto", position)
                entries.append(f"OCR {position}: {EMPTY_IMAGE_TEXT}")

        if recognized == 0:
            raise OcrAllEmpty()
        return _ENTRY_SEPARATOR.join(entries)

    async def _recognize(
        self,
        position: int,
        image: BatchImage,
        credentials: MathpixCredentials,
    ) -> str:
        payload = {"src": image.payload, "formats": ["text"]}
        try:
            result = await self._client.post_json(
                f"OCR {position}",
                self._url,
                payload,
                headers={"app_id": credentials.app_id, "app_key": credentials.app_key},
                trace_headers={
                    "Content-Type": "application/json",
                    "app_id": credentials.app_id,
                    "app_key": _redact(credentials.app_key),
                },
                trace_body={"src": _abbreviate_src(image.payload), "formats": ["text"]},
                metric_label="mathpix",
            )
        except ServiceCallError as exc:
            raise OcrCallFailed(position, f"Image {position}: {exc}") from exc

        body = result.body
        if not result.is_success or not isinstance(body, Mapping) or body.get("error"):
            if result.is_success and not isinstance(body, Mapping):
                message = f"Image {position}: Mathpix returned a non-JSON body"
            else:
                message = _error_message(
                    body, position, None if result.is_success else result.status
                )
            self._client.tracer.fail(result.record, message)
            raise OcrCallFailed(position, message)

        text = body.get("text")
        return text if isinstance(text, str) else ""


__all__ = ["EMPTY_IMAGE_TEXT", "OcrBatchProcessor"]
