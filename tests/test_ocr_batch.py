"""Sequential Mathpix OCR over a batch of images."""

from __future__ import annotations

import asyncio

import httpx
import pytest
from conftest import APP_ID, APP_KEY, MATHPIX_URL, image_text, make_image, traced_client

from image_answer.pipelines.answer import (
    MathpixCredentials,
    OcrAllEmpty,
    OcrBatchProcessor,
    OcrCallFailed,
)
from image_answer.pipelines.answer.ocr import EMPTY_IMAGE_TEXT

CREDENTIALS = MathpixCredentials(app_id=APP_ID, app_key=APP_KEY)


def _run(handler, images):
    client = traced_client(handler)
    processor = OcrBatchProcessor(client, MATHPIX_URL)

    async def scenario():
        return await processor.run(images, CREDENTIALS)

    return client.tracer, scenario


def echo_text(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"text": image_text(request)})


def test_compiled_text_keeps_input_order():
    images = [make_image(1, "foo"), make_image(2, "bar"), make_image(3, "baz")]
    tracer, scenario = _run(echo_text, images)

    text = asyncio.run(scenario())

    assert text == "OCR 1: foo\n\nOCR 2: bar\n\nOCR 3: baz"
    assert [record.name for record in tracer.snapshot()] == ["OCR 1", "OCR 2", "OCR 3"]
    assert all(record.status == 200 for record in tracer.snapshot())


def test_blank_image_keeps_its_slot():
    images = [make_image(1, "foo"), make_image(2, "   ")]
    _, scenario = _run(echo_text, images)

    text = asyncio.run(scenario())

    assert text == f"OCR 1: foo\n\nOCR 2: {EMPTY_IMAGE_TEXT}"


def test_all_empty_batch_fails_after_every_image():
    images = [make_image(1, ""), make_image(2, ""), make_image(3, "")]
    tracer, scenario = _run(echo_text, images)

    with pytest.raises(OcrAllEmpty):
        asyncio.run(scenario())

    records = tracer.snapshot()
    assert len(records) == 3
    assert all(record.status == 200 and record.error is None for record in records)


def test_failed_image_stops_the_batch():
    def handler(request: httpx.Request) -> httpx.Response:
        text = image_text(request)
        if text == "bad":
            return httpx.Response(500, json={"error": "Internal error"})
        return httpx.Response(200, json={"text": text})

    images = [make_image(1, "foo"), make_image(2, "bad"), make_image(3, "baz")]
    tracer, scenario = _run(handler, images)

    with pytest.raises(OcrCallFailed) as excinfo:
        asyncio.run(scenario())

    assert excinfo.value.index == 2
    assert "Image 2" in str(excinfo.value)
    records = tracer.snapshot()
    assert [record.name for record in records] == ["OCR 1", "OCR 2"]
    assert records[1].status == 500
    assert records[1].error == str(excinfo.value)


def test_body_level_error_fails_even_on_200():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": "Invalid credentials"})

    tracer, scenario = _run(handler, [make_image(1, "foo")])

    with pytest.raises(OcrCallFailed, match="Image 1: Invalid credentials"):
        asyncio.run(scenario())

    assert tracer.snapshot()[0].error == "Image 1: Invalid credentials"


def test_transport_error_is_an_ocr_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    tracer, scenario = _run(handler, [make_image(1, "foo"), make_image(2, "bar")])

    with pytest.raises(OcrCallFailed) as excinfo:
        asyncio.run(scenario())

    assert excinfo.value.index == 1
    records = tracer.snapshot()
    assert len(records) == 1
    assert records[0].error == "connection refused"


def test_trace_hides_the_key_and_the_image_data():
    seen_headers: list[httpx.Headers] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen_headers.append(request.headers)
        return echo_text(request)

    tracer, scenario = _run(handler, [make_image(1, "foo")])
    asyncio.run(scenario())

    assert seen_headers[0]["app_key"] == APP_KEY
    assert seen_headers[0]["app_id"] == APP_ID
    record = tracer.snapshot()[0]
    assert record.headers["app_key"] == APP_KEY[:4] + "***"
    assert record.body["formats"] == ["text"]
    assert record.body["src"].startswith("data:image/png;base64,<")
