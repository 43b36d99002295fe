"""Request tracer ordering, in-place settlement and snapshot isolation."""

from __future__ import annotations

from conftest import ANALYSIS_URL, MATHPIX_URL

from image_answer.pipelines.answer import ApiRequestRecord, RequestTracer


def test_records_keep_dispatch_order_and_settle_in_place():
    tracer = RequestTracer()
    first = tracer.record("OCR 1", MATHPIX_URL, "post")
    second = tracer.record("OCR 2", MATHPIX_URL, "post")

    tracer.settle(second, 200, {"text": "b"})
    tracer.fail(first, "boom")

    records = tracer.snapshot()
    assert [record.name for record in records] == ["OCR 1", "OCR 2"]
    assert records[0].method == "POST"
    assert records[0].error == "boom" and records[0].status is None
    assert records[1].status == 200 and records[1].response == {"text": "b"}
    assert all(record.settled for record in records)
    assert records[0].id != records[1].id


def test_snapshot_is_a_copy():
    tracer = RequestTracer()
    tracer.record("Analiza Enunciado", ANALYSIS_URL, "POST", headers={"Content-Type": "application/json"})

    snapshot = tracer.snapshot()
    snapshot[0].status = 500
    snapshot[0].headers["Content-Type"] = "text/plain"

    fresh = tracer.snapshot()[0]
    assert fresh.status is None
    assert fresh.headers == {"Content-Type": "application/json"}
    assert not fresh.settled


def test_listeners_see_every_append_and_update():
    tracer = RequestTracer()
    seen: list[ApiRequestRecord] = []
    tracer.add_listener(seen.append)

    handle = tracer.record("OCR 1", MATHPIX_URL, "POST")
    tracer.settle(handle, 200, {"text": "foo"})

    assert [(record.name, record.status) for record in seen] == [("OCR 1", None), ("OCR 1", 200)]
    assert seen[0].id == seen[1].id == handle.id


def test_clear_drops_records_and_ignores_late_settlement():
    tracer = RequestTracer()
    stale = tracer.record("OCR 1", MATHPIX_URL, "POST")
    tracer.clear()

    tracer.settle(stale, 200, {"text": "late"})

    assert len(tracer) == 0
    assert tracer.snapshot() == []
