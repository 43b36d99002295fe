"""Concurrent RAG/Tools fan-out, all-or-nothing."""

from __future__ import annotations

import asyncio

import httpx
import pytest
from conftest import RAG_URL, TOOLS_URL, flow_response, question_of, traced_client

from image_answer.pipelines.answer import FanoutCallFailed, FanoutCoordinator, FanoutEndpoint

RAG = FanoutEndpoint("rag", "RAG con Respuestas", RAG_URL)
TOOLS = FanoutEndpoint("tools", "Herramientas con Respuestas", TOOLS_URL)


def test_both_branches_answer_from_their_reading():
    questions: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        questions.append(question_of(request))
        if str(request.url) == RAG_URL:
            # the first branch finishes last; records must still follow dispatch order
            await asyncio.sleep(0.02)
            return httpx.Response(200, json=flow_response({"lectura": "ans-A"}))
        return httpx.Response(200, json=flow_response({"content": '{"lectura":"ans-B"}'}))

    client = traced_client(handler)
    outcome = asyncio.run(FanoutCoordinator(client).run("q?", RAG, TOOLS))

    assert [answer.text for answer in outcome.answers] == ["ans-A", "ans-B"]
    assert outcome.first.endpoint is RAG
    assert questions == ["q?", "q?"]
    assert [record.name for record in client.tracer.snapshot()] == [RAG.label, TOOLS.label]


def test_branch_without_reading_yields_none():
    def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url) == RAG_URL:
            return httpx.Response(200, json=flow_response({"lectura": "ans-A"}))
        return httpx.Response(200, json=flow_response("plain answer"))

    outcome = asyncio.run(FanoutCoordinator(traced_client(handler)).run("q?", RAG, TOOLS))

    assert outcome.first.text == "ans-A"
    assert outcome.second.text is None


def test_one_failing_branch_fails_the_whole_fanout():
    def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url) == RAG_URL:
            return httpx.Response(200, json=flow_response({"lectura": "ans-A"}))
        raise httpx.ReadTimeout("timed out", request=request)

    client = traced_client(handler)

    with pytest.raises(FanoutCallFailed) as excinfo:
        asyncio.run(FanoutCoordinator(client).run("q?", RAG, TOOLS))

    assert "Herramientas con Respuestas: timed out" in str(excinfo.value)
    assert "ans-A" not in str(excinfo.value)
    rag_record, tools_record = client.tracer.snapshot()
    assert rag_record.status == 200 and rag_record.error is None
    assert tools_record.error == "timed out"


def test_non_json_bodies_are_kept_as_text():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>gateway</html>")

    client = traced_client(handler)
    outcome = asyncio.run(FanoutCoordinator(client).run("q?", RAG, TOOLS))

    assert [answer.text for answer in outcome.answers] == [None, None]
    assert client.tracer.snapshot()[0].response == "<html>gateway</html>"


def test_branches_are_in_flight_at_the_same_time():
    async def scenario():
        started = {RAG_URL: asyncio.Event(), TOOLS_URL: asyncio.Event()}
        release = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            started[str(request.url)].set()
            # neither branch can answer until both have been dispatched
            await asyncio.gather(*(event.wait() for event in started.values()))
            await release.wait()
            return httpx.Response(200, json=flow_response({"lectura": str(request.url)}))

        client = traced_client(handler)
        task = asyncio.create_task(FanoutCoordinator(client).run("q?", RAG, TOOLS))
        await asyncio.wait_for(
            asyncio.gather(*(event.wait() for event in started.values())),
            timeout=1,
        )

        in_flight = client.tracer.snapshot()
        release.set()
        outcome = await asyncio.wait_for(task, timeout=1)
        return in_flight, outcome, client.tracer.snapshot()

    in_flight, outcome, settled = asyncio.run(scenario())

    assert [record.name for record in in_flight] == [RAG.label, TOOLS.label]
    assert not any(record.settled for record in in_flight)
    assert [answer.text for answer in outcome.answers] == [RAG_URL, TOOLS_URL]
    assert all(record.status == 200 for record in settled)
