"""Shared fakes for the pipeline tests: mocked services, images and environment."""

from __future__ import annotations

import base64
import json
import sys
from pathlib import Path
from typing import Any, Callable, Optional

import httpx

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from image_answer.pipelines.answer import (  # noqa: E402
    BatchImage,
    CredentialKey,
    EndpointKey,
    NarrationParams,
    RequestTracer,
    TracedHttpClient,
)

MATHPIX_URL = "https://ocr.test/v3/text"
ANALYSIS_URL = "https://flowise.test/api/v1/prediction/analysis"
RAG_URL = "https://flowise.test/api/v1/prediction/rag"
TOOLS_URL = "https://flowise.test/api/v1/prediction/tools"

APP_ID = "test-app"
APP_KEY = "secret-app-key"


def flow_response(*outputs: Any) -> dict[str, Any]:
    """Flowise agent-flow body whose executed nodes produced ``outputs`` in order."""

    return {"agentFlowExecutedData": [{"data": {"output": output}} for output in outputs]}


def make_image(label: int, text: str) -> BatchImage:
    """Fake image whose base64 payload is the text the mocked OCR should read."""

    encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
    return BatchImage(payload=f"data:image/png;base64,{encoded}", label=label, mime_type="image/png")


def image_text(request: httpx.Request) -> str:
    """Recover the text encoded by ``make_image`` from a Mathpix request."""

    src = json.loads(request.content)["src"]
    return base64.b64decode(src.partition(",")[2]).decode("utf-8")


def question_of(request: httpx.Request) -> str:
    return json.loads(request.content)["question"]


def traced_client(handler: Callable[[httpx.Request], Any]) -> TracedHttpClient:
    transport = httpx.MockTransport(handler)
    return TracedHttpClient(httpx.AsyncClient(transport=transport), RequestTracer())


class StaticEnvironment:
    """In-memory ``PipelineEnvironment``; pass ``None`` to leave a key unset."""

    def __init__(self, narration_enabled: bool = False, **overrides: Optional[str]) -> None:
        self.values: dict[str, Optional[str]] = {
            CredentialKey.MATHPIX_APP_ID: APP_ID,
            CredentialKey.MATHPIX_APP_KEY: APP_KEY,
            EndpointKey.MATHPIX: MATHPIX_URL,
            EndpointKey.ANALYSIS: ANALYSIS_URL,
            EndpointKey.RAG: RAG_URL,
            EndpointKey.TOOLS: TOOLS_URL,
        }
        self.values.update(overrides)
        self.narration_enabled = narration_enabled

    def get_credential(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def get_endpoint_url(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def is_narration_enabled(self) -> bool:
        return self.narration_enabled

    def set_narration_enabled(self, enabled: bool) -> None:
        self.narration_enabled = enabled


class RecordingSpeechEngine:
    """Speech engine that only remembers what it was asked to say."""

    def __init__(self) -> None:
        self.spoken: list[str] = []

    async def speak(self, text: str, params: NarrationParams) -> None:
        self.spoken.append(text)


def default_handler(
    answers: Optional[dict[str, Any]] = None,
    question: str = "derived question",
) -> Callable[[httpx.Request], httpx.Response]:
    """Happy-path handler for every external service used by a run."""

    flow_answers = {
        RAG_URL: flow_response({"lectura": "ans-A"}),
        TOOLS_URL: flow_response({"content": "no reading here"}),
    }
    flow_answers.update(answers or {})

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url == MATHPIX_URL:
            return httpx.Response(200, json={"text": image_text(request)})
        if url == ANALYSIS_URL:
            return httpx.Response(200, json={"text": question})
        if url in flow_answers:
            return httpx.Response(200, json=flow_answers[url])
        return httpx.Response(404, json={"error": "unknown url"})

    return handler
