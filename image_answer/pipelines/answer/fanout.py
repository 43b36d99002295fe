"""Fan-out stage: ask both answering flows the same question concurrently."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from .errors import FanoutCallFailed
from .extraction import extract_reading
from .transport import ServiceCallError, ServiceResponse, TracedHttpClient

logger = logging.getLogger("image_answer.pipeline")


@dataclass(frozen=True)
class FanoutEndpoint:
    key: str
    label: str
    url: str


@dataclass(frozen=True)
class BranchAnswer:
    endpoint: FanoutEndpoint
    text: Optional[str]


@dataclass(frozen=True)
class FanoutOutcome:
    first: BranchAnswer
    second: BranchAnswer

    @property
    def answers(self) -> tuple[BranchAnswer, BranchAnswer]:
        return (self.first, self.second)


class FanoutCoordinator:
    """Dispatch two calls together and extract one answer from each.

    Both calls are always awaited to settlement. If either of them fails the
    whole fan-out fails and no answer is returned, even when the other branch
    succeeded.
    """

    def __init__(self, client: TracedHttpClient) -> None:
        self._client = client

    async def run(
        self,
        question: str,
        first: FanoutEndpoint,
        second: FanoutEndpoint,
    ) -> FanoutOutcome:
        payload = {"question": question}
        endpoints = (first, second)
        calls = [self._client.prepare(endpoint.label, endpoint.url, payload) for endpoint in endpoints]
        results = await asyncio.gather(
            *(self._client.send(call) for call in calls),
            return_exceptions=True,
        )

        failures: list[tuple[FanoutEndpoint, BaseException]] = []
        responses: list[tuple[FanoutEndpoint, ServiceResponse]] = []
        for endpoint, result in zip(endpoints, results):
            if isinstance(result, ServiceResponse):
                responses.append((endpoint, result))
            elif isinstance(result, ServiceCallError):
                failures.append((endpoint, result))
            else:
                raise result
        if failures:
            message = "; ".join(f"{endpoint.label}: {failure}" for endpoint, failure in failures)
            raise FanoutCallFailed(f"Fan-out call failed: {message}") from failures[0][1]

        answers = []
        for endpoint, response in responses:
            text = extract_reading(response.body)
            logger.info("%s status=%s lectura=%s", endpoint.label, response.status, text)
            answers.append(BranchAnswer(endpoint=endpoint, text=text))
        return FanoutOutcome(first=answers[0], second=answers[1])


__all__ = ["BranchAnswer", "FanoutCoordinator", "FanoutEndpoint", "FanoutOutcome"]
