"""Pipeline controller: OCR -> analysis -> fan-out -> narration.

The controller owns the run state machine

    idle -> ocr_running -> analyzing -> fanning_out -> done

with ``failed`` reachable from every non-terminal state, and keeps the
caller-owned ``StageTracker`` and ``RequestTracer`` up to date so observers
can render progress while the run is in flight. A new run resets both
before doing anything else; a failure leaves them untouched for diagnostics.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from image_answer.telemetry import observe_pipeline_run, observe_stage

from .analysis import analyze_statement
from .errors import (
    BatchEmptyInput,
    MissingConfiguration,
    PipelineBusy,
    PipelineCancelled,
    PipelineError,
)
from .fanout import FanoutCoordinator, FanoutEndpoint
from .flow import (
    ANALYZE_STAGE,
    FANOUT_STAGE,
    OCR_STAGE,
    STAGE_DEFINITIONS,
    CredentialKey,
    EndpointKey,
)
from .narration import NarrationQueue
from .ocr import OcrBatchProcessor
from .stages import StageTracker
from .tracer import RequestTracer
from .transport import TracedHttpClient
from .types import (
    BatchImage,
    ExtractedAnswer,
    MathpixCredentials,
    PipelineEnvironment,
    PipelineResult,
    PipelineStage,
    PipelineState,
    StageStatus,
)

logger = logging.getLogger("image_answer.pipeline")

_DEFAULT_LABELS = {
    EndpointKey.RAG: "RAG con Respuestas",
    EndpointKey.TOOLS: "Herramientas con Respuestas",
}


@dataclass(frozen=True)
class RunConfiguration:
    """Credentials and endpoints resolved before a run touches any state."""

    credentials: MathpixCredentials
    ocr_url: str
    analysis_url: str
    first: FanoutEndpoint
    second: FanoutEndpoint


class AnswerPipeline:
    """Run the image answer pipeline, one run at a time."""

    def __init__(
        self,
        http_client: TracedHttpClient,
        environment: PipelineEnvironment,
        *,
        tracker: Optional[StageTracker] = None,
        narration: Optional[NarrationQueue] = None,
        branch_labels: Optional[dict[str, str]] = None,
    ) -> None:
        self._http = http_client
        self._environment = environment
        self.tracer: RequestTracer = http_client.tracer
        self.tracker = tracker if tracker is not None else StageTracker(STAGE_DEFINITIONS)
        self.narration = narration
        self._labels = {**_DEFAULT_LABELS, **(branch_labels or {})}
        self._state = PipelineState.IDLE
        self._ocr_text: Optional[str] = None
        self._answers: list[ExtractedAnswer] = []
        self._error: Optional[PipelineError] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._cancel_requested = False
        self._stage_started: dict[str, float] = {}
        self.tracker.add_listener(self._observe_stage)

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def snapshot(self) -> PipelineResult:
        """Current view of the run, including the error that ended it; safe while in flight."""

        return PipelineResult(
            state=self._state,
            ocr_text=self._ocr_text,
            answers=list(self._answers),
            error=self._error,
            stages=self.tracker.snapshot(),
            requests=self.tracer.snapshot(),
        )

    def cancel(self) -> bool:
        """Abort the active run; returns False when nothing is running."""

        if self._task is None or self._task.done():
            return False
        self._cancel_requested = True
        self._task.cancel()
        return True

    async def run(self, images: Sequence[BatchImage]) -> PipelineResult:
        if self.is_running:
            raise PipelineBusy()
        if not images:
            raise BatchEmptyInput()
        config = self._resolve_configuration()

        self._reset()
        error: Optional[PipelineError] = None
        self._task = asyncio.get_running_loop().create_task(self._execute(images, config))
        try:
            await self._task
        except PipelineError as exc:
            error = exc
        except asyncio.CancelledError:
            if not self._cancel_requested:
                self._fail_active_stages(str(PipelineCancelled()))
                self._state = PipelineState.FAILED
                raise
            error = PipelineCancelled()
        except Exception:
            self._fail_active_stages("Unexpected pipeline error")
            self._state = PipelineState.FAILED
            logger.exception("Error inesperado en el pipeline")
            raise
        finally:
            self._cancel_requested = False

        if error is not None:
            self._fail_active_stages(str(error))
            self._state = PipelineState.FAILED
            logger.warning("Pipeline falló (%s): %s", error.code, error)
        else:
            self._state = PipelineState.DONE
            self._narrate()
        self._error = error
        observe_pipeline_run(self._state.value)
        return self.snapshot()

    def _resolve_configuration(self) -> RunConfiguration:
        env = self._environment
        values = {
            CredentialKey.MATHPIX_APP_ID: env.get_credential(CredentialKey.MATHPIX_APP_ID),
            CredentialKey.MATHPIX_APP_KEY: env.get_credential(CredentialKey.MATHPIX_APP_KEY),
            EndpointKey.MATHPIX: env.get_endpoint_url(EndpointKey.MATHPIX),
            EndpointKey.ANALYSIS: env.get_endpoint_url(EndpointKey.ANALYSIS),
            EndpointKey.RAG: env.get_endpoint_url(EndpointKey.RAG),
            EndpointKey.TOOLS: env.get_endpoint_url(EndpointKey.TOOLS),
        }
        missing = [key for key, value in values.items() if not value or not value.strip()]
        if missing:
            raise MissingConfiguration(missing)

        return RunConfiguration(
            credentials=MathpixCredentials(
                app_id=values[CredentialKey.MATHPIX_APP_ID],
                app_key=values[CredentialKey.MATHPIX_APP_KEY],
            ),
            ocr_url=values[EndpointKey.MATHPIX],
            analysis_url=values[EndpointKey.ANALYSIS],
            first=FanoutEndpoint(EndpointKey.RAG, self._labels[EndpointKey.RAG], values[EndpointKey.RAG]),
            second=FanoutEndpoint(
                EndpointKey.TOOLS, self._labels[EndpointKey.TOOLS], values[EndpointKey.TOOLS]
            ),
        )

    def _reset(self) -> None:
        self.tracker.initialize(STAGE_DEFINITIONS)
        self.tracer.clear()
        self._state = PipelineState.IDLE
        self._ocr_text = None
        self._answers = []
        self._error = None
        self._stage_started.clear()

    async def _execute(self, images: Sequence[BatchImage], config: RunConfiguration) -> None:
        self._state = PipelineState.OCR_RUNNING
        self.tracker.begin(OCR_STAGE, f"Procesando {len(images)} imagen(es)")
        ocr = OcrBatchProcessor(self._http, config.ocr_url)
        self._ocr_text = await ocr.run(images, config.credentials)
        self.tracker.complete(OCR_STAGE, f"{len(images)} imagen(es) procesada(s)")

        self._state = PipelineState.ANALYZING
        self.tracker.begin(ANALYZE_STAGE)
        question = await analyze_statement(self._http, config.analysis_url, self._ocr_text)
        self.tracker.complete(ANALYZE_STAGE, "Enunciado analizado")

        self._state = PipelineState.FANNING_OUT
        self.tracker.begin(FANOUT_STAGE, f"Consultando {config.first.label} y {config.second.label}")
        outcome = await FanoutCoordinator(self._http).run(question, config.first, config.second)
        self._answers = [
            ExtractedAnswer(branch=branch.endpoint.key, label=branch.endpoint.label, text=branch.text)
            for branch in outcome.answers
            if branch.text is not None
        ]
        self.tracker.complete(FANOUT_STAGE, f"{len(self._answers)} respuesta(s) obtenida(s)")

    def _fail_active_stages(self, message: str) -> None:
        for stage_id in self.tracker.in_progress():
            self.tracker.fail(stage_id, message)

    def _narrate(self) -> None:
        if self.narration is None or not self._environment.is_narration_enabled():
            return
        for answer in self._answers:
            if not answer.text.strip():
                continue
            self.narration.enqueue(f"{answer.label}: {answer.text}")

    def _observe_stage(self, stage: PipelineStage) -> None:
        if stage.status is StageStatus.IN_PROGRESS:
            self._stage_started[stage.id] = time.perf_counter()
            observe_stage(stage.id, stage.status.value)
            return
        started = self._stage_started.pop(stage.id, None)
        duration = time.perf_counter() - started if started is not None else None
        observe_stage(stage.id, stage.status.value, duration)


__all__ = ["AnswerPipeline", "RunConfiguration"]
