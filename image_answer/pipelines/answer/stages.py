"""Per-run stage status board rendered by observers."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable

from .errors import StageTransitionError
from .types import PipelineStage, StageDefinition, StageStatus

logger = logging.getLogger("image_answer.pipeline")

StageListener = Callable[[PipelineStage], None]

_TERMINAL = frozenset({StageStatus.COMPLETED, StageStatus.ERROR})


class StageTracker:
    """Ordered stages whose status only moves forward within a run.

    ``pending -> in_progress -> completed | error``. Re-opening a finished
    stage raises ``StageTransitionError``; ``begin`` on a stage that is
    already running is accepted so parallel branches can share one id.
    """

    def __init__(self, definitions: Iterable[StageDefinition] = ()) -> None:
        self._lock = threading.Lock()
        self._stages: dict[str, PipelineStage] = {}
        self._listeners: list[StageListener] = []
        self.initialize(definitions)

    def add_listener(self, listener: StageListener) -> None:
        self._listeners.append(listener)

    def initialize(self, definitions: Iterable[StageDefinition]) -> None:
        stages = {
            definition.id: PipelineStage(
                id=definition.id,
                title=definition.title,
                description=definition.description,
            )
            for definition in definitions
        }
        with self._lock:
            self._stages = stages

    def begin(self, stage_id: str, description: str | None = None) -> None:
        with self._lock:
            stage = self._require(stage_id)
            if stage.status in _TERMINAL:
                raise StageTransitionError(
                    f"Stage '{stage_id}' is already {stage.status.value}; it cannot be restarted."
                )
            if stage.status is StageStatus.IN_PROGRESS:
                return
            stage.status = StageStatus.IN_PROGRESS
            if description is not None:
                stage.description = description
            snapshot = stage.copy()
        self._notify(snapshot)

    def complete(self, stage_id: str, description: str | None = None) -> None:
        with self._lock:
            stage = self._require_running(stage_id, "complete")
            stage.status = StageStatus.COMPLETED
            if description is not None:
                stage.description = description
            snapshot = stage.copy()
        self._notify(snapshot)

    def fail(self, stage_id: str, error: str) -> None:
        with self._lock:
            stage = self._require_running(stage_id, "fail")
            stage.status = StageStatus.ERROR
            stage.error = error
            stage.description = error
            snapshot = stage.copy()
        self._notify(snapshot)

    def get(self, stage_id: str) -> PipelineStage:
        with self._lock:
            return self._require(stage_id).copy()

    def in_progress(self) -> list[str]:
        with self._lock:
            return [
                stage.id
                for stage in self._stages.values()
                if stage.status is StageStatus.IN_PROGRESS
            ]

    def snapshot(self) -> list[PipelineStage]:
        with self._lock:
            return [stage.copy() for stage in self._stages.values()]

    def _require(self, stage_id: str) -> PipelineStage:
        try:
            return self._stages[stage_id]
        except KeyError:
            raise StageTransitionError(f"Unknown stage '{stage_id}'.") from None

    def _require_running(self, stage_id: str, action: str) -> PipelineStage:
        stage = self._require(stage_id)
        if stage.status is not StageStatus.IN_PROGRESS:
            raise StageTransitionError(
                f"Cannot {action} stage '{stage_id}' while it is {stage.status.value}."
            )
        return stage

    def _notify(self, snapshot: PipelineStage) -> None:
        logger.info("Etapa %s -> %s %s", snapshot.id, snapshot.status.value, snapshot.description)
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:  # pragma: no cover - listener bug
                logger.exception("Stage listener failed")


__all__ = ["StageTracker", "StageListener"]
