"""Error taxonomy surfaced by the image answer pipeline.

Input errors are raised before a run touches the stage tracker. Every other
error ends the active run; the controller returns it inside
``PipelineResult.error`` after marking the in-progress stage as failed.
"""

from __future__ import annotations

from typing import Iterable


class PipelineError(RuntimeError):
    """Base class for every pipeline failure."""

    code = "pipeline_error"


class PipelineInputError(PipelineError):
    """Raised before any call is made or any stage is touched."""

    code = "invalid_input"


class BatchEmptyInput(PipelineInputError):
    code = "batch_empty_input"

    def __init__(self, message: str = "No images were supplied.") -> None:
        super().__init__(message)


class MissingConfiguration(PipelineInputError):
    code = "missing_configuration"

    def __init__(self, keys: Iterable[str]) -> None:
        self.keys = tuple(keys)
        super().__init__("Missing configuration: " + ", ".join(self.keys))


class PipelineBusy(PipelineInputError):
    code = "pipeline_busy"

    def __init__(self, message: str = "A pipeline run is already active.") -> None:
        super().__init__(message)


class OcrCallFailed(PipelineError):
    code = "ocr_call_failed"

    def __init__(self, index: int, message: str) -> None:
        self.index = index
        self.message = message
        super().__init__(message)


class OcrAllEmpty(PipelineError):
    code = "ocr_all_empty"

    def __init__(self, message: str = "No image returned text.") -> None:
        super().__init__(message)


class AnalysisCallFailed(PipelineError):
    code = "analysis_call_failed"


class AnalysisNoOutput(PipelineError):
    code = "analysis_no_output"

    def __init__(self, message: str = "No output found in analysis stage.") -> None:
        super().__init__(message)


class FanoutCallFailed(PipelineError):
    code = "fanout_call_failed"


class PipelineCancelled(PipelineError):
    code = "pipeline_cancelled"

    def __init__(self, message: str = "Pipeline run cancelled.") -> None:
        super().__init__(message)


class StageTransitionError(RuntimeError):
    """Raised when a caller attempts a non-monotonic stage transition."""


__all__ = [
    "PipelineError",
    "PipelineInputError",
    "BatchEmptyInput",
    "MissingConfiguration",
    "PipelineBusy",
    "OcrCallFailed",
    "OcrAllEmpty",
    "AnalysisCallFailed",
    "AnalysisNoOutput",
    "FanoutCallFailed",
    "PipelineCancelled",
    "StageTransitionError",
]
