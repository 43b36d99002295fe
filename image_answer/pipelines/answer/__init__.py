"""Image answer pipeline package.

Modules are organised by the order in which a run executes:

1. `ingestion`: turn uploads into ordered `BatchImage` payloads.
2. `ocr`: Mathpix OCR over the batch, one image at a time.
3. `analysis`: derive the question from the compiled OCR text.
4. `fanout`: ask the RAG and Tools flows concurrently.
5. `narration`: speak the answers, one at a time, after the run.

`controller.AnswerPipeline` ties them together; `tracer` and `stages` hold
the per-run observability state and `flow` documents the stage catalogue.
"""

from .analysis import analyze_statement
from .controller import AnswerPipeline, RunConfiguration
from .errors import (
    AnalysisCallFailed,
    AnalysisNoOutput,
    BatchEmptyInput,
    FanoutCallFailed,
    MissingConfiguration,
    OcrAllEmpty,
    OcrCallFailed,
    PipelineBusy,
    PipelineCancelled,
    PipelineError,
    PipelineInputError,
    StageTransitionError,
)
from .extraction import decode_terminal_output, extract_output, extract_reading
from .fanout import BranchAnswer, FanoutCoordinator, FanoutEndpoint, FanoutOutcome
from .flow import STAGE_DEFINITIONS, CredentialKey, EndpointKey
from .ingestion import read_batch_images
from .narration import NarrationQueue
from .ocr import OcrBatchProcessor
from .stages import StageTracker
from .tracer import RequestTracer
from .transport import ServiceCallError, ServiceResponse, TracedHttpClient
from .types import (
    ApiRequestRecord,
    BatchImage,
    ExtractedAnswer,
    MathpixCredentials,
    NarrationParams,
    PipelineEnvironment,
    PipelineResult,
    PipelineStage,
    PipelineState,
    SpeechEngine,
    StageDefinition,
    StageStatus,
)

__all__ = [
    "AnswerPipeline",
    "RunConfiguration",
    "AnalysisCallFailed",
    "AnalysisNoOutput",
    "BatchEmptyInput",
    "FanoutCallFailed",
    "MissingConfiguration",
    "OcrAllEmpty",
    "OcrCallFailed",
    "PipelineBusy",
    "PipelineCancelled",
    "PipelineError",
    "PipelineInputError",
    "StageTransitionError",
    "analyze_statement",
    "decode_terminal_output",
    "extract_output",
    "extract_reading",
    "BranchAnswer",
    "FanoutCoordinator",
    "FanoutEndpoint",
    "FanoutOutcome",
    "STAGE_DEFINITIONS",
    "CredentialKey",
    "EndpointKey",
    "read_batch_images",
    "NarrationQueue",
    "OcrBatchProcessor",
    "StageTracker",
    "RequestTracer",
    "ServiceCallError",
    "ServiceResponse",
    "TracedHttpClient",
    "ApiRequestRecord",
    "BatchImage",
    "ExtractedAnswer",
    "MathpixCredentials",
    "NarrationParams",
    "PipelineEnvironment",
    "PipelineResult",
    "PipelineStage",
    "PipelineState",
    "SpeechEngine",
    "StageDefinition",
    "StageStatus",
]
