"""High-level map of the image answer pipeline.

``controller.AnswerPipeline`` executes the stages below in order; each one
lives in its own module so contributors can jump straight to it:

1. ``ingestion``: validate uploads and encode them as data URLs (HTTP layer).
2. ``ocr``: Mathpix OCR over the batch, sequentially, one traced call per image.
3. ``analysis``: "Analiza Enunciado" Flowise flow derives the question.
4. ``fanout``: RAG and Tools flows answer the question concurrently.
5. ``narration``: answers are queued for speech, outside the run itself.

Only stages 2 to 4 are tracked in the ``StageTracker``; their identities are
fixed here and never discovered at runtime.
"""

from __future__ import annotations

from typing import Final

from .types import StageDefinition

OCR_STAGE: Final = "ocr"
ANALYZE_STAGE: Final = "analyze"
FANOUT_STAGE: Final = "fanout"

STAGE_DEFINITIONS: Final[tuple[StageDefinition, ...]] = (
    StageDefinition(OCR_STAGE, "OCR de imágenes", "Extraer texto de cada imagen con Mathpix"),
    StageDefinition(ANALYZE_STAGE, "Analiza Enunciado", "Derivar la pregunta a partir del texto OCR"),
    StageDefinition(FANOUT_STAGE, "RAG y Herramientas", "Consultar ambos flujos con la misma pregunta"),
)


class CredentialKey:
    MATHPIX_APP_ID: Final = "mathpix_app_id"
    MATHPIX_APP_KEY: Final = "mathpix_api_key"


class EndpointKey:
    MATHPIX: Final = "mathpix"
    ANALYSIS: Final = "analysis"
    RAG: Final = "rag"
    TOOLS: Final = "tools"


__all__ = [
    "ANALYZE_STAGE",
    "FANOUT_STAGE",
    "OCR_STAGE",
    "STAGE_DEFINITIONS",
    "CredentialKey",
    "EndpointKey",
]
