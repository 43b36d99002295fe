"""Analysis stage: turn the compiled OCR text into the question to fan out."""

from __future__ import annotations

import logging

from .errors import AnalysisCallFailed, AnalysisNoOutput
from .extraction import extract_output
from .transport import ServiceCallError, TracedHttpClient

logger = logging.getLogger("image_answer.pipeline")


def _truncate(value: str, max_length: int = 500) -> str:
    if len(value) <= max_length:
        return value
    return value[: max_length - 3] + "..."


async def analyze_statement(client: TracedHttpClient, url: str, ocr_text: str) -> str:
    """POST the OCR text to the analysis flow and return its terminal output.

    The HTTP status is recorded but not gated on; the stage fails only when
    the call itself fails or no output can be extracted from the body.
    """

    try:
        result = await client.post_json("Analiza Enunciado", url, {"question": ocr_text})
    except ServiceCallError as exc:
        raise AnalysisCallFailed(f"Analysis call failed: {exc}") from exc

    output = extract_output(result.body)
    if output is None or not output.strip():
        logger.warning(
            "Analiza Enunciado sin output status=%s body=%s",
            result.status,
            _truncate(repr(result.body)),
        )
        raise AnalysisNoOutput()

    logger.info("Analiza Enunciado output: %s", _truncate(output))
    return output


__all__ = ["analyze_statement"]
