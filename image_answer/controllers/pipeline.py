"""Image answer pipeline endpoints.

For a stage-by-stage map see `image_answer.pipelines.answer.flow`. The POST
`/pipeline/run` endpoint performs:

1. Validation and data-URL encoding of the uploaded images.
2. Mathpix OCR over the batch, one image at a time.
3. The "Analiza Enunciado" Flowise call that derives the question.
4. The RAG and Tools Flowise calls, concurrently, plus narration of the answers.

Stage failures come back inside the response body; only input problems are
turned into HTTP errors.
"""

import logging
from typing import Optional

from fastapi import APIRouter, File, HTTPException, UploadFile, status

from image_answer.config.settings import settings
from image_answer.controllers.dependencies import (
    EnvironmentDep,
    PipelineDep,
    StandaloneClientDep,
)
from image_answer.pipelines.answer import (
    BatchEmptyInput,
    CredentialKey,
    EndpointKey,
    MathpixCredentials,
    MissingConfiguration,
    OcrBatchProcessor,
    PipelineBusy,
    PipelineEnvironment,
    PipelineError,
    PipelineInputError,
    read_batch_images,
)
from image_answer.views import (
    ApiRequestResponse,
    CancelResponse,
    OcrResponse,
    PipelineRunResponse,
)

router = APIRouter(prefix="/pipeline", tags=["pipeline"])

logger = logging.getLogger(__name__)

_RUN_IMAGES_UPLOAD = File(None)
_OCR_IMAGES_UPLOAD = File(None)


def _input_error(exc: PipelineInputError) -> HTTPException:
    """Map an input error to the HTTP status the client should see."""

    if isinstance(exc, PipelineBusy):
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(exc, MissingConfiguration):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=status_code, detail=str(exc))


def _mathpix_configuration(environment: PipelineEnvironment) -> tuple[MathpixCredentials, str]:
    values = {
        CredentialKey.MATHPIX_APP_ID: environment.get_credential(CredentialKey.MATHPIX_APP_ID),
        CredentialKey.MATHPIX_APP_KEY: environment.get_credential(CredentialKey.MATHPIX_APP_KEY),
        EndpointKey.MATHPIX: environment.get_endpoint_url(EndpointKey.MATHPIX),
    }
    missing = [key for key, value in values.items() if not value or not value.strip()]
    if missing:
        raise MissingConfiguration(missing)
    credentials = MathpixCredentials(
        app_id=values[CredentialKey.MATHPIX_APP_ID],
        app_key=values[CredentialKey.MATHPIX_APP_KEY],
    )
    return credentials, values[EndpointKey.MATHPIX]


@router.post("/run", response_model=PipelineRunResponse)
async def run_pipeline(
    pipeline: PipelineDep,
    images: Optional[list[UploadFile]] = _RUN_IMAGES_UPLOAD,
) -> PipelineRunResponse:
    """Run OCR, analysis and both answer flows over the uploaded images."""

    batch = await read_batch_images(images or [], max_bytes=settings.max_image_bytes)
    try:
        result = await pipeline.run(batch)
    except PipelineInputError as exc:
        logger.warning("Ejecución rechazada: %s", exc)
        raise _input_error(exc) from exc

    logger.info(
        "Pipeline terminado state=%s respuestas=%s",
        result.state.value,
        len(result.answers),
    )
    return PipelineRunResponse.from_result(result)


@router.get("/state", response_model=PipelineRunResponse)
async def pipeline_state(pipeline: PipelineDep) -> PipelineRunResponse:
    """Live stage and request snapshot of the current or last run."""

    return PipelineRunResponse.from_result(pipeline.snapshot())


@router.post("/cancel", response_model=CancelResponse)
async def cancel_pipeline(pipeline: PipelineDep) -> CancelResponse:
    cancelled = pipeline.cancel()
    if cancelled:
        logger.info("Cancelación solicitada")
    return CancelResponse(cancelled=cancelled)


@router.post("/ocr", response_model=OcrResponse)
async def run_ocr(
    environment: EnvironmentDep,
    client: StandaloneClientDep,
    images: Optional[list[UploadFile]] = _OCR_IMAGES_UPLOAD,
) -> OcrResponse:
    """Run only the Mathpix OCR stage and return the compiled text."""

    batch = await read_batch_images(images or [], max_bytes=settings.max_image_bytes)
    try:
        if not batch:
            raise BatchEmptyInput()
        credentials, url = _mathpix_configuration(environment)
    except PipelineInputError as exc:
        raise _input_error(exc) from exc

    text: Optional[str] = None
    error: Optional[PipelineError] = None
    try:
        text = await OcrBatchProcessor(client, url).run(batch, credentials)
    except PipelineError as exc:
        logger.warning("OCR falló (%s): %s", exc.code, exc)
        error = exc

    return OcrResponse(
        text=text,
        error=str(error) if error else None,
        error_code=error.code if error else None,
        requests=[ApiRequestResponse.from_record(record) for record in client.tracer.snapshot()],
    )
