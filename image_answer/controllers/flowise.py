"""Single Flowise prediction call, for trying a flow outside a pipeline run."""

import logging

from fastapi import APIRouter, HTTPException, status

from image_answer.config.settings import settings
from image_answer.controllers.dependencies import EnvironmentDep, StandaloneClientDep
from image_answer.pipelines.answer import ServiceCallError, extract_output, extract_reading
from image_answer.views import FlowiseQueryRequest, FlowiseQueryResponse

router = APIRouter(prefix="/flowise", tags=["flowise"])

logger = logging.getLogger(__name__)


@router.post("/query", response_model=FlowiseQueryResponse)
async def query_flowise(
    request: FlowiseQueryRequest,
    environment: EnvironmentDep,
    client: StandaloneClientDep,
) -> FlowiseQueryResponse:
    """POST ``{question}`` to a configured flow, or to an explicit URL on an allowed host."""

    if request.url is not None:
        host = request.url.host or ""
        if host.lower() not in {allowed.lower() for allowed in settings.flowise.allowed_hosts}:
            logger.warning("Consulta Flowise rechazada host=%s", host)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Host not allowed: {host}",
            )
        url = str(request.url)
        name = "Flowise"
    else:
        url = environment.get_endpoint_url(request.preset)
        name = f"Flowise {request.preset}"
    if not url:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Missing configuration: {request.preset}",
        )

    try:
        result = await client.post_json(name, url, {"question": request.question})
    except ServiceCallError as exc:
        logger.warning("Consulta Flowise falló url=%s: %s", url, exc)
        return FlowiseQueryResponse(url=url, error=str(exc))

    return FlowiseQueryResponse(
        url=url,
        status=result.status,
        body=result.body,
        output=extract_output(result.body),
        reading=extract_reading(result.body),
    )
