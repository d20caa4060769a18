from __future__ import annotations

"""FastAPI application exposing the /query answer endpoint."""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.responses import Response

from qa_gateway.app.dependencies import close_resolver, get_embedding_config_report, get_resolver
from qa_gateway.app.metrics import metrics_middleware, metrics_response
from qa_gateway.app.schemas import ErrorResponse, HealthResponse, QueryRequest, QueryResponse
from qa_gateway.app.settings import settings
from qa_gateway.rag.errors import ProviderError, ValidationError
from qa_gateway.rag.resolver import AnswerResolver, normalize_question

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Failed to process request"
CORS_HEADERS = {
    "Access-Control-Allow-Origin": settings.cors_allow_origin,
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def _configure_logging() -> None:
    """Configure root logging using environment settings."""
    level_name = settings.log_level.strip().upper()
    level = getattr(logging, level_name, logging.INFO)
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
    logger.setLevel(level)


_configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build provider clients at startup so missing configuration is fatal."""
    report = get_embedding_config_report()
    if report.status != "ok":
        logger.warning(
            "embedding_config_check",
            extra={"status": report.status, "detail": report.detail, "action": report.action},
        )
    resolver = get_resolver()
    logger.info(
        "resolver_ready",
        extra={
            "confidence_threshold": resolver.confidence_threshold,
            "vectorstore": settings.vectorstore_backend,
            "generator": settings.generator_provider,
        },
    )
    try:
        yield
    finally:
        await close_resolver()


app = FastAPI(title="QA Gateway", version="0.1.0", lifespan=lifespan)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed bodies as 400 with the same error shape as the route."""
    logger.info(
        "request_invalid",
        extra={
            "request_id": getattr(request.state, "request_id", None),
            "errors": len(exc.errors()),
        },
    )
    return _error(400, "Invalid request body")


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Attach or create a request ID for traceability."""
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.middleware("http")
async def add_cors_headers(request: Request, call_next):
    """Allow browser widgets on other origins to call the endpoint."""
    response = await call_next(request)
    for header, value in CORS_HEADERS.items():
        response.headers.setdefault(header, value)
    return response


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    """Capture request metrics before returning the response."""
    return await metrics_middleware(request, call_next)


@app.get("/metrics")
async def metrics():
    """Expose Prometheus-style metrics."""
    return metrics_response()


@app.options("/query", status_code=204)
async def query_preflight() -> Response:
    """Answer CORS preflight requests."""
    return Response(status_code=204)


@app.get("/query", response_model=HealthResponse)
async def query_health() -> HealthResponse:
    """Health check for uptime monitors."""
    return HealthResponse(status="ok", timestamp=datetime.now(timezone.utc).isoformat())


@app.post(
    "/query",
    response_model=QueryResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def query(
    request: QueryRequest,
    http_request: Request,
    resolver: AnswerResolver = Depends(get_resolver),
):
    """Answer a question from stored Q/A pairs or generated from retrieved context."""
    request_id = getattr(http_request.state, "request_id", str(uuid.uuid4()))
    try:
        question = normalize_question(request.question)
    except ValidationError as exc:
        logger.info("query_rejected", extra={"request_id": request_id, "reason": str(exc)})
        return _error(400, str(exc))
    top_k = request.top_k or settings.default_top_k
    logger.info(
        "query_received",
        extra={
            "request_id": request_id,
            "question_length": len(question),
            "top_k": top_k,
        },
    )
    try:
        result = await resolver.resolve(question, top_k=top_k)
    except ProviderError:
        logger.exception("query_failed", extra={"request_id": request_id})
        return _error(500, GENERIC_ERROR)
    except Exception:
        logger.exception("query_unexpected_error", extra={"request_id": request_id})
        return _error(500, GENERIC_ERROR)
    logger.info(
        "query_completed",
        extra={
            "request_id": request_id,
            "source": result.source.value,
            "confidence": result.confidence,
            "similar_questions": len(result.similar_questions),
        },
    )
    return QueryResponse.from_result(result)
