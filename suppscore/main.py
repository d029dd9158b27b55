"""
Supplement Label Scoring Service - FastAPI Application
Main entry point with the extract and score endpoints.
"""
import json
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from suppscore import __version__
from suppscore.config import config
from suppscore.errors import QuotaExceededError, ScoringError
from suppscore.layers.extraction import ExtractionService
from suppscore.layers.scoring import ScoringService
from suppscore.models.score import ScoreMeta, ScoreRequest
from suppscore.utils.logger import get_logger, set_trace_id


# Initialize FastAPI app
app = FastAPI(
    title="Supplement Label Scoring Service",
    description="Extracts supplement labels from product pages and scores them with an LLM",
    version=__version__,
)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


@app.middleware("http")
async def add_cors_headers(request: Request, call_next):
    """Attach the CORS headers to every response, errors included."""
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


# Initialize layers
extraction_service = ExtractionService()
scoring_service = ScoringService()

logger = get_logger("main")


def _error(status_code: int, error: str, message: Optional[str] = None) -> JSONResponse:
    body = {"error": error}
    if message:
        body["message"] = message
    return JSONResponse(status_code=status_code, content=body)


async def _json_body(request: Request):
    """Parsed JSON body, or None when the body is not valid JSON."""
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


# API Routes
@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
        "providers": config.configured_providers(),
        "llm_configured": config.is_llm_configured(),
    }


@app.options("/api/extract")
@app.options("/api/score")
async def preflight():
    return Response(status_code=204)


@app.post("/api/extract")
async def extract(request: Request):
    """
    Extract label data from a product page.

    Body: ``{url, proxy?, forceScrapfly?}``. Returns 451 for blocklisted
    domains and 502 when no provider returned HTML.
    """
    trace_id = set_trace_id()
    body = await _json_body(request)
    if not isinstance(body, dict):
        return _error(400, "invalid_json", "Request body must be a JSON object")

    url = body.get("url")
    if not isinstance(url, str) or not url.strip():
        return _error(400, "missing_url", "Missing required field: url")

    proxy_mode = body.get("proxy") if isinstance(body.get("proxy"), str) else "auto"
    force_scrapfly = body.get("forceScrapfly") is True

    logger.info("extract_request", url=url, proxy=proxy_mode, force_scrapfly=force_scrapfly,
                trace_id=trace_id)

    outcome = await extraction_service.extract(
        url.strip(), proxy_mode=proxy_mode, force_scrapfly=force_scrapfly
    )
    return JSONResponse(status_code=outcome.status_code, content=outcome.body)


@app.post("/api/score")
async def score(request: Request):
    """
    Score a supplement label.

    Body: ``{title, ingredients?, facts?, warnings?}``; the legacy
    ``supplementFacts: {raw}`` shape is accepted.
    """
    trace_id = set_trace_id()
    body = await _json_body(request)
    try:
        payload = ScoreRequest.from_body(body)
    except ValueError as e:
        return _error(400, "invalid_payload", str(e))

    if not scoring_service.is_available():
        return _error(400, "llm_not_configured", "Scoring backend API key is not configured")

    logger.info("score_request", title=payload.title[:80], ingredients=len(payload.ingredients),
                facts_length=len(payload.facts), trace_id=trace_id)

    try:
        result, steps = await scoring_service.score(
            payload.title, payload.ingredients, payload.facts, payload.warnings
        )
    except QuotaExceededError as e:
        logger.error("score_quota_exceeded", error=str(e), trace_id=trace_id)
        return _error(e.status_code, e.error_code, e.message)
    except ScoringError as e:
        logger.error("score_error", error=str(e), status_code=e.status_code, trace_id=trace_id)
        return _error(e.status_code, e.error_code, e.message)

    meta = ScoreMeta(
        model=scoring_service.model,
        ts=datetime.now(timezone.utc).isoformat(),
        chain=[step.to_json_dict() for step in steps],
    )
    content = result.model_dump(mode="json")
    content["_meta"] = {k: v for k, v in meta.to_json_dict().items() if v is not None}
    return JSONResponse(content=content)


if __name__ == "__main__":
    import uvicorn
    config.require_valid()
    uvicorn.run(app, host=config.HOST, port=config.PORT)
