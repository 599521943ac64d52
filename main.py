import logging
import os
import traceback
from datetime import datetime, timezone
from typing import Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Settings
from domain.errors import ValidationError
from schemas import ErrorResponse, HealthResponse, SubmitOrderResponse
from services.order_pipeline import OrderPipeline, build_pipeline

logger = logging.getLogger("tmw-apparel")

SUBMIT_ORDER_PATHS = [
    "/api/submit-order",
    "/.netlify/functions/submit-order",  # path the deployed form posts to
]
ROUTED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cors_headers(settings: Settings, request: Request) -> Dict[str, str]:
    if settings.allowed_origins == ["*"]:
        allow_origin = "*"
    else:
        origin = request.headers.get("origin", "")
        allow_origin = origin if origin in settings.allowed_origins else settings.allowed_origins[0]

    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Headers": "Content-Type",
        "Access-Control-Allow-Methods": "POST, OPTIONS",
    }


def error_response(
        exc: Exception,
        status_code: int,
        settings: Settings,
        headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    details = None
    if settings.expose_error_details:
        details = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    body = ErrorResponse(error=str(exc), details=details)
    return JSONResponse(
        body.model_dump(exclude_none=True),
        status_code=status_code,
        headers=headers,
    )


def create_app(
        settings: Optional[Settings] = None,
        pipeline: Optional[OrderPipeline] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    pipeline = pipeline or build_pipeline(settings)

    app = FastAPI(title="Te Mata Wānanga Apparel Orders")
    app.state.settings = settings
    app.state.pipeline = pipeline

    async def submit_order(request: Request) -> Response:
        headers = cors_headers(settings, request)

        if request.method == "OPTIONS":
            return Response(status_code=200, headers=headers)

        if request.method != "POST":
            return JSONResponse({"error": "Method not allowed"}, status_code=405, headers=headers)

        try:
            raw = await request.json()
        except ValueError as exc:
            return error_response(
                ValidationError(f"Invalid JSON body: {exc}"), 400, settings, headers
            )

        try:
            result = await run_in_threadpool(pipeline.submit, raw)
        except ValidationError as exc:
            logger.warning("Rejected order submission: %s", exc)
            return error_response(exc, 400, settings, headers)
        except Exception as exc:
            logger.exception("Error processing order")
            return error_response(exc, 500, settings, headers)

        body = SubmitOrderResponse(orderNumber=result.order_number)
        return JSONResponse(body.model_dump(), headers=headers)

    for path in SUBMIT_ORDER_PATHS:
        app.add_api_route(path, submit_order, methods=ROUTED_METHODS, include_in_schema=path.startswith("/api"))

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        now = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
        return HealthResponse(timestamp=now)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            logger.info("404 - Not found: %s", request.url.path)
            return JSONResponse({"error": "Not found"}, status_code=404)
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code)

    if settings.allowed_origins == ["*"]:
        logger.warning("CORS allows all origins; set ALLOWED_ORIGINS to restrict it.")

    return app


configure_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "3000")))
