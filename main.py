"""
FastAPI application for flower sculpture preview generation.
"""
import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from config import get_settings
from models import GenerateResponse
from services import STYLE_CATALOG, ImageGenerationGateway

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)
# Keep per-request httpx/httpcore chatter out of the logs.
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

GENERATE_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def cors_headers(origin: Optional[str], allowed_origins: List[str]) -> Dict[str, str]:
    """CORS headers for a bare OPTIONS on /generate, honouring CORS_ALLOW_ORIGINS."""
    headers = {
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }
    if "*" in allowed_origins:
        headers["Access-Control-Allow-Origin"] = "*"
    elif origin and origin in allowed_origins:
        headers["Access-Control-Allow-Origin"] = origin
        headers["Vary"] = "Origin"
    return headers


def get_gateway() -> ImageGenerationGateway:
    return ImageGenerationGateway.from_settings(get_settings())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info("PetalSculpt service starting")
    s = get_settings()
    if s.gemini_api_key:
        logger.info("Image model: %s (timeout %ss)", s.gemini_model, s.api_timeout_seconds)
    else:
        logger.warning("GEMINI_API_KEY not set; /generate will answer 500 misconfigured")
    yield
    logger.info("PetalSculpt service shutting down")


app = FastAPI(
    title="PetalSculpt – Flower Sculpture Previews",
    description="Turn a photo into a preserved-hydrangea sculpture preview",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_allow_origins,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.get("/health")
async def health() -> JSONResponse:
    """Lightweight health endpoint for uptime checks."""
    return JSONResponse({"status": "ok"})


@app.get("/api/config-check")
async def config_check() -> JSONResponse:
    """Report whether the image service credential is configured. Never returns the key."""
    s = get_settings()
    return JSONResponse({"has_api_key": bool(s.gemini_api_key), "model": s.gemini_model})


@app.get("/styles")
async def list_styles() -> JSONResponse:
    return JSONResponse({"styles": list(STYLE_CATALOG)})


# ── Generation ───────────────────────────────────────────────

@app.api_route("/generate", methods=GENERATE_METHODS)
async def generate(
    request: Request,
    gateway: ImageGenerationGateway = Depends(get_gateway),
) -> Response:
    if request.method == "OPTIONS":
        headers = cors_headers(request.headers.get("origin"), get_settings().cors_allow_origins)
        return Response(status_code=200, headers=headers)

    body = None
    if request.method == "POST":
        try:
            body = await request.json()
        except ValueError:
            logger.info("generate: request body is not valid JSON")

    try:
        result = await gateway.handle(request.method, body)
    except Exception:
        logger.exception("Unexpected error in /generate")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "code": "internal_error"},
        )

    if result.image is not None:
        return JSONResponse(GenerateResponse(image=result.image.data_uri).model_dump())
    failure = result.failure
    if failure is None:
        logger.error("generate: result carried neither image nor failure")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "code": "internal_error"},
        )
    return JSONResponse(status_code=failure.status_code, content=failure.to_body())


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8001,
        reload=True,
    )
