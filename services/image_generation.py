"""
Image generation gateway – turns (photo, style) into one upstream call and a uniform result.
No retries here; callers own retry policy.
"""
import base64
import binascii
import logging
import re
from typing import Any, Mapping, Optional, Tuple

import httpx
from pydantic import ValidationError

from clients.errors import (
    GenerationError,
    InvalidInput,
    MethodNotAllowed,
    Misconfigured,
    PayloadTooLarge,
)
from clients.gemini_client import GeminiImageClient
from config import Settings
from models.schemas import GeneratedImage, GenerationFailure, GenerationRequest, GenerationResult

from .styles import STYLE_CATALOG, build_prompt

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = re.compile(r"^data:(image/[\w.+-]+);base64,", re.IGNORECASE)
DEFAULT_PHOTO_MIME_TYPE = "image/jpeg"
DEFAULT_MAX_PHOTO_BYTES = 10 * 1024 * 1024


def split_data_uri(photo: str) -> Tuple[Optional[str], str]:
    """Return (mime_type, base64 payload). mime_type is None when there is no data-URI prefix."""
    match = DATA_URI_PREFIX.match(photo)
    if not match:
        return None, photo
    return match.group(1).lower(), photo[match.end():]


def strip_data_uri_prefix(photo: str) -> str:
    return split_data_uri(photo)[1]


def failure_from_error(error: GenerationError) -> GenerationFailure:
    return GenerationFailure(
        code=error.code,
        message=error.message,
        status_code=error.status_code,
        details=error.details,
        upstream_code=error.upstream_code,
    )


class ImageGenerationGateway:
    def __init__(
        self,
        client: Optional[GeminiImageClient],
        catalog: Mapping[str, str] = STYLE_CATALOG,
        max_photo_bytes: int = DEFAULT_MAX_PHOTO_BYTES,
    ):
        self.client = client
        self.catalog = catalog
        self.max_photo_bytes = max_photo_bytes

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ImageGenerationGateway":
        client = None
        if settings.gemini_api_key:
            client = GeminiImageClient(
                api_key=settings.gemini_api_key,
                base_url=settings.gemini_base_url,
                model=settings.gemini_model,
                timeout_seconds=settings.api_timeout_seconds,
                temperature=settings.gemini_temperature,
                safety_threshold=settings.gemini_safety_threshold,
                transport=transport,
            )
        return cls(client=client, max_photo_bytes=settings.max_photo_bytes)

    @property
    def configured(self) -> bool:
        return self.client is not None and bool(self.client.api_key)

    def validate(self, body: Any) -> GenerationRequest:
        if not isinstance(body, dict):
            raise InvalidInput("Missing photo or invalid style")
        try:
            request = GenerationRequest.model_validate(body)
        except ValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            raise InvalidInput("Missing photo or invalid style", details={"fields": fields}) from e
        if request.style not in self.catalog:
            raise InvalidInput(
                f"Unknown style '{request.style}'",
                details={"styles": sorted(self.catalog)},
            )

        payload = strip_data_uri_prefix(request.photo)
        if not payload:
            raise InvalidInput("Missing photo or invalid style", details={"fields": ["photo"]})
        # Upper bound on decoded size; refuse before decoding
        estimated = len(payload) * 3 // 4
        if estimated > self.max_photo_bytes:
            raise PayloadTooLarge(
                f"Photo is too large (about {estimated} bytes, limit {self.max_photo_bytes})",
                details={"size": estimated, "limit": self.max_photo_bytes},
            )
        try:
            base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidInput("Photo must be base64-encoded image data") from e
        return request

    async def generate(self, request: GenerationRequest) -> GeneratedImage:
        client = self.client
        if client is None or not client.api_key:
            raise Misconfigured("GEMINI_API_KEY not configured")
        if request.style not in self.catalog:
            raise InvalidInput(f"Unknown style '{request.style}'")

        mime_type, payload = split_data_uri(request.photo)
        prompt = build_prompt(request.style, self.catalog)
        logger.info(
            "generate request style=%s model=%s photoMime=%s photoLength=%d",
            request.style,
            client.model,
            mime_type or DEFAULT_PHOTO_MIME_TYPE,
            len(payload),
        )
        return await client.generate(prompt, payload, mime_type or DEFAULT_PHOTO_MIME_TYPE)

    async def handle(self, method: str, body: Any) -> GenerationResult:
        """Run one request end to end. Classified failures come back in the result, not raised."""
        try:
            if method.upper() != "POST":
                raise MethodNotAllowed("Method not allowed")
            if not self.configured:
                raise Misconfigured("GEMINI_API_KEY not configured")
            request = self.validate(body)
            image = await self.generate(request)
        except GenerationError as e:
            if e.status_code >= 500:
                logger.error("generate failed code=%s: %s", e.code, e.message)
            else:
                logger.info("generate rejected code=%s: %s", e.code, e.message)
            return GenerationResult(failure=failure_from_error(e))
        return GenerationResult(image=image)
