"""
Gemini image generation client.
Sends one prompt plus one inline photo to generateContent and pulls the first inline image out of the reply.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from models.schemas import GeneratedImage

from .errors import NoImageProduced, SafetyFiltered, TransportError, UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.5-flash-image"

SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)

# finishReason values that mean the output was withheld on policy grounds
SAFETY_FINISH_REASONS = {
    "SAFETY",
    "IMAGE_SAFETY",
    "PROHIBITED_CONTENT",
    "IMAGE_PROHIBITED_CONTENT",
    "BLOCKLIST",
    "SPII",
}

SAFETY_MESSAGE = (
    "The image was blocked by the content safety filter. Please try a different photo."
)
NO_IMAGE_MESSAGE = "No image generated"


class GeminiImageClient:
    """Client for Gemini POST /models/{model}:generateContent with image output."""

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        timeout_seconds: float = 30,
        temperature: Optional[float] = None,
        safety_threshold: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.temperature = temperature
        self.safety_threshold = safety_threshold
        self.transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def _headers(self) -> dict:
        return {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

    def build_payload(self, prompt: str, image_data: str, mime_type: str = "image/jpeg") -> Dict[str, Any]:
        generation_config: Dict[str, Any] = {"responseModalities": ["TEXT", "IMAGE"]}
        if self.temperature is not None:
            generation_config["temperature"] = self.temperature
        payload: Dict[str, Any] = {
            "contents": [
                {
                    "parts": [
                        {"text": prompt},
                        {"inline_data": {"mime_type": mime_type, "data": image_data}},
                    ]
                }
            ],
            "generationConfig": generation_config,
        }
        if self.safety_threshold:
            payload["safetySettings"] = [
                {"category": category, "threshold": self.safety_threshold}
                for category in SAFETY_CATEGORIES
            ]
        return payload

    async def generate(self, prompt: str, image_data: str, mime_type: str = "image/jpeg") -> GeneratedImage:
        """Single generateContent call. No retries here."""
        payload = self.build_payload(prompt, image_data, mime_type)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self.transport
            ) as client:
                r = await client.post(self.endpoint, json=payload, headers=self._headers())
        except httpx.TimeoutException as e:
            logger.warning("Gemini request timed out after %ss", self.timeout_seconds)
            raise TransportError(
                f"Image service did not respond within {self.timeout_seconds}s", timed_out=True
            ) from e
        except httpx.RequestError as e:
            logger.warning("Gemini request failed: %s", e)
            raise TransportError(f"Image service request failed: {e}") from e

        try:
            data = r.json()
        except ValueError:
            data = None

        if r.status_code >= 400 or (isinstance(data, dict) and data.get("error")):
            raise _upstream_error(r.status_code, data, r.text)
        if not isinstance(data, dict):
            raise UpstreamError(
                f"Image service returned an unreadable response (HTTP {r.status_code})",
                upstream_status=r.status_code,
            )

        image = extract_image(data)
        logger.info(
            "Gemini image generated model=%s mimeType=%s imageSize=%d",
            self.model,
            image.mime_type,
            len(image.data),
        )
        return image


def _upstream_error(status_code: int, data: Any, text: str) -> UpstreamError:
    err = data.get("error") if isinstance(data, dict) else None
    if isinstance(err, dict):
        message = err.get("message") or f"Image service error {status_code}"
        upstream_code = err.get("status") or err.get("code")
    else:
        message = str(err) if err else f"Image service error {status_code}: {text[:500]}"
        upstream_code = None
    rate_limited = status_code == 429 or upstream_code == "RESOURCE_EXHAUSTED"
    logger.warning(
        "Gemini API error status=%s code=%s rateLimited=%s: %s",
        status_code,
        upstream_code,
        rate_limited,
        message[:200],
    )
    return UpstreamError(
        message,
        upstream_code=upstream_code,
        upstream_status=status_code,
        rate_limited=rate_limited,
        payload_too_large=status_code == 413,
    )


def _inline_image(part: Any) -> Optional[GeneratedImage]:
    if not isinstance(part, dict):
        return None
    inline = part.get("inlineData") or part.get("inline_data")
    if not isinstance(inline, dict):
        return None
    data = inline.get("data")
    if not data or not isinstance(data, str):
        return None
    mime_type = inline.get("mimeType") or inline.get("mime_type")
    if not isinstance(mime_type, str) or not mime_type:
        mime_type = "image/png"
    return GeneratedImage(mime_type=mime_type, data=data)


def _unreadable(field: str) -> UpstreamError:
    logger.warning("Gemini reply has unexpected shape at %s", field)
    return UpstreamError(
        "Image service returned an unreadable response",
        details={"field": field},
    )


def extract_image(data: Dict[str, Any]) -> GeneratedImage:
    """Return the first inline image in a generateContent reply."""
    feedback = data.get("promptFeedback") or {}
    if not isinstance(feedback, dict):
        raise _unreadable("promptFeedback")
    block_reason = feedback.get("blockReason")
    if block_reason:
        raise SafetyFiltered(SAFETY_MESSAGE, details={"block_reason": block_reason})

    candidates = data.get("candidates") or []
    if not isinstance(candidates, list):
        raise _unreadable("candidates")
    finish_reason = None
    texts: List[str] = []
    if candidates:
        first = candidates[0]
        if not isinstance(first, dict):
            raise _unreadable("candidates[0]")
        finish_reason = first.get("finishReason")
        content = first.get("content") or {}
        if not isinstance(content, dict):
            raise _unreadable("candidates[0].content")
        parts = content.get("parts") or []
        if not isinstance(parts, list):
            raise _unreadable("candidates[0].content.parts")
        # Parts that are not objects are skipped
        for part in parts:
            image = _inline_image(part)
            if image is not None:
                return image
            if isinstance(part, dict) and isinstance(part.get("text"), str) and part["text"]:
                texts.append(part["text"])

    details: Dict[str, Any] = {"finish_reason": finish_reason}
    if texts:
        details["text"] = " ".join(texts)[:500]
    if isinstance(finish_reason, str) and finish_reason in SAFETY_FINISH_REASONS:
        raise SafetyFiltered(SAFETY_MESSAGE, details=details)
    raise NoImageProduced(NO_IMAGE_MESSAGE, details=details)
