from .errors import (
    GenerationError,
    InvalidInput,
    MethodNotAllowed,
    Misconfigured,
    NoImageProduced,
    PayloadTooLarge,
    SafetyFiltered,
    TransportError,
    UpstreamError,
)
from .gateway_client import GatewayClient
from .gemini_client import GeminiImageClient

__all__ = [
    "GatewayClient",
    "GeminiImageClient",
    "GenerationError",
    "InvalidInput",
    "MethodNotAllowed",
    "Misconfigured",
    "NoImageProduced",
    "PayloadTooLarge",
    "SafetyFiltered",
    "TransportError",
    "UpstreamError",
]
