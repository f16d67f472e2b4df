"""
Generate one sculpture preview through a running gateway.
Usage: python scripts/generate_sample.py photo.jpg [style] [output.png]
GATEWAY_URL defaults to http://127.0.0.1:8001 (the uvicorn dev server in main.py).
"""
import asyncio
import base64
import mimetypes
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from clients import GatewayClient, GenerationError, SafetyFiltered, TransportError
from config import get_settings


def main() -> int:
    if len(sys.argv) < 2:
        print("Usage: python scripts/generate_sample.py photo.jpg [style] [output.png]")
        return 1
    photo_path = sys.argv[1]
    style = sys.argv[2] if len(sys.argv) > 2 else "chibi"
    output_path = sys.argv[3] if len(sys.argv) > 3 else "sculpture_preview.png"

    mime_type = mimetypes.guess_type(photo_path)[0] or "image/jpeg"
    with open(photo_path, "rb") as f:
        photo = f"data:{mime_type};base64,{base64.b64encode(f.read()).decode('ascii')}"

    base_url = os.environ.get("GATEWAY_URL", "http://127.0.0.1:8001").strip()
    settings = get_settings()
    client = GatewayClient(
        base_url,
        retries=settings.client_max_retries,
        backoff_base_seconds=settings.client_backoff_base_seconds,
    )

    print(f"Generating '{style}' preview for {photo_path} via {base_url} ...")
    try:
        image = asyncio.run(client.generate(photo, style))
    except SafetyFiltered as e:
        print("BLOCKED:", e.message)
        return 1
    except TransportError as e:
        print("NETWORK:", e.message)
        return 1
    except GenerationError as e:
        print(f"ERROR ({e.code}):", e.message)
        return 1

    _, payload = image.split(",", 1)
    with open(output_path, "wb") as f:
        f.write(base64.b64decode(payload))
    print("SUCCESS. Saved to", output_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
