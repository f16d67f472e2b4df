import asyncio

import httpx
import pytest

from clients.errors import NoImageProduced, SafetyFiltered, TransportError, UpstreamError
from clients.gemini_client import GeminiImageClient, extract_image
from conftest import FakeUpstream, gemini_image_reply


def _client(upstream, **kwargs) -> GeminiImageClient:
    return GeminiImageClient(api_key="test-api-key", transport=upstream.transport(), **kwargs)


class TestExtractImage:
    def test_returns_first_inline_image(self):
        reply = gemini_image_reply(mime_type="image/png", data="BBBB", text="Here you go")
        reply["candidates"][0]["content"]["parts"].append(
            {"inlineData": {"mimeType": "image/jpeg", "data": "CCCC"}}
        )
        image = extract_image(reply)
        assert image.mime_type == "image/png"
        assert image.data == "BBBB"
        assert image.data_uri == "data:image/png;base64,BBBB"

    def test_accepts_snake_case_parts(self):
        reply = {
            "candidates": [
                {"content": {"parts": [{"inline_data": {"mime_type": "image/webp", "data": "DDDD"}}]}}
            ]
        }
        assert extract_image(reply).data_uri == "data:image/webp;base64,DDDD"

    def test_missing_mime_type_defaults_to_png(self):
        reply = {"candidates": [{"content": {"parts": [{"inlineData": {"data": "EEEE"}}]}}]}
        assert extract_image(reply).mime_type == "image/png"

    def test_text_only_reply_is_no_image(self):
        reply = {
            "candidates": [
                {"content": {"parts": [{"text": "I can't draw that."}]}, "finishReason": "STOP"}
            ]
        }
        with pytest.raises(NoImageProduced) as exc_info:
            extract_image(reply)
        assert not isinstance(exc_info.value, SafetyFiltered)
        assert exc_info.value.code == "no_image"
        assert exc_info.value.details["text"] == "I can't draw that."

    def test_non_object_parts_are_skipped(self):
        reply = {
            "candidates": [
                {"content": {"parts": ["oops", 7, {"inlineData": {"data": 5}}, {"text": "caption"}]}}
            ]
        }
        with pytest.raises(NoImageProduced) as exc_info:
            extract_image(reply)
        assert exc_info.value.details["text"] == "caption"

    def test_non_object_parts_before_image_are_skipped(self):
        reply = {"candidates": [{"content": {"parts": [None, {"inlineData": {"data": "FFFF"}}]}}]}
        assert extract_image(reply).data == "FFFF"

    @pytest.mark.parametrize(
        "reply, field",
        [
            ({"promptFeedback": "blocked"}, "promptFeedback"),
            ({"candidates": {"content": {}}}, "candidates"),
            ({"candidates": ["oops"]}, "candidates[0]"),
            ({"candidates": [{"content": ["oops"]}]}, "candidates[0].content"),
            ({"candidates": [{"content": {"parts": "oops"}}]}, "candidates[0].content.parts"),
        ],
    )
    def test_wrong_shape_is_upstream_error(self, reply, field):
        with pytest.raises(UpstreamError) as exc_info:
            extract_image(reply)
        assert exc_info.value.message == "Image service returned an unreadable response"
        assert exc_info.value.details == {"field": field}

    def test_empty_reply_is_no_image(self):
        with pytest.raises(NoImageProduced):
            extract_image({})

    @pytest.mark.parametrize("reason", ["SAFETY", "IMAGE_SAFETY", "PROHIBITED_CONTENT"])
    def test_safety_finish_reason_is_safety_filtered(self, reason):
        reply = {"candidates": [{"content": {"parts": []}, "finishReason": reason}]}
        with pytest.raises(SafetyFiltered) as exc_info:
            extract_image(reply)
        assert exc_info.value.code == "safety_filtered"
        assert exc_info.value.details["finish_reason"] == reason

    def test_prompt_block_reason_is_safety_filtered(self):
        with pytest.raises(SafetyFiltered) as exc_info:
            extract_image({"promptFeedback": {"blockReason": "SAFETY"}})
        assert exc_info.value.details == {"block_reason": "SAFETY"}

    def test_safety_message_differs_from_generic(self):
        with pytest.raises(SafetyFiltered) as blocked:
            extract_image({"promptFeedback": {"blockReason": "OTHER"}})
        with pytest.raises(NoImageProduced) as empty:
            extract_image({"candidates": []})
        assert blocked.value.message != empty.value.message


class TestGenerate:
    def test_sends_prompt_and_photo(self):
        upstream = FakeUpstream((200, gemini_image_reply()))
        client = _client(upstream, model="gemini-test-image")

        image = asyncio.run(client.generate("make a sculpture", "AAAA", "image/jpeg"))

        assert image.data == "BBBB"
        assert upstream.calls == 1
        request = upstream.requests[0]
        assert request.url.path.endswith("/models/gemini-test-image:generateContent")
        assert request.headers["x-goog-api-key"] == "test-api-key"
        body = upstream.sent_json()
        parts = body["contents"][0]["parts"]
        assert parts[0] == {"text": "make a sculpture"}
        assert parts[1] == {"inline_data": {"mime_type": "image/jpeg", "data": "AAAA"}}
        assert body["generationConfig"]["responseModalities"] == ["TEXT", "IMAGE"]
        assert "safetySettings" not in body

    def test_generation_parameters_and_safety_threshold(self):
        upstream = FakeUpstream((200, gemini_image_reply()))
        client = _client(upstream, temperature=0.4, safety_threshold="BLOCK_ONLY_HIGH")

        asyncio.run(client.generate("prompt", "AAAA"))

        body = upstream.sent_json()
        assert body["generationConfig"]["temperature"] == 0.4
        assert {s["threshold"] for s in body["safetySettings"]} == {"BLOCK_ONLY_HIGH"}
        assert len(body["safetySettings"]) == 4

    def test_rate_limit_is_not_retryable(self):
        upstream = FakeUpstream(
            (429, {"error": {"code": 429, "message": "Quota exceeded", "status": "RESOURCE_EXHAUSTED"}})
        )
        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(_client(upstream).generate("prompt", "AAAA"))
        error = exc_info.value
        assert error.rate_limited
        assert not error.retryable
        assert error.message == "Quota exceeded"
        assert error.upstream_code == "RESOURCE_EXHAUSTED"
        assert error.status_code == 429

    def test_server_error_is_retryable(self):
        upstream = FakeUpstream((500, {"error": {"code": 500, "message": "Internal", "status": "INTERNAL"}}))
        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(_client(upstream).generate("prompt", "AAAA"))
        assert exc_info.value.retryable
        assert exc_info.value.status_code == 502
        assert exc_info.value.upstream_status == 500

    def test_payload_too_large(self):
        upstream = FakeUpstream((413, {"error": {"code": 413, "message": "Request too large"}}))
        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(_client(upstream).generate("prompt", "AAAA"))
        assert exc_info.value.payload_too_large
        assert not exc_info.value.retryable
        assert exc_info.value.code == "payload_too_large"

    def test_error_object_in_ok_reply(self):
        upstream = FakeUpstream((200, {"error": {"code": 400, "message": "API key not valid", "status": "INVALID_ARGUMENT"}}))
        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(_client(upstream).generate("prompt", "AAAA"))
        assert exc_info.value.message == "API key not valid"
        assert exc_info.value.upstream_code == "INVALID_ARGUMENT"

    def test_timeout_is_transport_error(self):
        upstream = FakeUpstream(httpx.ReadTimeout)
        with pytest.raises(TransportError) as exc_info:
            asyncio.run(_client(upstream).generate("prompt", "AAAA"))
        assert exc_info.value.timed_out
        assert exc_info.value.status_code == 504
        assert exc_info.value.retryable

    def test_connection_failure_is_transport_error(self):
        upstream = FakeUpstream(httpx.ConnectError)
        with pytest.raises(TransportError) as exc_info:
            asyncio.run(_client(upstream).generate("prompt", "AAAA"))
        assert not exc_info.value.timed_out
        assert exc_info.value.status_code == 502
