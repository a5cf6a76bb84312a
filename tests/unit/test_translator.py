"""
Unit tests for sublingo/translator.py.

This module tests:
- Streaming text out of Gemini server-sent events
- Mapping of HTTP and in-stream errors to exceptions
- Client ownership
"""

import json

import httpx
import pytest

from sublingo.exceptions import InvalidCredentialError, ProviderAccessError, TranslationError
from sublingo.translator import GeminiTranslator


def sse_body(*chunks):
    return "".join(f"data: {json.dumps(chunk)}\r\n\r\n" for chunk in chunks).encode("utf-8")


def text_chunk(*texts):
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": t} for t in texts]}}]}


@pytest.fixture
def make_translator():
    """Build a GeminiTranslator whose HTTP calls go to a handler function."""
    created = []

    def _make(handler, api_key="test-key"):
        client = httpx.Client(transport=httpx.MockTransport(handler))
        created.append(client)
        return GeminiTranslator(api_key, model="gemini-test", api_base="https://api.example/v1beta/", client=client)

    yield _make
    for client in created:
        client.close()


class TestStream:
    """Test successful streaming."""

    def test_yields_fragments_in_order(self, make_translator):
        def handler(request):
            return httpx.Response(200, content=sse_body(
                text_chunk("WEBVTT\n\n"),
                text_chunk("00:00:01.000 --> 00:00:02.000\n", "สวัสดี"),
            ))

        translator = make_translator(handler)
        assert list(translator.stream("prompt")) == ["WEBVTT\n\n", "00:00:01.000 --> 00:00:02.000\nสวัสดี"]

    def test_request_shape(self, make_translator):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["key"] = request.headers.get("x-goog-api-key")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, content=sse_body(text_chunk("ok")))

        translator = make_translator(handler)
        list(translator.stream("Translate this"))
        assert seen["url"] == "https://api.example/v1beta/models/gemini-test:streamGenerateContent?alt=sse"
        assert seen["key"] == "test-key"
        assert seen["body"]["contents"][0]["parts"][0]["text"] == "Translate this"

    def test_skips_events_without_text(self, make_translator):
        def handler(request):
            body = b": keep-alive\r\n\r\n" + sse_body(
                {"candidates": []},
                text_chunk("A"),
                {"usageMetadata": {"totalTokenCount": 3}},
            )
            return httpx.Response(200, content=body)

        assert list(make_translator(handler).stream("p")) == ["A"]

    def test_is_lazy(self, make_translator):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, content=sse_body(text_chunk("A")))

        stream = make_translator(handler).stream("p")
        assert calls == []
        next(stream)
        assert len(calls) == 1


class TestErrors:
    """Test error mapping."""

    def test_missing_key(self, make_translator):
        translator = make_translator(lambda request: httpx.Response(200), api_key=None)
        with pytest.raises(InvalidCredentialError):
            list(translator.stream("p"))

    def test_invalid_key(self, make_translator):
        body = {"error": {"code": 400, "message": "API key not valid. Please pass a valid API key.",
                          "status": "INVALID_ARGUMENT",
                          "details": [{"reason": "API_KEY_INVALID"}]}}
        translator = make_translator(lambda request: httpx.Response(400, json=body))
        with pytest.raises(InvalidCredentialError):
            list(translator.stream("p"))

    def test_model_not_found(self, make_translator):
        body = {"error": {"code": 404, "message": "Requested entity was not found.", "status": "NOT_FOUND"}}
        translator = make_translator(lambda request: httpx.Response(404, json=body))
        with pytest.raises(ProviderAccessError):
            list(translator.stream("p"))

    def test_permission_denied(self, make_translator):
        translator = make_translator(lambda request: httpx.Response(403, json={"error": {"code": 403}}))
        with pytest.raises(ProviderAccessError):
            list(translator.stream("p"))

    def test_server_error(self, make_translator):
        translator = make_translator(lambda request: httpx.Response(500, text="internal"))
        with pytest.raises(TranslationError) as exc_info:
            list(translator.stream("p"))
        assert not isinstance(exc_info.value, (InvalidCredentialError, ProviderAccessError))

    def test_error_event_mid_stream(self, make_translator):
        def handler(request):
            return httpx.Response(200, content=sse_body(
                text_chunk("WEBVTT\n\n"),
                {"error": {"code": 503, "message": "overloaded"}},
            ))

        stream = make_translator(handler).stream("p")
        assert next(stream) == "WEBVTT\n\n"
        with pytest.raises(TranslationError):
            next(stream)

    def test_blocked_prompt(self, make_translator):
        def handler(request):
            return httpx.Response(200, content=sse_body({"promptFeedback": {"blockReason": "SAFETY"}}))

        with pytest.raises(TranslationError, match="SAFETY"):
            list(make_translator(handler).stream("p"))

    def test_malformed_event(self, make_translator):
        translator = make_translator(lambda request: httpx.Response(200, content=b"data: {not json\r\n\r\n"))
        with pytest.raises(TranslationError):
            list(translator.stream("p"))

    def test_transport_error(self, make_translator):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TranslationError):
            list(make_translator(handler).stream("p"))

    def test_timeout(self, make_translator):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(TranslationError, match="timed out"):
            list(make_translator(handler).stream("p"))


class TestClose:
    """Test client ownership."""

    def test_injected_client_left_open(self, make_translator):
        translator = make_translator(lambda request: httpx.Response(200))
        translator.close()
        assert not translator._client.is_closed

    def test_own_client_closed(self):
        translator = GeminiTranslator("key")
        translator.close()
        assert translator._client.is_closed
