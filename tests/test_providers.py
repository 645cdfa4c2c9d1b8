"""
Tests for the provider client: payloads, response parsing and failure classification.
"""

import asyncio
import time

import httpx
import pytest

from conftest import PNG_BYTES, FakeProviders, run
from document_ocr.exceptions import MalformedResponseError
from document_ocr.models import (
    ErrorCategory,
    ExtractionFailure,
    ExtractionRequest,
    ExtractionSuccess,
)
from document_ocr.providers import (
    PayloadShape,
    ProviderClient,
    build_payload,
    fallback_descriptor,
    parse_gradio_response,
    parse_inference_response,
    primary_descriptor,
)

REQUEST = ExtractionRequest.from_bytes(PNG_BYTES)


def extract_with(provider_config, descriptor_factory, fakes, token="test-token"):
    async def _run():
        client = ProviderClient(
            token=token,
            transport_timeout_seconds=5.0,
            transport=httpx.MockTransport(fakes),
        )
        async with client:
            return await client.extract(REQUEST, descriptor_factory(provider_config))

    return run(_run())


class TestDescriptors:
    """Test default descriptors built from config."""

    def test_primary(self, provider_config):
        descriptor = primary_descriptor(provider_config)

        assert descriptor.payload_shape is PayloadShape.INFERENCE
        assert descriptor.requires_auth is True
        assert descriptor.deadline_seconds == provider_config.primary_deadline_seconds

    def test_fallback(self, provider_config):
        descriptor = fallback_descriptor(provider_config)

        assert descriptor.payload_shape is PayloadShape.GRADIO
        assert descriptor.requires_auth is False
        assert descriptor.deadline_seconds is None


class TestPayloads:
    """Test request bodies for both payload shapes."""

    def test_inference_payload(self, provider_config):
        payload = build_payload(REQUEST, primary_descriptor(provider_config))

        assert payload["inputs"].startswith("data:image/png;base64,")
        assert payload["parameters"]["max_new_tokens"] == 4096
        assert payload["parameters"]["do_sample"] is False
        assert payload["options"] == {"wait_for_model": True, "use_cache": False}

    def test_gradio_payload(self, provider_config):
        payload = build_payload(REQUEST, fallback_descriptor(provider_config))

        assert payload == {
            "data": [REQUEST.base64(), "Extract the full page.", "olmOCR-7B-0725"]
        }


class TestResponseParsing:
    """Test parsing of provider response shapes."""

    @pytest.mark.parametrize(
        "body, expected",
        [
            ([{"generated_text": "alpha"}], "alpha"),
            ([{"text": "beta"}, {"text": "ignored"}], "beta"),
            ({"generated_text": "gamma"}, "gamma"),
            ({"text": "delta"}, "delta"),
            ("epsilon", "epsilon"),
        ],
    )
    def test_inference_shapes(self, body, expected):
        assert parse_inference_response(body) == expected

    @pytest.mark.parametrize(
        "body", [[], {}, 42, None, [{"score": 1}], ["text"], [{"generated_text": "   "}]]
    )
    def test_inference_rejects_unknown_shapes(self, body):
        with pytest.raises(MalformedResponseError):
            parse_inference_response(body)

    def test_gradio_shape(self):
        assert parse_gradio_response({"data": ["page text", "markdown"]}) == "page text"

    @pytest.mark.parametrize("body", [{"data": []}, {"data": [None]}, ["x"], {"result": "x"}, {"data": [""]}])
    def test_gradio_rejects_unknown_shapes(self, body):
        with pytest.raises(MalformedResponseError):
            parse_gradio_response(body)


class TestExtract:
    """Test one provider call end to end against fake endpoints."""

    def test_success_sends_bearer_token(self, provider_config):
        fakes = FakeProviders(primary=lambda r: httpx.Response(200, json=[{"generated_text": "Hello"}]))

        outcome = extract_with(provider_config, primary_descriptor, fakes)

        assert outcome == ExtractionSuccess(raw_text="Hello", provider="primary")
        _, body, headers = fakes.calls[0]
        assert headers["Authorization"] == "Bearer test-token"
        assert body["inputs"].startswith("data:image/png;base64,")

    def test_gradio_success_without_auth(self, provider_config):
        fakes = FakeProviders(fallback=lambda r: httpx.Response(200, json={"data": ["Page one"]}))

        outcome = extract_with(provider_config, fallback_descriptor, fakes)

        assert isinstance(outcome, ExtractionSuccess)
        assert outcome.raw_text == "Page one"
        assert "Authorization" not in fakes.calls[0][2]

    @pytest.mark.parametrize(
        "response, category",
        [
            (httpx.Response(401, json={"error": "Invalid token"}), ErrorCategory.AUTH_FAILURE),
            (httpx.Response(403, text="forbidden"), ErrorCategory.AUTH_FAILURE),
            (httpx.Response(404, text="not found"), ErrorCategory.NOT_FOUND),
            (
                httpx.Response(503, json={"error": "Model is currently loading", "estimated_time": 20}),
                ErrorCategory.PROVIDER_WARMING_UP,
            ),
            (httpx.Response(500, text="internal error"), ErrorCategory.TRANSPORT_ERROR),
            (httpx.Response(400, json={"error": "Error loading image"}), ErrorCategory.TRANSPORT_ERROR),
            (httpx.Response(500, text="Model is currently loading"), ErrorCategory.TRANSPORT_ERROR),
            (httpx.Response(200, text="<html>not json</html>"), ErrorCategory.MALFORMED_RESPONSE),
            (httpx.Response(200, json={"unexpected": True}), ErrorCategory.MALFORMED_RESPONSE),
        ],
    )
    def test_status_classification(self, provider_config, response, category):
        fakes = FakeProviders(primary=lambda r: response)

        outcome = extract_with(provider_config, primary_descriptor, fakes)

        assert isinstance(outcome, ExtractionFailure)
        assert outcome.category is category
        assert outcome.provider == "primary"

    def test_warming_up_is_retryable(self, provider_config):
        fakes = FakeProviders(primary=lambda r: httpx.Response(503, text="loading"))

        outcome = extract_with(provider_config, primary_descriptor, fakes)

        assert outcome.retryable is True

    def test_bad_request_mentioning_loading_is_not_retryable(self, provider_config):
        fakes = FakeProviders(primary=lambda r: httpx.Response(400, text="Error loading image"))

        outcome = extract_with(provider_config, primary_descriptor, fakes)

        assert outcome.category is ErrorCategory.TRANSPORT_ERROR
        assert outcome.retryable is False

    def test_connect_error(self, provider_config):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        outcome = extract_with(provider_config, fallback_descriptor, FakeProviders(fallback=refuse))

        assert outcome.category is ErrorCategory.TRANSPORT_ERROR
        assert outcome.retryable is False

    def test_transport_timeout(self, provider_config):
        def time_out(request):
            raise httpx.ReadTimeout("read timed out", request=request)

        outcome = extract_with(provider_config, fallback_descriptor, FakeProviders(fallback=time_out))

        assert outcome.category is ErrorCategory.TIMEOUT

    def test_deadline_cancels_slow_call(self, provider_config):
        async def never_answers(request):
            await asyncio.sleep(30)
            return httpx.Response(200, json=[{"generated_text": "too late"}])

        start = time.perf_counter()
        outcome = extract_with(provider_config, primary_descriptor, FakeProviders(primary=never_answers))
        elapsed = time.perf_counter() - start

        assert outcome.category is ErrorCategory.TIMEOUT
        assert elapsed < provider_config.primary_deadline_seconds + 2.0

    def test_missing_token_fails_without_request(self, provider_config):
        fakes = FakeProviders(primary=lambda r: httpx.Response(200, json="text"))

        outcome = extract_with(provider_config, primary_descriptor, fakes, token=None)

        assert outcome.category is ErrorCategory.AUTH_FAILURE
        assert fakes.calls == []


class TestProbe:
    """Test reachability probes."""

    def test_probe_hits_host_root(self, provider_config):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, text="ok")

        async def _run():
            async with ProviderClient(transport=httpx.MockTransport(handler)) as client:
                return await client.probe(fallback_descriptor(provider_config))

        assert run(_run()) is True
        assert seen == ["https://fallback.test/"]

    def test_probe_failure(self, provider_config):
        def refuse(request):
            raise httpx.ConnectError("down", request=request)

        async def _run():
            async with ProviderClient(transport=httpx.MockTransport(refuse)) as client:
                return await client.probe(primary_descriptor(provider_config))

        assert run(_run()) is False
