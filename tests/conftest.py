"""Shared fixtures: fake provider endpoints backed by httpx.MockTransport."""

import asyncio
import json

import httpx
import pytest

from document_ocr.config import PipelineConfig, ProviderConfig
from document_ocr.pipeline import DocumentOCRService
from document_ocr.providers import ProviderClient

PRIMARY_URL = "https://primary.test/models/ocr"
FALLBACK_URL = "https://fallback.test/api/predict"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
PDF_BYTES = b"%PDF-1.7\n" + b"\x00" * 32


class FakeProviders:
    """Routes requests to per-endpoint handlers and records what was sent."""

    def __init__(self, primary=None, fallback=None):
        self.primary = primary or (lambda request: httpx.Response(500, text="boom"))
        self.fallback = fallback or (lambda request: httpx.Response(500, text="boom"))
        self.calls: list[tuple[str, dict, httpx.Headers]] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else {}
        self.calls.append((str(request.url), body, request.headers))
        handler = self.primary if request.url.host == "primary.test" else self.fallback
        response = handler(request)
        if asyncio.iscoroutine(response):
            response = await response
        return response

    @property
    def called_urls(self) -> list[str]:
        return [url for url, _, _ in self.calls]


@pytest.fixture
def provider_config():
    return ProviderConfig(
        primary_endpoint=PRIMARY_URL,
        fallback_endpoint=FALLBACK_URL,
        token="test-token",
        primary_deadline_seconds=0.2,
        transport_timeout_seconds=5.0,
    )


@pytest.fixture
def make_service(provider_config):
    """Build a service whose HTTP traffic goes to ``FakeProviders``."""

    def _make(fakes: FakeProviders, pipeline_config=None, local_extractor=None, config=None):
        config = config or provider_config
        client = ProviderClient.from_config(config, transport=httpx.MockTransport(fakes))
        return DocumentOCRService(
            client=client,
            provider_config=config,
            pipeline_config=pipeline_config or PipelineConfig(),
            local_extractor=local_extractor,
        )

    return _make


def run(coro):
    return asyncio.run(coro)
