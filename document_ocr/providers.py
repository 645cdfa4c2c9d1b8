"""Remote text-extraction providers.

A ``ProviderClient`` makes exactly one call to one provider per
``extract`` and reports the outcome as a value: ``ExtractionSuccess`` or
``ExtractionFailure``. Provider problems never escape as exceptions;
deciding what to do next is the orchestrator's job.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import httpx

from document_ocr.config import ProviderConfig
from document_ocr.exceptions import (
    AuthenticationError,
    MalformedResponseError,
    ModelNotFoundError,
    ProviderError,
    ProviderTimeoutError,
    ProviderTransportError,
    ProviderWarmingUpError,
)
from document_ocr.logger import Timer, get_logger
from document_ocr.models import (
    ExtractionFailure,
    ExtractionRequest,
    ExtractionSuccess,
    ProviderOutcome,
)

logger = get_logger(__name__)

ERROR_EXCERPT_CHARS = 200


class PayloadShape(str, Enum):
    INFERENCE = "inference"
    """``{inputs, parameters, options}`` with a data URL, bearer auth."""

    GRADIO = "gradio"
    """``{data: [base64, instruction, model]}``, no auth."""


@dataclass(frozen=True)
class ProviderDescriptor:
    """Where and how to call one provider."""

    name: str
    endpoint: str
    payload_shape: PayloadShape
    requires_auth: bool = False
    deadline_seconds: Optional[float] = None
    instruction: str = ""
    model_tag: str = ""
    max_new_tokens: int = 4096


def primary_descriptor(config: ProviderConfig) -> ProviderDescriptor:
    return ProviderDescriptor(
        name="primary",
        endpoint=config.primary_endpoint,
        payload_shape=PayloadShape.INFERENCE,
        requires_auth=True,
        deadline_seconds=config.primary_deadline_seconds,
        max_new_tokens=config.max_new_tokens,
    )


def fallback_descriptor(config: ProviderConfig) -> ProviderDescriptor:
    return ProviderDescriptor(
        name="fallback",
        endpoint=config.fallback_endpoint,
        payload_shape=PayloadShape.GRADIO,
        requires_auth=False,
        instruction=config.fallback_instruction,
        model_tag=config.fallback_model_tag,
    )


def build_payload(request: ExtractionRequest, descriptor: ProviderDescriptor) -> dict[str, Any]:
    if descriptor.payload_shape is PayloadShape.GRADIO:
        return {"data": [request.base64(), descriptor.instruction, descriptor.model_tag]}
    return {
        "inputs": request.data_url(),
        "parameters": {
            "max_new_tokens": descriptor.max_new_tokens,
            "temperature": 0.1,
            "do_sample": False,
            "return_full_text": False,
        },
        "options": {"wait_for_model": True, "use_cache": False},
    }


def _text_field(item: Any) -> Optional[str]:
    if not isinstance(item, dict):
        return None
    for key in ("generated_text", "text"):
        value = item.get(key)
        if isinstance(value, str):
            return value
    return None


def parse_inference_response(body: Any) -> str:
    """Pull text out of the shapes inference endpoints are known to return.

    Accepts a list whose first item carries ``generated_text``/``text``, a
    single such object, or a bare string.

    Raises:
        MalformedResponseError: For any other shape, or blank text
    """
    if isinstance(body, str):
        text = body
    elif isinstance(body, list) and body:
        text = _text_field(body[0])
    else:
        text = _text_field(body)

    if text is None:
        raise MalformedResponseError(f"Unexpected response shape: {type(body).__name__}")
    if not text.strip():
        raise MalformedResponseError("Response contained no text")
    return text


def parse_gradio_response(body: Any) -> str:
    """Pull text out of a ``{"data": [text, ...]}`` response."""
    data = body.get("data") if isinstance(body, dict) else None
    if not isinstance(data, list) or not data or not isinstance(data[0], str):
        raise MalformedResponseError("Response has no text in data[0]")
    if not data[0].strip():
        raise MalformedResponseError("Response contained no text")
    return data[0]


def _error_excerpt(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:ERROR_EXCERPT_CHARS].strip()
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"][:ERROR_EXCERPT_CHARS]
    return str(body)[:ERROR_EXCERPT_CHARS]


def check_response_status(response: httpx.Response) -> None:
    """Map a non-success HTTP status onto the provider error taxonomy."""
    if response.is_success:
        return

    status = response.status_code
    excerpt = _error_excerpt(response)
    if status in (401, 403):
        raise AuthenticationError(f"Authentication failed (HTTP {status})")
    if status == 404:
        raise ModelNotFoundError(f"Model not found: {response.request.url}")
    if status == 503:
        raise ProviderWarmingUpError(f"Model is loading (HTTP {status}): {excerpt}")
    raise ProviderTransportError(f"HTTP {status}: {excerpt}" if excerpt else f"HTTP {status}")


class ProviderClient:
    """Shared HTTP client for the remote providers.

    Holds the credentials and one lazily created ``httpx.AsyncClient``.
    Nothing is mutated after construction, so a single instance can serve
    concurrent extractions.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        transport_timeout_seconds: float = 120.0,
        probe_timeout_seconds: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize provider client.

        Args:
            token: Bearer token for providers that require auth
            transport_timeout_seconds: Socket timeout for every request
            probe_timeout_seconds: Timeout for reachability probes
            transport: Optional httpx transport, mainly for tests
        """
        self._token = token
        self._timeout = httpx.Timeout(transport_timeout_seconds)
        self._probe_timeout = probe_timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_config(
        cls, config: ProviderConfig, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "ProviderClient":
        config.validate()
        return cls(
            token=config.token,
            transport_timeout_seconds=config.transport_timeout_seconds,
            probe_timeout_seconds=config.probe_timeout_seconds,
            transport=transport,
        )

    @property
    def has_token(self) -> bool:
        return bool(self._token)

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ProviderClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    def _headers(self, descriptor: ProviderDescriptor) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if descriptor.requires_auth:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def extract(
        self, request: ExtractionRequest, descriptor: ProviderDescriptor
    ) -> ProviderOutcome:
        """Call one provider once and report what happened.

        Args:
            request: Payload and sniffed content type
            descriptor: Provider endpoint, payload shape and deadline

        Returns:
            ExtractionSuccess with the raw text, or ExtractionFailure
        """
        log = logger.bind(provider=descriptor.name)
        log.debug(
            "Calling extraction provider",
            extra_data={
                "endpoint": descriptor.endpoint,
                "content_type": request.content_type.value,
                "size_bytes": request.size_bytes,
                "deadline_s": descriptor.deadline_seconds,
            },
        )

        with Timer("provider_call") as timer:
            try:
                text = await self._call_with_deadline(request, descriptor)
            except ProviderError as exc:
                log.warning(
                    "Provider call failed",
                    extra_data={
                        "category": exc.category.value,
                        "error": str(exc),
                        "elapsed_ms": timer.get_elapsed_ms(),
                    },
                )
                return ExtractionFailure(
                    category=exc.category, message=str(exc), provider=descriptor.name
                )

        log.info(
            "Provider call succeeded",
            extra_data={"characters": len(text), "elapsed_ms": timer.get_elapsed_ms()},
        )
        return ExtractionSuccess(raw_text=text, provider=descriptor.name)

    async def _call_with_deadline(
        self, request: ExtractionRequest, descriptor: ProviderDescriptor
    ) -> str:
        if descriptor.requires_auth and not self._token:
            raise AuthenticationError("No token configured for authenticated provider")

        call = self._post(request, descriptor)
        if descriptor.deadline_seconds is None:
            return await call

        # wait_for cancels the request task on expiry; httpx then drops the connection.
        try:
            return await asyncio.wait_for(call, timeout=descriptor.deadline_seconds)
        except asyncio.TimeoutError as exc:
            raise ProviderTimeoutError(
                f"No response within {descriptor.deadline_seconds}s deadline"
            ) from exc

    async def _post(self, request: ExtractionRequest, descriptor: ProviderDescriptor) -> str:
        try:
            response = await self._http().post(
                descriptor.endpoint,
                json=build_payload(request, descriptor),
                headers=self._headers(descriptor),
            )
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError(f"Transport timeout: {exc}") from exc
        except httpx.HTTPError as exc:
            raise ProviderTransportError(f"{type(exc).__name__}: {exc}") from exc

        check_response_status(response)

        try:
            body = response.json()
        except ValueError as exc:
            raise MalformedResponseError("Response body is not valid JSON") from exc

        if descriptor.payload_shape is PayloadShape.GRADIO:
            return parse_gradio_response(body)
        return parse_inference_response(body)

    async def probe(self, descriptor: ProviderDescriptor) -> bool:
        """Check that the provider host answers at all."""
        root = httpx.URL(descriptor.endpoint).join("/")
        try:
            response = await self._http().get(str(root), timeout=self._probe_timeout)
        except httpx.HTTPError as exc:
            logger.warning(
                "Provider probe failed",
                extra_data={"provider": descriptor.name, "error": str(exc)},
            )
            return False

        logger.debug(
            "Provider probe completed",
            extra_data={"provider": descriptor.name, "status": response.status_code},
        )
        return response.status_code == 200
