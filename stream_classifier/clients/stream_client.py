"""
Stream Service Client

HTTP client for the stream classification endpoints.

Patterns Applied:
- Connection pooling (one httpx.AsyncClient per client instance)
- Explicit ClientConfig passed at construction, no environment reads
- Protocol for duck typing so the tracker can use FakeStreamServiceClient
- Custom namespaced exceptions

Requests are made once; there is no retry. Any HTTP response with a JSON
envelope (including 4xx/5xx) is returned to the caller as a response
object. Only transport failures and non-JSON bodies raise.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from stream_classifier.core.exceptions import StreamClassifierError
from stream_classifier.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_BASE_URL = "http://localhost:4000/api"


# =============================================================================
# Custom Exceptions
# =============================================================================


class StreamClientError(StreamClassifierError):
    """Raised when the stream service cannot be reached or replies with garbage.

    Namespaced to avoid shadowing builtins like ConnectionError or TimeoutError.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


# =============================================================================
# Data Models
# =============================================================================


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings for StreamServiceClient."""

    base_url: str = DEFAULT_BASE_URL
    timeout: float = 30.0
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class StreamClassificationData:
    """Classification payload returned by the service."""

    stream_id: int | None
    stream_name: str | None
    matched_rule: str | None
    subject_ids: list[int]


@dataclass
class StreamClassificationResponse:
    """Envelope returned by classify and validate."""

    success: bool
    data: StreamClassificationData | None = None
    error: str | None = None
    details: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> StreamClassificationResponse:
        data = payload.get("data")
        details = payload.get("details")
        return cls(
            success=bool(payload.get("success", False)),
            data=StreamClassificationData(
                stream_id=data.get("streamId"),
                stream_name=data.get("streamName"),
                matched_rule=data.get("matchedRule"),
                subject_ids=list(data.get("subjectIds") or []),
            )
            if isinstance(data, dict)
            else None,
            error=payload.get("error"),
            details=details if details is None or isinstance(details, str) else str(details),
        )


@dataclass
class StreamSummary:
    """A stream as listed by GET /streams."""

    id: int
    name: str
    description: str | None = None


@dataclass
class StreamsResponse:
    """Envelope returned by GET /streams."""

    success: bool
    data: list[StreamSummary] = field(default_factory=list)


# =============================================================================
# Protocol for Duck Typing
# =============================================================================


class StreamServiceClientProtocol(Protocol):
    """Protocol for StreamServiceClient duck typing."""

    async def classify_subjects(
        self, subject_ids: list[int]
    ) -> StreamClassificationResponse:
        """Classify a three-subject combination."""
        ...


# =============================================================================
# StreamServiceClient Implementation
# =============================================================================


class StreamServiceClient:
    """HTTP client for the stream classification service.

    Attributes:
        config: Connection settings.

    Example:
        async with StreamServiceClient(ClientConfig(base_url="http://api/api")) as client:
            response = await client.classify_subjects([6, 1, 2])
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Connection settings (defaults to localhost).
            transport: Optional httpx transport, e.g. httpx.MockTransport in tests.
        """
        self.config = config or ClientConfig()
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=httpx.Timeout(self.config.timeout),
            headers=self.config.headers,
            transport=transport,
        )

    async def __aenter__(self) -> StreamServiceClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def classify_subjects(
        self, subject_ids: list[int]
    ) -> StreamClassificationResponse:
        """Classify subjects to determine the stream.

        Args:
            subject_ids: Three subject ids.

        Returns:
            The service envelope, successful or not.

        Raises:
            StreamClientError: On transport failure, a non-JSON body or an unusable envelope.
        """
        payload = await self._request(
            "POST", "/streams/classify", json={"subjectIds": subject_ids}
        )
        return _parse_classification(payload, "/streams/classify")

    async def validate_subject_combination(
        self, subject_id1: int, subject_id2: int, subject_id3: int
    ) -> StreamClassificationResponse:
        """Classify using the path-parameter endpoint."""
        payload = await self._request(
            "GET", f"/streams/validate/{subject_id1}/{subject_id2}/{subject_id3}"
        )
        return _parse_classification(payload, "/streams/validate")

    async def get_all_streams(self) -> StreamsResponse:
        """Get all available streams."""
        payload = await self._request("GET", "/streams")
        try:
            return StreamsResponse(
                success=bool(payload.get("success", False)),
                data=[
                    StreamSummary(
                        id=item["id"],
                        name=item["name"],
                        description=item.get("description"),
                    )
                    for item in payload.get("data") or []
                ],
            )
        except (AttributeError, KeyError, TypeError) as e:
            raise StreamClientError(f"Unexpected response shape from /streams: {e}") from e

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """Send one request and decode its JSON envelope.

        Raises:
            StreamClientError: On transport failure or a non-JSON body.
        """
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("stream_service_timeout", path=path)
            raise StreamClientError(f"Request to {path} timed out") from e
        except httpx.HTTPError as e:
            logger.warning("stream_service_unreachable", path=path, error=str(e))
            raise StreamClientError(f"Request to {path} failed: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise StreamClientError(
                f"Non-JSON response from {path}", status_code=response.status_code
            ) from e

        if not isinstance(payload, dict):
            raise StreamClientError(
                f"Unexpected response shape from {path}", status_code=response.status_code
            )
        return payload

    async def close(self) -> None:
        """Close the HTTP client connection pool."""
        await self._client.aclose()


def _parse_classification(payload: dict[str, Any], path: str) -> StreamClassificationResponse:
    """Decode a classification envelope, rejecting unusable shapes."""
    try:
        return StreamClassificationResponse.from_payload(payload)
    except (AttributeError, KeyError, TypeError) as e:
        raise StreamClientError(f"Unexpected response shape from {path}: {e}") from e


# =============================================================================
# FakeStreamServiceClient for Testing
# =============================================================================


class FakeStreamServiceClient:
    """Fake client for unit testing without real HTTP.

    Responses are keyed by the sorted subject id tuple. An optional
    per-call delay lets tests interleave overlapping requests.
    """

    def __init__(
        self,
        responses: dict[tuple[int, ...], StreamClassificationResponse] | None = None,
        delays: dict[tuple[int, ...], float] | None = None,
        error: Exception | None = None,
    ) -> None:
        self._responses = responses or {}
        self._delays = delays or {}
        self._error = error
        self.calls: list[list[int]] = []

    async def classify_subjects(
        self, subject_ids: list[int]
    ) -> StreamClassificationResponse:
        key = tuple(sorted(subject_ids))
        self.calls.append(list(subject_ids))
        await asyncio.sleep(self._delays.get(key, 0))
        if self._error is not None:
            raise self._error
        return self._responses.get(
            key,
            StreamClassificationResponse(
                success=True,
                data=StreamClassificationData(
                    stream_id=None,
                    stream_name=None,
                    matched_rule=None,
                    subject_ids=list(subject_ids),
                ),
            ),
        )
