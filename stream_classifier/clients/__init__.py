"""
Stream Service Client

HTTP client and request-state tracker for the stream classification API.
"""

from stream_classifier.clients.stream_client import (
    ClientConfig,
    FakeStreamServiceClient,
    StreamClassificationData,
    StreamClassificationResponse,
    StreamClientError,
    StreamServiceClient,
    StreamServiceClientProtocol,
    StreamsResponse,
    StreamSummary,
)
from stream_classifier.clients.tracker import (
    ClassificationState,
    StreamClassificationTracker,
)

__all__ = [
    "ClassificationState",
    "ClientConfig",
    "FakeStreamServiceClient",
    "StreamClassificationData",
    "StreamClassificationResponse",
    "StreamClassificationTracker",
    "StreamClientError",
    "StreamServiceClient",
    "StreamServiceClientProtocol",
    "StreamSummary",
    "StreamsResponse",
]
