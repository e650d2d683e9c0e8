"""
Stream Classification Tracker

Client-side request state for a subject picker: holds the current stream
name/id/rule, a loading flag and an error string, and re-classifies on
every input change.

State machine: idle -> loading -> success | error, re-entrant on each
call. A request is only issued for exactly three positive subject ids;
anything else clears the state without contacting the service.

Overlapping calls: every call takes a generation number and only the
latest generation may write state. A superseded in-flight request is
cancelled, so a slow stale response can never overwrite a newer one.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from enum import Enum
from typing import Final

from stream_classifier.clients.stream_client import (
    StreamClassificationResponse,
    StreamClientError,
    StreamServiceClientProtocol,
)
from stream_classifier.core.logging import get_logger

logger = get_logger(__name__)

REQUIRED_SUBJECTS: Final[int] = 3
ERROR_NETWORK: Final[str] = "Network error occurred"
ERROR_CLASSIFY: Final[str] = "Failed to classify subjects"


class ClassificationState(str, Enum):
    """Lifecycle of the most recent classification."""

    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class StreamClassificationTracker:
    """Tracks the stream classification for a changing subject selection.

    Args:
        client: Service client used to classify.
        debounce: Seconds to wait before sending; a newer call within the
            window supersedes this one and no request is sent.
    """

    def __init__(
        self,
        client: StreamServiceClientProtocol,
        debounce: float = 0.0,
    ) -> None:
        self._client = client
        self._debounce = debounce
        self._generation = 0
        self._inflight: asyncio.Task[StreamClassificationResponse] | None = None

        self.state = ClassificationState.IDLE
        self.stream_name: str | None = None
        self.stream_id: int | None = None
        self.matched_rule: str | None = None
        self.error: str | None = None

    @property
    def is_loading(self) -> bool:
        return self.state is ClassificationState.LOADING

    async def classify_subjects(self, subject_ids: Iterable[int]) -> None:
        """Classify the current selection.

        Non-positive entries (unselected slots) are ignored. Unless exactly
        three ids remain, the state is cleared and no request is made.
        """
        valid_ids = [
            i for i in subject_ids if isinstance(i, int) and not isinstance(i, bool) and i > 0
        ]
        if len(valid_ids) != REQUIRED_SUBJECTS:
            self.clear_stream()
            return

        generation = self._begin()
        self.state = ClassificationState.LOADING
        self.error = None

        task = asyncio.ensure_future(self._send(valid_ids))
        self._inflight = task

        try:
            response = await task
        except asyncio.CancelledError:
            if generation != self._generation:
                logger.debug("classification_superseded", subject_ids=valid_ids)
                return
            raise
        except StreamClientError as e:
            if generation == self._generation:
                logger.warning("classification_network_error", error=e.message)
                self._fail(ERROR_NETWORK)
            return
        except Exception as e:
            if generation == self._generation:
                logger.error("classification_failed", error=str(e), exc_info=True)
                self._fail(ERROR_NETWORK)
            return
        finally:
            if self._inflight is task:
                self._inflight = None

        if generation != self._generation:
            logger.debug("classification_stale_response_dropped", subject_ids=valid_ids)
            return

        if response.success and response.data is not None:
            self.stream_name = response.data.stream_name
            self.stream_id = response.data.stream_id
            self.matched_rule = response.data.matched_rule
            self.state = ClassificationState.SUCCESS
        else:
            self._fail(response.error or ERROR_CLASSIFY)

    def clear_stream(self) -> None:
        """Reset to idle and discard any in-flight request."""
        self._begin()
        self._clear_stream_data()
        self.error = None
        self.state = ClassificationState.IDLE

    async def _send(self, subject_ids: list[int]) -> StreamClassificationResponse:
        if self._debounce > 0:
            await asyncio.sleep(self._debounce)
        return await self._client.classify_subjects(subject_ids)

    def _begin(self) -> int:
        """Start a new generation, cancelling the previous request."""
        self._generation += 1
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        self._inflight = None
        return self._generation

    def _fail(self, message: str) -> None:
        self.error = message
        self._clear_stream_data()
        self.state = ClassificationState.ERROR

    def _clear_stream_data(self) -> None:
        self.stream_name = None
        self.stream_id = None
        self.matched_rule = None
