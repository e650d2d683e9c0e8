"""
Stream Classifier.

Maps three subject ids to the stream they qualify for by an exact,
order-independent lookup in the CombinationStore.

Pattern: Repository + Protocol
- The store is injected through the constructor
- StreamClassifierProtocol lets the API use FakeStreamClassifier in tests

Classification never mutates the store, so repeated calls with the same
ids return equal results.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Protocol, runtime_checkable

from stream_classifier.classifiers.exceptions import SubjectValidationError
from stream_classifier.classifiers.models import (
    COMBINATION_SIZE,
    DEFAULT_LEVEL,
    FALLBACK_RULE,
    ClassificationResult,
)
from stream_classifier.classifiers.store import CombinationStore
from stream_classifier.core.logging import get_logger

logger = get_logger(__name__)

# =============================================================================
# Constants (no duplicated strings)
# =============================================================================

ERROR_NOT_A_LIST: Final[str] = "subjectIds array is required"
ERROR_WRONG_COUNT: Final[str] = "Exactly 3 subject IDs must be provided"
ERROR_DUPLICATES: Final[str] = "All 3 subjects must be different"
ERROR_INVALID_ID: Final[str] = (
    'Invalid subject ID at position {position}: "{value}". Must be a positive number.'
)
ERROR_UNKNOWN_SUBJECTS: Final[str] = "Subject(s) with ID(s) {ids} not found"
ERROR_NOT_ADVANCED_LEVEL: Final[str] = "Found non-A/L: {names}"


# =============================================================================
# Validation
# =============================================================================


def _parse_subject_id(value: Any, position: int) -> int:
    """Parse one subject id; ints and integral strings/floats are accepted."""
    parsed: int | None = None

    if isinstance(value, bool):
        parsed = None
    elif isinstance(value, int):
        parsed = value
    elif isinstance(value, float) and value.is_integer():
        parsed = int(value)
    elif isinstance(value, str):
        try:
            parsed = int(value.strip())
        except ValueError:
            parsed = None

    if parsed is None or parsed <= 0:
        raise SubjectValidationError(
            ERROR_INVALID_ID.format(position=position, value=value)
        )
    return parsed


def validate_subject_ids(raw: Any) -> list[int]:
    """
    Validate a raw subject id list from a request.

    Args:
        raw: Anything the caller sent as subject ids.

    Returns:
        The ids as ints, in the order supplied.

    Raises:
        SubjectValidationError: Not a list, not exactly three entries,
            a non-numeric or non-positive entry, or duplicates.
    """
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        raise SubjectValidationError(ERROR_NOT_A_LIST)
    if len(raw) != COMBINATION_SIZE:
        raise SubjectValidationError(ERROR_WRONG_COUNT)

    subject_ids = [_parse_subject_id(value, i) for i, value in enumerate(raw)]

    if len(set(subject_ids)) != COMBINATION_SIZE:
        raise SubjectValidationError(ERROR_DUPLICATES)
    return subject_ids


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True, slots=True)
class BatchItemResult:
    """Outcome for one entry of a batch classification."""

    index: int
    result: ClassificationResult | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.result is not None


# =============================================================================
# Protocol Definition
# =============================================================================


@runtime_checkable
class StreamClassifierProtocol(Protocol):
    """Protocol for stream classifier implementations."""

    def classify(self, subject_ids: Sequence[Any]) -> ClassificationResult:
        """Classify one subject triple.

        Raises:
            SubjectValidationError: If the ids are invalid.
        """
        ...

    def classify_batch(
        self, combinations: Sequence[Sequence[Any]]
    ) -> list[BatchItemResult]:
        """Classify several triples; invalid entries become error items."""
        ...


# =============================================================================
# Main Implementation
# =============================================================================


class StreamClassifier:
    """
    Classifies subject triples against the valid combination table.

    Args:
        store: Reference data to classify against.
        fallback_to_common: Return the fallback ("Common") stream with
            rule "fallback" instead of an empty result when nothing matches.
        strict_subjects: Reject ids the store does not know, and subjects
            that are not A/L level, instead of treating them as an
            ordinary no-match.

    Example:
        >>> classifier = StreamClassifier(store)
        >>> classifier.classify([6, 1, 2]).stream_name
        'Physical Science Stream'
    """

    __slots__ = ("_store", "_fallback_to_common", "_strict_subjects")

    def __init__(
        self,
        store: CombinationStore,
        fallback_to_common: bool = False,
        strict_subjects: bool = False,
    ) -> None:
        self._store = store
        self._fallback_to_common = fallback_to_common
        self._strict_subjects = strict_subjects

    @property
    def store(self) -> CombinationStore:
        return self._store

    def classify(self, subject_ids: Sequence[Any]) -> ClassificationResult:
        """
        Classify one subject triple.

        Args:
            subject_ids: Three subject ids in any order.

        Returns:
            ClassificationResult; `matched` is False when no stream applies.

        Raises:
            SubjectValidationError: If the ids fail validation.
        """
        ids = validate_subject_ids(subject_ids)

        if self._strict_subjects:
            missing = [i for i in ids if not self._store.has_subject(i)]
            if missing:
                raise SubjectValidationError(
                    ERROR_UNKNOWN_SUBJECTS.format(ids=", ".join(str(i) for i in missing))
                )
            subjects = [self._store.get_subject(i) for i in ids]
            non_al = [s.name for s in subjects if s is not None and s.level != DEFAULT_LEVEL]
            if non_al:
                raise SubjectValidationError(
                    ERROR_NOT_ADVANCED_LEVEL.format(names=", ".join(non_al))
                )

        combination = self._store.find(ids)
        if combination is not None:
            stream = self._store.get_stream(combination.stream_id)
            if stream is not None:
                logger.debug(
                    "combination_matched",
                    subject_ids=ids,
                    stream_id=stream.id,
                    rule=combination.rule,
                )
                return ClassificationResult(
                    subject_ids=tuple(ids),
                    stream_id=stream.id,
                    stream_name=stream.name,
                    matched_rule=combination.rule,
                    matched=True,
                )

        if self._fallback_to_common:
            fallback = self._store.fallback_stream()
            if fallback is not None:
                logger.debug("combination_fallback", subject_ids=ids, stream_id=fallback.id)
                return ClassificationResult(
                    subject_ids=tuple(ids),
                    stream_id=fallback.id,
                    stream_name=fallback.name,
                    matched_rule=FALLBACK_RULE,
                    matched=True,
                )

        logger.debug("combination_not_found", subject_ids=ids)
        return ClassificationResult.no_match(ids)

    def classify_batch(
        self, combinations: Sequence[Sequence[Any]]
    ) -> list[BatchItemResult]:
        """
        Classify several triples independently.

        Args:
            combinations: Subject id lists.

        Returns:
            One BatchItemResult per input, in input order.
        """
        results: list[BatchItemResult] = []
        for index, combination in enumerate(combinations):
            try:
                results.append(BatchItemResult(index=index, result=self.classify(combination)))
            except SubjectValidationError as e:
                results.append(BatchItemResult(index=index, error=e.message))
        return results


# =============================================================================
# Fake Implementation (for testing)
# =============================================================================


class FakeStreamClassifier:
    """
    Fake classifier returning pre-configured results.

    Keys are frozensets of subject ids, so lookups are order independent.
    Unconfigured triples produce a no-match. Every call is recorded in
    `calls`.
    """

    def __init__(
        self,
        responses: Mapping[frozenset[int], ClassificationResult] | None = None,
        error: Exception | None = None,
    ) -> None:
        self._responses = dict(responses or {})
        self._error = error
        self.calls: list[list[int]] = []

    def classify(self, subject_ids: Sequence[Any]) -> ClassificationResult:
        if self._error is not None:
            raise self._error
        ids = validate_subject_ids(subject_ids)
        self.calls.append(ids)
        configured = self._responses.get(frozenset(ids))
        if configured is None:
            return ClassificationResult.no_match(ids)
        return ClassificationResult(
            subject_ids=tuple(ids),
            stream_id=configured.stream_id,
            stream_name=configured.stream_name,
            matched_rule=configured.matched_rule,
            matched=configured.matched,
        )

    def classify_batch(
        self, combinations: Sequence[Sequence[Any]]
    ) -> list[BatchItemResult]:
        results: list[BatchItemResult] = []
        for index, combination in enumerate(combinations):
            try:
                results.append(BatchItemResult(index=index, result=self.classify(combination)))
            except SubjectValidationError as e:
                results.append(BatchItemResult(index=index, error=e.message))
        return results
