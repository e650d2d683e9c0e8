"""
Custom exceptions for the classifiers module.

All exception classes end with "Error" and do not shadow built-in
exception names.
"""

from __future__ import annotations

from stream_classifier.core.exceptions import StreamClassifierError


class ReferenceDataError(StreamClassifierError):
    """
    Raised when reference data cannot be loaded or is inconsistent.

    This exception is raised in scenarios such as:
    - Seed file not found
    - Malformed JSON
    - A combination referencing an unknown subject or stream
    """


class DuplicateCombinationError(ReferenceDataError):
    """
    Raised when a subject triple is mapped to a second, different stream.

    Attributes:
        subject_ids: The conflicting triple, sorted.
        existing_stream_id: Stream the triple is already mapped to.
        new_stream_id: Stream the rejected write tried to map it to.
    """

    def __init__(
        self,
        subject_ids: tuple[int, ...],
        existing_stream_id: int,
        new_stream_id: int,
    ) -> None:
        super().__init__(
            f"Subject combination {list(subject_ids)} is already mapped to "
            f"stream {existing_stream_id}; refusing to map it to stream {new_stream_id}"
        )
        self.subject_ids = subject_ids
        self.existing_stream_id = existing_stream_id
        self.new_stream_id = new_stream_id


class CombinationNotFoundError(StreamClassifierError):
    """Raised when an operation targets a triple that is not in the store."""


class SubjectValidationError(StreamClassifierError):
    """
    Raised when a classification request carries invalid subject ids.

    Covers wrong arity, non-numeric or non-positive ids, duplicates and,
    in strict mode, ids unknown to the reference data.
    """
