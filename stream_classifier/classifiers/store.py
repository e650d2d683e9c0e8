"""
Subject Combination Store.

In-memory table of reference data: subjects, streams and the valid
subject triples mapped to each stream. The store is built once from a
JSON seed file and then only read, apart from course back-references.

Pattern: Hashed Feature - triples are keyed by frozenset so lookup is
O(1) and independent of the order the subjects were chosen in.

Seed file structure:
{
    "subjects": [{"id": 1, "code": "01", "name": "Physics", "level": "AL"}, ...],
    "streams": [
        {"id": 4, "name": "Physical Science Stream", "description": "...",
         "rule": {"type": "physical_science", "kind": "any_three",
                  "groups": {"allowed": [7, 6, 1, 2]}}},
        ...
    ],
    "combinations": [
        {"subjectIds": [1, 2, 6], "streamId": 4, "rule": "...", "courseIds": [101]}
    ]
}
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from stream_classifier.classifiers.exceptions import (
    CombinationNotFoundError,
    DuplicateCombinationError,
    ReferenceDataError,
)
from stream_classifier.classifiers.models import (
    COMBINATION_SIZE,
    Stream,
    StreamRule,
    Subject,
    ValidCombination,
)
from stream_classifier.classifiers.rules import DEFAULT_PRIORITY, generate_combinations
from stream_classifier.core.logging import get_logger

logger = get_logger(__name__)

CURATED_RULE = "curated_combination"


class CombinationStore:
    """
    Reference data store for stream classification.

    Example:
        >>> store = CombinationStore.from_seed(Path("reference_data.json"))
        >>> combo = store.find([2, 1, 6])
        >>> store.get_stream(combo.stream_id).name
        'Physical Science Stream'
    """

    __slots__ = ("_subjects", "_streams", "_combinations")

    def __init__(
        self,
        subjects: Iterable[Subject] = (),
        streams: Iterable[Stream] = (),
    ) -> None:
        self._subjects: dict[int, Subject] = {}
        self._streams: dict[int, Stream] = {}
        self._combinations: dict[frozenset[int], ValidCombination] = {}

        for subject in subjects:
            if subject.id in self._subjects:
                raise ReferenceDataError(f"Duplicate subject id: {subject.id}")
            self._subjects[subject.id] = subject
        for stream in streams:
            if stream.id in self._streams:
                raise ReferenceDataError(f"Duplicate stream id: {stream.id}")
            self._streams[stream.id] = stream

    # =========================================================================
    # Loading
    # =========================================================================

    @classmethod
    def from_seed(
        cls,
        seed_path: Path,
        priority: Sequence[str] = DEFAULT_PRIORITY,
    ) -> CombinationStore:
        """
        Build a store from a JSON seed file.

        Stream rules are expanded into combinations first, then explicit
        combinations from the seed are applied on top of them.

        Args:
            seed_path: Path to the seed JSON file.
            priority: Stream rule types, most specific first.

        Raises:
            ReferenceDataError: If the file is missing, malformed or inconsistent.
        """
        if not seed_path.exists():
            raise ReferenceDataError(f"Reference data file not found: {seed_path}")

        try:
            with seed_path.open("r", encoding="utf-8") as f:
                raw: dict[str, Any] = json.load(f)
        except json.JSONDecodeError as e:
            raise ReferenceDataError(f"Invalid reference data in {seed_path}: {e}") from e

        store = cls.from_dict(raw, priority=priority)
        logger.info(
            "reference_data_loaded",
            path=str(seed_path),
            subjects=len(store._subjects),
            streams=len(store._streams),
            combinations=len(store),
        )
        return store

    @classmethod
    def from_dict(
        cls,
        raw: dict[str, Any],
        priority: Sequence[str] = DEFAULT_PRIORITY,
    ) -> CombinationStore:
        """Build a store from already-parsed seed data."""
        try:
            subjects = [
                Subject(
                    id=int(item["id"]),
                    name=str(item["name"]),
                    code=item.get("code"),
                    level=item.get("level", "AL"),
                )
                for item in raw.get("subjects", [])
            ]
            streams = [
                Stream(
                    id=int(item["id"]),
                    name=str(item["name"]),
                    description=item.get("description"),
                    rule=StreamRule.from_dict(item["rule"]) if item.get("rule") else None,
                )
                for item in raw.get("streams", [])
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise ReferenceDataError(f"Invalid subject or stream entry: {e}") from e

        store = cls(subjects=subjects, streams=streams)

        for generated in generate_combinations(
            streams, known_subjects=store._subjects.keys(), priority=priority
        ):
            store.add_combination(
                generated.subject_ids, generated.stream_id, generated.rule
            )

        for item in raw.get("combinations", []):
            try:
                subject_ids = [int(i) for i in item["subjectIds"]]
                stream_id = int(item["streamId"])
            except (KeyError, TypeError, ValueError) as e:
                raise ReferenceDataError(f"Invalid combination entry: {e}") from e
            store.add_combination(
                subject_ids,
                stream_id,
                item.get("rule") or CURATED_RULE,
                course_ids=item.get("courseIds", ()),
            )

        return store

    # =========================================================================
    # Writes
    # =========================================================================

    def _key(self, subject_ids: Iterable[int]) -> frozenset[int]:
        ids = list(subject_ids)
        key = frozenset(ids)
        if len(ids) != COMBINATION_SIZE or len(key) != COMBINATION_SIZE:
            raise ReferenceDataError(
                f"A combination needs exactly {COMBINATION_SIZE} distinct subjects, got {ids}"
            )
        return key

    def add_combination(
        self,
        subject_ids: Iterable[int],
        stream_id: int,
        rule: str,
        course_ids: Iterable[int] = (),
    ) -> ValidCombination:
        """
        Map a subject triple to a stream.

        Re-adding a triple to the same stream merges course ids and keeps
        the original rule label.

        Raises:
            ReferenceDataError: Unknown subject/stream or malformed triple.
            DuplicateCombinationError: Triple already mapped to another stream.
        """
        key = self._key(subject_ids)

        unknown = sorted(i for i in key if i not in self._subjects)
        if unknown:
            raise ReferenceDataError(f"Unknown subject id(s): {unknown}")
        if stream_id not in self._streams:
            raise ReferenceDataError(f"Unknown stream id: {stream_id}")

        existing = self._combinations.get(key)
        if existing is not None:
            if existing.stream_id != stream_id:
                raise DuplicateCombinationError(
                    tuple(sorted(key)), existing.stream_id, stream_id
                )
            merged = ValidCombination(
                subject_ids=key,
                stream_id=stream_id,
                rule=existing.rule,
                course_ids=_merge_ids(existing.course_ids, course_ids),
            )
        else:
            merged = ValidCombination(
                subject_ids=key,
                stream_id=stream_id,
                rule=rule,
                course_ids=_merge_ids((), course_ids),
            )

        self._combinations[key] = merged
        return merged

    def attach_course(self, subject_ids: Iterable[int], course_id: int) -> ValidCombination:
        """
        Record that a combination qualifies a student for a course.

        Raises:
            CombinationNotFoundError: If the triple is not a valid combination.
        """
        key = frozenset(subject_ids)
        existing = self._combinations.get(key)
        if existing is None:
            raise CombinationNotFoundError(
                f"No valid combination for subjects {sorted(key)}"
            )
        updated = ValidCombination(
            subject_ids=key,
            stream_id=existing.stream_id,
            rule=existing.rule,
            course_ids=_merge_ids(existing.course_ids, [course_id]),
        )
        self._combinations[key] = updated
        return updated

    # =========================================================================
    # Reads
    # =========================================================================

    def find(self, subject_ids: Iterable[int]) -> ValidCombination | None:
        """
        Look up the combination for a set of subjects.

        Args:
            subject_ids: Subject ids in any order.

        Returns:
            The matching ValidCombination, or None.
        """
        return self._combinations.get(frozenset(subject_ids))

    def list_streams(self) -> list[Stream]:
        """All streams ordered by id."""
        return [self._streams[i] for i in sorted(self._streams)]

    def get_stream(self, stream_id: int) -> Stream | None:
        return self._streams.get(stream_id)

    def fallback_stream(self) -> Stream | None:
        """The catch-all stream, if the reference data defines one."""
        for stream in self.list_streams():
            if stream.is_fallback:
                return stream
        return None

    def get_subject(self, subject_id: int) -> Subject | None:
        return self._subjects.get(subject_id)

    def has_subject(self, subject_id: int) -> bool:
        return subject_id in self._subjects

    def subjects_for_stream(self, stream_id: int) -> list[Subject] | None:
        """
        Subjects that can appear in a combination for the stream.

        The fallback stream accepts every subject.

        Returns:
            Subjects sorted by name, or None for an unknown stream.
        """
        stream = self._streams.get(stream_id)
        if stream is None:
            return None

        if stream.is_fallback or stream.rule is None:
            subjects = list(self._subjects.values())
        else:
            subjects = [
                self._subjects[i] for i in stream.rule.subject_ids() if i in self._subjects
            ]
        return sorted(subjects, key=lambda s: s.name)

    def combinations_for_stream(self, stream_id: int) -> list[ValidCombination]:
        """Combinations mapped to a stream, sorted by subject ids."""
        return sorted(
            (c for c in self._combinations.values() if c.stream_id == stream_id),
            key=lambda c: c.sorted_ids,
        )

    def __len__(self) -> int:
        """Return the number of valid combinations."""
        return len(self._combinations)

    def __contains__(self, subject_ids: object) -> bool:
        """Check if a triple is a valid combination."""
        if not isinstance(subject_ids, Iterable):
            return False
        return self.find(subject_ids) is not None  # type: ignore[arg-type]


def _merge_ids(existing: Iterable[int], new: Iterable[int]) -> tuple[int, ...]:
    merged = list(existing)
    for item in new:
        value = int(item)
        if value not in merged:
            merged.append(value)
    return tuple(merged)
