"""
Reference data and result types for stream classification.

Subjects, streams and valid combinations are immutable reference data,
seeded out of band. ClassificationResult is created per request and
never persisted.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Final

# =============================================================================
# Constants
# =============================================================================

COMBINATION_SIZE: Final[int] = 3
DEFAULT_LEVEL: Final[str] = "AL"
FALLBACK_RULE: Final[str] = "fallback"

# Stream rule types
RULE_TYPE_COMMON: Final[str] = "common"

# Rule kinds understood by the rule matcher
KIND_ANY_THREE: Final[str] = "any_three"
KIND_REQUIRED_PLUS_OPTIONS: Final[str] = "required_plus_options"
KIND_CORE_PLUS_SUPPORTING: Final[str] = "core_plus_supporting"
KIND_BASKETS: Final[str] = "baskets"
KIND_FALLBACK: Final[str] = "fallback"

RULE_KINDS: Final[frozenset[str]] = frozenset(
    {
        KIND_ANY_THREE,
        KIND_REQUIRED_PLUS_OPTIONS,
        KIND_CORE_PLUS_SUPPORTING,
        KIND_BASKETS,
        KIND_FALLBACK,
    }
)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True, slots=True)
class Subject:
    """
    A subject a student can sit.

    Attributes:
        id: Positive subject identifier.
        name: Display name, e.g. "Combined Mathematics".
        code: Examination code, e.g. "10".
        level: Examination level; classification only deals with "AL".
    """

    id: int
    name: str
    code: str | None = None
    level: str = DEFAULT_LEVEL


@dataclass(frozen=True, slots=True)
class StreamRule:
    """
    Eligibility rule attached to a stream.

    Attributes:
        type: Stream type, e.g. "physical_science" or "common".
        kind: How the groups are interpreted (see RULE_KINDS).
        groups: Named subject id groups, e.g. {"required": ..., "options": ...}.
        label: Rule label reported for kinds with a single outcome.
        min_count: Minimum options (required_plus_options) or core
            subjects (core_plus_supporting) needed for a match.
    """

    type: str
    kind: str
    groups: Mapping[str, frozenset[int]] = field(default_factory=dict)
    label: str | None = None
    min_count: int = 1

    def group(self, name: str) -> frozenset[int]:
        """Return a subject group, empty when the rule does not define it."""
        return self.groups.get(name, frozenset())

    def subject_ids(self) -> frozenset[int]:
        """Every subject id referenced by this rule."""
        ids: set[int] = set()
        for members in self.groups.values():
            ids.update(members)
        return frozenset(ids)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> StreamRule:
        """Build a rule from its seed-file representation."""
        groups = {
            name: frozenset(int(i) for i in members)
            for name, members in (raw.get("groups") or {}).items()
        }
        return cls(
            type=str(raw["type"]),
            kind=str(raw.get("kind", KIND_FALLBACK)),
            groups=groups,
            label=raw.get("label"),
            min_count=int(raw.get("minCount", 1)),
        )


@dataclass(frozen=True, slots=True)
class Stream:
    """
    An academic track a student is classified into.

    Attributes:
        id: Positive stream identifier.
        name: Display name, e.g. "Physical Science Stream".
        description: Free text shown alongside the stream.
        rule: Eligibility rule used to generate valid combinations.
    """

    id: int
    name: str
    description: str | None = None
    rule: StreamRule | None = None

    @property
    def is_fallback(self) -> bool:
        """True for the catch-all stream that owns no combinations."""
        return self.rule is not None and self.rule.type == RULE_TYPE_COMMON


@dataclass(frozen=True, slots=True)
class ValidCombination:
    """
    An unordered triple of subjects mapped to exactly one stream.

    Attributes:
        subject_ids: The three distinct subject ids.
        stream_id: Stream the triple qualifies for.
        rule: Label of the rule that produced this combination.
        course_ids: Courses this combination makes a student eligible for.
    """

    subject_ids: frozenset[int]
    stream_id: int
    rule: str
    course_ids: tuple[int, ...] = ()

    @property
    def sorted_ids(self) -> tuple[int, ...]:
        """Subject ids in ascending order."""
        return tuple(sorted(self.subject_ids))


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    """
    Outcome of classifying one subject triple.

    Attributes:
        subject_ids: The ids as supplied by the caller (order preserved).
        stream_id: Matched stream id, None when nothing matched.
        stream_name: Matched stream name, None when nothing matched.
        matched_rule: Label of the rule that fired, None when nothing matched.
        matched: Whether a stream was found.
    """

    subject_ids: tuple[int, ...]
    stream_id: int | None = None
    stream_name: str | None = None
    matched_rule: str | None = None
    matched: bool = False

    @classmethod
    def no_match(cls, subject_ids: Iterable[int]) -> ClassificationResult:
        """Result for a triple with no associated stream."""
        return cls(subject_ids=tuple(subject_ids))
