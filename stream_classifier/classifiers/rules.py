"""
Stream eligibility rules and combination generation.

Each stream carries a rule describing which subject triples qualify for
it. Rules are evaluated once, when reference data is loaded, to expand
them into the table of valid combinations; classification itself never
evaluates a rule.

Rule kinds:
- any_three: any three subjects from "allowed"
- required_plus_options: every "required" subject plus "options"
- core_plus_supporting: "core" subjects, optionally topped up from "supporting"
- baskets: social / religion / aesthetic baskets and language groups (arts)

Streams are expanded in priority order, most specific first. A triple
claimed by an earlier stream is never handed to a later one, so every
triple maps to at most one stream.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
from itertools import combinations
from typing import Final

from stream_classifier.classifiers.models import (
    COMBINATION_SIZE,
    KIND_ANY_THREE,
    KIND_BASKETS,
    KIND_CORE_PLUS_SUPPORTING,
    KIND_REQUIRED_PLUS_OPTIONS,
    Stream,
    StreamRule,
)

# =============================================================================
# Constants
# =============================================================================

DEFAULT_PRIORITY: Final[tuple[str, ...]] = (
    "physical_science",
    "biological_science",
    "engineering_technology",
    "biosystems_technology",
    "commerce",
    "arts",
)

DEFAULT_LABELS: Final[dict[str, str]] = {
    "physical_science": "three_physical_sciences",
    "biological_science": "biology_plus_two_sciences",
    "engineering_technology": "engineering_tech_combination",
    "biosystems_technology": "biosystems_tech_combination",
}

# Commerce labels
LABEL_ALL_CORE: Final[str] = "all_from_core_commerce"
LABEL_CORE_PLUS_SUPPORTING: Final[str] = "two_core_one_supporting"

# Arts labels
LABEL_THREE_NATIONAL: Final[str] = "three_national_languages"
LABEL_NATIONAL_CLASSICAL: Final[str] = "national_plus_classical_languages"
LABEL_TWO_LANGUAGES: Final[str] = "two_languages_one_religion_aesthetic"
LABEL_THREE_SOCIAL: Final[str] = "three_social_sciences"
LABEL_TWO_SOCIAL_RELIGION: Final[str] = "two_social_one_religion"
LABEL_TWO_SOCIAL_AESTHETIC: Final[str] = "two_social_one_aesthetic"
LABEL_ONE_EACH: Final[str] = "one_social_one_religion_one_aesthetic"
LABEL_ONE_SOCIAL_TWO_RELIGION: Final[str] = "one_social_two_religion"
LABEL_ONE_SOCIAL_TWO_AESTHETIC: Final[str] = "one_social_two_aesthetic"


@dataclass(frozen=True, slots=True)
class GeneratedCombination:
    """A triple produced by expanding a stream rule."""

    subject_ids: tuple[int, int, int]
    stream_id: int
    rule: str


# =============================================================================
# Rule Matchers
# =============================================================================


def _count(subject_ids: Iterable[int], group: frozenset[int]) -> int:
    return sum(1 for subject_id in subject_ids if subject_id in group)


def _label(rule: StreamRule) -> str:
    return rule.label or DEFAULT_LABELS.get(rule.type, rule.type)


def _match_any_three(rule: StreamRule, subject_ids: Sequence[int]) -> str | None:
    if _count(subject_ids, rule.group("allowed")) == COMBINATION_SIZE:
        return _label(rule)
    return None


def _match_required_plus_options(
    rule: StreamRule, subject_ids: Sequence[int]
) -> str | None:
    required = rule.group("required")
    options = rule.group("options")

    if not required.issubset(subject_ids):
        return None
    if _count(subject_ids, options) < rule.min_count:
        return None
    if _count(subject_ids, required | options) != COMBINATION_SIZE:
        return None
    return _label(rule)


def _match_core_plus_supporting(
    rule: StreamRule, subject_ids: Sequence[int]
) -> str | None:
    core_count = _count(subject_ids, rule.group("core"))
    supporting_count = _count(subject_ids, rule.group("supporting"))

    if core_count == COMBINATION_SIZE:
        return LABEL_ALL_CORE
    if (
        core_count >= rule.min_count
        and supporting_count >= 1
        and core_count + supporting_count == COMBINATION_SIZE
    ):
        return LABEL_CORE_PLUS_SUPPORTING
    return None


def _match_baskets(rule: StreamRule, subject_ids: Sequence[int]) -> str | None:
    social = _count(subject_ids, rule.group("social"))
    religion = _count(subject_ids, rule.group("religion"))
    aesthetic = _count(subject_ids, rule.group("aesthetic"))
    national = _count(subject_ids, rule.group("national"))
    classical = _count(subject_ids, rule.group("classical"))
    foreign = _count(subject_ids, rule.group("foreign"))

    # Language exceptions are checked before the standard basket rules
    if national == COMBINATION_SIZE:
        return LABEL_THREE_NATIONAL
    if national >= 1 and classical >= 1 and national + classical == COMBINATION_SIZE:
        return LABEL_NATIONAL_CLASSICAL

    languages = national + classical + foreign
    if (
        languages == 2
        and (religion == 1 or aesthetic == 1)
        and languages + religion + aesthetic == COMBINATION_SIZE
    ):
        return LABEL_TWO_LANGUAGES

    standard: tuple[tuple[tuple[int, int, int], str], ...] = (
        ((3, 0, 0), LABEL_THREE_SOCIAL),
        ((2, 1, 0), LABEL_TWO_SOCIAL_RELIGION),
        ((2, 0, 1), LABEL_TWO_SOCIAL_AESTHETIC),
        ((1, 1, 1), LABEL_ONE_EACH),
        ((1, 2, 0), LABEL_ONE_SOCIAL_TWO_RELIGION),
        ((1, 0, 2), LABEL_ONE_SOCIAL_TWO_AESTHETIC),
    )
    for (want_social, want_religion, want_aesthetic), label in standard:
        if social != want_social:
            continue
        if want_religion and religion != want_religion:
            continue
        if want_aesthetic and aesthetic != want_aesthetic:
            continue
        return label
    return None


_MATCHERS: Final[dict[str, Callable[[StreamRule, Sequence[int]], str | None]]] = {
    KIND_ANY_THREE: _match_any_three,
    KIND_REQUIRED_PLUS_OPTIONS: _match_required_plus_options,
    KIND_CORE_PLUS_SUPPORTING: _match_core_plus_supporting,
    KIND_BASKETS: _match_baskets,
}


def match_rule(rule: StreamRule, subject_ids: Sequence[int]) -> str | None:
    """
    Evaluate a single stream rule against a subject triple.

    Args:
        rule: The stream rule to evaluate.
        subject_ids: Three distinct subject ids, in any order.

    Returns:
        The label of the rule that fired, or None if the triple does not
        qualify. Fallback rules never match.
    """
    matcher = _MATCHERS.get(rule.kind)
    if matcher is None:
        return None
    return matcher(rule, subject_ids)


# =============================================================================
# Combination Generation
# =============================================================================


def _ordered_streams(
    streams: Iterable[Stream], priority: Sequence[str]
) -> list[Stream]:
    """Rule-bearing streams, most specific first, unknown types last by id."""
    rank = {stream_type: index for index, stream_type in enumerate(priority)}
    candidates = [s for s in streams if s.rule is not None and not s.is_fallback]
    return sorted(
        candidates,
        key=lambda s: (rank.get(s.rule.type, len(rank)), s.id),  # type: ignore[union-attr]
    )


def iter_stream_combinations(
    stream: Stream,
    known_subjects: frozenset[int] | None = None,
) -> Iterator[GeneratedCombination]:
    """
    Yield every triple that qualifies for a single stream.

    Args:
        stream: Stream whose rule is expanded.
        known_subjects: Restrict the expansion to these subject ids.

    Yields:
        GeneratedCombination with sorted subject ids.
    """
    if stream.rule is None:
        return

    universe = stream.rule.subject_ids()
    if known_subjects is not None:
        universe &= known_subjects

    for triple in combinations(sorted(universe), COMBINATION_SIZE):
        label = match_rule(stream.rule, triple)
        if label is not None:
            yield GeneratedCombination(
                subject_ids=triple, stream_id=stream.id, rule=label
            )


def generate_combinations(
    streams: Iterable[Stream],
    known_subjects: Iterable[int] | None = None,
    priority: Sequence[str] = DEFAULT_PRIORITY,
) -> list[GeneratedCombination]:
    """
    Expand stream rules into the table of valid combinations.

    Streams are processed in priority order; a triple already claimed by
    an earlier stream is skipped.

    Args:
        streams: All streams, including the fallback stream (ignored).
        known_subjects: Restrict expansion to these subject ids.
        priority: Stream rule types, most specific first.

    Returns:
        Generated combinations, grouped by stream in priority order.
    """
    subject_filter = frozenset(known_subjects) if known_subjects is not None else None
    claimed: set[tuple[int, int, int]] = set()
    generated: list[GeneratedCombination] = []

    for stream in _ordered_streams(streams, priority):
        for combination in iter_stream_combinations(stream, subject_filter):
            if combination.subject_ids in claimed:
                continue
            claimed.add(combination.subject_ids)
            generated.append(combination)

    return generated
