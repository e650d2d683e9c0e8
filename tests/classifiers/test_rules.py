"""
Tests for stream rule matching and combination generation.

- Each rule kind accepts and rejects the triples it should
- Arts language exceptions take precedence over the basket rules
- Generation honours stream priority so no triple has two streams
"""

from __future__ import annotations

from itertools import combinations

import pytest

from stream_classifier.classifiers.models import Stream, StreamRule
from stream_classifier.classifiers.rules import (
    DEFAULT_PRIORITY,
    generate_combinations,
    iter_stream_combinations,
    match_rule,
)

# =============================================================================
# Constants (subject ids from the bundled reference data)
# =============================================================================

PHYSICS = 1
CHEMISTRY = 2
MATHEMATICS = 3
AGRICULTURAL_SCIENCE = 4
BIOLOGY = 5
COMBINED_MATHS = 6
HIGHER_MATHS = 7
ECONOMICS = 17
GEOGRAPHY = 18
BUSINESS_STUDIES = 27
ACCOUNTING = 28
BUDDHISM = 29
ART = 38
ORIENTAL_MUSIC = 41
SINHALA = 50
TAMIL = 51
ENGLISH = 52
PALI = 53
SANSKRIT = 54
FRENCH = 57


def _rule(
    type_: str,
    kind: str,
    label: str | None = None,
    min_count: int = 1,
    **groups: list[int],
) -> StreamRule:
    return StreamRule(
        type=type_,
        kind=kind,
        groups={name: frozenset(ids) for name, ids in groups.items()},
        label=label,
        min_count=min_count,
    )


PHYSICAL_RULE = _rule(
    "physical_science",
    "any_three",
    allowed=[HIGHER_MATHS, COMBINED_MATHS, PHYSICS, CHEMISTRY],
)
BIOLOGY_RULE = _rule(
    "biological_science",
    "required_plus_options",
    min_count=2,
    required=[BIOLOGY],
    options=[PHYSICS, CHEMISTRY, MATHEMATICS, AGRICULTURAL_SCIENCE],
)
COMMERCE_RULE = _rule(
    "commerce",
    "core_plus_supporting",
    min_count=2,
    core=[BUSINESS_STUDIES, ECONOMICS, ACCOUNTING],
    supporting=[GEOGRAPHY, COMBINED_MATHS, MATHEMATICS, ENGLISH],
)
ARTS_RULE = _rule(
    "arts",
    "baskets",
    social=[ECONOMICS, GEOGRAPHY, 21, 23, ACCOUNTING],
    religion=[BUDDHISM, 30, 33],
    aesthetic=[ART, 39, ORIENTAL_MUSIC],
    national=[SINHALA, TAMIL, ENGLISH],
    classical=[PALI, SANSKRIT, 55],
    foreign=[FRENCH, 58],
)


# =============================================================================
# match_rule: single rule evaluation
# =============================================================================


class TestAnyThree:
    def test_three_allowed_subjects_match(self) -> None:
        label = match_rule(PHYSICAL_RULE, (COMBINED_MATHS, PHYSICS, CHEMISTRY))
        assert label == "three_physical_sciences"

    def test_one_outsider_does_not_match(self) -> None:
        assert match_rule(PHYSICAL_RULE, (BIOLOGY, PHYSICS, CHEMISTRY)) is None

    def test_explicit_label_wins_over_default(self) -> None:
        rule = _rule("physical_science", "any_three", label="maths_stream", allowed=[1, 2, 3])
        assert match_rule(rule, (1, 2, 3)) == "maths_stream"


class TestRequiredPlusOptions:
    def test_required_plus_two_options_match(self) -> None:
        label = match_rule(BIOLOGY_RULE, (BIOLOGY, CHEMISTRY, PHYSICS))
        assert label == "biology_plus_two_sciences"

    def test_missing_required_subject_rejected(self) -> None:
        assert match_rule(BIOLOGY_RULE, (PHYSICS, CHEMISTRY, MATHEMATICS)) is None

    def test_too_few_options_rejected(self) -> None:
        assert match_rule(BIOLOGY_RULE, (BIOLOGY, CHEMISTRY, ECONOMICS)) is None

    def test_two_required_one_option(self) -> None:
        rule = _rule(
            "engineering_technology",
            "required_plus_options",
            required=[47, 49],
            options=[ECONOMICS, GEOGRAPHY],
        )
        assert match_rule(rule, (47, 49, ECONOMICS)) == "engineering_tech_combination"
        assert match_rule(rule, (47, 49, BIOLOGY)) is None
        assert match_rule(rule, (47, ECONOMICS, GEOGRAPHY)) is None


class TestCorePlusSupporting:
    def test_all_core(self) -> None:
        label = match_rule(COMMERCE_RULE, (BUSINESS_STUDIES, ECONOMICS, ACCOUNTING))
        assert label == "all_from_core_commerce"

    def test_two_core_one_supporting(self) -> None:
        label = match_rule(COMMERCE_RULE, (ECONOMICS, ACCOUNTING, GEOGRAPHY))
        assert label == "two_core_one_supporting"

    def test_one_core_rejected(self) -> None:
        assert match_rule(COMMERCE_RULE, (ECONOMICS, GEOGRAPHY, MATHEMATICS)) is None

    def test_unrelated_third_subject_rejected(self) -> None:
        assert match_rule(COMMERCE_RULE, (ECONOMICS, ACCOUNTING, BIOLOGY)) is None


class TestBaskets:
    @pytest.mark.parametrize(
        ("subject_ids", "expected"),
        [
            ((SINHALA, TAMIL, ENGLISH), "three_national_languages"),
            ((SINHALA, PALI, SANSKRIT), "national_plus_classical_languages"),
            ((SINHALA, FRENCH, BUDDHISM), "two_languages_one_religion_aesthetic"),
            ((SINHALA, FRENCH, ART), "two_languages_one_religion_aesthetic"),
            ((ECONOMICS, GEOGRAPHY, 21), "three_social_sciences"),
            ((ECONOMICS, GEOGRAPHY, BUDDHISM), "two_social_one_religion"),
            ((ECONOMICS, GEOGRAPHY, ART), "two_social_one_aesthetic"),
            ((ECONOMICS, BUDDHISM, ART), "one_social_one_religion_one_aesthetic"),
            ((ECONOMICS, BUDDHISM, 30), "one_social_two_religion"),
            ((23, ART, ORIENTAL_MUSIC), "one_social_two_aesthetic"),
        ],
    )
    def test_accepted_combinations(
        self, subject_ids: tuple[int, int, int], expected: str
    ) -> None:
        assert match_rule(ARTS_RULE, subject_ids) == expected

    @pytest.mark.parametrize(
        "subject_ids",
        [
            (ART, ORIENTAL_MUSIC, 39),  # aesthetic only
            (PHYSICS, ECONOMICS, BUDDHISM),  # one social, one religion, outsider
            (BIOLOGY, ECONOMICS, FRENCH),  # one social, one language, outsider
            (FRENCH, 58, PHYSICS),  # two foreign languages, outsider
        ],
    )
    def test_rejected_combinations(self, subject_ids: tuple[int, int, int]) -> None:
        assert match_rule(ARTS_RULE, subject_ids) is None

    def test_order_does_not_matter(self) -> None:
        for permutation in [(SINHALA, FRENCH, BUDDHISM), (BUDDHISM, SINHALA, FRENCH)]:
            assert match_rule(ARTS_RULE, permutation) == "two_languages_one_religion_aesthetic"


class TestFallbackRule:
    def test_fallback_never_matches(self) -> None:
        rule = StreamRule(type="common", kind="fallback")
        assert match_rule(rule, (PHYSICS, CHEMISTRY, BIOLOGY)) is None

    def test_unknown_kind_never_matches(self) -> None:
        rule = _rule("custom", "something_new", allowed=[1, 2, 3])
        assert match_rule(rule, (1, 2, 3)) is None


# =============================================================================
# Generation
# =============================================================================


class TestIterStreamCombinations:
    def test_physical_science_yields_all_four_triples(self) -> None:
        stream = Stream(id=4, name="Physical Science Stream", rule=PHYSICAL_RULE)
        generated = list(iter_stream_combinations(stream))

        expected = set(combinations(sorted([HIGHER_MATHS, COMBINED_MATHS, PHYSICS, CHEMISTRY]), 3))
        assert {g.subject_ids for g in generated} == expected
        assert all(g.stream_id == 4 for g in generated)

    def test_subject_ids_are_sorted(self) -> None:
        stream = Stream(id=3, name="Bio", rule=BIOLOGY_RULE)
        for generated in iter_stream_combinations(stream):
            assert list(generated.subject_ids) == sorted(generated.subject_ids)

    def test_known_subjects_filter(self) -> None:
        stream = Stream(id=4, name="Physical Science Stream", rule=PHYSICAL_RULE)
        generated = list(
            iter_stream_combinations(stream, frozenset({PHYSICS, CHEMISTRY, COMBINED_MATHS}))
        )
        assert [g.subject_ids for g in generated] == [(PHYSICS, CHEMISTRY, COMBINED_MATHS)]

    def test_stream_without_rule_yields_nothing(self) -> None:
        assert list(iter_stream_combinations(Stream(id=9, name="Empty"))) == []


class TestGenerateCombinations:
    def test_priority_resolves_overlap(self) -> None:
        # Economics + Accounting + Geography satisfies both commerce and arts
        streams = [
            Stream(id=1, name="Arts Stream", rule=ARTS_RULE),
            Stream(id=2, name="Commerce Stream", rule=COMMERCE_RULE),
        ]
        generated = generate_combinations(streams)
        by_triple = {g.subject_ids: g for g in generated}

        overlap = tuple(sorted((ECONOMICS, ACCOUNTING, GEOGRAPHY)))
        assert by_triple[overlap].stream_id == 2
        assert by_triple[overlap].rule == "two_core_one_supporting"

    def test_every_triple_appears_once(self) -> None:
        streams = [
            Stream(id=1, name="Arts Stream", rule=ARTS_RULE),
            Stream(id=2, name="Commerce Stream", rule=COMMERCE_RULE),
            Stream(id=3, name="Bio", rule=BIOLOGY_RULE),
            Stream(id=4, name="Physical", rule=PHYSICAL_RULE),
        ]
        generated = generate_combinations(streams)
        triples = [g.subject_ids for g in generated]
        assert len(triples) == len(set(triples))

    def test_fallback_stream_is_ignored(self) -> None:
        streams = [
            Stream(id=4, name="Physical", rule=PHYSICAL_RULE),
            Stream(id=7, name="Common", rule=StreamRule(type="common", kind="fallback")),
        ]
        generated = generate_combinations(streams)
        assert {g.stream_id for g in generated} == {4}

    def test_default_priority_is_most_specific_first(self) -> None:
        assert DEFAULT_PRIORITY[0] == "physical_science"
        assert DEFAULT_PRIORITY[-1] == "arts"
