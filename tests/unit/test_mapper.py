"""Tests for the keyword-similarity control mapper."""

import pytest

from grcmap.compliance.catalog import get_framework
from grcmap.compliance.mapper import (
    MATCH_REASONING,
    NO_MATCH_REASONING,
    MappingSettings,
    calculate_similarity,
    create_framework_mapping,
    extract_keywords,
    find_best_matches,
    map_controls,
    map_frameworks,
)
from grcmap.models.mapping import ControlMapping


class TestExtractKeywords:
    def test_drops_short_tokens_and_stop_words(self):
        keywords = extract_keywords("The system shall implement access control.")
        assert keywords == {"system", "access"}

    def test_length_checked_before_punctuation_is_stripped(self):
        # "key," is four characters long, so it survives as "key"
        assert extract_keywords("key, lock") == {"key", "lock"}
        assert extract_keywords("key lock") == {"lock"}

    def test_lowercases(self):
        assert extract_keywords("ENCRYPTION Policy") == {"encryption", "policy"}

    def test_punctuation_only_token_collapses_to_empty_string(self):
        assert extract_keywords("---- firewall") == {"", "firewall"}

    def test_custom_stop_words(self):
        settings = MappingSettings(stop_words=frozenset({"policy"}))
        assert extract_keywords("encryption policy", settings) == {"encryption"}


class TestCalculateSimilarity:
    def test_both_empty_is_full_similarity(self):
        assert calculate_similarity(set(), set()) == 1.0

    def test_one_empty_is_zero(self):
        assert calculate_similarity({"a"}, set()) == 0.0
        assert calculate_similarity(set(), {"a"}) == 0.0

    def test_identical_sets(self):
        assert calculate_similarity({"a", "b"}, {"b", "a"}) == 1.0

    def test_symmetric_and_bounded(self):
        pairs = [
            ({"access", "policy"}, {"policy", "review", "audit"}),
            ({"encryption"}, {"keys", "encryption", "storage"}),
            ({"x", "y", "z"}, {"q"}),
        ]
        for a, b in pairs:
            score = calculate_similarity(a, b)
            assert score == calculate_similarity(b, a)
            assert 0.0 <= score <= 1.0

    def test_jaccard_value(self):
        assert calculate_similarity({"a", "b", "c"}, {"b", "c", "d"}) == pytest.approx(0.5)


class TestFindBestMatches:
    TARGETS = [
        "alpha bravo charlie delta echo",
        "alpha bravo charlie delta",
        "alpha bravo charlie",
        "alpha bravo",
        "alpha",
    ]

    def test_top_three_sorted_descending(self):
        matches = find_best_matches("alpha bravo charlie delta", self.TARGETS)
        assert [m.id for m in matches] == [
            "alpha bravo charlie delta",
            "alpha bravo charlie delta echo",
            "alpha bravo charlie",
        ]
        assert [m.score for m in matches] == pytest.approx([1.0, 0.8, 0.75])

    def test_threshold_is_strict(self):
        # "alpha bravo" vs "alpha bravo charlie delta" is exactly 0.5
        settings = MappingSettings(threshold=0.5, max_matches=10)
        matches = find_best_matches("alpha bravo charlie delta", self.TARGETS, settings)
        assert all(m.score > 0.5 for m in matches)
        assert "alpha bravo" not in [m.id for m in matches]

    def test_ties_keep_target_order(self):
        matches = find_best_matches("alpha bravo", ["bravo alpha", "alpha bravo"])
        assert [m.id for m in matches] == ["bravo alpha", "alpha bravo"]

    def test_no_targets(self):
        assert find_best_matches("alpha bravo", []) == []


class TestMapControls:
    def test_near_identical_controls_map(self):
        mappings = map_controls(
            ["Access control policy review"],
            ["Access control policy", "Incident response plan"],
        )
        assert len(mappings) == 1
        mapping = mappings[0]
        assert mapping.source_control_id == "Access control policy review"
        assert mapping.source_control_title == "Access control policy review"
        assert mapping.target_control_ids == ["Access control policy"]
        assert mapping.target_control_titles == ["Access control policy"]
        assert mapping.confidence_score == pytest.approx(1.0)
        assert mapping.reasoning == MATCH_REASONING

    def test_short_shared_word_is_ignored(self):
        # "key" is too short to count, leaving only "policy" in common: 1/5
        source = ["encryption key management policy"]
        target = ["cryptographic key lifecycle policy"]
        assert map_controls(source, target) == []

        mappings = map_controls(source, target, MappingSettings(threshold=0.1))
        assert len(mappings) == 1
        assert mappings[0].confidence_score == pytest.approx(0.2)

    def test_unmatched_sources_are_dropped_by_default(self):
        mappings = map_controls(
            ["Firewall rule review", "Cafeteria menu rotation"],
            ["Firewall rule management"],
        )
        assert [m.source_control_id for m in mappings] == ["Firewall rule review"]

    def test_unmatched_sources_can_be_kept(self):
        settings = MappingSettings(include_unmatched=True)
        mappings = map_controls(
            ["Firewall rule review", "Cafeteria menu rotation"],
            ["Firewall rule management"],
            settings,
        )
        assert len(mappings) == 2
        unmatched = mappings[1]
        assert unmatched.source_control_id == "Cafeteria menu rotation"
        assert unmatched.target_control_ids == []
        assert unmatched.confidence_score == 0.0
        assert unmatched.reasoning == NO_MATCH_REASONING

    def test_at_most_three_targets_each(self):
        targets = [f"firewall rules {n}" for n in range(10)]
        mappings = map_controls(["firewall rules"], targets, MappingSettings(threshold=0.0))
        assert len(mappings[0].target_control_ids) == 3

    def test_confidence_within_bounds(self):
        sources = ["Backup retention schedule", "Network segmentation rules", "Vendor risk review"]
        targets = ["Backup schedule testing", "Network segmentation design", "Vendor onboarding"]
        for mapping in map_controls(sources, targets, MappingSettings(threshold=0.0)):
            assert 0.0 <= mapping.confidence_score <= 1.0


class TestCreateFrameworkMapping:
    def _mapping(self, score: float) -> ControlMapping:
        return ControlMapping(
            source_control_id="s",
            source_control_title="s",
            target_control_ids=["t"],
            target_control_titles=["t"],
            confidence_score=score,
        )

    def test_completeness_is_rounded_mean(self):
        result = create_framework_mapping("A", "B", [self._mapping(1.0), self._mapping(0.0), self._mapping(0.0)])
        assert result.completeness == 0.33
        assert result.source_framework == "A"
        assert result.target_framework == "B"

    def test_empty_mapping_has_zero_completeness(self):
        result = create_framework_mapping("A", "B", [])
        assert result.completeness == 0.0
        assert result.mappings == []

    def test_unmapped_list_is_carried(self):
        result = create_framework_mapping("A", "B", [self._mapping(0.5)], unmapped=["X-1"])
        assert result.unmapped_controls == ["X-1"]

    def test_serializes_with_camel_case_keys(self):
        result = create_framework_mapping("A", "B", [self._mapping(0.5)])
        data = result.model_dump(by_alias=True)
        assert "sourceFramework" in data
        assert "confidenceScore" in data["mappings"][0]


class TestMapFrameworks:
    def test_maps_custom_controls_onto_catalog(self, custom_framework):
        iso = get_framework("ISO 27001:2022")
        mapping = map_frameworks(custom_framework, iso)

        assert mapping.source_framework == "Acme Security Baseline"
        assert mapping.target_framework == "ISO 27001:2022"

        by_source = {m.source_control_id: m for m in mapping.mappings}
        assert set(by_source) == {"ACME-01", "ACME-02"}

        crypto = by_source["ACME-01"]
        assert crypto.source_control_title == "Cryptographic key management"
        assert crypto.target_control_ids[0] == "A.9.2.1"
        assert crypto.target_control_titles[0] == "Cryptographic key management"
        assert crypto.confidence_score == pytest.approx(7 / 9)

        assert by_source["ACME-02"].target_control_ids[0] == "A.12.4.1"
        assert mapping.unmapped_controls == ["ACME-03"]

        expected = round(sum(m.confidence_score for m in mapping.mappings) / 2, 2)
        assert mapping.completeness == expected

    def test_include_unmatched_adds_zero_entries(self, custom_framework):
        iso = get_framework("ISO 27001:2022")
        mapping = map_frameworks(custom_framework, iso, MappingSettings(include_unmatched=True))

        assert len(mapping.mappings) == 3
        cafeteria = mapping.mappings[2]
        assert cafeteria.source_control_id == "ACME-03"
        assert cafeteria.confidence_score == 0.0
        assert mapping.unmapped_controls == ["ACME-03"]

    def test_settings_from_config(self):
        settings = MappingSettings.from_config({
            "mapping": {"threshold": 0.1, "max_matches": 5, "stop_words": ["Policy"], "include_unmatched": True},
        })
        assert settings.threshold == 0.1
        assert settings.max_matches == 5
        assert settings.stop_words == frozenset({"policy"})
        assert settings.include_unmatched is True
        assert settings.min_token_length == 4

    def test_settings_from_empty_config_are_defaults(self):
        assert MappingSettings.from_config({}) == MappingSettings()
