"""
Unit tests for the response reconciler.
Tests tolerant parsing of model replies and mapping back onto the candidate pool.
"""
import json
import pytest

from app.middleware.error_handling import ModelParseFailure
from app.services.response_reconciler import (
    DEFAULT_REASON,
    ParsedReply,
    ParseFailure,
    RawModelReply,
    ResponseReconciler,
    fallback_starters,
    normalize_model_text,
    parse_model_reply,
)
from conftest import make_profile


def matches_reply(*entries) -> str:
    return json.dumps({"matches": list(entries)})


@pytest.fixture
def pool(candidates):
    return tuple(candidates)


@pytest.fixture
def reconciler(hook):
    return ResponseReconciler(hook=hook)


class TestNormalizeAndParse:
    """Tests for fence stripping and the raw -> parsed conversion."""

    def test_strips_json_code_fence(self):
        text = '```json\n{"matches": []}\n```'
        assert normalize_model_text(text) == '{"matches": []}'

    def test_strips_bare_code_fence_and_whitespace(self):
        text = '  \n```\n{"a": 1}\n```  \n'
        assert normalize_model_text(text) == '{"a": 1}'

    def test_strips_uppercase_fence(self):
        assert normalize_model_text('```JSON\n[1]\n```') == "[1]"

    def test_none_normalizes_to_empty(self):
        assert normalize_model_text(None) == ""

    def test_valid_json_is_parsed_reply(self):
        raw = RawModelReply(text='```json\n{"x": 1}\n```')
        result = parse_model_reply(raw)
        assert isinstance(result, ParsedReply)
        assert result.data == {"x": 1}
        assert result.raw is raw

    def test_garbled_text_is_parse_failure_with_raw_text(self):
        raw = RawModelReply(text="Sure! Here are your matches: Ada, Ben")
        result = parse_model_reply(raw)
        assert isinstance(result, ParseFailure)
        assert result.raw.text == "Sure! Here are your matches: Ada, Ben"

    def test_empty_text_is_parse_failure(self):
        assert isinstance(parse_model_reply(RawModelReply(text="   ")), ParseFailure)


class TestReconcileMatches:
    """Tests for matchmaking reply validation and mapping."""

    def test_scenario_a_low_score_dropped(self, reconciler, pool):
        raw = matches_reply(
            {"candidateIndex": 0, "score": 90, "reason": "Both love python"},
            {"candidateIndex": 2, "score": 40, "reason": "Some overlap"},
        )
        result = reconciler.reconcile_matches(raw, pool)
        assert [m.user_id for m in result] == ["user-a"]
        assert result[0].match_score == 90

    def test_scenario_b_score_above_range_is_clamped(self, reconciler, pool, hook):
        raw = matches_reply({"candidateIndex": 1, "score": 137, "reason": "Great fit"})
        result = reconciler.reconcile_matches(raw, pool)
        assert result[0].match_score == 100
        assert "match_score_clamped" in hook.names()

    def test_huge_integer_score_is_clamped_not_fatal(self, reconciler, pool, hook):
        raw = '{"matches": [{"candidateIndex": 0, "score": 1%s, "reason": "a"}, ' \
              '{"candidateIndex": 1, "score": 80, "reason": "b"}]}' % ("0" * 400)
        result = reconciler.reconcile_matches(raw, pool)
        assert [(m.user_id, m.match_score) for m in result] == [("user-a", 100), ("user-b", 80)]
        assert "match_score_clamped" in hook.names()

    def test_huge_negative_integer_score_is_dropped(self, reconciler, pool, hook):
        raw = '{"matches": [{"candidateIndex": 0, "score": -1%s, "reason": "a"}]}' % ("0" * 400)
        assert reconciler.reconcile_matches(raw, pool) == []
        assert hook.names() == ["match_below_threshold"]

    def test_out_of_range_indices_never_appear(self, reconciler, pool, hook):
        raw = matches_reply(
            {"candidateIndex": 3, "score": 95, "reason": "x"},
            {"candidateIndex": -1, "score": 95, "reason": "x"},
            {"candidateIndex": 99, "score": 95, "reason": "x"},
            {"candidateIndex": 2, "score": 70, "reason": "ok"},
        )
        result = reconciler.reconcile_matches(raw, pool)
        assert [m.user_id for m in result] == ["user-c"]
        assert hook.names().count("match_index_invalid") == 3

    def test_missing_or_non_integer_index_skipped(self, reconciler, pool, hook):
        raw = matches_reply(
            {"score": 80, "reason": "no index"},
            {"candidateIndex": "first", "score": 80},
            {"candidateIndex": 1.5, "score": 80},
            {"candidateIndex": True, "score": 80},
        )
        assert reconciler.reconcile_matches(raw, pool) == []
        assert hook.names() == ["match_index_invalid"] * 4

    def test_integral_float_and_numeric_string_index_accepted(self, reconciler, pool):
        raw = matches_reply(
            {"candidateIndex": 1.0, "score": 60, "reason": "a"},
            {"candidateIndex": "2", "score": "75", "reason": "b"},
        )
        result = reconciler.reconcile_matches(raw, pool)
        assert [m.user_id for m in result] == ["user-b", "user-c"]
        assert [m.match_score for m in result] == [60, 75]

    def test_missing_score_skipped(self, reconciler, pool, hook):
        raw = matches_reply({"candidateIndex": 0, "reason": "no score"})
        assert reconciler.reconcile_matches(raw, pool) == []
        assert hook.names() == ["match_score_missing"]

    def test_threshold_is_inclusive_at_fifty(self, reconciler, pool):
        raw = matches_reply(
            {"candidateIndex": 0, "score": 50, "reason": "a"},
            {"candidateIndex": 1, "score": 49.9, "reason": "b"},
        )
        result = reconciler.reconcile_matches(raw, pool)
        assert [(m.user_id, m.match_score) for m in result] == [("user-a", 50)]

    def test_negative_score_is_dropped_by_threshold(self, reconciler, pool, hook):
        raw = matches_reply({"candidateIndex": 0, "score": -20, "reason": "a"})
        assert reconciler.reconcile_matches(raw, pool) == []
        assert hook.names() == ["match_below_threshold"]

    def test_missing_reason_defaults(self, reconciler, pool, hook):
        raw = matches_reply(
            {"candidateIndex": 0, "score": 88},
            {"candidateIndex": 1, "score": 77, "reason": "   "},
        )
        result = reconciler.reconcile_matches(raw, pool)
        assert [m.match_reason for m in result] == [DEFAULT_REASON, DEFAULT_REASON]
        assert hook.names().count("match_reason_defaulted") == 2

    def test_profile_fields_come_from_pool_not_model(self, reconciler, pool):
        raw = matches_reply({
            "candidateIndex": 0,
            "score": 91,
            "reason": "Both love python",
            "userId": "attacker",
            "name": "Mallory",
            "bio": "injected",
            "imageUrl": "https://evil.example",
        })
        match = reconciler.reconcile_matches(raw, pool)[0]
        assert match.user_id == "user-a"
        assert match.name == "Ada"
        assert match.bio == "Loves proofs"
        assert match.interests == ["discrete math", "python"]
        assert match.image_url == "https://img.example/ada.png"
        assert match.match_reason == "Both love python"

    def test_duplicate_index_last_occurrence_wins(self, reconciler, pool, hook):
        raw = matches_reply(
            {"candidateIndex": 2, "score": 60, "reason": "first"},
            {"candidateIndex": 2, "score": 85, "reason": "second"},
        )
        result = reconciler.reconcile_matches(raw, pool)
        assert len(result) == 1
        assert result[0].match_score == 85
        assert result[0].match_reason == "second"
        assert "match_duplicate_index" in hook.names()

    def test_duplicate_index_later_low_score_removes_earlier(self, reconciler, pool):
        raw = matches_reply(
            {"candidateIndex": 2, "score": 95, "reason": "first"},
            {"candidateIndex": 2, "score": 10, "reason": "second"},
        )
        assert reconciler.reconcile_matches(raw, pool) == []

    def test_results_are_in_pool_order(self, reconciler, pool):
        raw = matches_reply(
            {"candidateIndex": 2, "score": 70, "reason": "c"},
            {"candidateIndex": 0, "score": 70, "reason": "a"},
        )
        result = reconciler.reconcile_matches(raw, pool)
        assert [m.user_id for m in result] == ["user-a", "user-c"]

    def test_non_object_entries_skipped(self, reconciler, pool, hook):
        raw = json.dumps({"matches": ["Ada", 3, None, {"candidateIndex": 0, "score": 80, "reason": "ok"}]})
        result = reconciler.reconcile_matches(raw, pool)
        assert [m.user_id for m in result] == ["user-a"]
        assert hook.names().count("match_entry_invalid") == 3

    def test_top_level_list_accepted(self, reconciler, pool):
        raw = json.dumps([{"candidateIndex": 1, "score": 66, "reason": "chem"}])
        assert [m.user_id for m in reconciler.reconcile_matches(raw, pool)] == ["user-b"]

    def test_fenced_reply_is_accepted(self, reconciler, pool):
        raw = "```json\n" + matches_reply({"candidateIndex": 0, "score": 80, "reason": "ok"}) + "\n```"
        assert len(reconciler.reconcile_matches(raw, pool)) == 1

    def test_scenario_c_garbled_text_raises_with_raw_text(self, reconciler, pool, hook):
        with pytest.raises(ModelParseFailure) as exc_info:
            reconciler.reconcile_matches("I think Ada is a great match!!", pool)
        assert exc_info.value.raw_text == "I think Ada is a great match!!"
        assert hook.events[0]["event"] == "match_parse_failed"
        assert hook.events[0]["raw_text"] == "I think Ada is a great match!!"

    def test_missing_matches_key_raises(self, reconciler, pool):
        with pytest.raises(ModelParseFailure):
            reconciler.reconcile_matches('{"results": []}', pool)

    def test_idempotent_for_same_input(self, pool):
        raw = matches_reply(
            {"candidateIndex": 0, "score": 90, "reason": "a"},
            {"candidateIndex": 2, "score": 120, "reason": "c"},
            {"candidateIndex": 2, "score": 55},
            {"candidateIndex": 7, "score": 99},
        )
        first = ResponseReconciler(hook=None).reconcile_matches(raw, pool)
        second = ResponseReconciler(hook=None).reconcile_matches(raw, pool)
        assert [m.model_dump() for m in first] == [m.model_dump() for m in second]

    def test_empty_matches_list(self, reconciler, pool):
        assert reconciler.reconcile_matches('{"matches": []}', pool) == []


class TestReconcileStarters:
    """Tests for conversation starter replies."""

    @pytest.fixture
    def target(self):
        return make_profile("user-t", name="Priya")

    def test_valid_starters_returned(self, reconciler, target, hook):
        raw = json.dumps({"starters": ["Want to review algorithms?", "Python study group?"]})
        assert reconciler.reconcile_starters(raw, target) == ["Want to review algorithms?", "Python study group?"]
        assert hook.events == []

    def test_scenario_d_garbled_text_uses_fallback(self, reconciler, target, hook):
        result = reconciler.reconcile_starters("I think Ada is a great match!!", target)
        assert result == fallback_starters("Priya")
        assert len(result) == 4
        assert result[0] == "Hey Priya! Want to study together?"
        assert hook.events[0]["event"] == "starters_parse_failed"
        assert hook.events[0]["raw_text"] == "I think Ada is a great match!!"

    def test_empty_list_uses_fallback(self, reconciler, target, hook):
        assert reconciler.reconcile_starters('{"starters": []}', target) == fallback_starters("Priya")
        assert hook.names() == ["starters_empty"]

    def test_missing_key_uses_fallback(self, reconciler, target):
        assert reconciler.reconcile_starters('{"messages": ["hi"]}', target) == fallback_starters("Priya")

    def test_blank_and_non_string_items_dropped(self, reconciler, target):
        raw = json.dumps({"starters": ["  Hi there  ", "", 42, None, "Study later?"]})
        assert reconciler.reconcile_starters(raw, target) == ["Hi there", "Study later?"]

    def test_truncated_to_five(self, reconciler, target):
        raw = json.dumps({"starters": [f"Starter {i}" for i in range(8)]})
        assert reconciler.reconcile_starters(raw, target) == [f"Starter {i}" for i in range(5)]

    def test_fallback_uses_default_name(self, reconciler):
        anonymous = make_profile("user-x")
        assert reconciler.reconcile_starters("nope", anonymous)[0] == "Hey Anonymous! Want to study together?"


def test_fallback_starters_is_pure():
    assert fallback_starters("Lee") == fallback_starters("Lee")
    assert fallback_starters("Lee") is not fallback_starters("Lee")
