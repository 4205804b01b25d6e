"""Tests for the route evaluator — ordering, actions and continue-on-match."""

from datetime import UTC, datetime

import pytest

from conftest import make_rule
from pbx_console.schemas.routing import DestinationType, RouteAction
from pbx_console.services.routing import NO_MATCH, InvalidPatternError, evaluation_order

# ---------------------------------------------------------------------------
# Reference scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    def test_internal_number_hits_first_rule(self, evaluator, sample_rules):
        result = evaluator.evaluate(sample_rules, "+15551234567", "1001")
        assert result.matched is True
        assert result.rule_id == "rule-internal"
        assert result.action == RouteAction.ACCEPT
        assert result.destination.type == DestinationType.EXTENSION
        assert result.destination.value == "1000"

    def test_other_number_falls_through(self, evaluator, sample_rules):
        result = evaluator.evaluate(sample_rules, "+15551234567", "9999")
        assert result.rule_id == "rule-pstn"
        assert result.destination.type == DestinationType.TRUNK
        assert result.destination.value == "pstn"

    def test_non_numeric_matches_nothing(self, evaluator, sample_rules):
        result = evaluator.evaluate(sample_rules, "+15551234567", "abc")
        assert result.matched is False
        assert result.rule is None
        assert result.destination is None

    def test_empty_rule_set(self, evaluator):
        assert evaluator.evaluate([], "+1", "1000") == NO_MATCH


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


class TestOrdering:
    def test_priority_beats_array_order(self, evaluator):
        rules = [
            make_rule("late", priority=5, destination={"type": "Trunk", "value": "b"}),
            make_rule("early", priority=1, destination={"type": "Trunk", "value": "a"}),
        ]
        assert evaluator.evaluate(rules, "+1", "123").rule_id == "early"

    def test_equal_priority_keeps_array_order(self, evaluator):
        rules = [make_rule("first", priority=2), make_rule("second", priority=2), make_rule("third", priority=2)]
        for _ in range(5):
            assert evaluator.evaluate(rules, "+1", "123").rule_id == "first"
        assert [r.id for r in evaluation_order(rules)] == ["first", "second", "third"]

    def test_disabled_rules_skipped(self, evaluator):
        rules = [make_rule("off", priority=0, enabled=False), make_rule("on", priority=1)]
        assert evaluator.evaluate(rules, "+1", "123").rule_id == "on"
        assert [r.id for r in evaluation_order(rules)] == ["on"]

    def test_only_disabled_rules(self, evaluator):
        rules = [make_rule("off", enabled=False)]
        assert evaluator.evaluate(rules, "+1", "123").matched is False


# ---------------------------------------------------------------------------
# Actions and continue-on-match
# ---------------------------------------------------------------------------


class TestActions:
    def test_reject_terminates(self, evaluator):
        rules = [
            make_rule("block", priority=0, action="reject", destination={"type": "Hangup"}),
            make_rule("allow", priority=1),
        ]
        result = evaluator.evaluate(rules, "+1", "123")
        assert result.rule_id == "block"
        assert result.action == RouteAction.REJECT
        assert result.matched_rule_ids == ("block",)

    def test_continue_on_match_later_rule_wins(self, evaluator):
        rules = [
            make_rule("a", priority=0, continue_on_match=True, destination={"type": "Extension", "value": "1000"}),
            make_rule("b", priority=1, destination={"type": "Trunk", "value": "pstn"}),
        ]
        result = evaluator.evaluate(rules, "+1", "123")
        assert result.rule_id == "b"
        assert result.destination.value == "pstn"
        assert result.matched_rule_ids == ("a", "b")

    def test_continue_on_match_keeps_candidate_when_nothing_follows(self, evaluator):
        rules = [
            make_rule("a", priority=0, continue_on_match=True),
            make_rule("b", priority=1, pattern="^nomatch$"),
        ]
        result = evaluator.evaluate(rules, "+1", "123")
        assert result.rule_id == "a"
        assert result.matched_rule_ids == ("a",)

    def test_reject_with_continue_overridden_by_accept(self, evaluator):
        rules = [
            make_rule("deny", priority=0, action="reject", continue_on_match=True, destination={"type": "Hangup"}),
            make_rule("vip", priority=1, destination={"type": "Extension", "value": "2000"}),
        ]
        result = evaluator.evaluate(rules, "+1", "123")
        assert result.rule_id == "vip"
        assert result.action == RouteAction.ACCEPT

    def test_continue_action_records_nothing(self, evaluator):
        rules = [
            make_rule("log", priority=0, action="continue"),
            make_rule("route", priority=1, destination={"type": "Voicemail", "value": "1000"}),
        ]
        result = evaluator.evaluate(rules, "+1", "123")
        assert result.rule_id == "route"
        assert result.matched_rule_ids == ("log", "route")

    def test_only_continue_actions_is_no_match(self, evaluator):
        rules = [make_rule("log", action="continue")]
        result = evaluator.evaluate(rules, "+1", "123")
        assert result.matched is False
        assert result.matched_rule_ids == ("log",)

    def test_chain_of_three(self, evaluator):
        rules = [
            make_rule("one", priority=0, continue_on_match=True, destination={"type": "Trunk", "value": "1"}),
            make_rule("two", priority=1, continue_on_match=True, destination={"type": "Trunk", "value": "2"}),
            make_rule("three", priority=2, continue_on_match=True, destination={"type": "Trunk", "value": "3"}),
        ]
        result = evaluator.evaluate(rules, "+1", "123")
        assert result.destination.value == "3"
        assert result.matched_rule_ids == ("one", "two", "three")


# ---------------------------------------------------------------------------
# Conditions on rules
# ---------------------------------------------------------------------------


class TestRuleConditions:
    def test_conditions_are_anded(self, evaluator):
        rules = [
            make_rule(
                "business-us",
                priority=0,
                conditions=[
                    {"type": "CallerId", "pattern": r"^\+1"},
                    {"type": "Time", "start_time": "09:00", "end_time": "17:00"},
                ],
            ),
            make_rule("fallback", priority=1, destination={"type": "Voicemail", "value": "main"}),
        ]
        assert evaluator.evaluate(rules, "+12125551234", "123").rule_id == "business-us"
        assert evaluator.evaluate(rules, "+441234567890", "123").rule_id == "fallback"

        evening = datetime(2024, 3, 13, 19, 0, tzinfo=UTC)
        assert evaluator.evaluate(rules, "+12125551234", "123", now=evening).rule_id == "fallback"

    def test_after_hours_by_clock(self, evaluator, clock):
        rules = [
            make_rule(
                "weekend",
                priority=0,
                conditions=[{"type": "DayOfWeek", "days": [6, 7]}],
                destination={"type": "Voicemail", "value": "main"},
            ),
            make_rule("weekday", priority=1),
        ]
        assert evaluator.evaluate(rules, "+1", "123").rule_id == "weekday"
        clock.current = datetime(2024, 3, 16, 10, 0, tzinfo=UTC)
        assert evaluator.evaluate(rules, "+1", "123").rule_id == "weekend"

    def test_invalid_pattern_is_an_error(self, evaluator):
        rule = make_rule("bad").model_copy(update={"pattern": "(unclosed"})
        with pytest.raises(InvalidPatternError):
            evaluator.evaluate([rule], "+1", "123")
