"""Tests for validation: contract checks on oracle output."""

from __future__ import annotations

from fakes import adjudicator_output, opponent_output, proposer_output

from claim_tribunal.schemas import (
    AdjudicatorOutput,
    OpponentOutput,
    ProposerOutput,
    SummaryOutput,
    UrlSummary,
)
from claim_tribunal.validation import (
    Invalid,
    Valid,
    check_contract,
    check_proposer,
    check_url_summary,
    make_opponent_check,
)


class TestCheckContract:
    def test_valid_returns_plain_dict(self):
        result = check_contract(ProposerOutput, proposer_output(2), [check_proposer])
        assert isinstance(result, Valid)
        assert result.value["subclaims"][0] == {"id": "S1", "text": "subclaim 1"}

    def test_non_object_is_invalid(self):
        result = check_contract(ProposerOutput, ["not", "an", "object"])
        assert isinstance(result, Invalid)
        assert "expected a JSON object" in result.violations[0]

    def test_missing_field_reports_location(self):
        result = check_contract(AdjudicatorOutput, {"verdict": {"truth_score": 50}})
        assert isinstance(result, Invalid)
        assert any(v.startswith("verdict.confidence") for v in result.violations)

    def test_unknown_confidence_rejected(self):
        data = adjudicator_output(confidence="certain")
        assert isinstance(check_contract(AdjudicatorOutput, data), Invalid)

    def test_out_of_range_score_is_structurally_valid(self):
        # Clamping happens in the adjudicate stage
        result = check_contract(AdjudicatorOutput, adjudicator_output(score=140))
        assert isinstance(result, Valid)

    def test_directive_defaults(self):
        data = adjudicator_output()
        del data["directive"]
        result = check_contract(AdjudicatorOutput, data)
        assert isinstance(result, Valid)
        assert result.value["directive"]["inadmissible_exhibit_ids"] == []

    def test_summary_requires_text(self):
        result = check_contract(SummaryOutput, {"verdict": "Uncertain", "summary": ""})
        assert isinstance(result, Invalid)


class TestProposerCheck:
    def test_too_few_subclaims(self):
        result = check_contract(ProposerOutput, proposer_output(1), [check_proposer])
        assert isinstance(result, Invalid)
        assert any("expected 2-4" in v for v in result.violations)

    def test_too_many_subclaims(self):
        result = check_contract(ProposerOutput, proposer_output(5), [check_proposer])
        assert isinstance(result, Invalid)

    def test_ids_must_be_dense(self):
        data = proposer_output(2)
        data["subclaims"][1]["id"] = "S3"
        data["arguments"][1]["subclaim_id"] = "S3"
        result = check_contract(ProposerOutput, data, [check_proposer])
        assert isinstance(result, Invalid)
        assert any("in order" in v for v in result.violations)

    def test_missing_argument(self):
        data = proposer_output(3)
        data["arguments"].pop()
        result = check_contract(ProposerOutput, data, [check_proposer])
        assert isinstance(result, Invalid)
        assert any("S3, got 0" in v for v in result.violations)

    def test_duplicate_argument(self):
        data = proposer_output(2)
        data["arguments"].append({"subclaim_id": "S1", "text": "again"})
        result = check_contract(ProposerOutput, data, [check_proposer])
        assert isinstance(result, Invalid)

    def test_argument_for_unknown_subclaim(self):
        data = proposer_output(2)
        data["arguments"].append({"subclaim_id": "S9", "text": "stray"})
        result = check_contract(ProposerOutput, data, [check_proposer])
        assert isinstance(result, Invalid)
        assert any("unknown subclaim S9" in v for v in result.violations)


class TestOpponentCheck:
    def test_valid_subset(self):
        check = make_opponent_check(["S1", "S2", "S3"])
        result = check_contract(OpponentOutput, opponent_output(("S1", "S3")), [check])
        assert isinstance(result, Valid)

    def test_empty_rebuttals_allowed(self):
        check = make_opponent_check(["S1", "S2"])
        assert isinstance(check_contract(OpponentOutput, {}, [check]), Valid)

    def test_unknown_target(self):
        check = make_opponent_check(["S1", "S2"])
        result = check_contract(OpponentOutput, opponent_output(("S4",)), [check])
        assert isinstance(result, Invalid)

    def test_two_rebuttals_same_target(self):
        check = make_opponent_check(["S1", "S2"])
        result = check_contract(OpponentOutput, opponent_output(("S1", "S1")), [check])
        assert isinstance(result, Invalid)
        assert any("max 1" in v for v in result.violations)


class TestUrlSummaryCheck:
    def test_blank_summary_rejected(self):
        result = check_contract(UrlSummary, {"summary": "   "}, [check_url_summary])
        assert isinstance(result, Invalid)

    def test_url_optional(self):
        result = check_contract(UrlSummary, {"summary": "fine"}, [check_url_summary])
        assert isinstance(result, Valid)
        assert result.value["url"] is None
