"""Tests for the Claude decision maker and its reply parsing."""

from __future__ import annotations

import json

import pytest

from CRB.core.models import ClaimRequest, DecisionStatus, ScoredClause
from CRB.services.decision.bedrock_llm import (
    SYSTEM_PROMPT,
    BedrockDecisionMaker,
    build_prompt,
    parse_decision,
)
from fakes import bedrock_response, client_error

REPLY = {
    "status": "Covered",
    "explanation": "Collision damage is covered under MOT-001.",
    "clauseReferences": ["MOT-001"],
    "requiredDocuments": ["Repair estimate", "Photos"],
    "confidenceScore": 0.93,
}


@pytest.fixture
def clauses(corpus) -> list[ScoredClause]:
    return [ScoredClause(clause=corpus.get("MOT-001"), score=0.9)]


@pytest.fixture
def decision_maker(settings, mock_bedrock_runtime, retry_policy) -> BedrockDecisionMaker:
    return BedrockDecisionMaker(settings, bedrock_runtime=mock_bedrock_runtime, retry_policy=retry_policy)


def _claude_reply(text: str):
    return bedrock_response({"content": [{"type": "text", "text": text}]})


# ---------------------------------------------------------------------------
# parse_decision
# ---------------------------------------------------------------------------

class TestParseDecision:
    def test_plain_json(self):
        decision = parse_decision(json.dumps(REPLY))
        assert decision.status == DecisionStatus.COVERED
        assert decision.clause_references == ["MOT-001"]
        assert decision.required_documents == ["Repair estimate", "Photos"]
        assert decision.confidence_score == pytest.approx(0.93)

    def test_code_fences_are_stripped(self):
        decision = parse_decision(f"```json\n{json.dumps(REPLY)}\n```")
        assert decision.status == DecisionStatus.COVERED

    def test_surrounding_prose_is_ignored(self):
        decision = parse_decision(f"Here is my assessment:\n{json.dumps(REPLY)}\nThanks.")
        assert decision.explanation == REPLY["explanation"]

    def test_snake_case_and_lowercase_status(self):
        decision = parse_decision(json.dumps({
            "status": "not covered",
            "explanation": "Racing is excluded.",
            "clause_references": ["MOT-003"],
            "confidence_score": 0.88,
        }))
        assert decision.status == DecisionStatus.NOT_COVERED
        assert decision.clause_references == ["MOT-003"]
        assert decision.required_documents == []

    def test_unknown_status_means_manual_review(self):
        decision = parse_decision(json.dumps({**REPLY, "status": "Probably"}))
        assert decision.status == DecisionStatus.MANUAL_REVIEW

    def test_bad_confidence_becomes_zero(self):
        decision = parse_decision(json.dumps({**REPLY, "confidenceScore": "high"}))
        assert decision.confidence_score == 0.0

    @pytest.mark.parametrize("references", [5, None, {"id": "MOT-001"}, True])
    def test_non_list_references_become_empty(self, references):
        decision = parse_decision(json.dumps({**REPLY, "clauseReferences": references, "requiredDocuments": 7}))
        assert decision.clause_references == []
        assert decision.required_documents == []

    def test_single_string_reference_becomes_list(self):
        decision = parse_decision(json.dumps({**REPLY, "clauseReferences": "MOT-001"}))
        assert decision.clause_references == ["MOT-001"]

    def test_mixed_reference_items_are_stringified(self):
        decision = parse_decision(json.dumps({**REPLY, "clauseReferences": ["MOT-001", 42, None]}))
        assert decision.clause_references == ["MOT-001", "42"]

    def test_non_finite_confidence_becomes_zero(self):
        decision = parse_decision('{"status": "Covered", "confidenceScore": NaN}')
        assert decision.confidence_score == 0.0

    @pytest.mark.parametrize("text", ["no json here", "{not valid json}", "[1, 2, 3]"])
    def test_unparseable_reply_raises(self, text):
        with pytest.raises(ValueError):
            parse_decision(text)

    def test_non_text_reply_raises(self):
        with pytest.raises(ValueError):
            parse_decision(5)


def test_prompt_lists_claim_and_clauses(claim_request, clauses):
    prompt = build_prompt(claim_request, clauses)
    assert "Policy Number: POL-2024-001" in prompt
    assert "Claim Amount: $1,500.00" in prompt
    assert "[MOT-001] Collision: Collision coverage applies" in prompt


# ---------------------------------------------------------------------------
# BedrockDecisionMaker
# ---------------------------------------------------------------------------

class TestBedrockDecisionMaker:
    def test_decide_invokes_claude(self, decision_maker, mock_bedrock_runtime, claim_request, clauses):
        mock_bedrock_runtime.invoke_model.return_value = _claude_reply(json.dumps(REPLY))

        decision = decision_maker.decide(claim_request, clauses)

        assert decision.status == DecisionStatus.COVERED
        kwargs = mock_bedrock_runtime.invoke_model.call_args.kwargs
        assert kwargs["modelId"] == "us.anthropic.claude-3-5-sonnet-20241022-v2:0"
        body = json.loads(kwargs["body"])
        assert body["anthropic_version"] == "bedrock-2023-05-31"
        assert body["system"] == SYSTEM_PROMPT
        assert body["messages"][0]["role"] == "user"
        assert "MOT-001" in body["messages"][0]["content"]

    def test_bedrock_error_yields_manual_review(self, decision_maker, mock_bedrock_runtime, claim_request, clauses):
        mock_bedrock_runtime.invoke_model.side_effect = client_error("AccessDeniedException")

        decision = decision_maker.decide(claim_request, clauses)

        assert decision.status == DecisionStatus.MANUAL_REVIEW
        assert decision.confidence_score == 0.0
        assert mock_bedrock_runtime.invoke_model.call_count == 1

    def test_throttling_is_retried_then_manual_review(
        self, decision_maker, mock_bedrock_runtime, claim_request, clauses, sleeps
    ):
        mock_bedrock_runtime.invoke_model.side_effect = client_error("ThrottlingException")

        decision = decision_maker.decide(claim_request, clauses)

        assert decision.status == DecisionStatus.MANUAL_REVIEW
        assert mock_bedrock_runtime.invoke_model.call_count == 3
        assert sleeps == [0.5, 1.0]

    def test_unparseable_reply_yields_manual_review(
        self, decision_maker, mock_bedrock_runtime, claim_request, clauses
    ):
        mock_bedrock_runtime.invoke_model.return_value = _claude_reply("I cannot decide.")

        decision = decision_maker.decide(claim_request, clauses)

        assert decision.status == DecisionStatus.MANUAL_REVIEW
        assert decision.explanation == "Failed to parse LLM response."

    def test_malformed_response_envelope_yields_manual_review(
        self, decision_maker, mock_bedrock_runtime, claim_request, clauses
    ):
        mock_bedrock_runtime.invoke_model.return_value = bedrock_response({"content": []})

        decision = decision_maker.decide(claim_request, clauses)

        assert decision.status == DecisionStatus.MANUAL_REVIEW
        assert decision.confidence_score == 0.0

    def test_reply_with_scalar_references_is_still_decided(
        self, decision_maker, mock_bedrock_runtime, claim_request, clauses
    ):
        reply = {"status": "Covered", "clauseReferences": 5, "confidenceScore": 0.9}
        mock_bedrock_runtime.invoke_model.return_value = _claude_reply(json.dumps(reply))

        decision = decision_maker.decide(claim_request, clauses)

        assert decision.status == DecisionStatus.COVERED
        assert decision.clause_references == []

    def test_non_text_reply_yields_manual_review(
        self, decision_maker, mock_bedrock_runtime, claim_request, clauses
    ):
        mock_bedrock_runtime.invoke_model.return_value = bedrock_response({"content": [{"text": 5}]})

        decision = decision_maker.decide(claim_request, clauses)

        assert decision.status == DecisionStatus.MANUAL_REVIEW
        assert decision.explanation == "Failed to parse LLM response."
