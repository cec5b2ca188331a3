"""Tests for decision/evidence contradiction detection."""

from __future__ import annotations

from decimal import Decimal

import pytest

from CRB.core.models import (
    Clause,
    ClaimDecision,
    ClaimRequest,
    ContradictionSeverity,
    DecisionStatus,
    PolicyType,
    ScoredClause,
)
from CRB.services.decision.contradictions import (
    detect_contradictions,
    extract_amounts,
    has_critical_contradictions,
)

COVERAGE = Clause(id="HOM-001", text="Fire damage to the dwelling is covered.", category=PolicyType.HOME,
                  metadata={"coverage_type": "Dwelling"})
EXCLUSION = Clause(id="HOM-002", text="Flood damage is excluded.", category=PolicyType.HOME,
                   metadata={"coverage_type": "Exclusions"})
LIMIT = Clause(id="HOM-003", text="Contents limit of $1,000.00 per item.", category=PolicyType.HOME,
               metadata={"coverage_type": "Contents"})


@pytest.fixture
def request_() -> ClaimRequest:
    return ClaimRequest(
        policy_number="POL-HOME-7",
        claim_description="Kitchen fire damaged cabinets",
        claim_amount=800,
        policy_type="Home",
    )


def _scored(*clauses):
    return [ScoredClause(clause=c, score=0.8) for c in clauses]


def _decision(status, references, confidence=0.9):
    return ClaimDecision(status=status, explanation="See cited clauses.", clause_references=list(references),
                         confidence_score=confidence)


def test_consistent_decision_has_no_contradictions(request_):
    decision = _decision(DecisionStatus.COVERED, ["HOM-001"])
    assert detect_contradictions(request_, decision, _scored(COVERAGE, EXCLUSION)) == []


def test_covered_citing_exclusion_is_critical(request_):
    found = detect_contradictions(request_, _decision(DecisionStatus.COVERED, ["HOM-002"]), _scored(EXCLUSION))

    assert len(found) == 1
    assert found[0].severity == ContradictionSeverity.CRITICAL
    assert has_critical_contradictions(found)


def test_denial_without_exclusion_is_high(request_):
    found = detect_contradictions(request_, _decision(DecisionStatus.NOT_COVERED, ["HOM-001"]), _scored(COVERAGE))

    assert [c.severity for c in found] == [ContradictionSeverity.HIGH]
    assert not has_critical_contradictions(found)


def test_mixed_citations_flagged(request_):
    decision = _decision(DecisionStatus.MANUAL_REVIEW, ["HOM-001", "HOM-002"], confidence=0.6)
    found = detect_contradictions(request_, decision, _scored(COVERAGE, EXCLUSION))
    assert [c.source_b for c in found] == ["Exclusion Policy Clause"]


def test_confident_manual_review_is_medium(request_):
    found = detect_contradictions(request_, _decision(DecisionStatus.MANUAL_REVIEW, [], 0.95), _scored(COVERAGE))
    assert [c.severity for c in found] == [ContradictionSeverity.MEDIUM]


def test_low_confidence_automated_decision_is_high(request_):
    found = detect_contradictions(request_, _decision(DecisionStatus.COVERED, ["HOM-001"], 0.5), _scored(COVERAGE))
    assert [c.severity for c in found] == [ContradictionSeverity.HIGH]


def test_amount_over_clause_limit(request_):
    over = request_.model_copy(update={"claim_amount": 1500})
    found = detect_contradictions(over, _decision(DecisionStatus.COVERED, ["HOM-001"]), _scored(COVERAGE, LIMIT))

    assert len(found) == 1
    assert "exceeds policy limit by $500.00" in found[0].description
    assert detect_contradictions(request_, _decision(DecisionStatus.COVERED, ["HOM-001"]),
                                 _scored(COVERAGE, LIMIT)) == []


def test_results_sorted_by_severity(request_):
    over = request_.model_copy(update={"claim_amount": 5000})
    decision = _decision(DecisionStatus.COVERED, ["HOM-001", "HOM-002"])

    found = detect_contradictions(over, decision, _scored(COVERAGE, EXCLUSION, LIMIT))

    assert found[0].severity == ContradictionSeverity.CRITICAL
    assert {c.severity for c in found[1:]} == {ContradictionSeverity.HIGH}


def test_summary_mentions_severity_and_impact(request_):
    found = detect_contradictions(request_, _decision(DecisionStatus.COVERED, ["HOM-002"]), _scored(EXCLUSION))
    assert found[0].summary().startswith("[Critical] Claim marked as covered")
    assert "May result in incorrect approval" in found[0].summary()


def test_extract_amounts():
    assert extract_amounts("Up to $1,500.00 or $75/day; no cap") == [Decimal("1500.00"), Decimal("75")]
