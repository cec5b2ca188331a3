"""
Contradiction detection between a model decision and its evidence.

Compares the decision status, its confidence, the cited clauses and the
claimed amount, and reports every conflict found. Severity ordering:
Critical > High > Medium > Low.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Sequence

from CRB.core.models import (
    Clause,
    ClaimDecision,
    ClaimRequest,
    Contradiction,
    ContradictionSeverity,
    DecisionStatus,
    ScoredClause,
)

HIGH_CONFIDENCE = 0.85
LOW_CONFIDENCE = 0.70

_AMOUNT_RE = re.compile(r"\$[\d,]+(?:\.\d{2})?")

_SEVERITY_ORDER = {
    ContradictionSeverity.CRITICAL: 4,
    ContradictionSeverity.HIGH: 3,
    ContradictionSeverity.MEDIUM: 2,
    ContradictionSeverity.LOW: 1,
}


def _is_exclusion(clause: Clause) -> bool:
    text = clause.text.lower()
    return (
        "exclusion" in clause.coverage_type.lower()
        or any(marker in text for marker in ("exclusion", "excluded", "excludes", "not covered"))
    )


def _is_coverage(clause: Clause) -> bool:
    text = clause.text.lower()
    return not _is_exclusion(clause) and any(marker in text for marker in ("covered", "covers", "eligible"))


def extract_amounts(text: str) -> list[Decimal]:
    """Dollar amounts in text ("$1,500.00" -> Decimal("1500.00"))."""
    amounts = []
    for match in _AMOUNT_RE.findall(text):
        try:
            amounts.append(Decimal(match.replace("$", "").replace(",", "")))
        except InvalidOperation:
            continue
    return amounts


def _check_status_vs_citations(decision: ClaimDecision, cited: list[Clause]) -> list[Contradiction]:
    if not cited:
        return []

    has_exclusion = any(_is_exclusion(c) for c in cited)
    if decision.status == DecisionStatus.NOT_COVERED and not has_exclusion:
        return [Contradiction(
            source_a="Decision Status (Not Covered)",
            source_b="Cited Policy Clauses",
            description="Claim denied but cited clauses do not contain exclusion language",
            impact="Decision may lack proper justification",
            severity=ContradictionSeverity.HIGH
        )]
    if decision.status == DecisionStatus.COVERED and has_exclusion:
        return [Contradiction(
            source_a="Decision Status (Covered)",
            source_b="Policy Exclusion Clause",
            description="Claim marked as covered but exclusion clause is cited",
            impact="May result in incorrect approval",
            severity=ContradictionSeverity.CRITICAL
        )]
    return []


def _check_mixed_citations(cited: list[Clause]) -> list[Contradiction]:
    if any(_is_coverage(c) for c in cited) and any(_is_exclusion(c) for c in cited):
        return [Contradiction(
            source_a="Coverage Policy Clause",
            source_b="Exclusion Policy Clause",
            description="Both coverage and exclusion clauses cited; requires policy interpretation",
            impact="Ambiguous policy application",
            severity=ContradictionSeverity.HIGH
        )]
    return []


def _check_confidence(decision: ClaimDecision) -> list[Contradiction]:
    score = decision.confidence_score
    if score > HIGH_CONFIDENCE and decision.status == DecisionStatus.MANUAL_REVIEW:
        return [Contradiction(
            source_a=f"High Confidence Score ({score:.2f})",
            source_b="Manual Review Status",
            description="Model is confident but asks for manual review",
            impact="Potential for automated decision",
            severity=ContradictionSeverity.MEDIUM
        )]
    if score < LOW_CONFIDENCE and decision.status in (DecisionStatus.COVERED, DecisionStatus.NOT_COVERED):
        return [Contradiction(
            source_a=f"Low Confidence Score ({score:.2f})",
            source_b=f"Automated Decision ({decision.status.value})",
            description="Low confidence decision made automatically",
            impact="Risk of incorrect decision",
            severity=ContradictionSeverity.HIGH
        )]
    return []


def _check_amount_limits(request: ClaimRequest, clauses: Sequence[Clause]) -> list[Contradiction]:
    found = []
    amount = Decimal(str(request.claim_amount))
    for clause in clauses:
        if "limit" not in clause.text.lower():
            continue
        for limit in extract_amounts(clause.text):
            if amount > limit:
                found.append(Contradiction(
                    source_a=f"Claim Amount (${amount:,.2f})",
                    source_b=f"Policy Limit (${limit:,.2f}) in {clause.id}",
                    description=f"Claim amount exceeds policy limit by ${amount - limit:,.2f}",
                    impact="May require partial approval or denial",
                    severity=ContradictionSeverity.HIGH
                ))
    return found


def detect_contradictions(
    request: ClaimRequest,
    decision: ClaimDecision,
    clauses: Sequence[ScoredClause]
) -> list[Contradiction]:
    """
    Find conflicts between a decision and the claim evidence.

    Args:
        request: Claim under validation (amount must be finite)
        decision: Decision as returned by the model
        clauses: Retrieved clauses the model was given

    Returns:
        list[Contradiction]: Most severe first
    """
    retrieved = [scored.clause for scored in clauses]
    cited = [c for c in retrieved if c.id in decision.clause_references]

    found = (
        _check_status_vs_citations(decision, cited)
        + _check_mixed_citations(cited)
        + _check_confidence(decision)
        + _check_amount_limits(request, retrieved)
    )
    return sorted(found, key=lambda c: -_SEVERITY_ORDER[c.severity])


def has_critical_contradictions(contradictions: Sequence[Contradiction]) -> bool:
    return any(c.is_critical for c in contradictions)
