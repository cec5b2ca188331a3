"""
Business rules applied on top of the LLM decision.

Rules are evaluated in order and the first one that fires decides the
adjustment:

    1. Citations must point at retrieved clauses; a Covered decision must
       cite at least one clause
    2. Confidence below CONFIDENCE_THRESHOLD -> Manual Review
    3. Covered claims above AUTO_APPROVAL_LIMIT -> Manual Review
    4. A cited exclusion clause turns Covered into Manual Review

Each rule prefixes its reason to the explanation so reviewers can see why a
decision was downgraded.
"""

from __future__ import annotations

from typing import Sequence

from CRB.core.logging_config import get_logger
from CRB.core.models import ClaimDecision, ClaimRequest, DecisionStatus, ScoredClause

logger = get_logger(__name__)

AUTO_APPROVAL_LIMIT = 5000.0
CONFIDENCE_THRESHOLD = 0.85

NO_CLAUSES_REQUIRED_DOCUMENTS = ["Policy Document", "Claim Evidence"]


def no_clauses_decision() -> ClaimDecision:
    """Guardrail decision when retrieval produced nothing to cite."""
    return ClaimDecision(
        status=DecisionStatus.MANUAL_REVIEW,
        explanation="No relevant policy clauses found for this claim type",
        clause_references=[],
        required_documents=list(NO_CLAUSES_REQUIRED_DOCUMENTS),
        confidence_score=0.0
    )


def _downgrade(decision: ClaimDecision, reason: str, status: DecisionStatus = DecisionStatus.MANUAL_REVIEW) -> ClaimDecision:
    return decision.model_copy(update={
        "status": status,
        "explanation": f"{reason} {decision.explanation}".strip()
    })


def _is_exclusion(clause_id: str, clauses_by_id: dict) -> bool:
    scored = clauses_by_id.get(clause_id)
    coverage_type = scored.clause.coverage_type if scored else ""
    return "exclusion" in coverage_type.lower() or "exclusion" in clause_id.lower()


def apply_business_rules(
    decision: ClaimDecision,
    request: ClaimRequest,
    clauses: Sequence[ScoredClause]
) -> ClaimDecision:
    """
    Adjust an LLM decision according to underwriting rules.

    Args:
        decision: Decision as parsed from the LLM
        request: Original claim request (amount drives auto-approval)
        clauses: Clauses the LLM was given

    Returns:
        ClaimDecision: Possibly downgraded decision
    """
    clauses_by_id = {scored.clause.id: scored for scored in clauses}

    unknown = [ref for ref in decision.clause_references if ref not in clauses_by_id]
    if unknown:
        logger.warning(f"Decision cites clauses that were not retrieved: {unknown}")
        return _downgrade(
            decision,
            f"Cited clause(s) {', '.join(unknown)} not found in retrieved policy clauses."
        )

    if decision.status == DecisionStatus.COVERED and not decision.clause_references:
        return _downgrade(decision, "Covered decision is missing supporting policy citations.")

    if decision.confidence_score < CONFIDENCE_THRESHOLD:
        return _downgrade(
            decision,
            f"Confidence below threshold ({decision.confidence_score:.2f} < {CONFIDENCE_THRESHOLD})."
        )

    if request.claim_amount > AUTO_APPROVAL_LIMIT and decision.status == DecisionStatus.COVERED:
        return _downgrade(
            decision,
            f"Amount ${request.claim_amount:,.2f} exceeds auto-approval limit."
        )

    if any(_is_exclusion(ref, clauses_by_id) for ref in decision.clause_references):
        status = DecisionStatus.MANUAL_REVIEW if decision.status == DecisionStatus.COVERED else decision.status
        return _downgrade(decision, "Potential exclusion clause detected.", status=status)

    return decision
