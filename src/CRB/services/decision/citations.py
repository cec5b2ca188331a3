"""
Citation quality checks on a model decision.

These never change the decision (hard citation rules live in rules.py);
they produce reviewer-facing warnings about how well the explanation is
backed by the cited clauses.
"""

from __future__ import annotations

import re

from CRB.core.models import ClaimDecision, DecisionStatus

LOW_CONFIDENCE = 0.5
MANY_CITATIONS = 5

UNCERTAINTY_PHRASES = (
    "i think", "i believe", "probably", "maybe", "possibly",
    "it seems", "appears to be", "likely", "might be", "could be",
    "generally", "typically", "usually", "in most cases",
)

PERSONAL_KNOWLEDGE_PHRASES = (
    "i know that", "i understand", "in my experience",
    "i recall", "i remember", "based on my knowledge",
)

VAGUE_REFERENCES = (
    "according to the policy", "the policy states",
    "policy guidelines", "standard practice",
    "insurance regulations", "common practice",
)

_CITATION_PATTERNS = (
    re.compile(r"\[.*?\]"),
    re.compile(r"clause[:\s]", re.IGNORECASE),
    re.compile(r"section[:\s]\d+", re.IGNORECASE),
    re.compile(r"\b[A-Z]{3}-\d{3}\b"),
)


def references_citations(explanation: str) -> bool:
    """True if the explanation points at a clause ([MOT-001], "clause 3", ...)."""
    if not explanation:
        return False
    return any(pattern.search(explanation) for pattern in _CITATION_PATTERNS)


def hallucination_indicators(explanation: str) -> list[str]:
    if not explanation:
        return []

    normalized = explanation.lower()
    indicators = [f"Uncertainty phrase: '{p}'" for p in UNCERTAINTY_PHRASES if p in normalized]
    indicators.extend(
        f"Personal knowledge claim: '{p}'" for p in PERSONAL_KNOWLEDGE_PHRASES if p in normalized
    )

    vague = any(ref in normalized for ref in VAGUE_REFERENCES)
    if vague and not references_citations(explanation):
        indicators.append("Vague policy reference without specific clause citation")
    return indicators


def citation_warnings(decision: ClaimDecision) -> list[str]:
    """
    Soft citation checks on a decision as returned by the model.

    Returns:
        list[str]: Warnings, empty when the citations look sound
    """
    warnings: list[str] = []
    references = decision.clause_references

    if decision.confidence_score < LOW_CONFIDENCE and len(references) > MANY_CITATIONS:
        warnings.append(
            f"Low confidence ({decision.confidence_score:.2f}) with many citations "
            f"({len(references)}) may indicate hallucination."
        )

    if references and not references_citations(decision.explanation):
        warnings.append("Explanation does not reference the cited policy clauses.")

    warnings.extend(
        f"Potential hallucination indicator: {indicator}"
        for indicator in hallucination_indicators(decision.explanation)
    )

    if decision.status == DecisionStatus.NOT_COVERED and not references:
        warnings.append("'Not Covered' decisions should cite policy exclusions or limitations.")

    return warnings
