"""
Claim validation orchestration.

Flow for one claim:
    1. Validate and screen the request (InputError is the only failure a caller sees)
    2. Build a ClaimQuery and retrieve ranked clauses
    3. No clauses -> guardrail Manual Review, otherwise ask the LLM
    4. Apply business rules to the decision
    5. Report citation warnings and contradictions in the model decision
    6. Hand an AuditRecord to the background dispatcher (best effort)
    7. Return the ClaimValidationResponse

Policy numbers and descriptions are masked in log lines only.

Module Input:
    - ClaimRequest from a transport (FastAPI, Lambda, Streamlit)

Module Output:
    - ClaimValidationResponse
    - AuditRecord submitted to the audit dispatcher
"""

from __future__ import annotations

import math
import uuid
from datetime import datetime
from typing import Optional

from CRB.core.exceptions import InputError
from CRB.core.logging_config import get_logger
from CRB.core.models import (
    AuditRecord,
    ClaimDecision,
    ClaimQuery,
    ClaimRequest,
    ClaimValidationResponse,
    Contradiction,
    PolicyType,
    RetrievalResult,
    utc_now,
)
from CRB.services.decision.citations import citation_warnings
from CRB.services.decision.contradictions import detect_contradictions, has_critical_contradictions
from CRB.services.decision.rules import apply_business_rules, no_clauses_decision
from CRB.services.security.pii import mask_policy_number, redact_pii
from CRB.services.security.prompt_guard import screen_claim_description

logger = get_logger(__name__)


class ClaimValidationService:
    """
    Validates claims against policy clauses.

    Attributes:
        retrieval_engine: RetrievalEngine producing ranked clauses
        decision_maker: Object with decide(request, clauses) -> ClaimDecision
        audit_dispatcher: Object with submit(AuditRecord)
        audit_sink: Sink used for history reads (may be None)
        top_k (int): Clauses requested per claim
    """

    def __init__(
        self,
        retrieval_engine,
        decision_maker,
        audit_dispatcher,
        audit_sink=None,
        top_k: int = 5
    ):
        self.retrieval_engine = retrieval_engine
        self.decision_maker = decision_maker
        self.audit_dispatcher = audit_dispatcher
        self.audit_sink = audit_sink
        self.top_k = top_k

    @staticmethod
    def _validate_request(request: ClaimRequest) -> tuple[PolicyType, list[str]]:
        """Returns the parsed policy type and any non-fatal input warnings."""
        if not request.policy_number or not request.policy_number.strip():
            raise InputError("Policy number is required")
        if not request.claim_description or not request.claim_description.strip():
            raise InputError("Claim description is required")
        warnings = screen_claim_description(request.claim_description)
        # NaN and inf must fail before the range check
        if not math.isfinite(request.claim_amount):
            raise InputError(
                "Claim amount must be a finite number",
                details={"claim_amount": str(request.claim_amount)}
            )
        if request.claim_amount <= 0:
            raise InputError(
                "Claim amount must be greater than zero",
                details={"claim_amount": request.claim_amount}
            )
        return PolicyType.parse(request.policy_type), warnings

    def _decide(self, request: ClaimRequest, retrieval: RetrievalResult) -> tuple[Optional[ClaimDecision], ClaimDecision]:
        """Returns (model decision or None, decision after business rules)."""
        if not retrieval.clauses:
            logger.warning("No clauses retrieved; routing claim to manual review")
            return None, no_clauses_decision()
        decision = self.decision_maker.decide(request, retrieval.clauses)
        return decision, apply_business_rules(decision, request, retrieval.clauses)

    @staticmethod
    def _review(
        claim_id: str,
        request: ClaimRequest,
        raw: Optional[ClaimDecision],
        retrieval: RetrievalResult
    ) -> tuple[list[str], list[Contradiction]]:
        if raw is None:
            return [], []
        warnings = citation_warnings(raw)
        contradictions = detect_contradictions(request, raw, retrieval.clauses)
        if has_critical_contradictions(contradictions):
            logger.warning(
                f"Claim {claim_id}: critical contradiction(s) in model decision: "
                + "; ".join(c.summary() for c in contradictions if c.is_critical)
            )
        for warning in warnings:
            logger.info(f"Claim {claim_id}: {warning}")
        return warnings, contradictions

    def _submit_audit(
        self,
        query: ClaimQuery,
        request: ClaimRequest,
        retrieval: RetrievalResult,
        decision: ClaimDecision
    ) -> None:
        record = AuditRecord(
            claim_id=query.claim_id,
            timestamp=utc_now(),
            matched_clause_ids=tuple(retrieval.clause_ids),
            decision=decision.status.value,
            retrieval_source=retrieval.source,
            policy_number=request.policy_number,
            claim_amount=request.claim_amount,
            claim_description=request.claim_description,
            explanation=decision.explanation,
            confidence_score=decision.confidence_score,
            clause_scores=tuple((scored.clause.id, scored.score) for scored in retrieval.clauses)
        )
        try:
            accepted = self.audit_dispatcher.submit(record)
        except Exception as e:
            logger.error(f"Audit submission failed for claim {query.claim_id}: {e}")
            return
        if accepted is False:
            logger.warning(f"Audit record for claim {query.claim_id} was not accepted")

    def validate(self, request: ClaimRequest) -> ClaimValidationResponse:
        """
        Validate one claim end to end.

        Args:
            request: Claim to validate

        Returns:
            ClaimValidationResponse: Decision, matched clause ids and retrieval source

        Raises:
            InputError: If the request is malformed
        """
        policy_type, input_warnings = self._validate_request(request)

        query = ClaimQuery(
            claim_id=request.claim_id or str(uuid.uuid4()),
            description=request.claim_description.strip(),
            category=policy_type
        )
        logger.info(
            f"Validating claim {query.claim_id}: policy={mask_policy_number(request.policy_number)}, "
            f"type={policy_type.value}, amount={request.claim_amount}"
        )
        logger.debug(f"Claim {query.claim_id} description: {redact_pii(query.description)}")

        retrieval = self.retrieval_engine.retrieve(query, top_k=self.top_k)
        raw_decision, decision = self._decide(request, retrieval)
        review_warnings, contradictions = self._review(query.claim_id, request, raw_decision, retrieval)

        self._submit_audit(query, request, retrieval, decision)

        logger.info(
            f"Claim {query.claim_id} decided: {decision.status.value} "
            f"(source={retrieval.source.value}, clauses={retrieval.clause_ids})"
        )
        return ClaimValidationResponse(
            claim_id=query.claim_id,
            decision=decision,
            matched_clause_ids=retrieval.clause_ids,
            retrieval_source=retrieval.source,
            warnings=input_warnings + review_warnings,
            contradictions=contradictions
        )

    def audit_history(
        self,
        claim_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> list[AuditRecord]:
        """
        Audit records for a claim, ascending by timestamp.

        Raises:
            InputError: If claim_id is blank
            StorageError: If the sink cannot be read
        """
        if not claim_id or not claim_id.strip():
            raise InputError("Claim id is required")
        if self.audit_sink is None:
            return []
        return self.audit_sink.history(claim_id, start=start, end=end)
