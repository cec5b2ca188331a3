"""
Claim decisions generated by Claude on Amazon Bedrock.

The model receives the claim and the retrieved clauses and must answer with
a JSON object:

    {
      "status": "Covered" | "Not Covered" | "Manual Review",
      "explanation": "...",
      "clauseReferences": ["MOT-001"],
      "requiredDocuments": ["Police report"],
      "confidenceScore": 0.0-1.0
    }

A claim must always complete, so any Bedrock failure or unusable reply is
turned into a Manual Review decision instead of an exception.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Optional, Sequence

from botocore.exceptions import BotoCoreError, ClientError

from CRB.core.exceptions import BackendError
from CRB.core.logging_config import get_logger
from CRB.core.models import ClaimDecision, ClaimRequest, DecisionStatus, ScoredClause
from CRB.core.settings import Settings
from CRB.services.aws_session import create_client
from CRB.services.bedrock_errors import to_backend_error
from CRB.services.retry import RetryPolicy
from CRB.services.security.pii import redact_pii

logger = get_logger(__name__)

SYSTEM_PROMPT = """You are an insurance claims validation assistant.
You MUST:
- Use ONLY the provided policy clauses
- Cite clause IDs
- If unsure, answer with status "Manual Review"
- Respond in valid JSON format only"""

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)

_STATUS_ALIASES = {
    "covered": DecisionStatus.COVERED,
    "approved": DecisionStatus.COVERED,
    "not covered": DecisionStatus.NOT_COVERED,
    "denied": DecisionStatus.NOT_COVERED,
    "rejected": DecisionStatus.NOT_COVERED,
    "manual review": DecisionStatus.MANUAL_REVIEW,
    "needs manual review": DecisionStatus.MANUAL_REVIEW,
}


def build_prompt(request: ClaimRequest, clauses: Sequence[ScoredClause]) -> str:
    """Render the user message for a claim."""
    clauses_text = "\n\n".join(
        f"[{scored.clause.id}] {scored.clause.coverage_type or scored.clause.category.value}: {scored.clause.text}"
        for scored in clauses
    )
    return f"""Claim:
Policy Number: {request.policy_number}
Policy Type: {request.policy_type}
Claim Amount: ${request.claim_amount:,.2f}
Description: {request.claim_description}

Policy Clauses:
{clauses_text}

Respond in JSON:
{{
  "status": "Covered" | "Not Covered" | "Manual Review",
  "explanation": "<explanation>",
  "clauseReferences": ["<clause_id>"],
  "requiredDocuments": ["<document>"],
  "confidenceScore": 0.0-1.0
}}"""


def _pick(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _as_str_list(value: Any) -> list[str]:
    # A lone string counts as one entry; numbers, objects etc. are ignored
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v is not None]
    return []


def parse_decision(content: str) -> ClaimDecision:
    """
    Parse the model's text reply into a ClaimDecision.

    Markdown code fences and prose around the JSON object are tolerated.

    Raises:
        ValueError: If no JSON object can be parsed
    """
    if not isinstance(content, str):
        raise ValueError("Model reply is not text")
    cleaned = _FENCE_RE.sub("", content).strip()
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end <= start:
        raise ValueError("No JSON object in model reply")

    data = json.loads(cleaned[start:end + 1])
    if not isinstance(data, dict):
        raise ValueError("Model reply is not a JSON object")

    raw_status = str(_pick(data, "status", "Status", default="")).strip().lower()
    status = _STATUS_ALIASES.get(raw_status, DecisionStatus.MANUAL_REVIEW)

    try:
        confidence = float(_pick(data, "confidenceScore", "confidence_score", "ConfidenceScore", default=0.0))
    except (TypeError, ValueError):
        confidence = 0.0
    if not math.isfinite(confidence):
        confidence = 0.0

    return ClaimDecision(
        status=status,
        explanation=str(_pick(data, "explanation", "Explanation", default="")),
        clause_references=_as_str_list(_pick(data, "clauseReferences", "clause_references", "ClauseReferences")),
        required_documents=_as_str_list(_pick(data, "requiredDocuments", "required_documents", "RequiredDocuments")),
        confidence_score=confidence
    )


def manual_review_decision(reason: str) -> ClaimDecision:
    return ClaimDecision(
        status=DecisionStatus.MANUAL_REVIEW,
        explanation=reason,
        clause_references=[],
        required_documents=[],
        confidence_score=0.0
    )


class BedrockDecisionMaker:
    """
    Claude-backed claim decision generator.

    Attributes:
        model_id (str): Resolved Bedrock model / inference profile ID
        max_tokens (int): Reply token budget
    """

    def __init__(
        self,
        settings: Settings,
        bedrock_runtime=None,
        retry_policy: Optional[RetryPolicy] = None
    ):
        self.model_id = settings.get_llm_model_id()
        self.max_tokens = settings.llm_max_tokens
        self._client = bedrock_runtime or create_client("bedrock-runtime", settings)
        self._retry = retry_policy or RetryPolicy.from_settings(settings)
        logger.info(f"Initialized BedrockDecisionMaker: model={self.model_id}")

    def _invoke(self, prompt: str) -> str:
        payload = {
            "anthropic_version": "bedrock-2023-05-31",
            "max_tokens": self.max_tokens,
            "temperature": 0.0,
            "system": SYSTEM_PROMPT,
            "messages": [{"role": "user", "content": prompt}]
        }
        try:
            response = self._client.invoke_model(
                modelId=self.model_id,
                body=json.dumps(payload),
                contentType="application/json",
                accept="application/json"
            )
            result = json.loads(response["body"].read())
            return result["content"][0]["text"]
        except (ClientError, BotoCoreError) as e:
            raise to_backend_error(e, "Decision", self.model_id)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise to_backend_error(e, "Decision", self.model_id)

    def decide(self, request: ClaimRequest, clauses: Sequence[ScoredClause]) -> ClaimDecision:
        """
        Ask the model for a decision on a claim.

        Args:
            request: Claim under validation
            clauses: Retrieved clauses the model may cite

        Returns:
            ClaimDecision: Parsed decision, or Manual Review on any failure
        """
        prompt = build_prompt(request, clauses)
        try:
            content = self._retry.call(lambda: self._invoke(prompt), operation="Decision")
        except BackendError as e:
            logger.error(f"Bedrock decision failed ({e.kind.value}): {e.message}", extra={"details": e.details})
            return manual_review_decision(f"Automated decision unavailable ({e.kind.value}).")

        try:
            decision = parse_decision(content)
        except (TypeError, ValueError) as e:
            logger.error(f"Could not parse decision reply: {e}; reply preview: {redact_pii(str(content)[:200])}")
            return manual_review_decision("Failed to parse LLM response.")

        logger.info(
            f"LLM decision: status={decision.status.value}, confidence={decision.confidence_score:.2f}, "
            f"references={decision.clause_references}"
        )
        return decision
