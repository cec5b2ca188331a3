"""
Domain models shared across retrieval, decision and audit components.

All models that represent facts (clauses, queries, retrieval results, audit
records) are frozen Pydantic models: once constructed they are never
mutated. Changing a value means building a new instance, e.g.
Clause.with_embedding() or ClaimDecision.model_copy(update=...).
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exceptions import InputError


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


class PolicyType(str, Enum):
    """Policy / clause category."""

    MOTOR = "Motor"
    HEALTH = "Health"
    HOME = "Home"
    LIFE = "Life"

    @classmethod
    def _missing_(cls, value: object) -> Optional["PolicyType"]:
        # Accept "motor", " HEALTH " etc.
        if isinstance(value, str):
            wanted = value.strip().lower()
            for member in cls:
                if member.value.lower() == wanted:
                    return member
        return None

    @classmethod
    def parse(cls, value: Any) -> "PolicyType":
        """
        Parse a user-supplied policy type.

        Raises:
            InputError: If value does not name a known policy type
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InputError(
                f"Unknown policy type: {value}",
                details={"valid_policy_types": [m.value for m in cls], "provided_policy_type": value}
            )


class RetrievalSource(str, Enum):
    """Where a ranked clause list came from."""

    VECTOR_BACKEND = "VectorBackend"
    FALLBACK = "Fallback"


class DecisionStatus(str, Enum):
    """Claim decision outcome."""

    COVERED = "Covered"
    NOT_COVERED = "Not Covered"
    MANUAL_REVIEW = "Manual Review"


class Clause(BaseModel):
    """
    A unit of policy text eligible for retrieval and citation.

    Attributes:
        id: Unique identifier within a corpus (e.g. "MOT-001")
        text: Full clause text
        category: Policy type the clause belongs to
        embedding: Optional fixed-length vector, set only through with_embedding()
        metadata: Free-form string metadata (coverage_type, source, ...)
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    text: str = Field(min_length=1)
    category: PolicyType
    embedding: Optional[tuple[float, ...]] = None
    metadata: dict[str, str] = Field(default_factory=dict)

    @property
    def coverage_type(self) -> str:
        return self.metadata.get("coverage_type", "")

    def with_embedding(self, vector) -> "Clause":
        """Return a copy of this clause carrying the given embedding."""
        return self.model_copy(update={"embedding": tuple(float(v) for v in vector)})


class ClaimQuery(BaseModel):
    """Retrieval input derived from a claim."""

    model_config = ConfigDict(frozen=True)

    claim_id: str
    description: str
    category: PolicyType
    submitted_at: datetime = Field(default_factory=utc_now)


class ScoredClause(BaseModel):
    """A clause paired with its similarity score."""

    model_config = ConfigDict(frozen=True)

    clause: Clause
    score: float


class RetrievalResult(BaseModel):
    """
    Ranked clauses for one claim.

    Ordering: descending score, ties broken by clause id ascending.
    """

    model_config = ConfigDict(frozen=True)

    clauses: tuple[ScoredClause, ...] = ()
    source: RetrievalSource

    @property
    def clause_ids(self) -> list[str]:
        return [scored.clause.id for scored in self.clauses]


class ClaimRequest(BaseModel):
    """Claim validation request as received from a transport."""

    policy_number: str
    claim_description: str
    claim_amount: float
    policy_type: str = PolicyType.MOTOR.value
    claim_id: Optional[str] = None


class ClaimDecision(BaseModel):
    """Decision produced by the LLM and adjusted by business rules."""

    model_config = ConfigDict(frozen=True)

    status: DecisionStatus
    explanation: str = ""
    clause_references: list[str] = Field(default_factory=list)
    required_documents: list[str] = Field(default_factory=list)
    confidence_score: float = 0.0

    @field_validator("confidence_score")
    @classmethod
    def _clamp_confidence(cls, value: float) -> float:
        return min(1.0, max(0.0, value))


class AuditRecord(BaseModel):
    """
    Immutable record of one claim decision.

    Keyed by (claim_id, timestamp). Created after decision logic runs and
    never updated or deleted.
    """

    model_config = ConfigDict(frozen=True)

    claim_id: str
    timestamp: datetime
    matched_clause_ids: tuple[str, ...] = ()
    decision: str
    retrieval_source: RetrievalSource
    policy_number: Optional[str] = None
    claim_amount: Optional[float] = None
    claim_description: Optional[str] = None
    explanation: Optional[str] = None
    confidence_score: Optional[float] = None
    clause_scores: tuple[tuple[str, float], ...] = ()


class ContradictionSeverity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class Contradiction(BaseModel):
    """Conflict between two sources of evidence behind a decision."""

    model_config = ConfigDict(frozen=True)

    source_a: str
    source_b: str
    description: str
    impact: str
    severity: ContradictionSeverity = ContradictionSeverity.MEDIUM

    @property
    def is_critical(self) -> bool:
        return self.severity in (ContradictionSeverity.HIGH, ContradictionSeverity.CRITICAL)

    def summary(self) -> str:
        return (
            f"[{self.severity.value}] {self.description} - {self.source_a} conflicts with "
            f"{self.source_b}. Impact: {self.impact}"
        )


class ClaimValidationResponse(BaseModel):
    """
    Outcome returned to the caller of a claim validation.

    warnings and contradictions describe the quality of the model's answer
    for reviewers; they never change the decision on their own.
    """

    claim_id: str
    decision: ClaimDecision
    matched_clause_ids: list[str]
    retrieval_source: RetrievalSource
    warnings: list[str] = Field(default_factory=list)
    contradictions: list[Contradiction] = Field(default_factory=list)


class IngestionSummary(BaseModel):
    """Result of indexing the clause corpus into the vector backend."""

    total: int
    indexed: int
    failed: list[dict[str, Any]] = Field(default_factory=list)
    collection: str
    dry_run: bool = False
