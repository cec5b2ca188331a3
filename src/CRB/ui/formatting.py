"""
Table helpers for the Streamlit UI.

Kept free of Streamlit imports so they can be used from notebooks and tests.
"""

from typing import Iterable

import pandas as pd

from CRB.core.models import AuditRecord, Clause, ClaimValidationResponse

AUDIT_COLUMNS = [
    "Timestamp", "Decision", "Retrieval Source", "Matched Clauses",
    "Confidence", "Amount", "Policy Number",
]


def audit_records_to_frame(records: Iterable[AuditRecord]) -> pd.DataFrame:
    """One row per audit record, oldest first."""
    rows = [
        {
            "Timestamp": record.timestamp,
            "Decision": record.decision,
            "Retrieval Source": record.retrieval_source.value,
            "Matched Clauses": ", ".join(record.matched_clause_ids),
            "Confidence": record.confidence_score,
            "Amount": record.claim_amount,
            "Policy Number": record.policy_number,
        }
        for record in records
    ]
    frame = pd.DataFrame(rows, columns=AUDIT_COLUMNS)
    return frame.sort_values("Timestamp", kind="stable").reset_index(drop=True)


def clauses_to_frame(clauses: Iterable[Clause]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"ID": c.id, "Category": c.category.value, "Coverage": c.coverage_type, "Text": c.text}
            for c in clauses
        ],
        columns=["ID", "Category", "Coverage", "Text"]
    )


def decision_badge(result: ClaimValidationResponse) -> str:
    """Short label for the decision header."""
    icons = {"Covered": "✅", "Not Covered": "❌", "Manual Review": "🟡"}
    status = result.decision.status.value
    return f"{icons.get(status, '')} {status}".strip()
