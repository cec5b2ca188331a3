"""
PII masking for log lines.

Audit records keep the original values; only what goes to stdout and the
rotating log file is masked.
"""

from __future__ import annotations

import re

_PII_PATTERNS = (
    (re.compile(r"\b\d{3}-\d{2}-\d{4}\b"), "***-**-****"),
    (re.compile(r"\b\d{4}[-\s]?\d{4}[-\s]?\d{4}[-\s]?\d{4}\b"), "****-****-****-****"),
    (re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b"), "***-***-****"),
    (re.compile(r"\b(0?[1-9]|1[0-2])[/\-](0?[1-9]|[12][0-9]|3[01])[/\-](19|20)\d{2}\b"), "**/**/****"),
)

_EMAIL_RE = re.compile(r"\b[a-zA-Z0-9._%+-]+@([a-zA-Z0-9.-]+\.[a-zA-Z]{2,})\b")
_ZIP_RE = re.compile(r"\b(\d{3})\d{2}(?:-\d{4})?\b")


def mask_identifier(value) -> str:
    """Keep only the last four characters of an identifier."""
    if not value:
        return "****"
    value = str(value)
    return f"****{value[-4:]}" if len(value) > 4 else "****"


def mask_policy_number(policy_number) -> str:
    return mask_identifier(policy_number)


def redact_pii(text: str) -> str:
    """
    Redact SSNs, card numbers, phone numbers, dates of birth, e-mail local
    parts and the last two digits of ZIP codes.
    """
    if not text:
        return text
    # Card numbers before phone numbers; a card contains phone-shaped runs
    for pattern, replacement in _PII_PATTERNS:
        text = pattern.sub(replacement, text)
    text = _EMAIL_RE.sub(lambda m: f"***@{m.group(1)}", text)
    return _ZIP_RE.sub(lambda m: f"{m.group(1)}**", text)
