"""
Prompt-injection screening for claim descriptions.

The claim description is the only free text that reaches the LLM prompt, so
it is scanned before retrieval. Any threat found rejects the claim with an
InputError; nothing is silently rewritten.

Checks:
    - Instruction-override and code-execution phrases
    - Role manipulation combined with "ignore"
    - Hidden zero-width / bidi unicode characters
    - Long runs of one repeated character
    - Inputs above MAX_SCAN_LENGTH or above MAX_DESCRIPTION_LENGTH
    - Long inputs that look like base64 blobs
    - SQL-like fragments
    - More than 30% punctuation / symbols
"""

from __future__ import annotations

import re

from CRB.core.exceptions import InputError
from CRB.core.logging_config import get_logger

logger = get_logger(__name__)

MAX_SCAN_LENGTH = 10_000
MAX_DESCRIPTION_LENGTH = 5_000
MIN_DESCRIPTION_LENGTH = 10
SPECIAL_CHAR_RATIO_LIMIT = 0.3

DANGEROUS_PATTERNS = (
    "ignore previous instructions",
    "ignore all previous",
    "disregard all",
    "forget everything",
    "forget all previous",
    "you are now",
    "new instructions:",
    "new role:",
    "system:",
    "system prompt",
    "admin mode",
    "developer mode",
    "jailbreak",
    "override",
    "sudo mode",
    "<script>",
    "eval(",
    "execute(",
    "exec(",
    "system(",
    "import os",
    "subprocess",
    "__import__",
    "base64.b64decode",
    "<!--",
    "*/",
    "/*",
    "';",
    "\"; ",
    "../",
)

ROLE_CHANGE_PATTERNS = (
    "you are a",
    "act as",
    "pretend to be",
    "simulate",
    "roleplay as",
    "imagine you are",
)

SQL_PATTERNS = (
    "drop table",
    "delete from",
    "insert into",
    "update ",
    "'; --",
    "1=1",
    "union select",
)

_HIDDEN_UNICODE_RE = re.compile("[\u200B-\u200D\uFEFF\u2060-\u2069]")
_REPEATED_CHAR_RE = re.compile(r"(.)\1{20,}")
_BASE64_RE = re.compile(r"^(?:[A-Za-z0-9+/]{4})*(?:[A-Za-z0-9+/]{2}==|[A-Za-z0-9+/]{3}=)?$")


def scan_input(text: str) -> list[str]:
    """
    Scan free text for prompt-injection and obfuscation patterns.

    Returns:
        list[str]: Human-readable threats, empty when the text is clean
    """
    if not text:
        return []

    threats: list[str] = []
    normalized = text.lower()

    threats.extend(
        f"Detected suspicious pattern: '{pattern}'"
        for pattern in DANGEROUS_PATTERNS if pattern in normalized
    )
    if "ignore" in normalized:
        threats.extend(
            f"Detected potential role manipulation: '{pattern}'"
            for pattern in ROLE_CHANGE_PATTERNS if pattern in normalized
        )

    if _HIDDEN_UNICODE_RE.search(text):
        threats.append("Contains hidden unicode characters that may be used for obfuscation")
    if _REPEATED_CHAR_RE.search(text):
        threats.append("Contains excessive character repetition")
    if len(text) > MAX_SCAN_LENGTH:
        threats.append(f"Input exceeds safe length limit ({len(text)} > {MAX_SCAN_LENGTH})")
    if len(text) > 100 and _BASE64_RE.match(text.replace("\n", "").replace("\r", "")):
        threats.append("Input appears to be base64 encoded")

    threats.extend(
        f"Detected SQL-like pattern: '{pattern}'"
        for pattern in SQL_PATTERNS if pattern in normalized
    )

    special = sum(1 for c in text if not c.isalnum() and not c.isspace())
    ratio = special / len(text)
    if ratio > SPECIAL_CHAR_RATIO_LIMIT:
        threats.append(f"Excessive special characters detected ({ratio:.0%} of input)")

    return threats


def screen_claim_description(description: str) -> list[str]:
    """
    Reject unsafe claim descriptions.

    Args:
        description: Non-empty claim description

    Returns:
        list[str]: Non-blocking warnings (e.g. very short description)

    Raises:
        InputError: If threats are found or the description is too long
    """
    threats = scan_input(description)
    if threats:
        logger.warning(f"Claim description rejected by prompt screen: {threats}")
        raise InputError(
            "Claim description contains potentially malicious content",
            details={"threats": threats}
        )

    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise InputError(
            f"Claim description exceeds maximum length ({MAX_DESCRIPTION_LENGTH} characters)",
            details={"length": len(description)}
        )

    if len(description.strip()) < MIN_DESCRIPTION_LENGTH:
        return [f"Claim description is very short (minimum {MIN_DESCRIPTION_LENGTH} characters recommended)"]
    return []
