"""
Lexical overlap ranking used when the vector backend is unavailable.

score(query, clause) = |distinct shared tokens| / |distinct clause tokens|

Tokens are lower-cased alphanumeric runs with a small stop-word list
removed. The score lies in [0, 1], and for clauses of equal token count a
clause sharing more tokens with the query never ranks below one sharing
fewer. Ranking is fully deterministic: ties are broken by clause id.
"""

from __future__ import annotations

import re
from typing import Iterable

from CRB.core.models import Clause, ScoredClause

_TOKEN_RE = re.compile(r"[a-z0-9]+")

STOP_WORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "in",
    "is", "it", "of", "on", "or", "the", "to", "was", "were", "with",
})


def tokenize(text: str) -> frozenset[str]:
    """Distinct, lower-cased content tokens of text."""
    return frozenset(t for t in _TOKEN_RE.findall(text.lower()) if t not in STOP_WORDS)


def overlap_score(query_tokens: frozenset[str], clause_text: str) -> float:
    clause_tokens = tokenize(clause_text)
    if not clause_tokens:
        return 0.0
    return len(query_tokens & clause_tokens) / len(clause_tokens)


def rank_by_overlap(description: str, clauses: Iterable[Clause]) -> list[ScoredClause]:
    """
    Rank clauses by lexical overlap with a claim description.

    Returns:
        list[ScoredClause]: Descending score, ties by clause id ascending
    """
    query_tokens = tokenize(description)
    scored = [
        ScoredClause(clause=clause, score=overlap_score(query_tokens, clause.text))
        for clause in clauses
    ]
    scored.sort(key=lambda s: (-s.score, s.clause.id))
    return scored
