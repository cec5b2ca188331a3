"""
Clause corpus loader.

Loads the authoritative set of policy clauses from a bundled JSON dataset.
The corpus backs both id resolution for vector hits and the lexical
fallback, so a missing or malformed dataset is fatal: load_clause_corpus()
raises CorpusError and the service refuses to start.

Dataset format:
    {
      "version": "2024.1",
      "clauses": [
        {"id": "MOT-001", "category": "Motor", "coverage_type": "Collision",
         "text": "...", "metadata": {"source": "..."}}
      ]
    }

A bare top-level list of clause objects is accepted as well.
"""

from __future__ import annotations

import json
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Iterator, Optional, Union

from pydantic import ValidationError

from CRB.core.exceptions import CorpusError, InputError
from CRB.core.logging_config import get_logger
from CRB.core.models import Clause, PolicyType

logger = get_logger(__name__)

DEFAULT_CORPUS_PATH = Path(__file__).resolve().parent.parent.parent / "data" / "policy_clauses.json"

# Top-level keys copied into Clause.metadata
_METADATA_KEYS = ("coverage_type",)


class ClauseCorpus:
    """
    Immutable, id-indexed set of clauses.

    Safe for any number of concurrent readers: nothing is mutated after
    construction.
    """

    def __init__(self, clauses: Iterable[Clause], version: Optional[str] = None):
        by_id: dict[str, Clause] = {}
        for clause in clauses:
            if clause.id in by_id:
                raise CorpusError(
                    f"Duplicate clause id: {clause.id}",
                    details={"clause_id": clause.id}
                )
            by_id[clause.id] = clause

        self.version = version
        self._by_id = MappingProxyType(dict(sorted(by_id.items())))
        by_category: dict[PolicyType, tuple[Clause, ...]] = {}
        for category in PolicyType:
            by_category[category] = tuple(c for c in self._by_id.values() if c.category == category)
        self._by_category = MappingProxyType(by_category)

    def get(self, clause_id: str) -> Optional[Clause]:
        return self._by_id.get(clause_id)

    def by_category(self, category: PolicyType) -> tuple[Clause, ...]:
        """Clauses of one category, sorted by id."""
        return self._by_category.get(category, ())

    @property
    def clause_ids(self) -> tuple[str, ...]:
        return tuple(self._by_id)

    def category_counts(self) -> dict[str, int]:
        return {category.value: len(clauses) for category, clauses in self._by_category.items()}

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self) -> Iterator[Clause]:
        return iter(self._by_id.values())

    def __contains__(self, clause_id: object) -> bool:
        return clause_id in self._by_id


def _parse_clause(raw: object, position: int) -> Clause:
    if not isinstance(raw, dict):
        raise CorpusError(
            f"Clause entry {position} is not an object",
            details={"position": position}
        )

    try:
        category = PolicyType.parse(raw.get("category"))
    except InputError as e:
        raise CorpusError(
            f"Clause entry {position} has unknown category",
            details={"position": position, **e.details}
        )

    raw_metadata = raw.get("metadata") or {}
    if not isinstance(raw_metadata, dict):
        raise CorpusError(
            f"Clause entry {position} has non-object metadata",
            details={"position": position, "clause_id": raw.get("id")}
        )
    metadata = {str(k): str(v) for k, v in raw_metadata.items()}
    for key in _METADATA_KEYS:
        if raw.get(key) is not None:
            metadata[key] = str(raw[key])

    text = raw.get("text")
    try:
        return Clause(
            id=str(raw.get("id") or "").strip(),
            text=text.strip() if isinstance(text, str) else "",
            category=category,
            metadata=metadata
        )
    except ValidationError as e:
        raise CorpusError(
            f"Clause entry {position} is invalid",
            details={"position": position, "clause_id": raw.get("id"), "errors": e.errors()}
        )


def load_clause_corpus(path: Union[str, Path, None] = None) -> ClauseCorpus:
    """
    Load and validate the clause dataset.

    Args:
        path: Dataset file (default: bundled CRB/data/policy_clauses.json)

    Returns:
        ClauseCorpus: Immutable corpus

    Raises:
        CorpusError: If the file is missing, unreadable or malformed
    """
    corpus_path = Path(path) if path else DEFAULT_CORPUS_PATH

    if not corpus_path.is_file():
        raise CorpusError(
            f"Clause corpus not found: {corpus_path}",
            details={"path": str(corpus_path)}
        )

    try:
        data = json.loads(corpus_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise CorpusError(
            f"Clause corpus could not be read: {corpus_path}",
            details={"path": str(corpus_path), "error": str(e)}
        )

    version = None
    if isinstance(data, dict):
        version = data.get("version")
        entries = data.get("clauses")
    else:
        entries = data

    if not isinstance(entries, list) or not entries:
        raise CorpusError(
            "Clause corpus must contain a non-empty list of clauses",
            details={"path": str(corpus_path)}
        )

    corpus = ClauseCorpus(
        (_parse_clause(raw, position) for position, raw in enumerate(entries)),
        version=version
    )
    logger.info(
        f"Loaded {len(corpus)} clauses from {corpus_path.name} "
        f"(version={version}, by_category={corpus.category_counts()})"
    )
    return corpus
