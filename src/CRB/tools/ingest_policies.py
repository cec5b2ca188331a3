"""
Command-line entry point for indexing policy clauses.

Usage:
    $ crb-ingest
    $ crb-ingest --corpus path/to/clauses.json
    $ crb-ingest --dry-run
    $ crb-ingest --output ingestion_summary.json

    Or directly:
    $ python -m CRB.tools.ingest_policies
"""

import argparse
import json
import sys
from pathlib import Path

from CRB.core.exceptions import ClaimsRagError
from CRB.core.logging_config import get_logger, setup_root_logger
from CRB.core.settings import get_settings
from CRB.services.corpus.loader import load_clause_corpus
from CRB.services.embedding.bedrock_client import BedrockEmbeddingClient
from CRB.services.ingestion.policy_ingestor import PolicyIngestionService
from CRB.services.vector.qdrant_index import QdrantVectorIndex

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Embed policy clauses and index them into Qdrant",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument(
        "--corpus",
        type=str,
        default=None,
        help="Path to a clause corpus JSON file (default: CLAUSE_CORPUS_PATH or bundled dataset)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Load and count clauses without calling Bedrock or Qdrant"
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write the JSON summary to this file instead of stdout"
    )
    return parser


def main(argv=None) -> int:
    """Run ingestion and print a JSON summary. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_root_logger(settings.log_level)

    try:
        corpus = load_clause_corpus(args.corpus or settings.clause_corpus_path)
        logger.info(f"Loaded {len(corpus)} clause(s): {corpus.category_counts()}")

        if args.dry_run:
            service = PolicyIngestionService(None, None, corpus)
        else:
            service = PolicyIngestionService(
                BedrockEmbeddingClient(settings),
                QdrantVectorIndex(settings),
                corpus
            )
        summary = service.ingest(dry_run=args.dry_run)
    except ClaimsRagError as e:
        logger.error(f"Ingestion failed: {e.message}")
        print(json.dumps({"error": e.message, "details": e.details}, indent=2, default=str), file=sys.stderr)
        return 1

    report = json.dumps(summary.model_dump(), indent=2)
    if args.output:
        Path(args.output).write_text(report, encoding="utf-8")
        logger.info(f"Ingestion summary written to {args.output}")
    else:
        print(report)
    return 0 if not summary.failed else 1


if __name__ == "__main__":
    sys.exit(main())
