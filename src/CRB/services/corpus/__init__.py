"""Static policy clause corpus."""
from .loader import ClauseCorpus, load_clause_corpus, DEFAULT_CORPUS_PATH

__all__ = ['ClauseCorpus', 'load_clause_corpus', 'DEFAULT_CORPUS_PATH']
