"""Typo-tolerant retrieval of patterns and decisions for a free-text query."""

import re
from difflib import SequenceMatcher

from models import ArchitecturalDecision, CodePattern, CompressedContext, SearchResult

# 0.0 demands a perfect match, 1.0 accepts anything
DEFAULT_THRESHOLD = 0.6

# A single query token counts as present when this close to a record token
TOKEN_MATCH_RATIO = 0.75
MIN_TOKEN_LENGTH = 3

_TOKEN = re.compile(r"[a-z0-9]+")


def tokenize(text: str) -> list[str]:
    return [t for t in _TOKEN.findall(text.lower()) if len(t) >= MIN_TOKEN_LENGTH]


def _token_score(token: str, candidates: set[str]) -> float:
    if token in candidates:
        return 1.0
    best = 0.0
    for candidate in candidates:
        ratio = SequenceMatcher(None, token, candidate).ratio()
        if ratio > best:
            best = ratio
    return best if best >= TOKEN_MATCH_RATIO else 0.0


def relevance(query: str, text: str) -> float:
    """Mean best-match score of the query's tokens against ``text``.

    1.0 means every query token appears verbatim; misspelt tokens still count
    with their similarity ratio.
    """
    query_tokens = tokenize(query)
    if not query_tokens:
        return 0.0
    candidates = set(tokenize(text))
    if not candidates:
        return 0.0
    return sum(_token_score(t, candidates) for t in query_tokens) / len(query_tokens)


def _pattern_text(pattern: CodePattern) -> str:
    return f"{pattern.name} {pattern.description}"


def _decision_text(decision: ArchitecturalDecision) -> str:
    return f"{decision.title} {decision.decision} {decision.rationale}"


def _rank(query: str, items: list, to_text, threshold: float) -> list:
    floor = 1.0 - threshold
    scored = []
    for index, item in enumerate(items):
        score = relevance(query, to_text(item))
        if score > 0.0 and score >= floor:
            scored.append((score, index, item))
    scored.sort(key=lambda s: (-s[0], s[1]))
    return [item for _, _, item in scored]


def search(query: str, context: CompressedContext | None, threshold: float = DEFAULT_THRESHOLD) -> SearchResult:
    """Rank the snapshot's patterns and decisions against ``query``.

    An absent snapshot or a query that clears nothing gives empty lists.
    """
    if context is None:
        return SearchResult()
    return SearchResult(
        patterns=_rank(query, context.patterns, _pattern_text, threshold),
        decisions=_rank(query, context.decisions, _decision_text, threshold),
    )
