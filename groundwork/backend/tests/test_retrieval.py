"""Tests for typo-tolerant retrieval over the context snapshot."""

from models import ArchitecturalDecision, CodePattern, CompressedContext
from retrieval import relevance, search, tokenize


def _context() -> CompressedContext:
    return CompressedContext(
        patterns=[
            CodePattern(
                id="function-2-params-sync",
                name="Sync function with 2 parameters",
                description="Functions with 2 parameters, without type annotations",
                frequency=3,
            ),
            CodePattern(
                id="function-1-params-async",
                name="Async function with 1 parameters",
                description="Functions with 1 parameters, without type annotations",
                frequency=1,
            ),
            CodePattern(
                id="import-relative-2",
                name="Relative import with 2 specifiers",
                description="Import from relative path with 2 specifiers, without aliases",
                frequency=4,
            ),
        ],
        decisions=[
            ArchitecturalDecision(
                id="0001-use-postgres",
                title="Use PostgreSQL for persistence",
                decision="We store orders in PostgreSQL because we need transactions...",
                rationale="Extracted from documentation",
            ),
        ],
    )


class TestTokenize:
    def test_lowercases_and_drops_short_tokens(self):
        assert tokenize("Use a DB for API-calls") == ["use", "for", "api", "calls"]


class TestRelevance:
    def test_exact(self):
        assert relevance("relative import", "Relative import with 2 specifiers") == 1.0

    def test_typo_scores_below_exact(self):
        score = relevance("relativ imprt", "Relative import with 2 specifiers")
        assert 0.75 <= score < 1.0

    def test_unrelated(self):
        assert relevance("zebra", "Relative import with 2 specifiers") == 0.0

    def test_empty_query(self):
        assert relevance("", "anything at all") == 0.0


class TestSearch:
    def test_no_match_gives_empty_lists(self):
        result = search("zzz-no-match-qqq", _context())
        assert result.patterns == []
        assert result.decisions == []

    def test_absent_context(self):
        result = search("anything", None)
        assert result.patterns == []
        assert result.decisions == []

    def test_best_match_first(self):
        result = search("async function parameters", _context())
        assert result.patterns[0].id == "function-1-params-async"

    def test_typo_tolerant_decision(self):
        result = search("postgress persistance", _context())
        assert [d.id for d in result.decisions] == ["0001-use-postgres"]

    def test_zero_threshold_requires_exact(self):
        result = search("relativ import", _context(), threshold=0.0)
        assert result.patterns == []
        result = search("relative import", _context(), threshold=0.0)
        assert [p.id for p in result.patterns] == ["import-relative-2"]

    def test_does_not_mutate_context(self):
        context = _context()
        before = context.model_dump()
        search("function", context)
        assert context.model_dump() == before
