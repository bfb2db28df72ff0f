"""Tests for building, persisting and reloading the context snapshot."""

import json

import pytest

from context import ContextStore, compute_fingerprint, generate_summary
from conftest import write_files
from decisions import Manifest
from errors import CorruptRecordError
from models import ArchitecturalDecision, CodePattern


class TestSummary:
    def test_summary_text(self):
        patterns = [
            CodePattern(id="a", name="Sync function with 2 parameters", frequency=3),
            CodePattern(id="b", name="Async function with 1 parameters", frequency=1),
        ]
        decisions = [ArchitecturalDecision(id="d", title="Use PostgreSQL")]
        assert generate_summary(patterns, decisions) == (
            "This codebase primarily uses: Sync function with 2 parameters (used 3 times), "
            "Async function with 1 parameters (used 1 times). "
            "Key architectural decisions: Use PostgreSQL. "
            "Watch out for common pitfalls in AI-generated code."
        )

    def test_summary_caps_patterns(self):
        patterns = [CodePattern(id=str(i), name=f"p{i}", frequency=i) for i in range(8)]
        summary = generate_summary(patterns, [])
        assert "p7" in summary and "p3" in summary
        assert "p2 " not in summary


class TestFingerprint:
    def test_order_independent(self):
        a = Manifest(dependencies={"fastapi", "pydantic"}, dev_dependencies={"pytest"})
        b = Manifest(dependencies={"pydantic", "fastapi"}, dev_dependencies={"pytest"})
        assert compute_fingerprint(a) == compute_fingerprint(b)

    def test_dev_dependencies_matter(self):
        a = Manifest(dependencies={"fastapi"})
        b = Manifest(dependencies={"fastapi"}, dev_dependencies={"pytest"})
        assert compute_fingerprint(a) != compute_fingerprint(b)

    def test_unknown_without_manifest(self):
        assert compute_fingerprint(None) == "unknown"


class TestContextStore:
    async def test_get_before_build(self, store):
        assert await ContextStore(store).get() is None

    async def test_build_persists_snapshot(self, store, project):
        built = await ContextStore(store).build(project)
        loaded = await ContextStore(store).get()
        assert loaded == built
        assert store.compressed_path.exists()

    async def test_snapshot_contents(self, store, project):
        context = await ContextStore(store).build(project)
        ids = [p.id for p in context.patterns]
        assert ids[0] == "function-2-params-sync"
        assert [d.title for d in context.decisions] == [
            "Use PostgreSQL for persistence",
            "Use static type checking",
        ]
        assert [p.id for p in context.pitfalls] == ["over-abstraction", "missing-error-handling"]
        assert context.summary.startswith("This codebase primarily uses: Sync function with 2 parameters")
        assert context.fingerprint != "unknown"

    async def test_rebuild_is_stable(self, store, project):
        first = await ContextStore(store).build(project)
        second = await ContextStore(store).build(project)
        assert [(p.id, p.frequency) for p in first.patterns] == [(p.id, p.frequency) for p in second.patterns]
        assert first.fingerprint == second.fingerprint
        assert first.summary == second.summary

    async def test_rebuild_replaces_snapshot(self, store, project):
        await ContextStore(store).build(project)
        write_files(project, {"app/extra.py": "def more(a, b):\n    pass\n"})
        context = await ContextStore(store).build(project)
        by_id = {p.id: p for p in context.patterns}
        assert by_id["function-2-params-sync"].frequency == 4

    async def test_markdown_projections(self, store, project):
        await ContextStore(store).build(project)
        patterns_doc = store.patterns_doc_path.read_text()
        decisions_doc = store.decisions_doc_path.read_text()
        assert patterns_doc.startswith("# Code Patterns")
        assert "## Sync function with 2 parameters" in patterns_doc
        assert "**Frequency:** 3 occurrences" in patterns_doc
        assert "## Use PostgreSQL for persistence" in decisions_doc

    async def test_report_lists_failed_files(self, store, project):
        write_files(project, {"bad.py": "class (:\n"})
        report = await ContextStore(store).build_report(project)
        assert report.failed_files == ["bad.py"]

    async def test_corrupt_snapshot(self, store):
        store.context_dir.mkdir(parents=True)
        store.compressed_path.write_text("{broken")
        with pytest.raises(CorruptRecordError):
            await ContextStore(store).get()

    async def test_snapshot_is_plain_json(self, store, project):
        await ContextStore(store).build(project)
        data = json.loads(store.compressed_path.read_text())
        assert set(data) >= {"patterns", "decisions", "pitfalls", "summary", "last_updated", "fingerprint"}
