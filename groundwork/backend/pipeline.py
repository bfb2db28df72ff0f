"""Build and compile entry points shared by the API and the CLI.

Each function takes the ``Store`` it operates on and re-reads state from disk;
nothing is cached between calls.
"""

from pathlib import Path

from compiler import PromptCompiler, injection_selection, render_injection
from context import BuildReport, ContextStore
from errors import MissingContextError
from feedback import FeedbackLoop
from models import CompressedContext, Outcome, PromptVersion, SearchResult, TemplatePerformance, Ticket
from retrieval import DEFAULT_THRESHOLD, search
from store import Store
from templates import TemplateRegistry


# --------------- Context ---------------

async def build_context_report(store: Store, project_root: str | Path) -> BuildReport:
    """Rebuild the snapshot and return it with per-file parse outcomes."""
    return await ContextStore(store).build_report(project_root)


async def build_context(store: Store, project_root: str | Path) -> CompressedContext:
    return await ContextStore(store).build(project_root)


async def get_compressed_context(store: Store) -> CompressedContext | None:
    return await ContextStore(store).get()


async def search_similar_context(store: Store, query: str, threshold: float = DEFAULT_THRESHOLD) -> SearchResult:
    """Fuzzy-rank stored patterns and decisions; empty when nothing was built."""
    context = await ContextStore(store).get()
    return search(query, context, threshold)


async def inject_context(store: Store, task: str | None = None, threshold: float = DEFAULT_THRESHOLD) -> str:
    """Render the context briefing, narrowed to ``task`` when one is given.

    Raises MissingContextError when no snapshot has been built yet.
    """
    context = await ContextStore(store).get()
    if context is None:
        raise MissingContextError()
    relevant = search(task, context, threshold) if task else injection_selection(context)
    return render_injection(context, relevant, task)


# --------------- Prompts ---------------

async def initialize_prompts(store: Store) -> list[str]:
    return await TemplateRegistry(store).initialize()


async def generate_prompt_version(
    store: Store, ticket: Ticket, threshold: float = DEFAULT_THRESHOLD,
) -> PromptVersion:
    """Compile a prompt for ``ticket`` and persist it as a new version.

    Raises MissingContextError when no snapshot has been built yet.
    """
    context = await ContextStore(store).get()
    if context is None:
        raise MissingContextError()
    compiler = PromptCompiler(store, TemplateRegistry(store), search_threshold=threshold)
    return await compiler.compile(ticket, context)


async def generate_prompt(store: Store, ticket: Ticket) -> str:
    version = await generate_prompt_version(store, ticket)
    return version.content


# --------------- Feedback ---------------

async def record_prompt_outcome(
    store: Store, version_id: str, outcome: Outcome, feedback: str = "",
) -> TemplatePerformance:
    return await FeedbackLoop(store).record_outcome(version_id, outcome, feedback)


async def analyze_prompt_performance(store: Store) -> list[TemplatePerformance]:
    return await FeedbackLoop(store).analyze()


async def flag_underperforming_prompts(
    store: Store, threshold: float | None = None, min_uses: int | None = None,
) -> list[TemplatePerformance]:
    loop = FeedbackLoop(store)
    kwargs = {}
    if threshold is not None:
        kwargs["threshold"] = threshold
    if min_uses is not None:
        kwargs["min_uses"] = min_uses
    return await loop.flag_underperforming(**kwargs)
