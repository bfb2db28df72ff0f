"""Prompt compilation: template selection, placeholder resolution, version records."""

import logging
import re
import time
import uuid
from datetime import datetime, timezone

from models import (
    ArchitecturalDecision,
    BugfixTask,
    CodePattern,
    CommonPitfall,
    CompressedContext,
    FeatureTask,
    PromptTemplate,
    PromptVersion,
    RefactorTask,
    SearchResult,
    Standards,
    TaskRecord,
    Ticket,
    TicketTestPlan,
    VersionMetadata,
)
from retrieval import DEFAULT_THRESHOLD, search
from store import Store
from templates import TemplateRegistry

logger = logging.getLogger(__name__)

NOT_SPECIFIED = "Not specified"

PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")
_DOUBLE_OPEN = re.compile(r"\{(?=\{)")
_DOUBLE_CLOSE = re.compile(r"\}(?=\})")

MAX_PATTERNS = 5
MAX_RELEVANT_FILES = 10

CODING_STANDARD_FILES = ["development-best-practices.md", "code-style-guide.md"]
CODING_STANDARD_FALLBACK = "coding-standards.md"
TESTING_STANDARD_FILE = "testing-standards.md"
TECH_STACK_FILE = "tech-stack.md"

NO_CODING_STANDARDS = "No coding standards found. Add .groundwork/standards/coding-standards.md to create."
NO_TESTING_STANDARDS = "No testing standards found. Add .groundwork/standards/testing-standards.md to create."
NO_TECH_STACK = "No tech stack documented. Add .groundwork/standards/tech-stack.md to create."


# --------------- Standards ---------------

async def load_standards(store: Store) -> Standards:
    """Read the three standards blobs; missing files give fixed messages."""
    coding_parts = []
    for name in CODING_STANDARD_FILES:
        path = store.standards_dir / name
        if await store.exists(path):
            coding_parts.append(await store.read_text(path))
    coding = "\n\n".join(coding_parts)

    if not coding:
        fallback = store.standards_dir / CODING_STANDARD_FALLBACK
        if await store.exists(fallback):
            coding = await store.read_text(fallback)

    testing_path = store.standards_dir / TESTING_STANDARD_FILE
    testing = await store.read_text(testing_path) if await store.exists(testing_path) else ""

    stack_path = store.standards_dir / TECH_STACK_FILE
    techstack = await store.read_text(stack_path) if await store.exists(stack_path) else ""

    return Standards(
        coding=coding or NO_CODING_STANDARDS,
        testing=testing or NO_TESTING_STANDARDS,
        techstack=techstack or NO_TECH_STACK,
    )


# --------------- Task Records ---------------

def build_task(category: str, ticket: Ticket) -> TaskRecord:
    """Project a ticket onto the record for the selected template category."""
    if category == "bugfix":
        return BugfixTask(
            bug_description=ticket.outcome or ticket.title,
            test_plan=ticket.test_plan,
            expected_behavior="; ".join(ticket.acceptance_criteria) or None,
            actual_behavior=ticket.actual_behavior,
            reproduction_steps=ticket.reproduction_steps,
        )
    if category == "refactor":
        return RefactorTask(
            refactor_target=ticket.title,
            refactor_reason=ticket.outcome,
            success_criteria=ticket.acceptance_criteria,
        )
    return FeatureTask(
        feature_name=ticket.title,
        expected_outcome=ticket.outcome,
        acceptance_criteria=ticket.acceptance_criteria,
        test_plan=ticket.test_plan,
        api_changes=ticket.apidiff,
        ui_components=ticket.ui_components,
    )


# --------------- Formatting ---------------

def _bullets(items: list[str] | None) -> str:
    return "\n".join(f"- {item}" for item in items or [])


def format_patterns(patterns: list[CodePattern]) -> str:
    return "\n\n".join(
        f"### {p.name}\n"
        f"- Used {p.frequency}x across {len(set(p.files))} files\n"
        f"- {p.description}\n"
        f"- Example: `{p.example}`"
        for p in patterns[:MAX_PATTERNS]
    )


def format_decisions(decisions: list[ArchitecturalDecision]) -> str:
    return "\n\n".join(
        f"### {d.title}\n- **Decision**: {d.decision}\n- **Rationale**: {d.rationale}"
        for d in decisions
    )


def format_pitfalls(pitfalls: list[CommonPitfall]) -> str:
    return "\n\n".join(
        f"### {p.pattern}\n- **Problem**: {p.description}\n- **Solution**: {p.solution}"
        for p in pitfalls
    )


def format_test_plan(plan: TicketTestPlan) -> str:
    lines = [f"- **Unit**: {t}" for t in plan.unit]
    lines += [f"- **E2E**: {t}" for t in plan.e2e]
    return "\n".join(lines)


def relevant_files(patterns: list[CodePattern]) -> str:
    files = list(dict.fromkeys(f for p in patterns for f in p.files))
    return _bullets(files[:MAX_RELEVANT_FILES])


# --------------- Context Injection ---------------

INJECTION_TOP_PATTERNS = 10
NONE_FOUND = "None found."

CONTEXT_RULES = """\
1. **Consistency**: Follow the established patterns shown above
2. **Error Handling**: Always include proper error handling (common AI oversight)
3. **Type Safety**: Use type hints consistently throughout
4. **Testing**: Include test cases for all new functionality
5. **Documentation**: Follow existing documentation patterns"""


def injection_selection(context: CompressedContext) -> SearchResult:
    """Top patterns and every decision, for injection without a task query."""
    return SearchResult(patterns=context.patterns[:INJECTION_TOP_PATTERNS], decisions=context.decisions)


def render_injection(
    context: CompressedContext,
    relevant: SearchResult,
    task: str | None = None,
    generated_at: datetime | None = None,
) -> str:
    """Standalone markdown briefing to hand a coding assistant alongside a task."""
    generated_at = generated_at or datetime.now(timezone.utc)
    patterns = "\n\n".join(
        f"### {p.name}\n"
        f"- **Usage**: {p.frequency} times across {len(set(p.files))} files\n"
        f"- **Description**: {p.description}\n"
        f"- **Example**: `{p.example}`"
        for p in relevant.patterns
    )
    decisions = "\n\n".join(
        f"### {d.title}\n"
        f"- **Decision**: {d.decision}\n"
        f"- **Rationale**: {d.rationale}\n"
        f"- **Impact**: {', '.join(d.consequences) or NONE_FOUND}"
        for d in relevant.decisions
    )

    header = ["# AI Context Injection", f"*Generated: {generated_at.isoformat()}*"]
    if task:
        header.append(f"*Task: {task}*")

    sections = [
        "\n".join(header),
        f"## Codebase Summary\n{context.summary}",
        f"## Key Patterns to Follow\n{patterns or NONE_FOUND}",
        f"## Architectural Constraints\n{decisions or NONE_FOUND}",
        f"## Common Pitfalls to Avoid\n{format_pitfalls(context.pitfalls) or NONE_FOUND}",
        f"## Context Rules\n{CONTEXT_RULES}",
        f"## Files to Reference\n{relevant_files(relevant.patterns) or NONE_FOUND}",
        "---\n*This context should be provided to your AI coding assistant "
        "along with your specific task requirements.*",
    ]
    return "\n\n".join(sections)


def task_values(task: TaskRecord) -> dict[str, str | None]:
    if isinstance(task, BugfixTask):
        steps = task.reproduction_steps
        return {
            "BUG_DESCRIPTION": task.bug_description,
            "EXPECTED_BEHAVIOR": task.expected_behavior,
            "ACTUAL_BEHAVIOR": task.actual_behavior,
            "REPRODUCTION_STEPS": "\n".join(f"{i}. {s}" for i, s in enumerate(steps, 1)) if steps else None,
            "TEST_PLAN": format_test_plan(task.test_plan),
        }
    if isinstance(task, RefactorTask):
        return {
            "REFACTOR_TARGET": task.refactor_target,
            "REFACTOR_REASON": task.refactor_reason,
            "SUCCESS_CRITERIA": ", ".join(task.success_criteria),
        }
    return {
        "FEATURE_NAME": task.feature_name,
        "EXPECTED_OUTCOME": task.expected_outcome,
        "ACCEPTANCE_CRITERIA": _bullets(task.acceptance_criteria),
        "API_DIFF": _bullets(task.api_changes) if task.api_changes else None,
        "UI_COMPONENTS": _bullets(task.ui_components) if task.ui_components else None,
        "TEST_PLAN": format_test_plan(task.test_plan),
    }


def placeholder_values(
    task: TaskRecord,
    context: CompressedContext,
    relevant: SearchResult,
    standards: Standards,
) -> dict[str, str | None]:
    values: dict[str, str | None] = {
        "CONTEXT_SUMMARY": context.summary,
        "CODE_PATTERNS": format_patterns(relevant.patterns),
        "ARCHITECTURAL_DECISIONS": format_decisions(relevant.decisions),
        "DEVELOPMENT_STANDARDS": standards.coding,
        "TESTING_STANDARDS": standards.testing,
        "TECH_STACK": standards.techstack,
        "RELEVANT_FILES": relevant_files(relevant.patterns),
        "PITFALLS": format_pitfalls(context.pitfalls),
    }
    values.update(task_values(task))
    return values


def fill_template(body: str, values: dict[str, str | None]) -> str:
    """Replace every ``{{NAME}}`` token; unknown or empty ones become the sentinel.

    Doubled braces left in the assembled text, whether from substituted
    values, template literals or a value meeting the text around it, are
    split apart so the output never carries a token that looks unresolved.
    """

    def _replace(match: re.Match) -> str:
        return values.get(match.group(1)) or NOT_SPECIFIED

    filled = PLACEHOLDER.sub(_replace, body)
    return _DOUBLE_CLOSE.sub("} ", _DOUBLE_OPEN.sub("{ ", filled))


def new_version_id(template_id: str) -> str:
    return f"{template_id}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


class PromptCompiler:
    """Turns a ticket plus the context snapshot into prompt text."""

    def __init__(self, store: Store, registry: TemplateRegistry, search_threshold: float = DEFAULT_THRESHOLD):
        self.store = store
        self.registry = registry
        self.search_threshold = search_threshold

    async def compile(self, ticket: Ticket, context: CompressedContext) -> PromptVersion:
        """Render the best template for ``ticket`` and persist it as a new version."""
        template = await self.registry.select(ticket)
        task = build_task(template.category, ticket)
        relevant = search(f"{ticket.title} {ticket.outcome}", context, self.search_threshold)
        standards = await load_standards(self.store)

        content = fill_template(template.template, placeholder_values(task, context, relevant, standards))
        version = await self._save_version(template, content, ticket)
        logger.info(f"Compiled prompt {version.id} for ticket {ticket.ticket_id} using {template.id}")
        return version

    async def _save_version(self, template: PromptTemplate, content: str, ticket: Ticket) -> PromptVersion:
        version = PromptVersion(
            id=new_version_id(template.id),
            template_id=template.id,
            content=content,
            metadata=VersionMetadata(
                created_at=datetime.now(timezone.utc),
                used_for=ticket.ticket_id,
                outcome="success",
            ),
        )
        await self.store.write_model(self.store.version_path(version.id), version)
        return version
