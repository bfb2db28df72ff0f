"""Prompt template library: seeded defaults plus user overrides on disk."""

import logging

from errors import MissingTemplateError
from models import PromptTemplate, Ticket
from store import Store

logger = logging.getLogger(__name__)

FEATURE_TEMPLATE = """\
# Feature Implementation Task

## Context
{{CONTEXT_SUMMARY}}

## Development Standards
{{DEVELOPMENT_STANDARDS}}

## Tech Stack
{{TECH_STACK}}

## Testing Standards
{{TESTING_STANDARDS}}

## Patterns to Follow
{{CODE_PATTERNS}}

## Architectural Constraints
{{ARCHITECTURAL_DECISIONS}}

## Task Requirements
**Feature**: {{FEATURE_NAME}}
**Outcome**: {{EXPECTED_OUTCOME}}

**Acceptance Criteria**:
{{ACCEPTANCE_CRITERIA}}

**API Changes**:
{{API_DIFF}}

**UI Components**:
{{UI_COMPONENTS}}

## Test Requirements
{{TEST_PLAN}}

## Important Reminders
- Follow the development standards and tech stack specified above
- Use only the technologies listed in the tech stack
- Follow established code patterns shown above
- Include comprehensive error handling (common AI oversight)
- Add type hints for all new public functions
- Write tests that match the acceptance criteria
- Avoid over-abstraction - keep it concrete initially

## Files to Reference
{{RELEVANT_FILES}}

## Common Pitfalls to Avoid
{{PITFALLS}}

## AI-Specific Guidelines
- Don't introduce new dependencies without checking the tech stack first
- Follow the exact naming conventions specified in standards
- Implement error handling patterns consistently
- Write tests alongside implementation, not as an afterthought"""

BUGFIX_TEMPLATE = """\
# Bug Fix Task

## Context
{{CONTEXT_SUMMARY}}

## Current Patterns
{{CODE_PATTERNS}}

## Bug Report
**Issue**: {{BUG_DESCRIPTION}}
**Expected**: {{EXPECTED_BEHAVIOR}}
**Actual**: {{ACTUAL_BEHAVIOR}}
**Steps to Reproduce**: {{REPRODUCTION_STEPS}}

## Files Involved
{{RELEVANT_FILES}}

## Fix Requirements
- Maintain existing patterns and architecture
- Add tests to prevent regression
- Update documentation if necessary
- Consider edge cases that might have similar issues

## Test Strategy
{{TEST_PLAN}}

## Avoid These Common Mistakes
{{PITFALLS}}"""

REFACTOR_TEMPLATE = """\
# Refactoring Task

## Context
{{CONTEXT_SUMMARY}}

## Current Patterns
{{CODE_PATTERNS}}

## Refactoring Goal
**Target**: {{REFACTOR_TARGET}}
**Reason**: {{REFACTOR_REASON}}
**Success Criteria**: {{SUCCESS_CRITERIA}}

## Constraints
- Must maintain existing functionality (no behavior changes)
- Keep existing tests passing
- Follow established patterns
- Improve code quality metrics

## Architectural Decisions to Respect
{{ARCHITECTURAL_DECISIONS}}

## Files to Modify
{{RELEVANT_FILES}}

## Testing Strategy
- All existing tests must pass
- Add tests for new internal structure if needed
- Consider integration test coverage

## Common Refactoring Pitfalls
{{PITFALLS}}"""


def default_templates() -> list[PromptTemplate]:
    return [
        PromptTemplate(
            id="feature-implementation",
            name="Feature Implementation",
            category="feature",
            template=FEATURE_TEMPLATE,
            variables=[
                "CONTEXT_SUMMARY", "DEVELOPMENT_STANDARDS", "TECH_STACK", "TESTING_STANDARDS",
                "CODE_PATTERNS", "ARCHITECTURAL_DECISIONS", "FEATURE_NAME", "EXPECTED_OUTCOME",
                "ACCEPTANCE_CRITERIA", "API_DIFF", "UI_COMPONENTS", "TEST_PLAN",
                "RELEVANT_FILES", "PITFALLS",
            ],
        ),
        PromptTemplate(
            id="bug-fix",
            name="Bug Fix",
            category="bugfix",
            template=BUGFIX_TEMPLATE,
            variables=[
                "CONTEXT_SUMMARY", "CODE_PATTERNS", "BUG_DESCRIPTION", "EXPECTED_BEHAVIOR",
                "ACTUAL_BEHAVIOR", "REPRODUCTION_STEPS", "RELEVANT_FILES", "TEST_PLAN", "PITFALLS",
            ],
        ),
        PromptTemplate(
            id="refactor",
            name="Code Refactoring",
            category="refactor",
            template=REFACTOR_TEMPLATE,
            variables=[
                "CONTEXT_SUMMARY", "CODE_PATTERNS", "REFACTOR_TARGET", "REFACTOR_REASON",
                "SUCCESS_CRITERIA", "ARCHITECTURAL_DECISIONS", "RELEVANT_FILES", "PITFALLS",
            ],
        ),
    ]


def candidate_categories(ticket: Ticket) -> list[str]:
    """Categories whose wording rule matches, in priority order, ending with feature."""
    title = ticket.title.lower()
    outcome = ticket.outcome.lower()
    categories = []
    if "fix" in title or "bug" in title:
        categories.append("bugfix")
    if "refactor" in title or "improve" in outcome:
        categories.append("refactor")
    categories.append("feature")
    return categories


def select_category(ticket: Ticket) -> str:
    """Pick a template category from the ticket's wording."""
    return candidate_categories(ticket)[0]


class TemplateRegistry:
    """Owns template files and the prompt version directory."""

    def __init__(self, store: Store):
        self.store = store

    async def initialize(self) -> list[str]:
        """Create storage and seed defaults that are not already on disk.

        Existing template files are never rewritten. Returns the ids seeded.
        """
        await self.store.ensure_dir(self.store.templates_dir)
        await self.store.ensure_dir(self.store.versions_dir)

        seeded = []
        for template in default_templates():
            path = self.store.template_path(template.id)
            if await self.store.exists(path):
                continue
            await self.store.write_model(path, template)
            seeded.append(template.id)
        if seeded:
            logger.info(f"Seeded prompt templates: {', '.join(seeded)}")
        return seeded

    async def list_templates(self) -> list[PromptTemplate]:
        files = await self.store.list_files(self.store.templates_dir, ".json")
        return [await self.store.read_model(path, PromptTemplate) for path in files]

    async def get_template(self, template_id: str) -> PromptTemplate | None:
        path = self.store.template_path(template_id)
        if not await self.store.exists(path):
            return None
        return await self.store.read_model(path, PromptTemplate)

    async def select(self, ticket: Ticket) -> PromptTemplate:
        """First template of the first matching category, falling back to a feature template."""
        templates = await self.list_templates()
        for wanted in candidate_categories(ticket):
            match = next((t for t in templates if t.category == wanted), None)
            if match:
                return match
        raise MissingTemplateError()
