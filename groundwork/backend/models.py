"""Pydantic models for persisted records, tickets and API payloads."""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import AliasChoices, BaseModel, Field

Outcome = Literal["success", "failure", "partial"]
TemplateCategory = Literal["feature", "bugfix", "refactor", "test", "docs"]


# --------------- Context Snapshot ---------------

class CodePattern(BaseModel):
    """A recurring structural shape, counted across one build."""

    id: str
    name: str
    description: str = ""
    example: str = ""
    frequency: int = Field(default=1, ge=0)
    files: list[str] = []
    last_seen: datetime | None = None


class ArchitecturalDecision(BaseModel):
    """A decision harvested from docs or inferred from the manifest."""

    id: str
    title: str
    decision: str = ""
    rationale: str = ""
    consequences: list[str] = []
    date: datetime | None = None
    files: list[str] = []
    origin: Literal["docs", "manifest"] = "docs"


class CommonPitfall(BaseModel):
    """A seeded pitfall entry. Not learned from outcomes."""

    id: str
    pattern: str
    description: str = ""
    solution: str = ""
    frequency: int = 0
    examples: list[str] = []


class CompressedContext(BaseModel):
    """Atomic snapshot of everything a build learned about a source tree."""

    patterns: list[CodePattern] = []
    decisions: list[ArchitecturalDecision] = []
    pitfalls: list[CommonPitfall] = []
    summary: str = ""
    last_updated: datetime | None = None
    fingerprint: str = "unknown"


class SearchResult(BaseModel):
    """Patterns and decisions ranked by relevance to a query."""

    patterns: list[CodePattern] = []
    decisions: list[ArchitecturalDecision] = []


# --------------- Prompt Templates ---------------

class PromptTemplate(BaseModel):
    """A parameterized prompt blueprint for one task category."""

    id: str
    name: str
    category: TemplateCategory
    template: str
    variables: list[str] = []
    success_rate: float = 0.0
    usage_count: int = 0
    last_used: str = ""
    ai_model: str = "any"


class VersionMetadata(BaseModel):
    created_at: datetime
    used_for: str = ""
    outcome: Outcome = "success"
    feedback: str = ""


class PromptVersion(BaseModel):
    """One resolved rendering of a template for a specific ticket."""

    id: str
    template_id: str
    version: str = "1.0.0"
    content: str
    metadata: VersionMetadata


class TemplatePerformance(BaseModel):
    """Aggregated outcome counts for one template."""

    template_id: str
    total_uses: int = Field(default=0, ge=0)
    success_count: int = Field(default=0, ge=0)
    failure_count: int = Field(default=0, ge=0)
    average_rating: float = Field(default=0.0, ge=0.0, le=1.0)
    common_issues: list[str] = []
    last_analyzed: datetime | None = None


# --------------- Tickets ---------------

class TicketTestPlan(BaseModel):
    unit: list[str] = []
    e2e: list[str] = []


class Ticket(BaseModel):
    """Work item handed over by the backlog generator. Unknown fields are ignored."""

    ticket_id: str = Field(validation_alias=AliasChoices("ticket_id", "id"))
    title: str
    outcome: str = ""
    acceptance_criteria: list[str] = []
    apidiff: list[str] | None = None
    ui_components: list[str] | None = None
    test_plan: TicketTestPlan = Field(default_factory=TicketTestPlan)
    actual_behavior: str | None = None
    reproduction_steps: list[str] | None = None


class FeatureTask(BaseModel):
    kind: Literal["feature"] = "feature"
    feature_name: str
    expected_outcome: str
    acceptance_criteria: list[str]
    test_plan: TicketTestPlan
    api_changes: list[str] | None = None
    ui_components: list[str] | None = None


class BugfixTask(BaseModel):
    kind: Literal["bugfix"] = "bugfix"
    bug_description: str
    test_plan: TicketTestPlan
    expected_behavior: str | None = None
    actual_behavior: str | None = None
    reproduction_steps: list[str] | None = None


class RefactorTask(BaseModel):
    kind: Literal["refactor"] = "refactor"
    refactor_target: str
    refactor_reason: str
    success_criteria: list[str]


TaskRecord = Annotated[FeatureTask | BugfixTask | RefactorTask, Field(discriminator="kind")]


class Standards(BaseModel):
    """Free-text development standards loaded from the state directory."""

    coding: str
    testing: str
    techstack: str
