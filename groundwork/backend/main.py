"""FastAPI application exposing context building, prompt generation and feedback."""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

import pipeline
from config import settings
from errors import CorruptRecordError, MissingContextError, MissingTemplateError, UnknownVersionError
from models import Outcome, Ticket
from store import Store
from templates import TemplateRegistry

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def get_store() -> Store:
    """State directory handle for the current request."""
    return Store(settings.STATE_DIR)


# --------------- App Lifecycle ---------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    seeded = await pipeline.initialize_prompts(get_store())
    logger.info(f"Groundwork backend started (state dir {settings.STATE_DIR}, seeded {len(seeded)} templates)")
    yield
    logger.info("Groundwork backend shutting down")


app = FastAPI(
    title="Groundwork",
    description="Codebase context snapshots and prompt generation for coding agents",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --------------- Request Models ---------------

class BuildRequest(BaseModel):
    project_path: str = "."


class OutcomeRequest(BaseModel):
    outcome: Outcome
    feedback: str = ""


# --------------- Context Endpoints ---------------

@app.post("/api/context/build")
async def build_context(body: BuildRequest, store: Store = Depends(get_store)):
    """Rebuild the context snapshot for a project directory."""
    report = await pipeline.build_context_report(store, body.project_path)
    return {
        "context": report.context.model_dump(mode="json"),
        "failed_files": report.failed_files,
    }


@app.get("/api/context")
async def get_context(store: Store = Depends(get_store)):
    """Return the last built snapshot."""
    try:
        context = await pipeline.get_compressed_context(store)
    except CorruptRecordError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if context is None:
        raise HTTPException(status_code=404, detail="No context built yet")
    return context


@app.get("/api/context/search")
async def search_context(q: str = Query(...), store: Store = Depends(get_store)):
    """Fuzzy search over stored patterns and decisions."""
    return await pipeline.search_similar_context(store, q, settings.SEARCH_THRESHOLD)


@app.get("/api/context/inject")
async def inject_context(task: str | None = None, store: Store = Depends(get_store)):
    """Markdown context briefing, narrowed to ``task`` when given."""
    try:
        content = await pipeline.inject_context(store, task, settings.SEARCH_THRESHOLD)
    except MissingContextError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"task": task, "content": content}


# --------------- Prompt Endpoints ---------------

@app.get("/api/prompts/templates")
async def list_templates(store: Store = Depends(get_store)):
    return await TemplateRegistry(store).list_templates()


@app.post("/api/prompts/init")
async def init_prompts(store: Store = Depends(get_store)):
    """Seed default templates without touching existing ones."""
    seeded = await pipeline.initialize_prompts(store)
    return {"seeded": seeded}


@app.post("/api/prompts/generate")
async def generate_prompt(ticket: Ticket, store: Store = Depends(get_store)):
    """Compile a prompt for a backlog ticket and record the version."""
    try:
        version = await pipeline.generate_prompt_version(store, ticket, settings.SEARCH_THRESHOLD)
    except MissingContextError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except MissingTemplateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {
        "version_id": version.id,
        "template_id": version.template_id,
        "prompt": version.content,
    }


@app.post("/api/prompts/versions/{version_id}/outcome")
async def record_outcome(version_id: str, body: OutcomeRequest, store: Store = Depends(get_store)):
    """Report how a generated prompt performed."""
    try:
        return await pipeline.record_prompt_outcome(store, version_id, body.outcome, body.feedback)
    except UnknownVersionError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.get("/api/prompts/performance")
async def prompt_performance(store: Store = Depends(get_store)):
    return await pipeline.analyze_prompt_performance(store)


@app.get("/api/prompts/underperforming")
async def underperforming_prompts(store: Store = Depends(get_store)):
    """Templates below the success threshold with enough usage to judge."""
    return await pipeline.flag_underperforming_prompts(
        store,
        threshold=settings.UNDERPERFORMING_THRESHOLD,
        min_uses=settings.UNDERPERFORMING_MIN_USES,
    )


# --------------- Health ---------------

@app.get("/api/health")
async def health():
    return {"status": "ok"}
