"""Shared fixtures for Groundwork backend tests."""

import os
import sys
import textwrap

import pytest
import pytest_asyncio

# Ensure backend is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))


@pytest.fixture(autouse=True)
def state_dir(tmp_path, monkeypatch):
    """Point STATE_DIR at a per-test temp directory."""
    from config import settings

    path = tmp_path / ".groundwork"
    monkeypatch.setattr(settings, "STATE_DIR", str(path))
    return path


@pytest.fixture
def store(state_dir):
    from store import Store

    return Store(state_dir)


@pytest_asyncio.fixture
async def async_client():
    """HTTPX async client wired to the FastAPI app without invoking lifespan."""
    import httpx
    from main import app

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def write_files(root, files: dict[str, str]) -> None:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content), encoding="utf-8")


@pytest.fixture
def project(tmp_path):
    """A small project: three 2-param sync functions, one 1-param async function."""
    root = tmp_path / "project"
    write_files(root, {
        "app/users.py": """
            def create_user(name, email):
                return {"name": name, "email": email}

            def rename_user(user, name):
                user["name"] = name
                return user
        """,
        "app/orders.py": """
            def place_order(user, items):
                return {"user": user, "items": items}

            async def fetch_order(order_id):
                return order_id
        """,
        "pyproject.toml": """
            [project]
            name = "shop"
            version = "0.1.0"
            dependencies = ["fastapi>=0.110", "pydantic"]

            [project.optional-dependencies]
            test = ["pytest", "mypy"]
        """,
        "docs/adr/0001-use-postgres.md": """
            # Use PostgreSQL for persistence

            We store orders in PostgreSQL because we need transactions.
        """,
    })
    return root


@pytest_asyncio.fixture
async def built_context(store, project):
    """Project with a persisted snapshot and seeded templates."""
    import pipeline

    await pipeline.initialize_prompts(store)
    return await pipeline.build_context(store, project)


@pytest.fixture
def feature_ticket():
    from models import Ticket

    return Ticket.model_validate({
        "id": "T-1",
        "title": "Add search",
        "outcome": "Users can search orders by user name",
        "acceptance_criteria": ["Search returns matching orders", "Empty query returns nothing"],
        "test_plan": {"unit": ["search matches partial names"], "e2e": ["search page shows results"]},
    })


@pytest.fixture
def bug_ticket():
    from models import Ticket

    return Ticket.model_validate({
        "id": "T-2",
        "title": "Fix login bug",
        "outcome": "Login succeeds with valid credentials",
        "acceptance_criteria": ["Valid users can log in"],
        "actual_behavior": "Login returns 500",
        "reproduction_steps": ["Open login page", "Submit valid credentials"],
    })
