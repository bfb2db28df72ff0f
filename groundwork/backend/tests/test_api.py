"""Tests for the HTTP API endpoints."""


class TestContextApi:
    async def test_get_before_build(self, async_client):
        resp = await async_client.get("/api/context")
        assert resp.status_code == 404

    async def test_build_and_get(self, async_client, project):
        resp = await async_client.post("/api/context/build", json={"project_path": str(project)})
        assert resp.status_code == 200
        data = resp.json()
        assert data["failed_files"] == []
        ids = [p["id"] for p in data["context"]["patterns"]]
        assert "function-2-params-sync" in ids

        resp = await async_client.get("/api/context")
        assert resp.status_code == 200
        assert resp.json()["summary"] == data["context"]["summary"]

    async def test_search(self, async_client, built_context):
        resp = await async_client.get("/api/context/search", params={"q": "postgresql persistence"})
        assert resp.status_code == 200
        assert [d["title"] for d in resp.json()["decisions"]] == ["Use PostgreSQL for persistence"]

    async def test_search_no_match(self, async_client, built_context):
        resp = await async_client.get("/api/context/search", params={"q": "zzz-no-match-qqq"})
        assert resp.status_code == 200
        assert resp.json() == {"patterns": [], "decisions": []}

    async def test_search_requires_query(self, async_client):
        resp = await async_client.get("/api/context/search")
        assert resp.status_code == 422

    async def test_inject_without_context(self, async_client):
        resp = await async_client.get("/api/context/inject")
        assert resp.status_code == 409

    async def test_inject(self, async_client, built_context):
        resp = await async_client.get("/api/context/inject")
        assert resp.status_code == 200
        data = resp.json()
        assert data["task"] is None
        assert data["content"].startswith("# AI Context Injection")
        assert "### Use PostgreSQL for persistence" in data["content"]

    async def test_inject_for_task(self, async_client, built_context):
        resp = await async_client.get("/api/context/inject", params={"task": "postgresql persistence"})
        assert resp.status_code == 200
        assert "*Task: postgresql persistence*" in resp.json()["content"]


class TestPromptApi:
    async def test_init_and_list(self, async_client):
        resp = await async_client.post("/api/prompts/init")
        assert resp.json()["seeded"] == ["feature-implementation", "bug-fix", "refactor"]
        resp = await async_client.get("/api/prompts/templates")
        assert sorted(t["id"] for t in resp.json()) == ["bug-fix", "feature-implementation", "refactor"]

    async def test_generate_without_context(self, async_client):
        await async_client.post("/api/prompts/init")
        resp = await async_client.post("/api/prompts/generate", json={"id": "T-1", "title": "Add search"})
        assert resp.status_code == 409
        assert "groundwork build" in resp.json()["detail"]

    async def test_generate(self, async_client, built_context):
        resp = await async_client.post("/api/prompts/generate", json={
            "id": "T-2",
            "title": "Fix login bug",
            "outcome": "Login works",
            "actual_behavior": "Login returns 500",
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["template_id"] == "bug-fix"
        assert data["prompt"].startswith("# Bug Fix Task")

    async def test_generate_invalid_ticket(self, async_client, built_context):
        resp = await async_client.post("/api/prompts/generate", json={"id": "T-3"})
        assert resp.status_code == 422

    async def test_outcome_flow(self, async_client, built_context):
        resp = await async_client.post("/api/prompts/generate", json={"id": "T-1", "title": "Add search"})
        version_id = resp.json()["version_id"]

        resp = await async_client.post(
            f"/api/prompts/versions/{version_id}/outcome",
            json={"outcome": "failure", "feedback": "ignored pagination"},
        )
        assert resp.status_code == 200
        assert resp.json()["failure_count"] == 1

        resp = await async_client.get("/api/prompts/performance")
        [perf] = resp.json()
        assert perf["template_id"] == "feature-implementation"
        assert perf["common_issues"] == ["ignored pagination"]

    async def test_outcome_unknown_version(self, async_client, built_context):
        resp = await async_client.post(
            "/api/prompts/versions/nope/outcome", json={"outcome": "success"},
        )
        assert resp.status_code == 404

    async def test_outcome_invalid_value(self, async_client, built_context):
        resp = await async_client.post(
            "/api/prompts/versions/nope/outcome", json={"outcome": "great"},
        )
        assert resp.status_code == 422

    async def test_underperforming_empty(self, async_client):
        resp = await async_client.get("/api/prompts/underperforming")
        assert resp.status_code == 200
        assert resp.json() == []


class TestHealth:
    async def test_health(self, async_client):
        resp = await async_client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
