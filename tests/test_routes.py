"""Tests for the REST API routes."""

from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from agent_workflows.api import router, set_dependencies
from agent_workflows.models import StoredWorkflow
from agent_workflows.service import WorkflowManager

from conftest import make_definition

WORKFLOW_ID = "0b8f3c52-4a43-4f6e-9d3c-2f1f4f0e7a11"
HEADERS = {"X-User-Id": "user-1"}


def stored(steps):
    return StoredWorkflow(id=WORKFLOW_ID, owner_id="user-1", name="Digest", definition=make_definition(steps))


@pytest.fixture
def repository():
    repo = AsyncMock()
    repo.load_workflow.return_value = stored([
        {"agent_id": "writer", "action_name": "write_content", "input": {"topic": "{topic}"}},
    ])
    repo.list_workflows.return_value = []
    repo.save_run.return_value = "run-1"
    return repo


@pytest.fixture
def client(repository, agents):
    set_dependencies(WorkflowManager(repository, agents), agents)
    app = FastAPI()
    app.include_router(router)
    with TestClient(app) as test_client:
        yield test_client
    set_dependencies(None, None)


class TestCatalogRoutes:

    def test_agents(self, client):
        response = client.get("/api/v1/agents")

        assert response.status_code == 200
        assert len(response.json()["agents"]) == 5

    def test_actions(self, client):
        names = {a["name"] for a in client.get("/api/v1/actions").json()["actions"]}

        assert "web_search" in names
        assert len(names) == 7

    def test_templates(self, client):
        templates = client.get("/api/v1/templates").json()["templates"]

        assert {t["id"] for t in templates} == {
            "template-research-and-report",
            "template-code-and-test",
            "template-analyze-and-visualize",
        }
        assert all(t["is_template"] for t in templates)

    def test_not_ready(self, client):
        set_dependencies(None, None)

        assert client.get("/api/v1/agents").status_code == 503


class TestWorkflowRoutes:

    def test_requires_user(self, client):
        assert client.get("/api/v1/workflows").status_code == 401

    def test_list_with_templates(self, client):
        data = client.get("/api/v1/workflows", params={"templates": "true"}, headers=HEADERS).json()

        assert data["workflows"] == []
        assert len(data["templates"]) == 3

    def test_create(self, client, repository):
        repository.create_workflow.return_value = WORKFLOW_ID
        body = {
            "name": "Digest",
            "definition": make_definition([
                {"agent_id": "writer", "action_name": "write_content", "input": {"topic": "{topic}"}},
            ]).model_dump(mode="json"),
        }

        response = client.post("/api/v1/workflows", json=body, headers=HEADERS)

        assert response.status_code == 201
        assert response.json()["workflow"]["id"] == WORKFLOW_ID

    def test_create_without_steps(self, client):
        body = {"name": "Empty", "definition": {"agents": [], "steps": []}}

        assert client.post("/api/v1/workflows", json=body, headers=HEADERS).status_code == 400

    def test_get_other_owner(self, client):
        response = client.get(f"/api/v1/workflows/{WORKFLOW_ID}", headers={"X-User-Id": "user-2"})

        assert response.status_code == 403

    def test_get_missing(self, client, repository):
        repository.load_workflow.return_value = None

        assert client.get(f"/api/v1/workflows/{WORKFLOW_ID}", headers=HEADERS).status_code == 404

    def test_storage_unavailable(self, agents):
        set_dependencies(WorkflowManager(None, agents), agents)
        app = FastAPI()
        app.include_router(router)

        with TestClient(app) as client:
            response = client.get("/api/v1/workflows", headers=HEADERS)

        set_dependencies(None, None)
        assert response.status_code == 503


class TestRunRoutes:

    def test_run_template(self, client):
        response = client.post(
            "/api/v1/workflows/template-research-and-report/run",
            json={"input": {"topic": "rust"}},
            headers=HEADERS,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["status"] == "succeeded"
        assert data["run_id"] is None
        assert "report" in data["output"]

    def test_run_unknown_template(self, client):
        response = client.post("/api/v1/workflows/template-nope/run", json={}, headers=HEADERS)

        assert response.status_code == 404

    def test_run_stored(self, client):
        response = client.post(f"/api/v1/workflows/{WORKFLOW_ID}/run", json={"input": {"topic": "go"}}, headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["run_id"] == "run-1"

    def test_failed_run(self, client, repository):
        repository.load_workflow.return_value = stored([
            {"agent_id": "coder", "action_name": "execute_code", "input": {}},
        ])

        response = client.post(f"/api/v1/workflows/{WORKFLOW_ID}/run", json={}, headers=HEADERS)

        assert response.status_code == 422
        data = response.json()
        assert data["success"] is False
        assert data["status"] == "failed"
        assert "code" in data["step_results"][0]["error"]

    def test_partial_run(self, client, repository):
        repository.load_workflow.return_value = stored([
            {"agent_id": "writer", "action_name": "write_content", "input": {"topic": "x"}},
            {"agent_id": "coder", "action_name": "execute_code", "input": {}},
        ])

        response = client.post(f"/api/v1/workflows/{WORKFLOW_ID}/run", json={}, headers=HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "partial"
        assert data["warnings"][0].startswith("step2: ")

    def test_list_runs(self, client, repository):
        repository.list_runs.return_value = []

        response = client.get(f"/api/v1/workflows/{WORKFLOW_ID}/runs", params={"limit": 5}, headers=HEADERS)

        assert response.status_code == 200
        assert response.json() == {"runs": []}
        assert repository.list_runs.await_args.args == (WORKFLOW_ID, 5)

    def test_get_missing_run(self, client, repository):
        repository.get_run.return_value = None

        assert client.get("/api/v1/runs/run-404", headers=HEADERS).status_code == 404
