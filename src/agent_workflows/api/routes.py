"""
REST API routes for agent workflows.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Query
from fastapi.responses import JSONResponse

from ..errors import (
    StorageUnavailableError,
    TemplateNotFoundError,
    WorkflowAccessDeniedError,
    WorkflowError,
    WorkflowNotFoundError,
)
from ..models.execution import ExecutionStatus, RunRequest
from ..models.workflow import WorkflowCreate
from ..templates import TEMPLATE_ID_PREFIX, get_template, list_templates as catalog_templates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["workflows"])


# These will be set by the main app
_workflow_manager = None
_agents = None


def set_dependencies(workflow_manager, agents):
    """Set dependencies from main app."""
    global _workflow_manager, _agents
    _workflow_manager = workflow_manager
    _agents = agents


def _manager():
    if not _workflow_manager:
        raise HTTPException(status_code=503, detail="Service not ready")
    return _workflow_manager


def _to_http_error(error: WorkflowError) -> HTTPException:
    if isinstance(error, (WorkflowNotFoundError, TemplateNotFoundError)):
        return HTTPException(status_code=404, detail=error.message)
    if isinstance(error, WorkflowAccessDeniedError):
        return HTTPException(status_code=403, detail="Access denied")
    if isinstance(error, StorageUnavailableError):
        return HTTPException(status_code=503, detail=error.message)
    return HTTPException(status_code=400, detail=error.message)


def _user_id(x_user_id: Optional[str]) -> str:
    # Authentication happens upstream; the gateway forwards the caller id.
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id


# Catalog

@router.get("/agents")
async def list_agents():
    """List built-in agent personas."""
    if not _agents:
        raise HTTPException(status_code=503, detail="Service not ready")
    return {"agents": _agents.list_personas()}


@router.get("/actions")
async def list_actions():
    """List registered actions and their input schemas."""
    if not _agents:
        raise HTTPException(status_code=503, detail="Service not ready")
    return {"actions": _agents.actions.list_actions()}


@router.get("/templates")
async def list_templates():
    """List available pre-built workflow templates."""
    return {
        "templates": [
            {
                "id": f"{TEMPLATE_ID_PREFIX}{t.name}",
                **t.model_dump(),
                "is_template": True,
                "definition": get_template(t.name).model_dump(mode="json"),
            }
            for t in catalog_templates()
        ]
    }


# Workflow Definitions

@router.get("/workflows")
async def list_workflows(
    templates: bool = Query(default=False),
    x_user_id: Optional[str] = Header(default=None),
):
    """List the caller's workflows, optionally with templates."""
    user_id = _user_id(x_user_id)
    try:
        workflows = await _manager().list_workflows(user_id)
    except WorkflowError as e:
        raise _to_http_error(e)

    response = {"workflows": [w.model_dump(mode="json") for w in workflows], "templates": []}
    if templates:
        response["templates"] = (await list_templates())["templates"]
    return response


@router.post("/workflows", status_code=201)
async def create_workflow(
    workflow: WorkflowCreate,
    x_user_id: Optional[str] = Header(default=None),
):
    """Store a new workflow definition."""
    user_id = _user_id(x_user_id)
    if not workflow.definition.agents or not workflow.definition.steps:
        raise HTTPException(
            status_code=400,
            detail="Invalid workflow definition: must include agents and steps",
        )

    try:
        stored = await _manager().create_workflow(user_id, workflow)
    except WorkflowError as e:
        raise _to_http_error(e)
    return {"workflow": stored.model_dump(mode="json")}


@router.get("/workflows/{workflow_id}")
async def get_workflow(workflow_id: str, x_user_id: Optional[str] = Header(default=None)):
    """Get a stored workflow by ID."""
    user_id = _user_id(x_user_id)
    try:
        workflow = await _manager().get_workflow(user_id, workflow_id)
    except WorkflowError as e:
        raise _to_http_error(e)
    return {"workflow": workflow.model_dump(mode="json")}


# Runs

@router.post("/workflows/{workflow_id}/run")
async def run_workflow(
    workflow_id: str,
    request: RunRequest,
    x_user_id: Optional[str] = Header(default=None),
):
    """
    Execute a workflow or a ``template-<name>`` template.

    Failed runs answer 422 with the full result; partial runs answer 200
    with warnings listing the failed steps.
    """
    user_id = _user_id(x_user_id)
    try:
        result = await _manager().run_workflow(
            user_id,
            workflow_id=workflow_id,
            input=request.input,
            session_id=request.session_id,
        )
    except WorkflowError as e:
        raise _to_http_error(e)

    body = {"success": result.status != ExecutionStatus.FAILED, **result.model_dump(mode="json")}
    if result.status == ExecutionStatus.FAILED:
        logger.warning(f"Workflow {workflow_id} failed: {result.error}")
        return JSONResponse(status_code=422, content=body)
    return body


@router.get("/workflows/{workflow_id}/runs")
async def list_runs(
    workflow_id: str,
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    x_user_id: Optional[str] = Header(default=None),
):
    """List runs of a stored workflow."""
    user_id = _user_id(x_user_id)
    try:
        runs = await _manager().list_runs(user_id, workflow_id, limit)
    except WorkflowError as e:
        raise _to_http_error(e)
    return {"runs": [run.model_dump(mode="json") for run in runs]}


@router.get("/runs/{run_id}")
async def get_run(run_id: str, x_user_id: Optional[str] = Header(default=None)):
    """Get a single archived run."""
    user_id = _user_id(x_user_id)
    try:
        run = await _manager().get_run(user_id, run_id)
    except WorkflowError as e:
        raise _to_http_error(e)
    return {"run": run.model_dump(mode="json")}
