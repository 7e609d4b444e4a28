"""
Repository for stored workflows and their runs.
"""

import logging
import json
import uuid
from typing import Optional, List, Dict, Any
from datetime import datetime, timedelta, timezone
import asyncpg

from ..models.execution import ExecutionResult, WorkflowRun
from ..models.workflow import StoredWorkflow, WorkflowCreate, WorkflowDefinition

logger = logging.getLogger(__name__)


def _load_json(value: Any) -> Any:
    if isinstance(value, str):
        return json.loads(value)
    return value


def _dump_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, default=str)


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


class WorkflowRepository:
    """
    Repository for workflow data persistence.

    Handles:
    - Stored workflow definitions (the workflow source)
    - Archived workflow runs built from execution results
    """

    def __init__(self, pool: asyncpg.Pool):
        """
        Initialize repository.

        Args:
            pool: Database connection pool
        """
        self.pool = pool

    async def init_tables(self):
        """Initialize database tables."""
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS workflows (
                    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
                    owner_id VARCHAR(255) NOT NULL,
                    name VARCHAR(255) NOT NULL,
                    description TEXT,
                    category VARCHAR(100) DEFAULT 'Custom',
                    definition JSONB NOT NULL,
                    use_count INTEGER DEFAULT 0,
                    created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
                )
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS workflow_runs (
                    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
                    workflow_id UUID REFERENCES workflows(id) ON DELETE CASCADE,
                    session_id VARCHAR(255),
                    input JSONB,
                    output JSONB,
                    status VARCHAR(50) NOT NULL,
                    error TEXT,
                    current_step INTEGER DEFAULT 0,
                    total_steps INTEGER DEFAULT 0,
                    step_results JSONB,
                    total_duration_ms DOUBLE PRECISION DEFAULT 0,
                    started_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
                    completed_at TIMESTAMPTZ
                )
            """)

            await conn.execute("CREATE INDEX IF NOT EXISTS idx_workflows_owner ON workflows(owner_id)")
            await conn.execute("CREATE INDEX IF NOT EXISTS idx_runs_workflow ON workflow_runs(workflow_id)")
            await conn.execute("CREATE INDEX IF NOT EXISTS idx_runs_started ON workflow_runs(started_at)")

            logger.info("Workflow tables initialized")

    # Workflows

    async def create_workflow(self, owner_id: str, workflow: WorkflowCreate) -> str:
        """Store a new workflow definition."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("""
                INSERT INTO workflows (owner_id, name, description, category, definition)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING id
            """,
                owner_id,
                workflow.name,
                workflow.description,
                workflow.category,
                json.dumps(workflow.definition.model_dump(mode="json")),
            )
            return str(row["id"])

    async def load_workflow(self, workflow_id: str) -> Optional[StoredWorkflow]:
        """Get a stored workflow by ID; the caller checks ownership."""
        if not _is_uuid(workflow_id):
            return None
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM workflows WHERE id = $1",
                workflow_id
            )
            if row:
                return self._row_to_workflow(row)
            return None

    async def list_workflows(self, owner_id: str) -> List[StoredWorkflow]:
        """List a user's workflows, most recently updated first."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                "SELECT * FROM workflows WHERE owner_id = $1 ORDER BY updated_at DESC",
                owner_id
            )
            return [self._row_to_workflow(row) for row in rows]

    async def increment_use_count(self, workflow_id: str):
        async with self.pool.acquire() as conn:
            await conn.execute(
                "UPDATE workflows SET use_count = use_count + 1 WHERE id = $1",
                workflow_id
            )

    def _row_to_workflow(self, row) -> StoredWorkflow:
        """Convert database row to StoredWorkflow."""
        return StoredWorkflow(
            id=str(row["id"]),
            owner_id=row["owner_id"],
            name=row["name"],
            description=row["description"],
            category=row["category"] or "Custom",
            definition=WorkflowDefinition(**_load_json(row["definition"])),
            use_count=row["use_count"] or 0,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # Runs

    async def save_run(
        self,
        workflow_id: str,
        result: ExecutionResult,
        session_id: Optional[str] = None,
        input: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Archive an execution result as a run record."""
        completed_at = datetime.now(timezone.utc)
        started_at = completed_at - timedelta(milliseconds=result.total_duration_ms)
        step_records = [step.to_record() for step in result.step_results]

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("""
                INSERT INTO workflow_runs
                (workflow_id, session_id, input, output, status, error, current_step,
                 total_steps, step_results, total_duration_ms, started_at, completed_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12)
                RETURNING id
            """,
                workflow_id,
                session_id,
                _dump_json(input),
                _dump_json(result.output),
                result.status,
                result.error,
                len(step_records),
                len(step_records),
                json.dumps(step_records, default=str),
                result.total_duration_ms,
                started_at,
                completed_at,
            )
            run_id = str(row["id"])

        logger.info(f"Saved run {run_id} for workflow {workflow_id}: {result.status}")
        return run_id

    async def list_runs(self, workflow_id: str, limit: int = 50) -> List[WorkflowRun]:
        """List a workflow's runs, newest first."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                "SELECT * FROM workflow_runs WHERE workflow_id = $1 ORDER BY started_at DESC LIMIT $2",
                workflow_id,
                limit,
            )
            return [self._row_to_run(row) for row in rows]

    async def get_run(self, run_id: str) -> Optional[WorkflowRun]:
        """Get a run by ID."""
        if not _is_uuid(run_id):
            return None
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM workflow_runs WHERE id = $1",
                run_id
            )
            if row:
                return self._row_to_run(row)
            return None

    def _row_to_run(self, row) -> WorkflowRun:
        """Convert database row to WorkflowRun."""
        return WorkflowRun(
            id=str(row["id"]),
            workflow_id=str(row["workflow_id"]),
            session_id=row["session_id"],
            input=_load_json(row["input"]),
            output=_load_json(row["output"]),
            status=row["status"],
            error=row["error"],
            current_step=row["current_step"] or 0,
            total_steps=row["total_steps"] or 0,
            step_results=_load_json(row["step_results"]) or [],
            total_duration_ms=row["total_duration_ms"] or 0.0,
            started_at=row["started_at"],
            completed_at=row["completed_at"],
        )
