"""
Agent Workflow Service

A FastAPI service for running multi-agent workflows:
- Built-in agent personas bound to registered actions
- Sequential steps wired through variable references
- Pre-built templates (research, code, analysis)
- LiteLLM and Agent Gateway (MCP tools) backed actions
- PostgreSQL storage for workflows and run history
"""

import logging
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.resources import Resource
import asyncpg

from .actions import create_action_registry
from .agents import AgentRegistry
from .api import router, set_dependencies
from .config import config
from .persistence import WorkflowRepository
from .service import WorkflowManager
from .tools import LLMClient, MCPClient

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# Global resources
db_pool: Optional[asyncpg.Pool] = None
repository: Optional[WorkflowRepository] = None
llm_client: Optional[LLMClient] = None
mcp_client: Optional[MCPClient] = None
workflow_manager: Optional[WorkflowManager] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global db_pool, repository, llm_client, mcp_client, workflow_manager

    # Setup OpenTelemetry
    resource = Resource.create({"service.name": "agent-workflows"})
    provider = TracerProvider(resource=resource)
    processor = BatchSpanProcessor(OTLPSpanExporter(endpoint=config.otel_endpoint))
    provider.add_span_processor(processor)
    trace.set_tracer_provider(provider)

    # Create database pool; templates still run without it
    try:
        db_pool = await asyncpg.create_pool(config.database_url, min_size=2, max_size=10)
        logger.info("Database connection established")

        repository = WorkflowRepository(db_pool)
        await repository.init_tables()
    except Exception as e:
        logger.warning(f"Could not connect to database: {e}")
        repository = None

    # Create clients
    llm_client = LLMClient(
        base_url=config.litellm_url,
        api_key=config.litellm_api_key,
        default_model=config.default_model,
    )
    mcp_client = MCPClient(base_url=config.agent_gateway_url)

    agents = AgentRegistry(create_action_registry(llm_client, mcp_client))
    workflow_manager = WorkflowManager(
        repository=repository,
        agents=agents,
        api_key=config.litellm_api_key or None,
        step_timeout=config.step_timeout_seconds,
        run_timeout=config.default_timeout_seconds,
        run_history_limit=config.run_history_limit,
    )
    set_dependencies(workflow_manager, agents)

    logger.info(f"Agent workflow service started with {len(agents.actions)} actions")
    yield

    # Cleanup
    await llm_client.close()
    await mcp_client.close()
    if db_pool:
        await db_pool.close()

    logger.info("Agent workflow service stopped")


app = FastAPI(
    title="Agent Workflows",
    description="Sequential multi-agent workflow orchestration",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Instrument with OpenTelemetry
FastAPIInstrumentor.instrument_app(app)

# Include API routes
app.include_router(router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "storage": "connected" if repository is not None else "unavailable",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.host, port=config.port)
