import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from finance_assistant.api.routes import assistant, insights, recurring
from finance_assistant.core import settings
from finance_assistant.errors import InvalidCandidateState, PersistenceError
from finance_assistant.integration.backend import BackendClient
from finance_assistant.logger import get_logger, setup_logging
from finance_assistant.parsers.base import TransactionParser
from finance_assistant.services.events import TransactionEvents
from finance_assistant.services.recurring import RecurringService
from finance_assistant.services.workflow import CandidateWorkflow, WorkflowRegistry

logger = get_logger(__name__)


def build_parser(backend: BackendClient) -> TransactionParser:
    if settings.get_parser_backend() == "llm":
        if os.getenv("OPENAI_API_KEY"):
            from finance_assistant.parsers.llm import LLMTransactionParser

            parser = LLMTransactionParser()
            logger.info("LLM transaction parser enabled: model=%s", parser.model)
            return parser
        logger.warning("PARSER_BACKEND=llm but OPENAI_API_KEY not found. Using the backend parse endpoint.")
    return backend


def create_app() -> FastAPI:
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Initializing services...")
        settings.log_environment()

        backend = BackendClient()
        parser = build_parser(backend)
        events = TransactionEvents()
        workflows = WorkflowRegistry(
            lambda: CandidateWorkflow(parser=parser, persistence=backend, events=events)
        )

        app.state.backend = backend
        app.state.events = events
        app.state.workflows = workflows
        app.state.recurring = RecurringService(persistence=backend)

        logger.info("Services initialized (backend=%s).", backend.base_url)
        yield
        logger.info("Service shutting down.")
        workflows.close_all()
        await backend.aclose()

    app = FastAPI(title="Finance Assistant", lifespan=lifespan)

    @app.exception_handler(InvalidCandidateState)
    async def invalid_state_handler(request: Request, exc: InvalidCandidateState) -> JSONResponse:
        logger.warning("[API] Rejected %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(PersistenceError)
    async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
        status_code = 401 if exc.status_code == 401 else 502
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    app.include_router(assistant.router)
    app.include_router(insights.router)
    app.include_router(recurring.router)

    return app


app = create_app()
