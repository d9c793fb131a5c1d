from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Generator

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from ideavault import services
from ideavault.config import Settings, configure_logging, get_settings
from ideavault.db import Database
from ideavault.errors import INTERNAL_ERROR, ApiError
from ideavault.schemas import (
    BoardOut,
    Envelope,
    ErrorOut,
    FeatureOut,
    IdeaDetail,
    IdeaOut,
    IdeaRecord,
    ImprovementOut,
    KanbanTicketOut,
    ScoreOut,
    TechStackItemOut,
    UserFlowOut,
)

log = logging.getLogger(__name__)

NOT_FOUND = {404: {"model": ErrorOut, "description": "Idea (or ticket) not found"}}
INVALID = {400: {"model": ErrorOut, "description": "Validation failed"}}

router = APIRouter(prefix="/api")


# ---------------------------------------------------------------------------
# Dependencies & Helpers
# ---------------------------------------------------------------------------


def db_session(request: Request) -> Generator[Session, None, None]:
    database: Database = request.app.state.database
    yield from database.session_generator()


def _ok(data) -> dict:
    return {"success": True, "data": data}


# ---------------------------------------------------------------------------
# Routes: Ideas
# ---------------------------------------------------------------------------


@router.post("/ideas", response_model=Envelope[IdeaRecord], responses=INVALID,
             tags=["Ideas"], summary="Create an idea from its original and enhanced text")
async def create_idea(request: Request, session: Session = Depends(db_session)):
    return _ok(services.create_idea(session, await request.body()))


@router.get("/ideas", response_model=Envelope[list[IdeaOut]],
            tags=["Ideas"], summary="List ideas, newest first (no child collections)")
async def list_ideas(session: Session = Depends(db_session)):
    return _ok(services.list_ideas(session))


@router.get("/ideas/{idea_id}", response_model=Envelope[IdeaDetail], responses=NOT_FOUND,
            tags=["Ideas"], summary="Get an idea with scores, improvements, features, tech stack, tickets and user flow")
async def get_idea(idea_id: str, session: Session = Depends(db_session)):
    return _ok(services.get_idea(session, idea_id))


@router.get("/ideas/{idea_id}/board", response_model=Envelope[BoardOut], responses=NOT_FOUND,
            tags=["Ideas"], summary="Features by priority, tech stack by category, tickets by status")
async def get_board(idea_id: str, session: Session = Depends(db_session)):
    return _ok(services.board(session, idea_id))


# ---------------------------------------------------------------------------
# Routes: Pipeline stages (batch append)
# ---------------------------------------------------------------------------


@router.post("/ideas/{idea_id}/scores", response_model=Envelope[list[ScoreOut]],
             responses={**NOT_FOUND, **INVALID}, tags=["Pipeline"], summary="Add validation scores (1-10)")
async def add_scores(idea_id: str, request: Request, session: Session = Depends(db_session)):
    return _ok(services.append_children(session, idea_id, "scores", await request.body()))


@router.post("/ideas/{idea_id}/improvements", response_model=Envelope[list[ImprovementOut]],
             responses={**NOT_FOUND, **INVALID}, tags=["Pipeline"], summary="Add strategic improvements")
async def add_improvements(idea_id: str, request: Request, session: Session = Depends(db_session)):
    return _ok(services.append_children(session, idea_id, "improvements", await request.body()))


@router.post("/ideas/{idea_id}/features", response_model=Envelope[list[FeatureOut]],
             responses={**NOT_FOUND, **INVALID}, tags=["Pipeline"], summary="Add prioritised core features")
async def add_features(idea_id: str, request: Request, session: Session = Depends(db_session)):
    return _ok(services.append_children(session, idea_id, "features", await request.body()))


@router.post("/ideas/{idea_id}/techstack", response_model=Envelope[list[TechStackItemOut]],
             responses={**NOT_FOUND, **INVALID}, tags=["Pipeline"], summary="Add technology stack recommendations")
async def add_tech_stack(idea_id: str, request: Request, session: Session = Depends(db_session)):
    return _ok(services.append_children(session, idea_id, "techstack", await request.body()))


@router.post("/ideas/{idea_id}/userflow", response_model=Envelope[UserFlowOut],
             responses={**NOT_FOUND, **INVALID}, tags=["Pipeline"], summary="Replace the user flow diagram")
async def replace_user_flow(idea_id: str, request: Request, session: Session = Depends(db_session)):
    return _ok(services.replace_user_flow(session, idea_id, await request.body()))


# ---------------------------------------------------------------------------
# Routes: Kanban
# ---------------------------------------------------------------------------


@router.post("/ideas/{idea_id}/kanban", response_model=Envelope[list[KanbanTicketOut]],
             responses={**NOT_FOUND, **INVALID}, tags=["Kanban"], summary="Add kanban tickets (status defaults to backlog)")
async def add_kanban_tickets(idea_id: str, request: Request, session: Session = Depends(db_session)):
    return _ok(services.append_children(session, idea_id, "kanban", await request.body()))


@router.patch("/ideas/{idea_id}/kanban/{ticket_id}", response_model=Envelope[KanbanTicketOut],
              responses={**NOT_FOUND, **INVALID}, tags=["Kanban"], summary="Move a ticket to another status")
async def update_ticket_status(idea_id: str, ticket_id: str, request: Request,
                               session: Session = Depends(db_session)):
    return _ok(services.update_ticket_status(session, idea_id, ticket_id, await request.body()))


# ---------------------------------------------------------------------------
# Routes: Health
# ---------------------------------------------------------------------------


@router.get("/health", tags=["Admin"], summary="Liveness check")
async def health():
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Error envelopes
# ---------------------------------------------------------------------------


async def _api_error(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    field_errors: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"])
        field_errors.setdefault(loc, []).append(err["msg"])
    details = {"formErrors": [], "fieldErrors": field_errors}
    return JSONResponse({"success": False, "error": "Validation failed", "details": details}, status_code=400)


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse({"success": False, "error": str(exc.detail)}, status_code=exc.status_code,
                        headers=getattr(exc, "headers", None))


async def _internal_error(request: Request, exc: Exception) -> JSONResponse:
    log.exception("%s %s failed", request.method, request.url.path)
    return JSONResponse(INTERNAL_ERROR, status_code=500)


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(database: Database | None = None, settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    owns_database = database is None
    if owns_database:
        database = Database(settings.database_url, echo=settings.sql_echo)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database.create_all()
        yield
        # An injected database stays open for its caller.
        if owns_database:
            database.dispose()

    app = FastAPI(
        title="IdeaVault",
        version="0.1.0",
        description=(
            "Track project ideas through a validation pipeline: original idea, "
            "enhanced idea, scores, improvements, features, tech stack, user flow "
            "and kanban tickets. Every response is a {success, data} envelope. "
            "No authentication required."
        ),
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Ideas", "description": "Create, list and inspect ideas."},
            {"name": "Pipeline", "description": "Append scores, improvements, features and tech stack; replace the user flow."},
            {"name": "Kanban", "description": "Create tickets and move them between statuses."},
            {"name": "Admin", "description": "Operational endpoints."},
        ],
    )
    app.state.database = database
    app.include_router(router)
    app.add_exception_handler(ApiError, _api_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(Exception, _internal_error)
    return app


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------


def main():
    import uvicorn
    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run("ideavault.app:create_app", factory=True, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
