import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from onyx_store import config, repository
from onyx_store.db import build_session_factory, get_db, initialize, resolve_storage_path
from onyx_store.errors import StorageError
from onyx_store.logging_config import setup_logging
from onyx_store.schemas import (
    ExternalIdUpdate,
    Greeting,
    NoteCreate,
    NoteCreated,
    NoteDetail,
    NoteImport,
    NoteSummary,
    NoteUpdate,
)

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "Health", "description": "Service health and readiness endpoints."},
    {"name": "Notes", "description": "CRUD operations for notes."},
    {"name": "Sync", "description": "Operations keyed by the external note id (pb_id)."},
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Open the notes database before serving any request.

    Unlike a networked database, the store is a local file we own: if it cannot be
    created or its table set up, no endpoint can work, so StartupError propagates
    and the server does not start.
    """
    setup_logging()
    db_path = resolve_storage_path()
    logger.info("Opening notes database at %s", db_path)
    engine = initialize(db_path)
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    try:
        yield
    finally:
        engine.dispose()


app = FastAPI(
    lifespan=lifespan,
    title="ONYX Notes API",
    description="Local notes store for the ONYX editor, persisted in a SQLite file in the app data directory.",
    version="1.0.0",
    openapi_tags=openapi_tags,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.allowed_origins(),
    allow_origin_regex=config.allowed_origin_regex(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StorageError)
async def _storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    """Surface database failures to the editor as a readable message; the caller may retry."""
    logger.warning("Storage error on %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": exc.message},
    )


@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return JSON for unexpected errors."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error"},
    )


# PUBLIC_INTERFACE
@app.get("/", tags=["Health"], summary="Health check", description="Returns a simple health payload.")
def health_check() -> Dict[str, str]:
    """Health check endpoint used by the editor on launch."""
    return {"message": "Healthy"}


# PUBLIC_INTERFACE
@app.get(
    "/health/db",
    tags=["Health"],
    summary="Database health check",
    description=(
        "Verifies the notes database by running a lightweight read-only query (SELECT 1). "
        "Returns status=up when the query succeeds, otherwise status=down with error details."
    ),
)
def health_check_db(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """Database readiness endpoint."""
    try:
        value = db.execute(text("SELECT 1")).scalar_one()
        return {"status": "up", "query": "SELECT 1", "result": int(value)}
    except Exception as exc:
        return {"status": "down", "error": str(exc)}


# PUBLIC_INTERFACE
@app.get(
    "/greet/{name}",
    response_model=Greeting,
    tags=["Health"],
    summary="Greeting",
    description="Echo the operator name in the ONYX welcome line.",
)
def greet(name: str) -> Greeting:
    return Greeting(message=f"Welcome to ONYX, Operator {name}!")


# PUBLIC_INTERFACE
@app.get(
    "/notes",
    response_model=List[NoteSummary],
    tags=["Notes"],
    summary="List notes",
    description="Return every note without its content, most recently updated first (ties: highest id first).",
)
def list_notes(db: Session = Depends(get_db)) -> List[NoteSummary]:
    """List note summaries."""
    return repository.list_summaries(db)


# PUBLIC_INTERFACE
@app.post(
    "/notes",
    response_model=NoteCreated,
    status_code=status.HTTP_201_CREATED,
    tags=["Notes"],
    summary="Create note",
    description="Create a new note with a title and content. Returns the assigned id.",
)
def create_note(payload: NoteCreate, db: Session = Depends(get_db)) -> NoteCreated:
    """Create a note."""
    return NoteCreated(id=repository.create_note(db, payload.title, payload.content))


# PUBLIC_INTERFACE
@app.post(
    "/notes/import",
    response_model=NoteCreated,
    status_code=status.HTTP_201_CREATED,
    tags=["Sync"],
    summary="Import note",
    description=(
        "Insert a note that already exists in the external system, keeping its pb_id "
        "and its updated_at exactly as supplied."
    ),
)
def import_note(payload: NoteImport, db: Session = Depends(get_db)) -> NoteCreated:
    """Import a note from the external system."""
    note_id = repository.import_note(db, payload.pb_id, payload.title, payload.content, payload.updated_at)
    return NoteCreated(id=note_id)


# PUBLIC_INTERFACE
@app.get(
    "/notes/{note_id}",
    response_model=Optional[NoteDetail],
    tags=["Notes"],
    summary="Get note",
    description="Fetch a single note with its content. Returns null when no note has this id.",
)
def get_note(note_id: int, db: Session = Depends(get_db)) -> Optional[NoteDetail]:
    """Get a note by id."""
    return repository.get_detail(db, note_id)


# PUBLIC_INTERFACE
@app.put(
    "/notes/{note_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Notes"],
    summary="Update note",
    description="Overwrite title and content. Succeeds without effect when no note has this id.",
)
def update_note(note_id: int, payload: NoteUpdate, db: Session = Depends(get_db)) -> Response:
    """Update a note by id."""
    repository.update_note(db, note_id, payload.title, payload.content)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# PUBLIC_INTERFACE
@app.put(
    "/notes/{note_id}/pb-id",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Sync"],
    summary="Set external id",
    description="Set only the pb_id of a note. Succeeds without effect when no note has this id.",
)
def update_note_pb_id(note_id: int, payload: ExternalIdUpdate, db: Session = Depends(get_db)) -> Response:
    """Record the external id for a note."""
    repository.update_external_id(db, note_id, payload.pb_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# PUBLIC_INTERFACE
@app.delete(
    "/notes/by-pb-id/{pb_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Sync"],
    summary="Delete notes by external id",
    description="Delete every note carrying this pb_id. Succeeds without effect when none match.",
)
def delete_note_by_pb_id(pb_id: str, db: Session = Depends(get_db)) -> Response:
    """Delete notes by external id."""
    repository.delete_by_external_id(db, pb_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# PUBLIC_INTERFACE
@app.delete(
    "/notes/{note_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Notes"],
    summary="Delete note",
    description="Delete a note by ID. Succeeds without effect when no note has this id.",
)
def delete_note(note_id: int, db: Session = Depends(get_db)) -> Response:
    """Delete a note by id."""
    repository.delete_note(db, note_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    host, port = config.bind_address()
    uvicorn.run(app, host=host, port=port, log_config=None)
