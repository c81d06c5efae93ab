"""
Note storage operations.

Every function takes the session explicitly and issues one parameterized statement.
Database failures are rolled back and re-raised as StorageError with a readable message.
"""
import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy import delete, func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from onyx_store.errors import StorageError
from onyx_store.models import Note
from onyx_store.schemas import NoteDetail, NoteSummary

logger = logging.getLogger(__name__)


@contextmanager
def _storage_errors(db: Session, action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to %s", action)
        # The DBAPI error reads better than SQLAlchemy's wrapper (no SQL echo, no doc link).
        cause = getattr(exc, "orig", None) or exc
        raise StorageError(f"Failed to {action}: {cause}") from exc


def create_note(db: Session, title: str, content: Optional[str]) -> int:
    """Insert a note with store-default timestamps and no external id; return its id."""
    logger.info("Creating note title_len=%s content_len=%s", len(title or ""), len(content or ""))
    with _storage_errors(db, "create note"):
        note = Note(title=title, content=content)
        db.add(note)
        db.flush()
        note_id = note.id
        db.commit()
    return note_id


def import_note(db: Session, pb_id: str, title: str, content: Optional[str], updated_at: str) -> int:
    """
    Insert a note brought in from the external system and return its id.

    `updated_at` is stored exactly as given; `created_at` still takes the store default,
    so an imported note can have created_at later than updated_at.
    """
    logger.info("Importing note pb_id=%s title_len=%s", pb_id, len(title or ""))
    with _storage_errors(db, "import note"):
        note = Note(title=title, content=content, updated_at=updated_at, pb_id=pb_id)
        db.add(note)
        db.flush()
        note_id = note.id
        db.commit()
    return note_id


def list_summaries(db: Session) -> List[NoteSummary]:
    """All notes without content, most recently touched first (ties: newest id first)."""
    with _storage_errors(db, "list notes"):
        rows = (
            db.query(Note.id, Note.title, Note.updated_at, Note.pb_id)
            # Store defaults ("YYYY-MM-DD HH:MM:SS") and imported ISO values ("...THH:MM:SSZ")
            # do not sort as text; datetime() normalizes both. Unparseable values sort last.
            .order_by(func.datetime(Note.updated_at).desc(), Note.updated_at.desc(), Note.id.desc())
            .all()
        )
    logger.debug("Found %s notes", len(rows))
    return [NoteSummary.model_validate(row) for row in rows]


def get_detail(db: Session, note_id: int) -> Optional[NoteDetail]:
    """Full note for `note_id`, or None when no such note exists."""
    with _storage_errors(db, "load note"):
        note = db.get(Note, note_id)
    if note is None:
        return None
    return NoteDetail.model_validate(note)


def update_note(db: Session, note_id: int, title: str, content: Optional[str]) -> None:
    """Overwrite title and content. Unknown ids are ignored."""
    with _storage_errors(db, "update note"):
        db.execute(update(Note).where(Note.id == note_id).values(title=title, content=content))
        db.commit()


def update_external_id(db: Session, note_id: int, pb_id: str) -> None:
    """Set only the external id of a note. Unknown ids are ignored."""
    logger.info("Updating external id: id=%s pb_id=%s", note_id, pb_id)
    with _storage_errors(db, "update note external id"):
        db.execute(update(Note).where(Note.id == note_id).values(pb_id=pb_id))
        db.commit()


def delete_note(db: Session, note_id: int) -> None:
    with _storage_errors(db, "delete note"):
        db.execute(delete(Note).where(Note.id == note_id))
        db.commit()


def delete_by_external_id(db: Session, pb_id: str) -> None:
    """Delete every note carrying `pb_id`; duplicates are not prevented, so all go."""
    logger.info("Deleting notes by external id: %s", pb_id)
    with _storage_errors(db, "delete note by external id"):
        db.execute(delete(Note).where(Note.pb_id == pb_id))
        db.commit()
