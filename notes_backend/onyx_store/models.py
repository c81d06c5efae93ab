from sqlalchemy import Column, Integer, Text, text
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import UserDefinedType

Base = declarative_base()


class Timestamp(UserDefinedType):
    """
    DATETIME column that round-trips the stored text untouched.

    SQLite keeps CURRENT_TIMESTAMP defaults as 'YYYY-MM-DD HH:MM:SS' while imported
    notes carry whatever string the external system supplied (e.g. ISO 8601 with 'Z').
    Parsing either into datetime would reject or rewrite the other, so values stay str.
    """

    cache_ok = True

    def get_col_spec(self, **kw) -> str:
        return "DATETIME"


class Note(Base):
    """SQLAlchemy model representing a note."""
    __tablename__ = "notes"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    title = Column(Text, nullable=False)
    content = Column(Text, nullable=True)
    created_at = Column(Timestamp(), server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(Timestamp(), server_default=text("CURRENT_TIMESTAMP"))
    pb_id = Column(Text, nullable=True)


NOTES_TABLE = Note.__tablename__
UPDATE_TRIGGER_NAME = "update_note_timestamp"

# Recursive triggers are off by default in SQLite, so the inner UPDATE does not re-fire this.
UPDATE_TRIGGER_DDL = f"""
CREATE TRIGGER IF NOT EXISTS {UPDATE_TRIGGER_NAME}
AFTER UPDATE ON {NOTES_TABLE}
BEGIN
    UPDATE {NOTES_TABLE} SET updated_at = CURRENT_TIMESTAMP WHERE id = old.id;
END;
"""
