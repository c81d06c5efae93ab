from pydantic import BaseModel, ConfigDict, Field


class NoteWrite(BaseModel):
    """Title and content as sent by the editor. Non-empty titles are the editor's job."""
    title: str = Field(..., description="Note title.")
    content: str | None = Field(None, description="Note body; may be null.")


class NoteCreate(NoteWrite):
    """Schema for creating a note."""


class NoteUpdate(NoteWrite):
    """Schema for overwriting a note's title and content."""


class NoteImport(NoteWrite):
    """Schema for importing a note that already exists in the external system."""
    pb_id: str = Field(..., description="Identifier of the note in the external system.")
    updated_at: str = Field(..., description="Last-modified timestamp from the external system, stored verbatim.")


class ExternalIdUpdate(BaseModel):
    pb_id: str = Field(..., description="Identifier of the note in the external system.")


class NoteCreated(BaseModel):
    id: int = Field(..., description="Database ID assigned to the new note.")


class NoteSummary(BaseModel):
    """Listing projection of a note (no content)."""
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Database ID of the note.")
    title: str
    updated_at: str
    pb_id: str | None = None


class NoteDetail(NoteSummary):
    """Full note as returned for the editor."""
    content: str | None = None
    created_at: str


class Greeting(BaseModel):
    message: str
