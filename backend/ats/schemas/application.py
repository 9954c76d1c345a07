from pydantic import BaseModel, Field


class ApplicationStatusUpdate(BaseModel):
    status: str = Field(min_length=1, max_length=32)


class NoteCreate(BaseModel):
    author: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1, max_length=5000)
    mentions: list[str] = Field(default_factory=list)


class ReactionCreate(BaseModel):
    author: str = Field(min_length=1, max_length=255)
    reaction: str = Field(min_length=1, max_length=32)
