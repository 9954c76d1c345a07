import logging

from sqlalchemy.orm import Session

from ..models.note import Note
from ..utils.error_handlers import NotFoundError, get_error_message
from ..utils.validation import validate_string_field
from .applications import get_application

logger = logging.getLogger(__name__)


def _save(db: Session, note: Note) -> Note:
    db.add(note)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(note)
    return note


def add_note(db: Session, *, application_id: int, author: str, content: str, mentions: list[str] | None = None) -> Note:
    application = get_application(db, application_id)
    note = Note(
        application_id=application.id,
        author=validate_string_field(author, "Author", max_length=255),
        content=validate_string_field(content, "Content", max_length=5000),
        mentions=[m.strip() for m in (mentions or []) if m and m.strip()],
    )
    note = _save(db, note)
    logger.info("Note id=%s added to application_id=%s", note.id, note.application_id)
    return note


def get_note(db: Session, note_id: int) -> Note:
    note = db.query(Note).filter(Note.id == int(note_id)).first()
    if not note:
        raise NotFoundError(get_error_message("note_not_found"))
    return note


def add_reply(db: Session, *, parent_id: int, author: str, content: str, mentions: list[str] | None = None) -> Note:
    parent = get_note(db, parent_id)
    # Threads are one level deep: replying to a reply attaches to its root note.
    root_id = parent.parent_id or parent.id
    reply = Note(
        application_id=parent.application_id,
        parent_id=root_id,
        author=validate_string_field(author, "Author", max_length=255),
        content=validate_string_field(content, "Content", max_length=5000),
        mentions=[m.strip() for m in (mentions or []) if m and m.strip()],
    )
    return _save(db, reply)


def add_reaction(db: Session, *, note_id: int, author: str, reaction: str) -> Note:
    """Record `author` under `reaction` on a note; repeating the same reaction is a no-op."""
    note = get_note(db, note_id)
    author = validate_string_field(author, "Author", max_length=255)
    reaction = validate_string_field(reaction, "Reaction", max_length=32)

    reactions = {k: list(v) for k, v in (note.reactions or {}).items()}
    authors = reactions.setdefault(reaction, [])
    if author in authors:
        return note
    authors.append(author)
    # Reassign so the JSON column is marked dirty.
    note.reactions = reactions
    note = _save(db, note)
    logger.info("Reaction %s added to note id=%s", reaction, note.id)
    return note


def list_notes(db: Session, *, application_id: int) -> list[Note]:
    """Top-level notes, oldest first; replies are reachable through `Note.replies`."""
    get_application(db, application_id)
    return (
        db.query(Note)
        .filter(Note.application_id == int(application_id), Note.parent_id.is_(None))
        .order_by(Note.id.asc())
        .all()
    )


def note_to_public(note: Note, *, include_replies: bool = True) -> dict:
    payload = {
        "id": int(note.id),
        "application_id": int(note.application_id),
        "parent_id": int(note.parent_id) if note.parent_id else None,
        "author": note.author,
        "content": note.content,
        "mentions": list(note.mentions or []),
        "reactions": {k: list(v) for k, v in (note.reactions or {}).items()},
        "created_at": note.created_at.isoformat() if note.created_at else None,
    }
    if include_replies:
        payload["replies"] = [note_to_public(r, include_replies=False) for r in (note.replies or [])]
    return payload
