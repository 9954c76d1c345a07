from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.application import ApplicationStatusUpdate, NoteCreate, ReactionCreate
from ..services.applications import application_to_public, get_application, update_application_status
from ..services.candidates import candidate_to_public, get_candidate
from ..services.notes import add_note, add_reaction, add_reply, list_notes, note_to_public

router = APIRouter(tags=["Applications"])


@router.get("/applications/{application_id:int}")
def application_details(application_id: int, db: Session = Depends(get_db)):
    application = get_application(db, application_id)
    return {"success": True, "application": application_to_public(application, include_candidate=True)}


@router.patch("/applications/{application_id:int}/status")
def change_application_status(
    application_id: int,
    payload: ApplicationStatusUpdate,
    db: Session = Depends(get_db),
):
    application = update_application_status(db, application_id=application_id, status=payload.status)
    return {"success": True, "application": application_to_public(application)}


@router.get("/applications/{application_id:int}/notes")
def application_notes(application_id: int, db: Session = Depends(get_db)):
    notes = list_notes(db, application_id=application_id)
    return {"success": True, "notes": [note_to_public(n) for n in notes]}


@router.post("/applications/{application_id:int}/notes", status_code=201)
def create_note(application_id: int, payload: NoteCreate, db: Session = Depends(get_db)):
    note = add_note(
        db,
        application_id=application_id,
        author=payload.author,
        content=payload.content,
        mentions=payload.mentions,
    )
    return {"success": True, "note": note_to_public(note)}


@router.post("/notes/{note_id:int}/replies", status_code=201)
def create_reply(note_id: int, payload: NoteCreate, db: Session = Depends(get_db)):
    reply = add_reply(db, parent_id=note_id, author=payload.author, content=payload.content, mentions=payload.mentions)
    return {"success": True, "note": note_to_public(reply, include_replies=False)}


@router.post("/notes/{note_id:int}/reactions")
def react_to_note(note_id: int, payload: ReactionCreate, db: Session = Depends(get_db)):
    note = add_reaction(db, note_id=note_id, author=payload.author, reaction=payload.reaction)
    return {"success": True, "note": note_to_public(note, include_replies=False)}


@router.get("/candidates/{candidate_id:int}")
def candidate_details(candidate_id: int, db: Session = Depends(get_db)):
    candidate = get_candidate(db, candidate_id)
    return {
        "success": True,
        "candidate": candidate_to_public(candidate),
        "applications": [application_to_public(a) for a in sorted(candidate.applications, key=lambda a: a.id)],
    }
