import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models.application import APPLICATION_STATUSES, DEFAULT_APPLICATION_STATUS, Application
from ..models.candidate import Candidate
from ..models.job import Job
from ..utils.error_handlers import (
    DuplicateApplicationError,
    NotFoundError,
    StorageError,
    ValidationError,
    get_error_message,
    is_foreign_key_violation,
    is_unique_violation,
)
from ..utils.validation import validate_choice
from .candidates import candidate_to_public

logger = logging.getLogger(__name__)


@dataclass
class ApplicationPayload:
    resume_url: str
    cover_letter: str | None = None
    additional_data: dict[str, Any] = field(default_factory=dict)
    answers: list[dict] = field(default_factory=list)
    status: str = DEFAULT_APPLICATION_STATUS
    submitted_at: datetime | None = None


def find_application(db: Session, *, candidate_id: int, job_id: int) -> Application | None:
    return (
        db.query(Application)
        .filter(Application.candidate_id == int(candidate_id), Application.job_id == int(job_id))
        .first()
    )


def record_application(db: Session, *, candidate: Candidate, job_id: int, payload: ApplicationPayload) -> Application:
    """
    Insert one application for (candidate, job) inside the caller's transaction.

    The lookup is only a fast path; the uq_applications_candidate_job constraint
    decides. Both outcomes surface as DuplicateApplicationError.
    """
    if find_application(db, candidate_id=candidate.id, job_id=job_id):
        raise DuplicateApplicationError(candidate_id=candidate.id, job_id=job_id)

    application = Application(
        candidate_id=candidate.id,
        job_id=int(job_id),
        status=validate_choice(payload.status, "Status", APPLICATION_STATUSES, default=DEFAULT_APPLICATION_STATUS),
        resume_url=payload.resume_url,
        cover_letter=payload.cover_letter,
        additional_data=dict(payload.additional_data or {}),
        answers=list(payload.answers or []),
        submitted_at=payload.submitted_at or datetime.now(timezone.utc),
    )
    db.add(application)
    try:
        db.flush()
    except IntegrityError as e:
        if is_unique_violation(e):
            logger.info("Unique constraint rejected application candidate_id=%s job_id=%s", candidate.id, job_id)
            raise DuplicateApplicationError(candidate_id=candidate.id, job_id=job_id) from e
        if is_foreign_key_violation(e):
            raise ValidationError("Invalid reference. The job or candidate does not exist.") from e
        raise StorageError() from e
    return application


def link_application(candidate: Candidate, application: Application) -> None:
    """Add the application id to the candidate's back-reference list, once."""
    ids = [int(x) for x in (candidate.application_ids or [])]
    if int(application.id) not in ids:
        ids.append(int(application.id))
    # Reassign so the JSON column is marked dirty.
    candidate.application_ids = ids


def unlink_application(candidate: Candidate, application_id: int) -> None:
    candidate.application_ids = [int(x) for x in (candidate.application_ids or []) if int(x) != int(application_id)]


def get_application(db: Session, application_id: int) -> Application:
    application = db.query(Application).filter(Application.id == int(application_id)).first()
    if not application:
        raise NotFoundError(get_error_message("application_not_found"))
    return application


def list_job_applications(db: Session, *, job_id: int, status: str | None = None) -> list[Application]:
    q = db.query(Application).filter(Application.job_id == int(job_id))
    if status:
        q = q.filter(Application.status == validate_choice(status, "Status", APPLICATION_STATUSES))
    return q.order_by(Application.submitted_at.asc(), Application.id.asc()).all()


def list_agency_applications(db: Session, *, agency_id: int, status: str | None = None) -> list[Application]:
    """Applications to every job the agency posted, oldest first."""
    q = db.query(Application).join(Job, Application.job_id == Job.id).filter(Job.agency_id == int(agency_id))
    if status:
        q = q.filter(Application.status == validate_choice(status, "Status", APPLICATION_STATUSES))
    return q.order_by(Application.submitted_at.asc(), Application.id.asc()).all()


def update_application_status(db: Session, *, application_id: int, status: str) -> Application:
    new_status = validate_choice(status, "Status", APPLICATION_STATUSES)
    application = get_application(db, application_id)
    application.status = new_status
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Application id=%s status -> %s", application.id, new_status)
    return application


def application_to_public(application: Application, *, include_candidate: bool = False) -> dict:
    payload = {
        "id": int(application.id),
        "candidate_id": int(application.candidate_id),
        "job_id": int(application.job_id),
        "status": application.status,
        "resume_url": application.resume_url,
        "cover_letter": application.cover_letter,
        "additional_data": dict(application.additional_data or {}),
        "answers": list(application.answers or []),
        "submitted_at": application.submitted_at.isoformat()
        if isinstance(application.submitted_at, datetime)
        else application.submitted_at,
    }
    if include_candidate and application.candidate is not None:
        payload["candidate"] = candidate_to_public(application.candidate)
    return payload
