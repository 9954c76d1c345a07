"""
Application submission: candidate upsert, application insert and back-reference
update committed as one unit, followed by best-effort notification and analysis.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.application import Application
from ..models.job import Job
from ..utils.error_handlers import (
    AppError,
    DuplicateApplicationError,
    DuplicateKeyError,
    StorageError,
    ValidationError,
    is_unique_violation,
)
from ..utils.validation import validate_email, validate_string_field
from . import applications as ledger
from . import candidates as registry
from .emailer import application_received_email

logger = logging.getLogger(__name__)


@dataclass
class Submission:
    job_id: int
    email: str
    full_name: str
    phone_number: str
    resume_url: str
    linkedin_profile: str | None = None
    cover_letter: str | None = None
    additional_data: dict[str, Any] = field(default_factory=dict)
    answers: list[dict] = field(default_factory=list)
    submitted_at: datetime | None = None

    def normalized(self) -> "Submission":
        """Validate required fields and return a copy with the email normalized."""
        if self.job_id is None:
            raise ValidationError("Job is required")
        if not isinstance(self.additional_data or {}, dict):
            raise ValidationError("additional_data must be an object")
        return Submission(
            job_id=int(self.job_id),
            email=validate_email(self.email),
            full_name=validate_string_field(self.full_name, "Full name", max_length=255),
            phone_number=validate_string_field(self.phone_number, "Phone number", min_length=3, max_length=50),
            resume_url=validate_string_field(self.resume_url, "Resume", max_length=500),
            linkedin_profile=validate_string_field(self.linkedin_profile, "LinkedIn profile", max_length=255, required=False),
            cover_letter=validate_string_field(self.cover_letter, "Cover letter", max_length=10000, required=False),
            additional_data=dict(self.additional_data or {}),
            answers=list(self.answers or []),
            submitted_at=self.submitted_at,
        )


@dataclass(frozen=True)
class SubmissionReceipt:
    """Plain snapshot handed to post-commit work; safe to use after the session closes."""
    application_id: int
    candidate_id: int
    job_id: int
    email: str
    full_name: str
    resume_url: str
    job_title: str | None = None
    company_name: str | None = None


def _submit_once(db: Session, submission: Submission) -> tuple[Application, SubmissionReceipt]:
    try:
        candidate = registry.find_or_create_candidate(
            db,
            email=submission.email,
            profile=registry.CandidateProfile(
                full_name=submission.full_name,
                phone_number=submission.phone_number,
                resume_url=submission.resume_url,
                linkedin_profile=submission.linkedin_profile,
            ),
        )
        application = ledger.record_application(
            db,
            candidate=candidate,
            job_id=submission.job_id,
            payload=ledger.ApplicationPayload(
                resume_url=submission.resume_url,
                cover_letter=submission.cover_letter,
                additional_data=submission.additional_data,
                answers=submission.answers,
                submitted_at=submission.submitted_at,
            ),
        )
        ledger.link_application(candidate, application)

        # Nothing after the commit touches the database.
        job = db.get(Job, application.job_id)
        receipt = SubmissionReceipt(
            application_id=int(application.id),
            candidate_id=int(candidate.id),
            job_id=int(application.job_id),
            email=submission.email,
            full_name=candidate.full_name,
            resume_url=application.resume_url,
            job_title=job.title if job is not None else None,
            company_name=job.company_name if job is not None else None,
        )
        db.commit()
    except AppError:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        if is_unique_violation(e):
            raise DuplicateApplicationError(job_id=submission.job_id) from e
        logger.error("Integrity error submitting to job_id=%s: %s", submission.job_id, e)
        raise StorageError() from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Database error submitting to job_id=%s: %s", submission.job_id, e)
        raise StorageError() from e
    except Exception:
        db.rollback()
        raise
    return application, receipt


def submit_application(
    db: Session,
    submission: Submission,
    *,
    notifier,
    analysis,
    max_attempts: int = 2,
    schedule: Callable[..., Any] | None = None,
) -> Application:
    """
    Commit a submission atomically, then trigger confirmation email and analysis.

    Raises ValidationError before touching the database, DuplicateApplicationError
    when the candidate already applied to the job, and StorageError when the
    database fails (nothing is written in either case). A DuplicateKeyError from a
    racing first-time candidate insert is retried up to `max_attempts` times.

    Post-commit work is passed to `schedule` (e.g. BackgroundTasks.add_task) or
    run inline; its failures are logged and never affect the committed application.
    """
    submission = submission.normalized()

    attempt = 0
    while True:
        attempt += 1
        try:
            application, receipt = _submit_once(db, submission)
            break
        except DuplicateKeyError:
            if attempt >= max(1, max_attempts):
                raise
            logger.warning(
                "Candidate insert raced for email=%s; retrying submission (attempt %s)",
                submission.email,
                attempt + 1,
            )

    logger.info(
        "Application committed id=%s candidate_id=%s job_id=%s",
        receipt.application_id,
        receipt.candidate_id,
        receipt.job_id,
    )

    if schedule is not None:
        schedule(dispatch_post_commit, receipt, notifier=notifier, analysis=analysis)
    else:
        dispatch_post_commit(receipt, notifier=notifier, analysis=analysis)

    return application


def dispatch_post_commit(receipt: SubmissionReceipt, *, notifier, analysis) -> None:
    """Best-effort side effects of a committed application. Never raises."""
    subject, body = application_received_email(
        candidate_name=receipt.full_name,
        job_title=receipt.job_title,
        company_name=receipt.company_name,
    )
    try:
        notifier.send(receipt.email, subject, body)
    except Exception as e:
        logger.warning("Confirmation email failed for application_id=%s: %s", receipt.application_id, e)

    try:
        analysis.submit(receipt.application_id, receipt.resume_url, receipt.job_id)
    except Exception as e:
        logger.warning("Analysis dispatch failed for application_id=%s: %s", receipt.application_id, e)
