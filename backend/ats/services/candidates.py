import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.candidate import Candidate
from ..utils.error_handlers import DuplicateKeyError, NotFoundError, StorageError, get_error_message, is_unique_violation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateProfile:
    full_name: str
    phone_number: str
    resume_url: str | None = None
    linkedin_profile: str | None = None


def find_candidate_by_email(db: Session, email: str) -> Candidate | None:
    return db.query(Candidate).filter(Candidate.email == email).first()


def find_or_create_candidate(db: Session, *, email: str, profile: CandidateProfile) -> Candidate:
    """
    Return the candidate registered under `email`, creating it on first sight.

    `email` must already be normalized. An existing record is authoritative: the
    profile from this submission is discarded. The insert is flushed but not
    committed, so it belongs to the caller's transaction.
    """
    try:
        candidate = find_candidate_by_email(db, email)
        if candidate:
            return candidate

        candidate = Candidate(
            email=email,
            full_name=profile.full_name,
            phone_number=profile.phone_number,
            resume_url=profile.resume_url,
            linkedin_profile=profile.linkedin_profile,
            application_ids=[],
        )
        db.add(candidate)
        db.flush()
    except IntegrityError as e:
        if is_unique_violation(e):
            logger.info("Concurrent candidate insert for email=%s", email)
            raise DuplicateKeyError(details={"email": email}) from e
        raise StorageError() from e
    except SQLAlchemyError as e:
        logger.error("Candidate lookup/insert failed for email=%s: %s", email, e)
        raise StorageError() from e

    logger.info("Created candidate id=%s email=%s", candidate.id, email)
    return candidate


def get_candidate(db: Session, candidate_id: int) -> Candidate:
    candidate = db.query(Candidate).filter(Candidate.id == int(candidate_id)).first()
    if not candidate:
        raise NotFoundError(get_error_message("candidate_not_found"))
    return candidate


def candidate_to_public(candidate: Candidate) -> dict:
    return {
        "id": int(candidate.id),
        "email": candidate.email,
        "full_name": candidate.full_name,
        "phone_number": candidate.phone_number,
        "resume_url": candidate.resume_url,
        "linkedin_profile": candidate.linkedin_profile,
        "application_ids": [int(x) for x in (candidate.application_ids or [])],
        "created_at": candidate.created_at.isoformat() if candidate.created_at else None,
    }
