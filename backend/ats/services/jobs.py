import logging

from sqlalchemy.orm import Session

from ..models.application import Application
from ..models.candidate import Candidate
from ..models.job import JOB_STATUSES, Job
from ..models.note import Note
from ..schemas.job import JobCreate, JobUpdate
from ..utils.error_handlers import NotFoundError, ValidationError, get_error_message
from ..utils.validation import validate_choice, validate_integer_field
from .agencies import get_agency
from .applications import unlink_application
from .storage import job_folder

logger = logging.getLogger(__name__)


def create_job(db: Session, *, payload: JobCreate, storage=None) -> Job:
    agency = get_agency(db, payload.agency_id)
    data = payload.model_dump()
    data["company_name"] = (data.get("company_name") or agency.company_name).strip()

    job = Job(**data)
    db.add(job)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(job)

    if storage is not None:
        try:
            storage.create_folder(job_folder(job.company_name, job.title, agency_id=job.agency_id, job_id=job.id))
        except Exception as e:
            # Resume upload creates the folder again on demand.
            logger.warning("Failed to create storage folder for job %s: %s", job.id, e)

    logger.info("Created job id=%s agency_id=%s title=%s", job.id, job.agency_id, job.title)
    return job


def get_job(db: Session, job_id: int) -> Job:
    job = db.query(Job).filter(Job.id == int(job_id)).first()
    if not job:
        raise NotFoundError(get_error_message("job_not_found"))
    return job


def get_open_job(db: Session, job_id: int) -> Job:
    job = get_job(db, job_id)
    if job.status != "Open":
        raise ValidationError(get_error_message("job_closed"))
    return job


def list_jobs(
    db: Session,
    *,
    agency_id: int | None = None,
    company_name: str | None = None,
    status: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Job], int]:
    page = validate_integer_field(page, "page", min_value=1)
    limit = validate_integer_field(limit, "limit", min_value=1, max_value=100)

    q = db.query(Job)
    if agency_id is not None:
        q = q.filter(Job.agency_id == int(agency_id))
    if company_name:
        q = q.filter(Job.company_name.ilike(f"%{company_name.strip()}%"))
    if status:
        q = q.filter(Job.status == validate_choice(status, "Status", JOB_STATUSES))

    total = q.count()
    jobs = q.order_by(Job.created_at.desc(), Job.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return jobs, total


def update_job(db: Session, *, job_id: int, payload: JobUpdate) -> Job:
    """
    Apply a partial update. Salary bounds are checked against the merged values,
    so sending only one side of the range is still validated.
    """
    job = get_job(db, job_id)
    # Only hourly_rate may be cleared; null elsewhere means "unchanged".
    changes = {
        k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None or k == "hourly_rate"
    }

    base = changes.get("base_salary_range", job.base_salary_range)
    upper = changes.get("upper_salary_range", job.upper_salary_range)
    if upper < base:
        raise ValidationError("upper_salary_range must be greater than or equal to base_salary_range")

    for key in ("title", "company_name"):
        if key in changes:
            changes[key] = changes[key].strip()

    for key, value in changes.items():
        setattr(job, key, value)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(job)
    logger.info("Updated job id=%s fields=%s", job.id, ",".join(sorted(changes)))
    return job


def update_job_status(db: Session, *, job_id: int, status: str) -> Job:
    job = get_job(db, job_id)
    job.status = validate_choice(status, "Status", JOB_STATUSES)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    return job


def delete_job_cascade(db: Session, *, job_id: int, storage=None) -> dict:
    """
    Delete a job with its applications and their notes in one transaction.

    Candidates are kept; their application back-references are pruned in the
    same transaction so no candidate points at a deleted application.
    """
    job = get_job(db, job_id)
    applications = db.query(Application).filter(Application.job_id == job.id).all()
    app_ids = [int(a.id) for a in applications]
    candidate_ids = {int(a.candidate_id) for a in applications}
    resume_urls = {a.resume_url for a in applications if a.resume_url}

    try:
        if app_ids:
            candidates = db.query(Candidate).filter(Candidate.id.in_(candidate_ids)).all()
            for candidate in candidates:
                for app_id in app_ids:
                    unlink_application(candidate, app_id)
            db.flush()

            # Replies first: they reference their parent note.
            db.query(Note).filter(Note.application_id.in_(app_ids), Note.parent_id.isnot(None)).delete(
                synchronize_session=False
            )
            db.query(Note).filter(Note.application_id.in_(app_ids)).delete(synchronize_session=False)
            db.query(Application).filter(Application.id.in_(app_ids)).delete(synchronize_session=False)
        db.query(Job).filter(Job.id == job.id).delete(synchronize_session=False)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Deleted job id=%s with %s applications", job_id, len(app_ids))

    # Best-effort: remove resume files no candidate profile still points at.
    if storage is not None and resume_urls:
        kept = {
            url
            for (url,) in db.query(Candidate.resume_url).filter(Candidate.resume_url.in_(resume_urls)).all()
        }
        for url in resume_urls - kept:
            storage.delete(url)

    return {"deleted_job_id": int(job_id), "deleted_application_ids": app_ids}


def job_to_public(job: Job) -> dict:
    return {
        "id": int(job.id),
        "agency_id": int(job.agency_id),
        "title": job.title,
        "company_name": job.company_name,
        "department": job.department,
        "experience_level": job.experience_level,
        "employment_type": job.employment_type,
        "description": job.description,
        "skills": list(job.skills or []),
        "office_location": job.office_location,
        "work_place_mode": job.work_place_mode,
        "employee_location": job.employee_location,
        "hourly_rate": job.hourly_rate,
        "base_salary_range": job.base_salary_range,
        "upper_salary_range": job.upper_salary_range,
        "other_benefits": list(job.other_benefits or []),
        "status": job.status,
        "questions": list(job.questions or []),
        "created_at": job.created_at.isoformat() if job.created_at else None,
    }
