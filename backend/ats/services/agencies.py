import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models.agency import Agency
from ..utils.error_handlers import ConflictError, NotFoundError, get_error_message, is_unique_violation
from ..utils.validation import validate_email
from .storage import agency_folder

logger = logging.getLogger(__name__)


def register_agency(
    db: Session,
    *,
    storage,
    company_name: str,
    full_name: str,
    email: str,
    website: str | None = None,
    country: str | None = None,
    logo_url: str | None = None,
) -> Agency:
    company_name = company_name.strip()
    existing = db.query(Agency).filter(func.lower(Agency.company_name) == company_name.lower()).first()
    if existing:
        raise ConflictError(get_error_message("agency_exists"))

    agency = Agency(
        company_name=company_name,
        full_name=full_name.strip(),
        email=validate_email(email),
        website=website,
        country=(country or "UAE").strip(),
        logo_url=logo_url,
    )
    db.add(agency)
    try:
        db.flush()
        # Created inside the transaction: an agency row never exists without its folder.
        agency.storage_folder = storage.create_folder(agency_folder(company_name, agency_id=agency.id))
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if is_unique_violation(e):
            raise ConflictError(get_error_message("agency_exists")) from e
        raise
    except Exception:
        db.rollback()
        raise
    db.refresh(agency)
    logger.info("Registered agency id=%s company=%s", agency.id, agency.company_name)
    return agency


def get_agency(db: Session, agency_id: int) -> Agency:
    agency = db.query(Agency).filter(Agency.id == int(agency_id)).first()
    if not agency:
        raise NotFoundError(get_error_message("agency_not_found"))
    return agency


def get_agency_by_name(db: Session, company_name: str) -> Agency:
    """Case-insensitive exact match on the company name."""
    name = (company_name or "").strip()
    agency = db.query(Agency).filter(func.lower(Agency.company_name) == name.lower()).first() if name else None
    if not agency:
        raise NotFoundError(get_error_message("agency_not_found"))
    return agency


def agency_to_public(agency: Agency) -> dict:
    return {
        "id": int(agency.id),
        "company_name": agency.company_name,
        "full_name": agency.full_name,
        "email": agency.email,
        "website": agency.website,
        "country": agency.country,
        "logo_url": agency.logo_url,
        "storage_folder": agency.storage_folder,
        "created_at": agency.created_at.isoformat() if agency.created_at else None,
    }
