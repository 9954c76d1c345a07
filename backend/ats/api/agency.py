from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.agency import AgencyCreate
from ..services.agencies import agency_to_public, get_agency, get_agency_by_name, register_agency
from ..services.applications import application_to_public, list_agency_applications
from ..services.jobs import job_to_public, list_jobs
from ..utils.dependencies import get_storage

router = APIRouter(prefix="/agencies", tags=["Agencies"])


@router.post("", status_code=201)
def create_agency(
    payload: AgencyCreate,
    db: Session = Depends(get_db),
    storage=Depends(get_storage),
):
    agency = register_agency(
        db,
        storage=storage,
        company_name=payload.company_name,
        full_name=payload.full_name,
        email=payload.email,
        website=payload.website,
        country=payload.country,
        logo_url=payload.logo_url,
    )
    return {"success": True, "agency": agency_to_public(agency)}


@router.get("/{agency_id:int}")
def agency_details(agency_id: int, db: Session = Depends(get_db)):
    return {"success": True, "agency": agency_to_public(get_agency(db, agency_id))}


@router.get("/by-name/{company_name}")
def agency_by_name(company_name: str, db: Session = Depends(get_db)):
    """Agency profile with its job postings, newest first."""
    agency = get_agency_by_name(db, company_name)
    jobs = sorted(agency.jobs, key=lambda j: j.id, reverse=True)
    return {"success": True, "agency": agency_to_public(agency), "jobs": [job_to_public(j) for j in jobs]}


@router.get("/{agency_id:int}/jobs")
def agency_jobs(
    agency_id: int,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    get_agency(db, agency_id)
    jobs, total = list_jobs(db, agency_id=agency_id, page=page, limit=limit)
    return {"success": True, "jobs": [job_to_public(j) for j in jobs], "total": total, "page": page, "limit": limit}


@router.get("/{agency_id:int}/applications")
def agency_applications(
    agency_id: int,
    status: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    get_agency(db, agency_id)
    applications = list_agency_applications(db, agency_id=agency_id, status=status)
    return {
        "success": True,
        "applications": [application_to_public(a, include_candidate=True) for a in applications],
    }
