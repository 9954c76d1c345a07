from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base
from .types import JSONList

WORK_PLACE_MODES = ("Hybrid", "Remote", "On-Site")
JOB_STATUSES = ("Open", "Closed")


class Job(Base):
    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, index=True)
    agency_id = Column(Integer, ForeignKey("agencies.id"), nullable=False, index=True)
    title = Column(String(150), nullable=False, index=True)
    company_name = Column(String(150), nullable=False, index=True)
    department = Column(String(100), nullable=False)
    experience_level = Column(String(50), nullable=False)
    employment_type = Column(String(50), nullable=False)
    description = Column(Text, nullable=False)
    skills = Column(JSONList, nullable=False, default=list)
    office_location = Column(String(150), nullable=False)
    work_place_mode = Column(String(20), nullable=False)  # Hybrid | Remote | On-Site
    employee_location = Column(String(150), nullable=False)
    hourly_rate = Column(Float, nullable=True)
    base_salary_range = Column(Integer, nullable=False)
    upper_salary_range = Column(Integer, nullable=False)
    other_benefits = Column(JSONList, nullable=False, default=list)
    status = Column(String(20), nullable=False, default="Open")  # Open | Closed
    # [{"id", "question", "type", "options", "is_required"}]
    questions = Column(JSONList, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    agency = relationship("Agency", back_populates="jobs")
    # No ORM cascade: removing a job goes through services.jobs.delete_job_cascade so
    # candidate back-references are cleaned up in the same transaction.
    applications = relationship("Application", back_populates="job")
