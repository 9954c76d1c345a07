from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base
from .types import JSONDict, JSONList

APPLICATION_STATUSES = ("submitted", "shortlisted", "interviewing", "offered", "hired", "rejected")
DEFAULT_APPLICATION_STATUS = "submitted"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Application(Base):
    __tablename__ = "applications"
    __table_args__ = (
        # Final arbiter of "one application per candidate per job".
        UniqueConstraint("candidate_id", "job_id", name="uq_applications_candidate_job"),
    )

    id = Column(Integer, primary_key=True, index=True)
    candidate_id = Column(Integer, ForeignKey("candidates.id"), nullable=False, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False, index=True)
    status = Column(String(32), nullable=False, default=DEFAULT_APPLICATION_STATUS)
    resume_url = Column(String(500), nullable=False)
    cover_letter = Column(Text, nullable=True)
    additional_data = Column(JSONDict, nullable=False, default=dict)
    # [{"question_id": ..., "question": ..., "answer": ...}]
    answers = Column(JSONList, nullable=False, default=list)
    submitted_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    job = relationship("Job", back_populates="applications")
    candidate = relationship("Candidate", back_populates="applications")
    notes = relationship("Note", back_populates="application")
