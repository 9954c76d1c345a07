from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base
from .types import JSONList


class Candidate(Base):
    __tablename__ = "candidates"

    id = Column(Integer, primary_key=True, index=True)
    # Stored normalized (trimmed + lowercased); one candidate per email.
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=False)
    phone_number = Column(String(50), nullable=False)
    resume_url = Column(String(500), nullable=True)
    linkedin_profile = Column(String(255), nullable=True)
    # Denormalized index of Application ids; `applications` below is the source of truth.
    application_ids = Column(JSONList, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    applications = relationship("Application", back_populates="candidate")

    def __repr__(self) -> str:
        return f"<Candidate(id={self.id}, email={self.email})>"
