from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base
from .types import JSONDict, JSONList


class Note(Base):
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, index=True)
    application_id = Column(Integer, ForeignKey("applications.id"), nullable=False, index=True)
    author = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    mentions = Column(JSONList, nullable=False, default=list)
    # reaction -> authors who reacted with it (each author at most once)
    reactions = Column(JSONDict, nullable=False, default=dict)
    # Set on replies; replies always share the parent's application.
    parent_id = Column(Integer, ForeignKey("notes.id"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    application = relationship("Application", back_populates="notes")
    replies = relationship("Note", order_by="Note.id")
