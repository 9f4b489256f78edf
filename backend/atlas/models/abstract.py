"""
Modèle SQLAlchemy pour les abstracts soumis par les participants.
"""

import uuid
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, Uuid, func

from atlas.database import Base


class Abstract(Base):
    __tablename__ = "abstracts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    event_id = Column(Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    registration_id = Column(Uuid, ForeignKey("registrations.id", ondelete="CASCADE"), nullable=False)

    title = Column(String(500), nullable=False)
    authors = Column(String(1000), nullable=False)
    content = Column(Text, nullable=False)
    category = Column(String(255), nullable=True)
    sub_topic = Column(String(255), nullable=True)
    word_count = Column(Integer, default=0)

    file_name = Column(String(255), nullable=True)
    file_size = Column(Integer, nullable=True)  # octets

    # draft, submitted, under-review, revision-requested, approved, rejected
    status = Column(String(30), default="draft")
    submitted_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
