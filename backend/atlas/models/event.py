"""
Modèles SQLAlchemy pour les événements et les catégories de participants.
"""

import uuid
from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, JSON, String, Uuid, func

from atlas.database import Base


class Event(Base):
    __tablename__ = "events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    venue_name = Column(String(255), nullable=True)
    venue_city = Column(String(100), nullable=True)
    status = Column(String(20), default="DRAFT")  # DRAFT, PUBLISHED, ARCHIVED
    # enabled, isOpen, deadline, maxLength, allowEditing, allowFiles, maxFileSize, categories[]
    abstract_settings = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Category(Base):
    """Catégorie de participant (Délégué, Faculty, Sponsor...) et ses droits aux ressources."""
    __tablename__ = "categories"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    event_id = Column(Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(100), nullable=False)
    color = Column(String(20), nullable=True)

    can_receive_meals = Column(Boolean, default=True)
    can_receive_kits = Column(Boolean, default=True)
    can_receive_certificates = Column(Boolean, default=True)

    created_at = Column(DateTime, server_default=func.now())
