"""
Modèle SQLAlchemy pour les inscriptions à un événement.
Le QR code imprimé sur le badge encode qr_code ; registration_id est le code lisible (REG-001).
"""

import uuid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, UniqueConstraint, Uuid, func

from atlas.database import Base


class Registration(Base):
    __tablename__ = "registrations"
    __table_args__ = (
        UniqueConstraint("event_id", "registration_id", name="uq_registrations_event_code"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    event_id = Column(Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    category_id = Column(Uuid, ForeignKey("categories.id"), nullable=True)

    registration_id = Column(String(50), nullable=False)   # Ex: "REG-001"
    qr_code = Column(String(100), unique=True, nullable=True)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    organization = Column(String(255), nullable=True)

    status = Column(String(20), default="active")           # active, pending, cancelled
    checked_in = Column(Boolean, default=False)
    checked_in_at = Column(DateTime, nullable=True)
    badge_printed = Column(Boolean, default=False)
    qr_emailed_at = Column(DateTime, nullable=True)         # NULL = QR du badge pas encore envoyé

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
