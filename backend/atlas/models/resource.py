"""
Modèles SQLAlchemy pour les ressources distribuées (repas, kits, certificats).

- ResourceSetting : configuration par (événement, type) d'où sont dérivées les options
- ResourceUsage   : une remise scannée ; client_uuid est la clé d'idempotence du poste de scan
"""

import uuid
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    JSON,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
    text,
)

from atlas.database import Base

# Une seule remise active par (inscription, type, option) ; les réimpressions forcées en sont exclues
ACTIVE_USAGE_PREDICATE = text("status = 'used' AND NOT reprint")


class ResourceSetting(Base):
    __tablename__ = "resource_settings"
    __table_args__ = (
        UniqueConstraint("event_id", "resource_type", name="uq_resource_settings_event_type"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    event_id = Column(Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    resource_type = Column(String(30), nullable=False)  # food, kits, certificates, certificatePrinting
    settings = Column(JSON, nullable=False, default=dict)
    is_enabled = Column(Boolean, default=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class ResourceUsage(Base):
    """Remise d'une ressource à un participant, enregistrée au scan."""
    __tablename__ = "resource_usages"
    __table_args__ = (
        Index(
            "uq_resource_usages_active",
            "registration_id",
            "resource_type",
            "option_id",
            unique=True,
            postgresql_where=ACTIVE_USAGE_PREDICATE,
            sqlite_where=ACTIVE_USAGE_PREDICATE,
        ),
        Index("ix_resource_usages_event_type", "event_id", "resource_type"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_uuid = Column(Uuid, unique=True, nullable=True)  # Clé idempotence (générée par le poste)

    event_id = Column(Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    registration_id = Column(Uuid, ForeignKey("registrations.id", ondelete="CASCADE"), nullable=False)

    resource_type = Column(String(30), nullable=False)
    option_id = Column(String(255), nullable=False)         # Ex: "0_Breakfast", id d'un kit
    option_name = Column(String(255), nullable=True)        # Libellé au moment du scan

    status = Column(String(20), default="used")             # used, voided
    reprint = Column(Boolean, nullable=False, default=False)  # Réimpression forcée de certificat
    action_date = Column(DateTime(timezone=True), nullable=False)
    action_by = Column(String(100), nullable=True)          # Opérateur / identifiant du poste

    void_reason = Column(Text, nullable=True)
    voided_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
