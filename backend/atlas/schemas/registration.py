"""
Schémas Pydantic pour les inscriptions et l'envoi des QR codes de badge.
"""

import re
import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from atlas.schemas.common import CamelModel

EMAIL_REGEX = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$")


class RegistrationCreate(BaseModel):
    """Auto-inscription d'un participant."""
    first_name: str
    last_name: str
    email: Optional[str] = None
    organization: Optional[str] = None
    category_id: Optional[uuid.UUID] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name must not be empty.")
        return v.strip()

    @field_validator("email")
    @classmethod
    def valid_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        if not EMAIL_REGEX.match(v.strip()):
            raise ValueError("Invalid email address.")
        return v.strip().lower()


class RegistrationResponse(BaseModel):
    id: uuid.UUID
    event_id: uuid.UUID
    category_id: Optional[uuid.UUID]
    registration_id: str
    qr_code: Optional[str]
    first_name: str
    last_name: str
    email: Optional[str]
    organization: Optional[str]
    status: str
    checked_in: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class RegistrationDetails(CamelModel):
    """Détails affichés par le poste de scan après une remise réussie."""
    id: uuid.UUID = Field(alias="_id")
    registration_id: str
    name: str
    organization: Optional[str]
    category_name: Optional[str]
    status: str
    checked_in: bool


class QrEmailSendResult(BaseModel):
    """Rapport d'envoi des QR codes de badge pour un événement."""

    event_id: uuid.UUID
    sent_count: int
    already_sent_count: int
    no_email_count: int
    errors: List[str]
