"""
Schémas Pydantic pour les abstracts soumis par les participants.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

ABSTRACT_STATUSES = {"draft", "submitted", "under-review", "revision-requested", "approved", "rejected"}


class AbstractCreate(BaseModel):
    title: str
    authors: str
    content: str
    category: Optional[str] = None
    sub_topic: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None  # octets
    submit: bool = False             # False = brouillon

    @field_validator("title", "authors", "content")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Field must not be empty.")
        return v.strip()


class AbstractUpdate(BaseModel):
    title: Optional[str] = None
    authors: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    sub_topic: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None

    @field_validator("title", "authors", "content")
    @classmethod
    def not_empty(cls, v: Optional[str]) -> str:
        # Champ omis : inchangé ; champ envoyé : ni null ni vide
        if v is None or not v.strip():
            raise ValueError("Field must not be empty.")
        return v.strip()


class AbstractStatusChange(BaseModel):
    """Décision de revue (côté organisateur / reviewer)."""
    status: str

    @field_validator("status")
    @classmethod
    def valid_status(cls, v: str) -> str:
        if v not in ABSTRACT_STATUSES:
            raise ValueError(f"Invalid status. Accepted values: {ABSTRACT_STATUSES}")
        return v


class AbstractResponse(BaseModel):
    id: uuid.UUID
    event_id: uuid.UUID
    registration_id: uuid.UUID
    title: str
    authors: str
    content: str
    category: Optional[str]
    sub_topic: Optional[str]
    word_count: int
    file_name: Optional[str]
    file_size: Optional[int]
    status: str
    submitted_at: Optional[datetime]
    created_at: Optional[datetime]

    model_config = {"from_attributes": True}
