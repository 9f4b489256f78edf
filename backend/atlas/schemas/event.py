"""
Schémas Pydantic pour les événements et les catégories de participants.

Note : on importe datetime en tant que module (dt) pour éviter le conflit de nommage
entre les champs de date et le type `datetime.date` dans Pydantic v2.
"""

import uuid
import datetime as dt
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, field_validator, model_validator


class EventCreate(BaseModel):
    name: str
    start_date: dt.date
    end_date: dt.date
    venue_name: Optional[str] = None
    venue_city: Optional[str] = None
    abstract_settings: Dict[str, Any] = {}

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Event name must not be empty.")
        return v.strip()

    @model_validator(mode="after")
    def dates_in_order(self):
        if self.end_date < self.start_date:
            raise ValueError("End date must not be before start date.")
        return self


class EventUpdate(BaseModel):
    name: Optional[str] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    venue_name: Optional[str] = None
    venue_city: Optional[str] = None
    status: Optional[str] = None
    abstract_settings: Optional[Dict[str, Any]] = None

    @field_validator("status")
    @classmethod
    def valid_status(cls, v: Optional[str]) -> Optional[str]:
        allowed = {"DRAFT", "PUBLISHED", "ARCHIVED"}
        if v is not None and v not in allowed:
            raise ValueError(f"Invalid status. Accepted values: {allowed}")
        return v


class EventResponse(BaseModel):
    id: uuid.UUID
    name: str
    start_date: dt.date
    end_date: dt.date
    venue_name: Optional[str]
    venue_city: Optional[str]
    status: str
    abstract_settings: Dict[str, Any]
    created_at: datetime

    model_config = {"from_attributes": True}


class CategoryCreate(BaseModel):
    name: str
    color: Optional[str] = None
    can_receive_meals: bool = True
    can_receive_kits: bool = True
    can_receive_certificates: bool = True

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Category name must not be empty.")
        return v.strip()


class CategoryResponse(BaseModel):
    id: uuid.UUID
    event_id: uuid.UUID
    name: str
    color: Optional[str]
    can_receive_meals: bool
    can_receive_kits: bool
    can_receive_certificates: bool

    model_config = {"from_attributes": True}
