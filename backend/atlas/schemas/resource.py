"""
Schémas Pydantic pour la distribution des ressources : options, scans, remises, statistiques.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from atlas.schemas.common import CamelModel
from atlas.services.resource_types import normalize_resource_type


class ResourceOption(CamelModel):
    """Unité remise au scan : un repas d'un jour, un article de kit, un type de certificat..."""

    id: str = Field(alias="_id")
    name: str
    day_index: Optional[int] = None
    print_fields: Optional[List[Dict[str, Any]]] = Field(default=None, alias="fields")  # certificatePrinting
    placeholder: bool = False                       # Option de repli affichée quand le chargement échoue


class ResourceSettingsPayload(CamelModel):
    resource_type: str
    settings: Dict[str, Any]
    is_enabled: bool


class ResourceSettingsUpdate(CamelModel):
    settings: Dict[str, Any]
    is_enabled: Optional[bool] = None


class _ScanBase(CamelModel):
    event_id: uuid.UUID
    resource_type: str
    resource_option_id: str
    qr_code: str

    @field_validator("resource_type")
    @classmethod
    def known_resource_type(cls, v: str) -> str:
        return normalize_resource_type(v)

    @field_validator("qr_code", "resource_option_id")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Value must not be blank.")
        return v.strip()


class ScanRequest(_ScanBase):
    """Corps de POST /api/v1/resources/validate-scan."""


class RecordUsageRequest(_ScanBase):
    """Corps de POST /api/v1/resources/record-usage."""

    client_uuid: Optional[uuid.UUID] = None  # Clé d'idempotence générée par le poste à chaque tentative
    force: bool = False                      # Réimpression de certificat (certificatePrinting uniquement)
    action_by: Optional[str] = None


class RegistrationSummary(CamelModel):
    id: uuid.UUID = Field(alias="_id")
    registration_id: str
    first_name: str
    last_name: str
    category_name: Optional[str] = None


class ScanValidation(CamelModel):
    registration: RegistrationSummary


class UsageRecord(CamelModel):
    id: uuid.UUID = Field(alias="_id")
    registration_id: uuid.UUID
    resource_type: str
    option_id: str
    option_name: Optional[str]
    status: str
    action_date: datetime
    duplicate: bool = False  # True si client_uuid déjà connu (rejeu idempotent)


class VoidRequest(CamelModel):
    reason: Optional[str] = None


class VoidResult(CamelModel):
    usage_id: uuid.UUID
    voided_count: int


class RecentScanCategory(CamelModel):
    id: Optional[uuid.UUID] = Field(default=None, alias="_id")
    name: str = "Unknown"
    color: Optional[str] = None


class RecentScanRegistration(CamelModel):
    id: uuid.UUID = Field(alias="_id")
    registration_id: str
    first_name: str
    last_name: str
    category: RecentScanCategory


class RecentScanOption(CamelModel):
    id: str = Field(alias="_id")
    name: str


class RecentScan(CamelModel):
    id: uuid.UUID = Field(alias="_id")
    timestamp: datetime
    resource_type: str
    status: str
    resource_option: RecentScanOption
    registration: RecentScanRegistration
    action_by: str


class ResourceStatistics(CamelModel):
    count: int = 0
    today: int = 0
    unique_attendees: int = 0
    total_voided: int = 0
    total_configured: int = 0
    total_registrations: int = 0
