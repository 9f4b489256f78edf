"""
Router pour la distribution des ressources (repas, kits, certificats, impression de certificats).

Toutes les réponses passent par l'enveloppe {success, message, data, code} en camelCase :
le poste de scan ne branche que sur `success` et affiche `message` tel quel en cas de refus.
"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from atlas.database import get_db
from atlas.schemas.common import ApiResponse
from atlas.schemas.resource import (
    RecentScan,
    RecordUsageRequest,
    ResourceOption,
    ResourceSettingsPayload,
    ResourceSettingsUpdate,
    ResourceStatistics,
    ScanRequest,
    ScanValidation,
    UsageRecord,
    VoidRequest,
    VoidResult,
)
from atlas.services import certificate_service, resource_settings_service, scan_service, statistics_service
from atlas.services.errors import ConflictError, NotFoundError, ScanRejected
from atlas.services.resource_types import display_name, normalize_resource_type

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Ressources"])


def _failure(e: ValueError) -> JSONResponse:
    """Traduit une exception métier en enveloppe d'échec avec le code HTTP correspondant."""
    if isinstance(e, ScanRejected):
        status_code, body = e.status_code, ApiResponse(success=False, message=e.message, code=e.code)
    elif isinstance(e, NotFoundError):
        status_code, body = 404, ApiResponse(success=False, message=str(e))
    elif isinstance(e, ConflictError):
        status_code, body = 409, ApiResponse(success=False, message=str(e))
    else:
        status_code, body = 400, ApiResponse(success=False, message=str(e))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", by_alias=True))


# ----------------------------------------------------------------
# Configuration et catalogue
# ----------------------------------------------------------------

@router.get(
    "/events/{event_id}/resources/settings/{resource_type}",
    response_model=ApiResponse[ResourceSettingsPayload],
    summary="Configuration d'un type de ressource",
)
def get_settings(event_id: uuid.UUID, resource_type: str, db: Session = Depends(get_db)):
    """Sans configuration enregistrée, renvoie la configuration par défaut (activée, vide)."""
    try:
        resource_type = normalize_resource_type(resource_type)
        payload = resource_settings_service.get_resource_settings(db, event_id, resource_type)
    except ValueError as e:
        return _failure(e)
    return ApiResponse(success=True, data=payload)


@router.put(
    "/events/{event_id}/resources/settings/{resource_type}",
    response_model=ApiResponse[ResourceSettingsPayload],
    summary="Modifier la configuration d'un type de ressource",
)
def update_settings(
    event_id: uuid.UUID,
    resource_type: str,
    data: ResourceSettingsUpdate,
    db: Session = Depends(get_db),
):
    try:
        resource_type = normalize_resource_type(resource_type)
        payload = resource_settings_service.update_resource_settings(db, event_id, resource_type, data)
    except ValueError as e:
        return _failure(e)
    return ApiResponse(success=True, message=f"{display_name(resource_type)} settings updated", data=payload)


@router.get(
    "/events/{event_id}/resources/options/{resource_type}",
    response_model=ApiResponse[List[ResourceOption]],
    summary="Options sélectionnables d'un type de ressource",
)
def get_options(event_id: uuid.UUID, resource_type: str, db: Session = Depends(get_db)):
    try:
        resource_type = normalize_resource_type(resource_type)
        options = resource_settings_service.get_resource_options(db, event_id, resource_type)
    except ValueError as e:
        return _failure(e)
    return ApiResponse(success=True, data=options)


# ----------------------------------------------------------------
# Scan et remises
# ----------------------------------------------------------------

@router.post(
    "/resources/validate-scan",
    response_model=ApiResponse[ScanValidation],
    summary="Valider un code scanné",
)
def validate_scan(data: ScanRequest, db: Session = Depends(get_db)):
    """
    Vérifie qu'une ressource peut être remise au participant scanné, sans rien écrire.
    Refus : {success: false, message, code} (UNKNOWN_CODE, NOT_ELIGIBLE, ALREADY_REDEEMED, ...).
    """
    try:
        validation = scan_service.validate_scan(db, data)
    except ValueError as e:
        return _failure(e)
    return ApiResponse(success=True, message="Scan valid", data=validation)


@router.post(
    "/resources/record-usage",
    response_model=ApiResponse[UsageRecord],
    summary="Enregistrer la remise d'une ressource",
)
def record_usage(data: RecordUsageRequest, db: Session = Depends(get_db)):
    """
    Enregistre la remise. Les contrôles de validation sont rejoués côté serveur.
    Un client_uuid déjà connu renvoie la remise existante (data.duplicate = true).
    """
    try:
        record = scan_service.record_usage(db, data)
    except ValueError as e:
        return _failure(e)
    return ApiResponse(
        success=True,
        message=f"{display_name(data.resource_type)} recorded successfully",
        data=record,
    )


@router.post(
    "/resources/usages/{usage_id}/void",
    response_model=ApiResponse[VoidResult],
    summary="Annuler une remise",
)
def void_usage(usage_id: uuid.UUID, data: Optional[VoidRequest] = None, db: Session = Depends(get_db)):
    """Annule la remise : la ressource peut de nouveau être scannée pour ce participant."""
    try:
        result = scan_service.void_usage(db, usage_id, data.reason if data else None)
    except ValueError as e:
        return _failure(e)
    return ApiResponse(success=True, message="Resource usage voided", data=result)


@router.get(
    "/resources/recent-scans",
    response_model=ApiResponse[List[RecentScan]],
    summary="Derniers scans",
)
def recent_scans(
    event_id: uuid.UUID = Query(..., alias="eventId"),
    resource_type: Optional[str] = Query(None, alias="type"),
    option_id: Optional[str] = Query(None, alias="resourceOptionId"),
    limit: int = Query(statistics_service.DEFAULT_RECENT_LIMIT),
    db: Session = Depends(get_db),
):
    try:
        if resource_type:
            resource_type = normalize_resource_type(resource_type)
        scans = statistics_service.get_recent_scans(db, event_id, resource_type, option_id, limit)
    except ValueError as e:
        return _failure(e)
    return ApiResponse(success=True, data=scans)


@router.get(
    "/resources/statistics/{event_id}/{resource_type}",
    response_model=ApiResponse[ResourceStatistics],
    summary="Statistiques de distribution",
)
def statistics(
    event_id: uuid.UUID,
    resource_type: str,
    option_id: Optional[str] = Query(None, alias="resourceOptionId"),
    db: Session = Depends(get_db),
):
    try:
        resource_type = normalize_resource_type(resource_type)
        stats = statistics_service.get_resource_statistics(db, event_id, resource_type, option_id)
    except ValueError as e:
        return _failure(e)
    return ApiResponse(success=True, data=stats)


# ----------------------------------------------------------------
# Certificats
# ----------------------------------------------------------------

@router.get(
    "/resources/events/{event_id}/certificate-templates/{template_id}/registrations/{registration_id}/generate-pdf",
    response_class=Response,
    summary="Générer le PDF de certificat d'un participant",
)
def generate_certificate_pdf(
    event_id: uuid.UUID,
    template_id: str,
    registration_id: uuid.UUID,
    background: bool = Query(True),
    abstract_id: Optional[uuid.UUID] = Query(None, alias="abstractId"),
    db: Session = Depends(get_db),
):
    """
    PDF A4 paysage : image de fond du template et champs texte résolus depuis l'inscription.
    background=false : champs seuls (papier pré-imprimé).
    """
    try:
        pdf = certificate_service.generate_certificate_pdf(
            db, event_id, template_id, registration_id, background=background, abstract_id=abstract_id
        )
    except ValueError as e:
        return _failure(e)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="certificate-{registration_id}.pdf"'},
    )
