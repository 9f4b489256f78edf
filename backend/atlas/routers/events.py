"""
Router pour les événements, leurs catégories de participants et les inscriptions.
Envoi des QR codes de badge par email et image QR d'une inscription.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from atlas.database import get_db
from atlas.schemas.event import CategoryCreate, CategoryResponse, EventCreate, EventResponse, EventUpdate
from atlas.schemas.registration import (
    QrEmailSendResult,
    RegistrationCreate,
    RegistrationDetails,
    RegistrationResponse,
)
from atlas.services import event_service, qr_email_service, registration_service
from atlas.services.errors import ConflictError, NotFoundError

router = APIRouter(prefix="/api/v1/events", tags=["Événements"])


def _http_error(e: ValueError) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ConflictError):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


@router.post("", response_model=EventResponse, status_code=201, summary="Créer un événement")
def create_event(data: EventCreate, db: Session = Depends(get_db)):
    """Crée un événement en brouillon (DRAFT)."""
    return event_service.create_event(db, data)


@router.get("", response_model=List[EventResponse], summary="Lister les événements")
def list_events(db: Session = Depends(get_db)):
    """Retourne les événements non archivés, du plus récent au plus ancien."""
    return event_service.get_events(db)


@router.get("/{event_id}", response_model=EventResponse, summary="Détail d'un événement")
def get_event(event_id: uuid.UUID, db: Session = Depends(get_db)):
    event = event_service.get_event(db, event_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found.")
    return event


@router.put("/{event_id}", response_model=EventResponse, summary="Modifier un événement")
def update_event(event_id: uuid.UUID, data: EventUpdate, db: Session = Depends(get_db)):
    """Met à jour un événement. Seuls les champs fournis sont modifiés."""
    event = event_service.update_event(db, event_id, data)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found.")
    return event


@router.post(
    "/{event_id}/categories",
    response_model=CategoryResponse,
    status_code=201,
    summary="Créer une catégorie de participants",
)
def create_category(event_id: uuid.UUID, data: CategoryCreate, db: Session = Depends(get_db)):
    """
    Crée une catégorie avec ses droits aux ressources
    (repas, kits, certificats ; l'impression suit le droit certificat).
    """
    try:
        return event_service.create_category(db, event_id, data)
    except ValueError as e:
        raise _http_error(e)


@router.get("/{event_id}/categories", response_model=List[CategoryResponse], summary="Lister les catégories")
def list_categories(event_id: uuid.UUID, db: Session = Depends(get_db)):
    return event_service.get_categories(db, event_id)


@router.post(
    "/{event_id}/registrations",
    response_model=RegistrationResponse,
    status_code=201,
    summary="Inscrire un participant",
)
def register(event_id: uuid.UUID, data: RegistrationCreate, db: Session = Depends(get_db)):
    """
    Inscrit un participant à l'événement.
    Génère le code lisible (REG-001, ...) et le contenu unique du QR code de badge.
    """
    try:
        return registration_service.register(db, event_id, data)
    except ValueError as e:
        raise _http_error(e)


@router.get(
    "/{event_id}/registrations/scan",
    response_model=RegistrationDetails,
    summary="Retrouver une inscription par code scanné",
)
def lookup_registration(
    event_id: uuid.UUID,
    code: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
):
    """Recherche par contenu du QR code ou par code lisible (utilisé par le poste de scan)."""
    details = registration_service.lookup_by_code(db, event_id, code.strip())
    if details is None:
        raise HTTPException(status_code=404, detail="Registration not found.")
    return details


@router.get(
    "/{event_id}/registrations/{registration_id}/qr",
    response_class=Response,
    summary="Image PNG du QR code d'une inscription",
)
def registration_qr(event_id: uuid.UUID, registration_id: uuid.UUID, db: Session = Depends(get_db)):
    try:
        registration = registration_service.get_registration(db, event_id, registration_id)
    except ValueError as e:
        raise _http_error(e)
    png = qr_email_service.generate_qr_image(registration.qr_code)
    return Response(content=png, media_type="image/png")


@router.post(
    "/{event_id}/send-qr-emails",
    response_model=QrEmailSendResult,
    summary="Envoyer les QR codes de badge par email",
)
def send_qr_emails(event_id: uuid.UUID, db: Session = Depends(get_db)):
    """
    Envoie son QR code de badge à chaque participant inscrit.

    - Skip les participants sans email (no_email_count)
    - Skip les participants déjà notifiés (already_sent_count)
    - En cas d'erreur SMTP individuelle : continue et log dans errors

    Idempotent : un second appel n'envoie qu'aux participants non encore notifiés.
    """
    try:
        return qr_email_service.send_qr_emails_for_event(db, event_id)
    except ValueError as e:
        raise _http_error(e)
