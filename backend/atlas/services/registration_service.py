"""
Service métier pour les inscriptions : auto-inscription et recherche par code scanné.
"""

import uuid
import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from atlas.models.event import Category, Event
from atlas.models.registration import Registration
from atlas.schemas.registration import RegistrationCreate, RegistrationDetails, RegistrationResponse
from atlas.services.errors import ConflictError, NotFoundError
from atlas.services.scan_service import find_registration

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 5


def _generate_qr_code() -> str:
    """Contenu unique du QR code imprimé sur le badge (format : ATL-XXXXXXXXXX)."""
    return "ATL-" + uuid.uuid4().hex[:10].upper()


def _count_registrations(db: Session, event_id: uuid.UUID) -> int:
    return db.execute(
        select(func.count(Registration.id)).where(Registration.event_id == event_id)
    ).scalar() or 0


def register(db: Session, event_id: uuid.UUID, data: RegistrationCreate) -> RegistrationResponse:
    """
    Inscrit un participant à un événement.

    Le code lisible REG-NNN est séquentiel par événement ; le QR code est un jeton aléatoire.
    Deux inscriptions simultanées peuvent calculer le même code : la seconde est rejouée
    avec le code suivant (MAX_CODE_ATTEMPTS tentatives).
    Lève NotFoundError si l'événement ou la catégorie est introuvable,
    ConflictError si l'événement est archivé ou si aucun code n'a pu être attribué.
    """
    event = db.get(Event, event_id)
    if event is None:
        raise NotFoundError(f"Event {event_id} not found.")
    if event.status == "ARCHIVED":
        raise ConflictError("Registrations are closed for an archived event.")

    if data.category_id is not None:
        category = db.get(Category, data.category_id)
        if category is None or category.event_id != event_id:
            raise NotFoundError(f"Category {data.category_id} not found.")

    for attempt in range(MAX_CODE_ATTEMPTS):
        code = f"REG-{_count_registrations(db, event_id) + 1 + attempt:03d}"
        registration = Registration(
            event_id=event_id,
            category_id=data.category_id,
            registration_id=code,
            qr_code=_generate_qr_code(),
            first_name=data.first_name,
            last_name=data.last_name,
            email=data.email,
            organization=data.organization,
            status="active",
        )
        db.add(registration)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(
                "Code %s déjà attribué (événement %s), nouvel essai",
                code, event_id,
            )
            continue
        db.refresh(registration)
        logger.info("Inscription %s créée pour l'événement %s", registration.registration_id, event_id)
        return RegistrationResponse.model_validate(registration)

    raise ConflictError("Could not allocate a registration code, please retry.")


def get_registration(db: Session, event_id: uuid.UUID, registration_id: uuid.UUID) -> Registration:
    registration = db.get(Registration, registration_id)
    if registration is None or registration.event_id != event_id:
        raise NotFoundError(f"Registration {registration_id} not found.")
    return registration


def lookup_by_code(db: Session, event_id: uuid.UUID, code: str) -> Optional[RegistrationDetails]:
    """Détails d'affichage d'une inscription retrouvée par QR code ou code lisible."""
    registration = find_registration(db, event_id, code.strip())
    if registration is None:
        return None

    category = db.get(Category, registration.category_id) if registration.category_id else None
    return RegistrationDetails(
        id=registration.id,
        registration_id=registration.registration_id,
        name=f"{registration.first_name} {registration.last_name}".strip(),
        organization=registration.organization,
        category_name=category.name if category else None,
        status=registration.status,
        checked_in=bool(registration.checked_in),
    )
