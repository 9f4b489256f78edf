"""
Service de scan des ressources : validation d'un code scanné et enregistrement de la remise.

Flux côté poste de scan :
  1. validate_scan  → le code est-il connu, le participant éligible, la ressource encore disponible ?
  2. record_usage   → écrit la remise (les contrôles sont rejoués, le client n'est jamais cru sur parole)

Unicité : au plus une remise active par (inscription, type, option).
- Vérifiée explicitement avant l'INSERT
- Garantie en base par l'index partiel uq_resource_usages_active (deux postes qui scannent
  le même badge au même moment : le second INSERT échoue → ALREADY_REDEEMED)
- client_uuid : un rejeu de la même tentative renvoie la remise existante (duplicate=True)
Exception : certificatePrinting avec force=True (réimpression).
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Tuple

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from atlas.models.event import Category, Event
from atlas.models.registration import Registration
from atlas.models.resource import ResourceUsage
from atlas.schemas.resource import (
    RecordUsageRequest,
    RegistrationSummary,
    ResourceOption,
    ScanRequest,
    ScanValidation,
    UsageRecord,
    VoidResult,
)
from atlas.services.errors import ConflictError, NotFoundError, ScanRejected
from atlas.services.resource_catalog import find_option
from atlas.services.resource_settings_service import get_resource_options
from atlas.services.resource_types import (
    CERTIFICATE_PRINTING,
    CERTIFICATES,
    FOOD,
    KITS,
    display_name,
)

logger = logging.getLogger(__name__)

# Droit de la catégorie requis par type (l'impression de certificat suit le droit certificat)
_CATEGORY_PERMISSION = {
    FOOD: "can_receive_meals",
    KITS: "can_receive_kits",
    CERTIFICATES: "can_receive_certificates",
    CERTIFICATE_PRINTING: "can_receive_certificates",
}


def find_registration(db: Session, event_id: uuid.UUID, code: str) -> Optional[Registration]:
    """Recherche une inscription de l'événement par contenu du QR code ou par code lisible."""
    return db.execute(
        select(Registration).where(
            Registration.event_id == event_id,
            or_(Registration.qr_code == code, Registration.registration_id == code),
        )
    ).scalar()


def registration_summary(registration: Registration, category: Optional[Category]) -> RegistrationSummary:
    return RegistrationSummary(
        id=registration.id,
        registration_id=registration.registration_id,
        first_name=registration.first_name or "",
        last_name=registration.last_name or "",
        category_name=category.name if category else None,
    )


def _active_usage(
    db: Session,
    registration_id: uuid.UUID,
    resource_type: str,
    option_id: str,
) -> Optional[ResourceUsage]:
    return db.execute(
        select(ResourceUsage).where(
            ResourceUsage.registration_id == registration_id,
            ResourceUsage.resource_type == resource_type,
            ResourceUsage.option_id == option_id,
            ResourceUsage.status == "used",
        )
    ).scalar()


def _check_scan(
    db: Session,
    event_id: uuid.UUID,
    resource_type: str,
    option_id: str,
    code: str,
) -> Tuple[ResourceOption, Registration, Category]:
    """
    Contrôles communs à la validation et à l'enregistrement, dans l'ordre :
    événement, option du catalogue, inscription, statut, droit de la catégorie.
    Lève ScanRejected au premier contrôle en échec.
    """
    label = display_name(resource_type).lower()

    if db.get(Event, event_id) is None:
        raise ScanRejected(ScanRejected.UNKNOWN_EVENT, "Event not found", status_code=404)

    option = find_option(get_resource_options(db, event_id, resource_type), option_id)
    if option is None:
        raise ScanRejected(ScanRejected.UNKNOWN_OPTION, f"Unknown {label} option: {option_id}")

    registration = find_registration(db, event_id, code)
    if registration is None:
        raise ScanRejected(ScanRejected.UNKNOWN_CODE, "Registration not found", status_code=404)

    if registration.status != "active":
        raise ScanRejected(
            ScanRejected.INACTIVE_REGISTRATION, f"Registration is {registration.status}"
        )

    category = db.get(Category, registration.category_id) if registration.category_id else None
    if category is None or not getattr(category, _CATEGORY_PERMISSION[resource_type]):
        raise ScanRejected(
            ScanRejected.NOT_ELIGIBLE,
            f"This category does not have permission for {label}",
        )

    return option, registration, category


def validate_scan(db: Session, data: ScanRequest) -> ScanValidation:
    """
    Vérifie qu'un scan peut être enregistré, sans rien écrire.
    Retourne le résumé de l'inscription reconnue.
    """
    _, registration, category = _check_scan(
        db, data.event_id, data.resource_type, data.resource_option_id, data.qr_code
    )

    if _active_usage(db, registration.id, data.resource_type, data.resource_option_id):
        raise ScanRejected(
            ScanRejected.ALREADY_REDEEMED,
            f"This {display_name(data.resource_type).lower()} has already been used by this registration",
        )

    return ScanValidation(registration=registration_summary(registration, category))


def _to_record(usage: ResourceUsage, duplicate: bool = False) -> UsageRecord:
    return UsageRecord(
        id=usage.id,
        registration_id=usage.registration_id,
        resource_type=usage.resource_type,
        option_id=usage.option_id,
        option_name=usage.option_name,
        status=usage.status,
        action_date=usage.action_date,
        duplicate=duplicate,
    )


def _find_by_client_uuid(db: Session, client_uuid: Optional[uuid.UUID]) -> Optional[ResourceUsage]:
    if client_uuid is None:
        return None
    return db.execute(
        select(ResourceUsage).where(ResourceUsage.client_uuid == client_uuid)
    ).scalar()


def _replay(db: Session, existing: ResourceUsage, data: RecordUsageRequest) -> UsageRecord:
    """Rejeu d'un client_uuid : il doit désigner la même remise, sinon ConflictError."""
    registration = find_registration(db, data.event_id, data.qr_code.strip())
    if (
        existing.event_id != data.event_id
        or existing.resource_type != data.resource_type
        or existing.option_id != data.resource_option_id
        or registration is None
        or existing.registration_id != registration.id
    ):
        logger.warning("client_uuid %s réutilisé pour une autre remise", data.client_uuid)
        raise ConflictError("Client UUID already used for a different resource usage.")
    logger.debug("client_uuid déjà enregistré, rejeu ignoré : %s", data.client_uuid)
    return _to_record(existing, duplicate=True)


def record_usage(db: Session, data: RecordUsageRequest) -> UsageRecord:
    """
    Enregistre la remise d'une ressource à un participant.

    1. Rejeu d'un client_uuid déjà connu → remise existante, duplicate=True
    2. Contrôles du scan rejoués (événement, option, inscription, éligibilité)
    3. Refus si une remise active existe déjà (sauf réimpression forcée de certificat)
    4. INSERT ; une violation de l'index d'unicité (course entre deux postes) → ALREADY_REDEEMED
    """
    existing = _find_by_client_uuid(db, data.client_uuid)
    if existing:
        return _replay(db, existing, data)

    option, registration, _ = _check_scan(
        db, data.event_id, data.resource_type, data.resource_option_id, data.qr_code
    )
    label = display_name(data.resource_type).lower()

    reprint = data.force and data.resource_type == CERTIFICATE_PRINTING
    if not reprint and _active_usage(db, registration.id, data.resource_type, option.id):
        raise ScanRejected(
            ScanRejected.ALREADY_REDEEMED,
            f"This {label} has already been used by this registration",
        )

    usage = ResourceUsage(
        client_uuid=data.client_uuid,
        event_id=data.event_id,
        registration_id=registration.id,
        resource_type=data.resource_type,
        option_id=option.id,
        option_name=option.name,
        status="used",
        reprint=reprint,
        action_date=datetime.now(timezone.utc),
        action_by=data.action_by,
    )
    db.add(usage)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        replayed = _find_by_client_uuid(db, data.client_uuid)
        if replayed:
            return _replay(db, replayed, data)
        logger.warning(
            "Remise concurrente refusée : inscription %s, %s %s",
            registration.id, data.resource_type, option.id,
        )
        raise ScanRejected(
            ScanRejected.ALREADY_REDEEMED,
            f"This {label} has already been used by this registration",
            status_code=409,
        )
    db.refresh(usage)

    logger.info(
        "Remise %s '%s' enregistrée pour %s (événement %s)",
        data.resource_type, option.name, registration.registration_id, data.event_id,
    )
    return _to_record(usage)


def void_usage(db: Session, usage_id: uuid.UUID, reason: Optional[str] = None) -> VoidResult:
    """
    Annule une remise : toutes les remises actives de la même (inscription, type, option)
    passent en statut voided. La ressource peut ensuite être scannée à nouveau.
    """
    usage = db.get(ResourceUsage, usage_id)
    if usage is None:
        raise NotFoundError(f"Resource usage {usage_id} not found.")
    if usage.status == "voided":
        raise ConflictError("Resource usage already voided.")

    result = db.execute(
        update(ResourceUsage)
        .where(
            ResourceUsage.registration_id == usage.registration_id,
            ResourceUsage.resource_type == usage.resource_type,
            ResourceUsage.option_id == usage.option_id,
            ResourceUsage.status == "used",
        )
        .values(status="voided", void_reason=reason, voided_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session="fetch")
    )
    db.commit()

    logger.info(
        "Remise %s annulée (%d enregistrement(s)), motif : %s",
        usage_id, result.rowcount, reason or "non précisé",
    )
    return VoidResult(usage_id=usage_id, voided_count=result.rowcount)
