"""
Service d'orchestration pour l'envoi des QR codes de badge par email.

Flux :
  1. Vérifier que l'événement existe et n'est pas archivé
  2. Pour chaque inscription active de l'événement :
     a. Skip si pas d'email
     b. Skip si le QR code a déjà été envoyé (qr_emailed_at renseigné)
     c. Générer l'image QR code en mémoire
     d. Envoyer l'email (qr_emailed_at n'est renseigné qu'en cas de succès)
  3. Commiter et retourner le rapport
"""

import io
import logging
import uuid
from datetime import datetime, timezone

import qrcode
from sqlalchemy import select
from sqlalchemy.orm import Session

from atlas.models.event import Event
from atlas.models.registration import Registration
from atlas.schemas.registration import QrEmailSendResult
from atlas.services.email_service import send_badge_qr_email
from atlas.services.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


def generate_qr_image(payload: str) -> bytes:
    """Génère une image PNG du QR code encodant le contenu donné."""
    qr = qrcode.QRCode(version=1, box_size=10, border=4)
    qr.add_data(payload)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def send_qr_emails_for_event(db: Session, event_id: uuid.UUID) -> QrEmailSendResult:
    """
    Envoie le QR code de badge à toutes les inscriptions actives d'un événement.

    Règles métier :
    - Inscription sans email → no_email_count, aucun envoi
    - QR déjà envoyé → already_sent_count
    - Erreur SMTP individuelle → log + ajout dans errors, qr_emailed_at reste NULL

    Lève NotFoundError si l'événement est introuvable, ConflictError s'il est archivé.
    """
    event = db.execute(select(Event).where(Event.id == event_id)).scalar()
    if not event:
        raise NotFoundError("Event not found.")
    if event.status == "ARCHIVED":
        raise ConflictError("Cannot send QR codes for an archived event.")

    result = QrEmailSendResult(
        event_id=event_id,
        sent_count=0,
        already_sent_count=0,
        no_email_count=0,
        errors=[],
    )

    registrations = db.execute(
        select(Registration).where(
            Registration.event_id == event_id,
            Registration.status == "active",
        )
    ).scalars().all()

    for registration in registrations:
        if not registration.email:
            result.no_email_count += 1
            continue

        if registration.qr_emailed_at is not None:
            result.already_sent_count += 1
            continue

        try:
            qr_bytes = generate_qr_image(registration.qr_code or registration.registration_id)
            send_badge_qr_email(
                to_email=registration.email,
                attendee_name=f"{registration.first_name} {registration.last_name}",
                registration_code=registration.registration_id,
                event_name=event.name,
                event_date=event.start_date,
                qr_image_bytes=qr_bytes,
            )
            registration.qr_emailed_at = datetime.now(timezone.utc)
            result.sent_count += 1
        except Exception as exc:
            error_msg = f"Email error {registration.email} : {exc}"
            result.errors.append(error_msg)
            logger.error(error_msg)

    db.commit()

    logger.info(
        "QR codes événement %s : %d envoyés, %d déjà envoyés, %d sans email, %d erreurs",
        event_id, result.sent_count, result.already_sent_count,
        result.no_email_count, len(result.errors),
    )
    return result
