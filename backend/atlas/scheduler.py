"""
Planificateur APScheduler pour l'envoi automatique des QR codes de badge avant chaque événement.

Le job s'exécute toutes les heures et envoie les QR codes aux participants des événements
publiés qui commencent dans les QR_EMAIL_LEAD_HOURS prochaines heures, si ce n'est pas déjà fait.
"""

import logging
from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy import select

from atlas.config import settings
from atlas.database import SessionLocal
from atlas.models.event import Event

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def _send_qr_emails_scheduled() -> None:
    """
    Tâche planifiée : cherche les événements publiés qui commencent bientôt et déclenche
    l'envoi des QR codes pour les participants non encore notifiés.
    Import local pour éviter les imports circulaires.
    """
    from atlas.services.qr_email_service import send_qr_emails_for_event

    now = datetime.now(timezone.utc)
    horizon = (now + timedelta(hours=settings.QR_EMAIL_LEAD_HOURS)).date()
    db = SessionLocal()
    try:
        events = db.execute(
            select(Event).where(
                Event.start_date >= now.date(),
                Event.start_date <= horizon,
                Event.status == "PUBLISHED",
            )
        ).scalars().all()

        for event in events:
            logger.info("Envoi automatique QR codes, événement %s (%s, %s)", event.id, event.name, event.start_date)
            result = send_qr_emails_for_event(db, event.id)
            logger.info(
                "Événement %s : %d envoyés, %d déjà envoyés, %d sans email, %d erreurs",
                event.id,
                result.sent_count,
                result.already_sent_count,
                result.no_email_count,
                len(result.errors),
            )
    except Exception as exc:
        logger.error("Erreur lors de l'envoi automatique des QR codes : %s", exc)
    finally:
        db.close()


def start_scheduler() -> None:
    """Démarre le planificateur en arrière-plan (appelé au démarrage de l'API)."""
    scheduler.add_job(
        _send_qr_emails_scheduled,
        trigger="interval",
        hours=1,
        id="badge_qr_email_check",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Scheduler démarré : vérification des QR codes de badge toutes les heures.")


def stop_scheduler() -> None:
    """Arrête le planificateur proprement (appelé à l'arrêt de l'API)."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler arrêté.")
