"""
Service de configuration des ressources par événement.
Lecture (avec valeurs par défaut si aucune configuration n'existe), mise à jour, options du catalogue.
"""

import logging
import uuid
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from atlas.models.event import Event
from atlas.models.resource import ResourceSetting
from atlas.schemas.resource import ResourceOption, ResourceSettingsPayload, ResourceSettingsUpdate
from atlas.services.errors import NotFoundError
from atlas.services.resource_catalog import build_options, default_settings

logger = logging.getLogger(__name__)


def _get_event(db: Session, event_id: uuid.UUID) -> Event:
    event = db.get(Event, event_id)
    if event is None:
        raise NotFoundError(f"Event {event_id} not found.")
    return event


def _find_setting(db: Session, event_id: uuid.UUID, resource_type: str):
    return db.execute(
        select(ResourceSetting).where(
            ResourceSetting.event_id == event_id,
            ResourceSetting.resource_type == resource_type,
        )
    ).scalar()


def get_resource_settings(
    db: Session,
    event_id: uuid.UUID,
    resource_type: str,
) -> ResourceSettingsPayload:
    """
    Retourne la configuration d'un type de ressource pour un événement.
    Sans configuration enregistrée, renvoie la configuration par défaut (activée, vide).
    """
    _get_event(db, event_id)
    setting = _find_setting(db, event_id, resource_type)
    if setting is None:
        logger.debug("Aucune configuration %s pour l'événement %s, valeurs par défaut", resource_type, event_id)
        return ResourceSettingsPayload(
            resource_type=resource_type,
            settings=default_settings(resource_type),
            is_enabled=True,
        )

    return ResourceSettingsPayload(
        resource_type=resource_type,
        settings=setting.settings or default_settings(resource_type),
        is_enabled=bool(setting.is_enabled),
    )


def update_resource_settings(
    db: Session,
    event_id: uuid.UUID,
    resource_type: str,
    data: ResourceSettingsUpdate,
) -> ResourceSettingsPayload:
    """Crée ou remplace la configuration d'un type de ressource (upsert sur (event, type))."""
    _get_event(db, event_id)
    setting = _find_setting(db, event_id, resource_type)
    if setting is None:
        setting = ResourceSetting(
            event_id=event_id,
            resource_type=resource_type,
            settings=data.settings,
            is_enabled=True if data.is_enabled is None else data.is_enabled,
        )
        db.add(setting)
    else:
        setting.settings = data.settings
        if data.is_enabled is not None:
            setting.is_enabled = data.is_enabled

    db.commit()
    db.refresh(setting)

    logger.info(
        "Configuration %s mise à jour pour l'événement %s : %d options",
        resource_type, event_id, len(build_options(resource_type, setting.settings)),
    )
    return ResourceSettingsPayload(
        resource_type=resource_type,
        settings=setting.settings,
        is_enabled=bool(setting.is_enabled),
    )


def get_resource_options(db: Session, event_id: uuid.UUID, resource_type: str) -> List[ResourceOption]:
    """Options sélectionnables dérivées de la configuration (liste vide si non configuré)."""
    payload = get_resource_settings(db, event_id, resource_type)
    return build_options(resource_type, payload.settings)
