"""
Service métier pour les événements et leurs catégories de participants.
"""

import uuid
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from atlas.models.event import Category, Event
from atlas.schemas.event import (
    CategoryCreate,
    CategoryResponse,
    EventCreate,
    EventResponse,
    EventUpdate,
)
from atlas.services.errors import NotFoundError

logger = logging.getLogger(__name__)


def create_event(db: Session, data: EventCreate) -> EventResponse:
    event = Event(
        name=data.name,
        start_date=data.start_date,
        end_date=data.end_date,
        venue_name=data.venue_name,
        venue_city=data.venue_city,
        abstract_settings=data.abstract_settings,
        status="DRAFT",
    )
    db.add(event)
    db.commit()
    db.refresh(event)

    logger.info("Événement créé : %s (%s)", event.name, event.id)
    return EventResponse.model_validate(event)


def get_events(db: Session) -> List[EventResponse]:
    """Retourne les événements non archivés, du plus récent au plus ancien."""
    events = db.execute(
        select(Event)
        .where(Event.status != "ARCHIVED")
        .order_by(Event.start_date.desc())
    ).scalars().all()
    return [EventResponse.model_validate(e) for e in events]


def get_event(db: Session, event_id: uuid.UUID) -> Optional[EventResponse]:
    event = db.get(Event, event_id)
    if event is None:
        return None
    return EventResponse.model_validate(event)


def update_event(db: Session, event_id: uuid.UUID, data: EventUpdate) -> Optional[EventResponse]:
    """Met à jour les champs fournis uniquement."""
    event = db.get(Event, event_id)
    if event is None:
        return None

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(event, field, value)

    db.commit()
    db.refresh(event)
    return EventResponse.model_validate(event)


def create_category(db: Session, event_id: uuid.UUID, data: CategoryCreate) -> CategoryResponse:
    """Crée une catégorie de participants avec ses droits aux ressources."""
    if db.get(Event, event_id) is None:
        raise NotFoundError(f"Event {event_id} not found.")

    category = Category(event_id=event_id, **data.model_dump())
    db.add(category)
    db.commit()
    db.refresh(category)
    return CategoryResponse.model_validate(category)


def get_categories(db: Session, event_id: uuid.UUID) -> List[CategoryResponse]:
    categories = db.execute(
        select(Category).where(Category.event_id == event_id).order_by(Category.name)
    ).scalars().all()
    return [CategoryResponse.model_validate(c) for c in categories]
