"""
Statistiques de distribution et flux des derniers scans.

Les compteurs portent sur les remises actives (status = used) ; les remises annulées
sont comptées à part (total_voided).
"""

import logging
import uuid
from datetime import datetime, time, timezone
from typing import List, Optional

from sqlalchemy import distinct, func, select
from sqlalchemy.orm import Session

from atlas.models.event import Category
from atlas.models.registration import Registration
from atlas.models.resource import ResourceUsage
from atlas.schemas.resource import (
    RecentScan,
    RecentScanCategory,
    RecentScanOption,
    RecentScanRegistration,
    ResourceStatistics,
)
from atlas.services.resource_settings_service import get_resource_options

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 10
MAX_RECENT_LIMIT = 100


def _today_start() -> datetime:
    """Minuit UTC du jour courant."""
    return datetime.combine(datetime.now(timezone.utc).date(), time.min, tzinfo=timezone.utc)


def get_resource_statistics(
    db: Session,
    event_id: uuid.UUID,
    resource_type: str,
    option_id: Optional[str] = None,
) -> ResourceStatistics:
    """
    Compteurs pour un type de ressource, restreints à une option si option_id est fourni :
    - count            : remises actives
    - today            : remises actives depuis minuit (UTC)
    - unique_attendees : participants distincts servis
    - total_voided     : remises annulées
    - total_configured : nombre d'options du catalogue
    - total_registrations : inscriptions de l'événement
    Lève NotFoundError si l'événement est introuvable.
    """
    total_configured = len(get_resource_options(db, event_id, resource_type))

    scope = [ResourceUsage.event_id == event_id, ResourceUsage.resource_type == resource_type]
    if option_id:
        scope.append(ResourceUsage.option_id == option_id)
    active = scope + [ResourceUsage.status == "used"]

    count, unique_attendees = db.execute(
        select(func.count(ResourceUsage.id), func.count(distinct(ResourceUsage.registration_id)))
        .where(*active)
    ).one()

    today = db.execute(
        select(func.count(ResourceUsage.id))
        .where(*active, ResourceUsage.action_date >= _today_start())
    ).scalar() or 0

    total_voided = db.execute(
        select(func.count(ResourceUsage.id)).where(*scope, ResourceUsage.status == "voided")
    ).scalar() or 0

    total_registrations = db.execute(
        select(func.count(Registration.id)).where(Registration.event_id == event_id)
    ).scalar() or 0

    return ResourceStatistics(
        count=count or 0,
        today=today,
        unique_attendees=unique_attendees or 0,
        total_voided=total_voided,
        total_configured=total_configured,
        total_registrations=total_registrations,
    )


def get_recent_scans(
    db: Session,
    event_id: uuid.UUID,
    resource_type: Optional[str] = None,
    option_id: Optional[str] = None,
    limit: int = DEFAULT_RECENT_LIMIT,
) -> List[RecentScan]:
    """Dernières remises actives, de la plus récente à la plus ancienne, avec l'identité du participant."""
    limit = max(1, min(limit, MAX_RECENT_LIMIT))

    query = (
        select(ResourceUsage, Registration, Category)
        .join(Registration, Registration.id == ResourceUsage.registration_id)
        .outerjoin(Category, Category.id == Registration.category_id)
        .where(ResourceUsage.event_id == event_id, ResourceUsage.status == "used")
    )
    if resource_type:
        query = query.where(ResourceUsage.resource_type == resource_type)
    if option_id:
        query = query.where(ResourceUsage.option_id == option_id)

    rows = db.execute(
        query.order_by(ResourceUsage.action_date.desc(), ResourceUsage.created_at.desc()).limit(limit)
    ).all()

    scans = []
    for usage, registration, category in rows:
        scans.append(
            RecentScan(
                id=usage.id,
                timestamp=usage.action_date,
                resource_type=usage.resource_type,
                status=usage.status,
                resource_option=RecentScanOption(
                    id=usage.option_id,
                    name=usage.option_name or usage.option_id,
                ),
                registration=RecentScanRegistration(
                    id=registration.id,
                    registration_id=registration.registration_id or "Unknown",
                    first_name=registration.first_name or "",
                    last_name=registration.last_name or "",
                    category=RecentScanCategory(
                        id=category.id if category else None,
                        name=category.name if category else "Unknown",
                        color=category.color if category else None,
                    ),
                ),
                action_by=usage.action_by or "System",
            )
        )

    logger.debug("Derniers scans événement %s (%s) : %d", event_id, resource_type or "tous", len(scans))
    return scans
