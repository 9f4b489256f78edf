"""
Service métier pour les abstracts.

Règles de soumission (Event.abstract_settings) :
- enabled / isOpen : soumissions activées et ouvertes
- deadline         : aucune création ni soumission après la date limite
- maxLength        : nombre maximal de mots du contenu (500 par défaut)
- categories       : [{name, subTopics: [{name}]}], catégorie obligatoire si des catégories existent
- allowFiles / maxFileSize (Mo) : pièce jointe optionnelle
- allowEditing     : si False, seuls les brouillons et les révisions demandées restent modifiables

Cycle de vie :
  draft → submitted → under-review → approved | rejected | revision-requested
  revision-requested → submitted
approved et rejected sont terminaux (ni modification ni suppression).
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from atlas.cache import TTLCache
from atlas.models.abstract import Abstract
from atlas.models.event import Event
from atlas.models.registration import Registration
from atlas.schemas.abstract import AbstractCreate, AbstractResponse, AbstractStatusChange, AbstractUpdate
from atlas.services.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORDS = 500
DEFAULT_MAX_FILE_MB = 5
TERMINAL_STATUSES = {"approved", "rejected"}

# Transitions décidées par la revue (la resoumission passe par submit_abstract)
REVIEW_TRANSITIONS = {
    "submitted": {"under-review"},
    "under-review": {"approved", "rejected", "revision-requested"},
}


def count_words(content: str) -> int:
    return len(content.split())


def _cache_key(event_id: uuid.UUID, registration_id: uuid.UUID) -> str:
    return f"abstracts:{event_id}:{registration_id}"


def _parse_deadline(raw: Any) -> Optional[datetime]:
    if not raw:
        return None
    deadline = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    if deadline.tzinfo is None:
        deadline = deadline.replace(tzinfo=timezone.utc)
    return deadline


def _check_open(config: Dict[str, Any]) -> None:
    if not config.get("enabled"):
        raise ValueError("Abstract submissions are not enabled for this event.")
    if not config.get("isOpen"):
        raise ValueError("Abstract submissions are closed for this event.")
    deadline = _parse_deadline(config.get("deadline"))
    if deadline and datetime.now(timezone.utc) > deadline:
        raise ValueError("Abstract submission deadline has passed.")


def _check_content(config: Dict[str, Any], content: str) -> int:
    word_count = count_words(content)
    max_words = config.get("maxLength") or DEFAULT_MAX_WORDS
    if word_count > max_words:
        raise ValueError(f"Abstract exceeds maximum word count of {max_words}.")
    return word_count


def _check_classification(config: Dict[str, Any], category: Optional[str], sub_topic: Optional[str]) -> None:
    """La catégorie doit exister dans la configuration, et le sous-thème appartenir à cette catégorie."""
    categories = config.get("categories") or []
    if not categories:
        return
    match = next((c for c in categories if isinstance(c, dict) and c.get("name") == category), None)
    if match is None:
        raise ValueError(f"Unknown abstract category: {category}.")
    sub_topics = [s.get("name") for s in match.get("subTopics") or [] if isinstance(s, dict)]
    if sub_topic and sub_topic not in sub_topics:
        raise ValueError(f"Sub-topic '{sub_topic}' does not belong to category '{category}'.")


def _check_file(config: Dict[str, Any], file_name: Optional[str], file_size: Optional[int]) -> None:
    if not file_name:
        return
    if not config.get("allowFiles"):
        raise ValueError("File uploads are not allowed for this event.")
    max_mb = config.get("maxFileSize") or DEFAULT_MAX_FILE_MB
    if file_size is not None and file_size > max_mb * 1024 * 1024:
        raise ValueError(f"File exceeds maximum size of {max_mb} MB.")


def _load_context(db: Session, event_id: uuid.UUID, registration_id: uuid.UUID) -> Event:
    event = db.get(Event, event_id)
    if event is None:
        raise NotFoundError(f"Event {event_id} not found.")
    registration = db.get(Registration, registration_id)
    if registration is None or registration.event_id != event_id:
        raise NotFoundError(f"Registration {registration_id} not found.")
    return event


def _get(db: Session, abstract_id: uuid.UUID) -> Abstract:
    abstract = db.get(Abstract, abstract_id)
    if abstract is None:
        raise NotFoundError(f"Abstract {abstract_id} not found.")
    return abstract


def create_abstract(
    db: Session,
    cache: TTLCache,
    event_id: uuid.UUID,
    registration_id: uuid.UUID,
    data: AbstractCreate,
) -> AbstractResponse:
    """Crée un abstract en brouillon, ou directement soumis si data.submit est vrai."""
    event = _load_context(db, event_id, registration_id)
    config = event.abstract_settings or {}

    _check_open(config)
    word_count = _check_content(config, data.content)
    _check_classification(config, data.category, data.sub_topic)
    _check_file(config, data.file_name, data.file_size)

    abstract = Abstract(
        event_id=event_id,
        registration_id=registration_id,
        title=data.title,
        authors=data.authors,
        content=data.content,
        category=data.category,
        sub_topic=data.sub_topic,
        word_count=word_count,
        file_name=data.file_name,
        file_size=data.file_size,
        status="submitted" if data.submit else "draft",
        submitted_at=datetime.now(timezone.utc) if data.submit else None,
    )
    db.add(abstract)
    db.commit()
    db.refresh(abstract)
    cache.invalidate(_cache_key(event_id, registration_id))

    logger.info("Abstract %s créé (%s) pour l'inscription %s", abstract.id, abstract.status, registration_id)
    return AbstractResponse.model_validate(abstract)


def list_abstracts(
    db: Session,
    cache: TTLCache,
    event_id: uuid.UUID,
    registration_id: uuid.UUID,
) -> List[AbstractResponse]:
    """Abstracts d'un participant, servis depuis le cache tant qu'il est frais."""
    key = _cache_key(event_id, registration_id)
    cached = cache.get(key)
    if cached is not None:
        return cached

    abstracts = db.execute(
        select(Abstract)
        .where(Abstract.event_id == event_id, Abstract.registration_id == registration_id)
        .order_by(Abstract.created_at.desc())
    ).scalars().all()
    result = [AbstractResponse.model_validate(a) for a in abstracts]
    cache.set(key, result)
    return result


def get_abstract(db: Session, abstract_id: uuid.UUID) -> AbstractResponse:
    return AbstractResponse.model_validate(_get(db, abstract_id))


def update_abstract(
    db: Session,
    cache: TTLCache,
    abstract_id: uuid.UUID,
    data: AbstractUpdate,
) -> AbstractResponse:
    """
    Modifie un abstract non terminal.
    La date limite s'applique aux brouillons et aux abstracts soumis, pas aux révisions demandées.
    """
    abstract = _get(db, abstract_id)
    event = db.get(Event, abstract.event_id)
    config = event.abstract_settings or {}

    if abstract.status in TERMINAL_STATUSES or abstract.status == "under-review":
        raise ConflictError(f"Abstract cannot be edited in its current status: {abstract.status}.")
    if not config.get("allowEditing", True) and abstract.status not in ("draft", "revision-requested"):
        raise ConflictError(f"Abstract cannot be edited in its current status: {abstract.status}.")
    if abstract.status != "revision-requested":
        deadline = _parse_deadline(config.get("deadline"))
        if deadline and datetime.now(timezone.utc) > deadline:
            raise ValueError("Abstract submission deadline has passed.")

    changes = data.model_dump(exclude_unset=True)
    if "content" in changes and changes["content"] is not None:
        abstract.word_count = _check_content(config, changes["content"])
    _check_classification(
        config,
        changes.get("category", abstract.category),
        changes.get("sub_topic", abstract.sub_topic),
    )
    _check_file(
        config,
        changes.get("file_name", abstract.file_name),
        changes.get("file_size", abstract.file_size),
    )

    for field, value in changes.items():
        setattr(abstract, field, value)

    db.commit()
    db.refresh(abstract)
    cache.invalidate(_cache_key(abstract.event_id, abstract.registration_id))
    return AbstractResponse.model_validate(abstract)


def delete_abstract(db: Session, cache: TTLCache, abstract_id: uuid.UUID) -> None:
    abstract = _get(db, abstract_id)
    if abstract.status in TERMINAL_STATUSES:
        raise ConflictError(f"Cannot delete abstract with status: {abstract.status}.")

    key = _cache_key(abstract.event_id, abstract.registration_id)
    db.delete(abstract)
    db.commit()
    cache.invalidate(key)
    logger.info("Abstract %s supprimé", abstract_id)


def submit_abstract(db: Session, cache: TTLCache, abstract_id: uuid.UUID) -> AbstractResponse:
    """Soumet un brouillon (avant la date limite) ou une révision demandée."""
    abstract = _get(db, abstract_id)
    if abstract.status not in ("draft", "revision-requested"):
        raise ConflictError(f"Abstract cannot be submitted in its current status: {abstract.status}.")
    if abstract.status == "draft":
        _check_open(db.get(Event, abstract.event_id).abstract_settings or {})

    abstract.status = "submitted"
    abstract.submitted_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(abstract)
    cache.invalidate(_cache_key(abstract.event_id, abstract.registration_id))
    return AbstractResponse.model_validate(abstract)


def change_status(
    db: Session,
    cache: TTLCache,
    abstract_id: uuid.UUID,
    data: AbstractStatusChange,
) -> AbstractResponse:
    """Applique une décision de revue si la transition est permise."""
    abstract = _get(db, abstract_id)
    allowed = REVIEW_TRANSITIONS.get(abstract.status, set())
    if data.status not in allowed:
        raise ConflictError(f"Invalid status transition: {abstract.status} → {data.status}.")

    previous = abstract.status
    abstract.status = data.status
    db.commit()
    db.refresh(abstract)
    cache.invalidate(_cache_key(abstract.event_id, abstract.registration_id))

    logger.info("Abstract %s : %s → %s", abstract_id, previous, data.status)
    return AbstractResponse.model_validate(abstract)
