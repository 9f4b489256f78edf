"""
Router pour les abstracts des participants : soumission, modification, revue.
Les listes par participant sont servies via le TTLCache de l'application.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from atlas.cache import TTLCache
from atlas.database import get_db
from atlas.schemas.abstract import AbstractCreate, AbstractResponse, AbstractStatusChange, AbstractUpdate
from atlas.services import abstract_service
from atlas.services.errors import ConflictError, NotFoundError

router = APIRouter(prefix="/api/v1", tags=["Abstracts"])


def get_abstract_cache(request: Request) -> TTLCache:
    """Cache créé une seule fois au démarrage (main.py)."""
    return request.app.state.abstract_cache


def _http_error(e: ValueError) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ConflictError):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


@router.post(
    "/events/{event_id}/registrations/{registration_id}/abstracts",
    response_model=AbstractResponse,
    status_code=201,
    summary="Créer un abstract",
)
def create_abstract(
    event_id: uuid.UUID,
    registration_id: uuid.UUID,
    data: AbstractCreate,
    db: Session = Depends(get_db),
    cache: TTLCache = Depends(get_abstract_cache),
):
    """
    Crée un abstract en brouillon (ou soumis si submit=true).
    Refusé si les soumissions sont fermées, la date limite dépassée,
    le nombre de mots ou la taille du fichier trop grands.
    """
    try:
        return abstract_service.create_abstract(db, cache, event_id, registration_id, data)
    except ValueError as e:
        raise _http_error(e)


@router.get(
    "/events/{event_id}/registrations/{registration_id}/abstracts",
    response_model=List[AbstractResponse],
    summary="Lister les abstracts d'un participant",
)
def list_abstracts(
    event_id: uuid.UUID,
    registration_id: uuid.UUID,
    db: Session = Depends(get_db),
    cache: TTLCache = Depends(get_abstract_cache),
):
    return abstract_service.list_abstracts(db, cache, event_id, registration_id)


@router.get("/abstracts/{abstract_id}", response_model=AbstractResponse, summary="Détail d'un abstract")
def get_abstract(abstract_id: uuid.UUID, db: Session = Depends(get_db)):
    try:
        return abstract_service.get_abstract(db, abstract_id)
    except ValueError as e:
        raise _http_error(e)


@router.put("/abstracts/{abstract_id}", response_model=AbstractResponse, summary="Modifier un abstract")
def update_abstract(
    abstract_id: uuid.UUID,
    data: AbstractUpdate,
    db: Session = Depends(get_db),
    cache: TTLCache = Depends(get_abstract_cache),
):
    try:
        return abstract_service.update_abstract(db, cache, abstract_id, data)
    except ValueError as e:
        raise _http_error(e)


@router.delete("/abstracts/{abstract_id}", status_code=204, summary="Supprimer un abstract")
def delete_abstract(
    abstract_id: uuid.UUID,
    db: Session = Depends(get_db),
    cache: TTLCache = Depends(get_abstract_cache),
):
    """Interdit une fois l'abstract accepté ou rejeté."""
    try:
        abstract_service.delete_abstract(db, cache, abstract_id)
    except ValueError as e:
        raise _http_error(e)


@router.post("/abstracts/{abstract_id}/submit", response_model=AbstractResponse, summary="Soumettre un abstract")
def submit_abstract(
    abstract_id: uuid.UUID,
    db: Session = Depends(get_db),
    cache: TTLCache = Depends(get_abstract_cache),
):
    try:
        return abstract_service.submit_abstract(db, cache, abstract_id)
    except ValueError as e:
        raise _http_error(e)


@router.post(
    "/abstracts/{abstract_id}/status",
    response_model=AbstractResponse,
    summary="Décision de revue",
)
def change_status(
    abstract_id: uuid.UUID,
    data: AbstractStatusChange,
    db: Session = Depends(get_db),
    cache: TTLCache = Depends(get_abstract_cache),
):
    """Transitions : submitted → under-review → approved | rejected | revision-requested."""
    try:
        return abstract_service.change_status(db, cache, abstract_id, data)
    except ValueError as e:
        raise _http_error(e)
