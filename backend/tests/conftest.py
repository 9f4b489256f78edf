"""
Configuration partagée pour tous les tests.
- client     : API avec get_db overridé par un MagicMock (aucune connexion PostgreSQL)
- db_session : session SQLite en mémoire avec le schéma complet (tests de services)
"""

import datetime as dt

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from unittest.mock import MagicMock

import atlas.models  # noqa: F401
from atlas.database import Base, get_db
from atlas.main import app
from atlas.models.event import Category, Event
from atlas.models.registration import Registration
from atlas.models.resource import ResourceSetting


@pytest.fixture
def client():
    """Client HTTP de test avec la BDD mockée."""
    mock_db = MagicMock()
    app.dependency_overrides[get_db] = lambda: mock_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    """Session SQLite en mémoire, schéma recréé pour chaque test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def conference(db_session):
    """
    Événement E1 (1-2 janvier 2026) avec :
    - catégorie Delegate (tous droits) et Exhibitor (pas de repas)
    - configuration food : Breakfast et Lunch le 1er janvier, Dinner le 2 janvier
    - configuration kits : un article "Conference Bag"
    - deux inscriptions actives REG-001 (Delegate) et REG-002 (Exhibitor)
    """
    event = Event(
        name="Annual Congress",
        start_date=dt.date(2026, 1, 1),
        end_date=dt.date(2026, 1, 2),
        venue_name="Palais des Congrès",
        venue_city="Bruxelles",
        status="PUBLISHED",
    )
    db_session.add(event)
    db_session.flush()

    delegate = Category(event_id=event.id, name="Delegate", color="#1f77b4")
    exhibitor = Category(event_id=event.id, name="Exhibitor", can_receive_meals=False)
    db_session.add_all([delegate, exhibitor])
    db_session.flush()

    db_session.add_all([
        ResourceSetting(
            event_id=event.id,
            resource_type="food",
            settings={
                "days": [
                    {"date": "2026-01-01", "meals": [{"name": "Breakfast"}, {"name": "Lunch"}]},
                    {"date": "2026-01-02", "meals": [{"name": "Dinner"}]},
                ]
            },
        ),
        ResourceSetting(
            event_id=event.id,
            resource_type="kits",
            settings={"items": [{"_id": "kit-bag", "name": "Conference Bag"}]},
        ),
    ])

    reg1 = Registration(
        event_id=event.id, category_id=delegate.id, registration_id="REG-001",
        qr_code="ATL-AAAAAAAAAA", first_name="Alice", last_name="Martin", email="alice@example.com",
    )
    reg2 = Registration(
        event_id=event.id, category_id=exhibitor.id, registration_id="REG-002",
        qr_code="ATL-BBBBBBBBBB", first_name="Bruno", last_name="Leroy",
    )
    db_session.add_all([reg1, reg2])
    db_session.commit()

    return {"event": event, "delegate": delegate, "exhibitor": exhibitor, "reg1": reg1, "reg2": reg2}
