"""
Tests du service des abstracts : règles de soumission, cycle de vie, cache.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from atlas.cache import TTLCache
from atlas.models.abstract import Abstract
from atlas.schemas.abstract import AbstractCreate, AbstractStatusChange, AbstractUpdate
from atlas.services import abstract_service
from atlas.services.errors import ConflictError, NotFoundError


OPEN_SETTINGS = {
    "enabled": True,
    "isOpen": True,
    "maxLength": 10,
    "allowFiles": True,
    "maxFileSize": 1,
    "categories": [
        {"name": "Cardiology", "subTopics": [{"name": "Imaging"}, {"name": "Surgery"}]},
        {"name": "Oncology", "subTopics": []},
    ],
}


# --- Helpers ---

def make_data(**overrides) -> AbstractCreate:
    values = {
        "title": "QR codes at scale",
        "authors": "A. Martin, B. Leroy",
        "content": "Short abstract about scanning badges",
        "category": "Cardiology",
        "sub_topic": "Imaging",
    }
    values.update(overrides)
    return AbstractCreate(**values)


@pytest.fixture
def cache():
    return TTLCache(ttl_seconds=30)


@pytest.fixture
def portal(db_session, conference):
    conference["event"].abstract_settings = dict(OPEN_SETTINGS)
    db_session.commit()
    return conference


def create(db_session, cache, portal, **overrides):
    return abstract_service.create_abstract(
        db_session, cache, portal["event"].id, portal["reg1"].id, make_data(**overrides)
    )


def set_status(db_session, abstract_id, status):
    db_session.get(Abstract, abstract_id).status = status
    db_session.commit()


# ============================================================
# Création : règles de soumission
# ============================================================

def test_creation_brouillon(db_session, cache, portal):
    result = create(db_session, cache, portal)

    assert result.status == "draft"
    assert result.word_count == 5
    assert result.submitted_at is None


def test_creation_soumise_directement(db_session, cache, portal):
    result = create(db_session, cache, portal, submit=True)
    assert result.status == "submitted"
    assert result.submitted_at is not None


def test_soumissions_desactivees(db_session, cache, portal):
    portal["event"].abstract_settings = {**OPEN_SETTINGS, "enabled": False}
    db_session.commit()
    with pytest.raises(ValueError, match="not enabled"):
        create(db_session, cache, portal)


def test_soumissions_fermees(db_session, cache, portal):
    portal["event"].abstract_settings = {**OPEN_SETTINGS, "isOpen": False}
    db_session.commit()
    with pytest.raises(ValueError, match="closed"):
        create(db_session, cache, portal)


def test_date_limite_depassee(db_session, cache, portal):
    deadline = (datetime.now(timezone.utc) - timedelta(days=1)).strftime("%Y-%m-%dT%H:%M:%SZ")
    portal["event"].abstract_settings = {**OPEN_SETTINGS, "deadline": deadline}
    db_session.commit()
    with pytest.raises(ValueError, match="deadline"):
        create(db_session, cache, portal)


def test_date_limite_future_acceptee(db_session, cache, portal):
    deadline = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()
    portal["event"].abstract_settings = {**OPEN_SETTINGS, "deadline": deadline}
    db_session.commit()
    assert create(db_session, cache, portal).status == "draft"


def test_nombre_de_mots_depasse(db_session, cache, portal):
    with pytest.raises(ValueError, match="maximum word count of 10"):
        create(db_session, cache, portal, content=" ".join(["mot"] * 11))


def test_categorie_inconnue(db_session, cache, portal):
    with pytest.raises(ValueError, match="Unknown abstract category"):
        create(db_session, cache, portal, category="Dermatology", sub_topic=None)


def test_sous_theme_hors_categorie(db_session, cache, portal):
    with pytest.raises(ValueError, match="does not belong"):
        create(db_session, cache, portal, category="Oncology", sub_topic="Imaging")


def test_fichier_trop_gros(db_session, cache, portal):
    with pytest.raises(ValueError, match="1 MB"):
        create(db_session, cache, portal, file_name="poster.pdf", file_size=2 * 1024 * 1024)


def test_fichiers_interdits(db_session, cache, portal):
    portal["event"].abstract_settings = {**OPEN_SETTINGS, "allowFiles": False}
    db_session.commit()
    with pytest.raises(ValueError, match="not allowed"):
        create(db_session, cache, portal, file_name="poster.pdf", file_size=10)


def test_inscription_d_un_autre_evenement(db_session, cache, portal):
    with pytest.raises(NotFoundError):
        abstract_service.create_abstract(db_session, cache, uuid.uuid4(), portal["reg1"].id, make_data())


# ============================================================
# Liste et cache
# ============================================================

def test_liste_servie_par_le_cache(db_session, cache, portal):
    event_id, registration_id = portal["event"].id, portal["reg1"].id
    create(db_session, cache, portal)

    first = abstract_service.list_abstracts(db_session, cache, event_id, registration_id)
    assert len(first) == 1
    assert cache.get(f"abstracts:{event_id}:{registration_id}") == first


def test_creation_invalide_le_cache(db_session, cache, portal):
    event_id, registration_id = portal["event"].id, portal["reg1"].id
    create(db_session, cache, portal)
    abstract_service.list_abstracts(db_session, cache, event_id, registration_id)

    create(db_session, cache, portal, title="Second")

    assert len(abstract_service.list_abstracts(db_session, cache, event_id, registration_id)) == 2


# ============================================================
# Modification, suppression
# ============================================================

def test_modification_recalcule_les_mots(db_session, cache, portal):
    created = create(db_session, cache, portal)
    updated = abstract_service.update_abstract(
        db_session, cache, created.id, AbstractUpdate(content="one two three")
    )
    assert updated.content == "one two three"
    assert updated.word_count == 3


def test_modification_interdite_apres_decision(db_session, cache, portal):
    created = create(db_session, cache, portal)
    set_status(db_session, created.id, "approved")

    with pytest.raises(ConflictError):
        abstract_service.update_abstract(db_session, cache, created.id, AbstractUpdate(title="x"))


def test_modification_soumis_interdite_sans_allow_editing(db_session, cache, portal):
    portal["event"].abstract_settings = {**OPEN_SETTINGS, "allowEditing": False}
    db_session.commit()
    created = create(db_session, cache, portal, submit=True)

    with pytest.raises(ConflictError):
        abstract_service.update_abstract(db_session, cache, created.id, AbstractUpdate(title="x"))


def test_suppression(db_session, cache, portal):
    created = create(db_session, cache, portal)
    abstract_service.delete_abstract(db_session, cache, created.id)

    with pytest.raises(NotFoundError):
        abstract_service.get_abstract(db_session, created.id)


def test_suppression_interdite_si_rejete(db_session, cache, portal):
    created = create(db_session, cache, portal)
    set_status(db_session, created.id, "rejected")
    with pytest.raises(ConflictError):
        abstract_service.delete_abstract(db_session, cache, created.id)


# ============================================================
# Cycle de vie
# ============================================================

def test_cycle_complet_avec_revision(db_session, cache, portal):
    created = create(db_session, cache, portal)

    submitted = abstract_service.submit_abstract(db_session, cache, created.id)
    assert submitted.status == "submitted"

    for status in ("under-review", "revision-requested"):
        result = abstract_service.change_status(db_session, cache, created.id, AbstractStatusChange(status=status))
        assert result.status == status

    assert abstract_service.submit_abstract(db_session, cache, created.id).status == "submitted"
    abstract_service.change_status(db_session, cache, created.id, AbstractStatusChange(status="under-review"))
    final = abstract_service.change_status(db_session, cache, created.id, AbstractStatusChange(status="approved"))
    assert final.status == "approved"


def test_transition_invalide(db_session, cache, portal):
    created = create(db_session, cache, portal)
    with pytest.raises(ConflictError, match="Invalid status transition"):
        abstract_service.change_status(db_session, cache, created.id, AbstractStatusChange(status="approved"))


def test_soumission_deux_fois_refusee(db_session, cache, portal):
    created = create(db_session, cache, portal, submit=True)
    with pytest.raises(ConflictError):
        abstract_service.submit_abstract(db_session, cache, created.id)


def test_statut_inconnu_refuse_par_le_schema():
    with pytest.raises(ValueError):
        AbstractStatusChange(status="published")
