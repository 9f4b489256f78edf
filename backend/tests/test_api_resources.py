"""
Tests d'intégration API pour la distribution des ressources.
Toutes les réponses suivent l'enveloppe {success, message, data, code}.
"""

import uuid
from datetime import datetime, timezone
from unittest.mock import patch

from atlas.schemas.resource import (
    RegistrationSummary,
    ResourceOption,
    ResourceSettingsPayload,
    ResourceStatistics,
    ScanValidation,
    UsageRecord,
    VoidResult,
)
from atlas.services.errors import NotFoundError, ScanRejected


# --- Helpers ---

def scan_body(event_id=None, **overrides):
    body = {
        "eventId": str(event_id or uuid.uuid4()),
        "resourceType": "food",
        "resourceOptionId": "0_Breakfast",
        "qrCode": "REG-001",
    }
    body.update(overrides)
    return body


def make_validation() -> ScanValidation:
    return ScanValidation(
        registration=RegistrationSummary(
            id=uuid.uuid4(), registration_id="REG-001", first_name="Alice", last_name="Martin",
            category_name="Delegate",
        )
    )


def make_record(duplicate=False) -> UsageRecord:
    return UsageRecord(
        id=uuid.uuid4(),
        registration_id=uuid.uuid4(),
        resource_type="food",
        option_id="0_Breakfast",
        option_name="Breakfast (Jan 1)",
        status="used",
        action_date=datetime.now(timezone.utc),
        duplicate=duplicate,
    )


# ============================================================
# POST /api/v1/resources/validate-scan
# ============================================================

def test_validate_scan_succes(client):
    with patch("atlas.routers.resources.scan_service.validate_scan") as mock:
        mock.return_value = make_validation()
        response = client.post("/api/v1/resources/validate-scan", json=scan_body())

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["registration"]["registrationId"] == "REG-001"
    assert "_id" in body["data"]["registration"]


def test_validate_scan_type_normalise(client):
    with patch("atlas.routers.resources.scan_service.validate_scan") as mock:
        mock.return_value = make_validation()
        client.post("/api/v1/resources/validate-scan", json=scan_body(resourceType="kitBag"))

    assert mock.call_args.args[1].resource_type == "kits"


def test_validate_scan_deja_remis(client):
    with patch("atlas.routers.resources.scan_service.validate_scan") as mock:
        mock.side_effect = ScanRejected(ScanRejected.ALREADY_REDEEMED, "Already redeemed")
        response = client.post("/api/v1/resources/validate-scan", json=scan_body())

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Already redeemed", "data": None, "code": "ALREADY_REDEEMED"}


def test_validate_scan_code_inconnu_404(client):
    with patch("atlas.routers.resources.scan_service.validate_scan") as mock:
        mock.side_effect = ScanRejected(ScanRejected.UNKNOWN_CODE, "Registration not found", status_code=404)
        response = client.post("/api/v1/resources/validate-scan", json=scan_body())

    assert response.status_code == 404
    assert response.json()["code"] == "UNKNOWN_CODE"


def test_validate_scan_type_invalide_422(client):
    response = client.post("/api/v1/resources/validate-scan", json=scan_body(resourceType="drinks"))
    assert response.status_code == 422


def test_validate_scan_code_vide_422(client):
    response = client.post("/api/v1/resources/validate-scan", json=scan_body(qrCode="   "))
    assert response.status_code == 422


# ============================================================
# POST /api/v1/resources/record-usage
# ============================================================

def test_record_usage_succes(client):
    client_uuid = uuid.uuid4()
    with patch("atlas.routers.resources.scan_service.record_usage") as mock:
        mock.return_value = make_record()
        response = client.post(
            "/api/v1/resources/record-usage", json=scan_body(clientUuid=str(client_uuid))
        )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Food recorded successfully"
    assert body["data"]["optionName"] == "Breakfast (Jan 1)"
    assert mock.call_args.args[1].client_uuid == client_uuid


def test_record_usage_rejeu_idempotent(client):
    with patch("atlas.routers.resources.scan_service.record_usage") as mock:
        mock.return_value = make_record(duplicate=True)
        response = client.post("/api/v1/resources/record-usage", json=scan_body(clientUuid=str(uuid.uuid4())))

    assert response.json()["data"]["duplicate"] is True


def test_record_usage_course_409(client):
    with patch("atlas.routers.resources.scan_service.record_usage") as mock:
        mock.side_effect = ScanRejected(ScanRejected.ALREADY_REDEEMED, "Already redeemed", status_code=409)
        response = client.post("/api/v1/resources/record-usage", json=scan_body())

    assert response.status_code == 409
    assert response.json()["success"] is False


# ============================================================
# Annulation
# ============================================================

def test_void_usage(client):
    usage_id = uuid.uuid4()
    with patch("atlas.routers.resources.scan_service.void_usage") as mock:
        mock.return_value = VoidResult(usage_id=usage_id, voided_count=1)
        response = client.post(f"/api/v1/resources/usages/{usage_id}/void", json={"reason": "Erreur"})

    assert response.status_code == 200
    assert response.json()["data"]["voidedCount"] == 1
    mock.assert_called_once()
    assert mock.call_args.args[1:] == (usage_id, "Erreur")


def test_void_usage_introuvable(client):
    with patch("atlas.routers.resources.scan_service.void_usage") as mock:
        mock.side_effect = NotFoundError("Resource usage not found.")
        response = client.post(f"/api/v1/resources/usages/{uuid.uuid4()}/void")

    assert response.status_code == 404
    assert response.json()["success"] is False


# ============================================================
# Configuration, options, statistiques, derniers scans
# ============================================================

def test_get_settings(client):
    event_id = uuid.uuid4()
    with patch("atlas.routers.resources.resource_settings_service.get_resource_settings") as mock:
        mock.return_value = ResourceSettingsPayload(resource_type="food", settings={"days": []}, is_enabled=True)
        response = client.get(f"/api/v1/events/{event_id}/resources/settings/food")

    assert response.status_code == 200
    assert response.json()["data"] == {"resourceType": "food", "settings": {"days": []}, "isEnabled": True}


def test_get_settings_type_invalide(client):
    response = client.get(f"/api/v1/events/{uuid.uuid4()}/resources/settings/drinks")
    assert response.status_code == 400
    assert "Invalid resource type" in response.json()["message"]


def test_update_settings(client):
    event_id = uuid.uuid4()
    settings = {"items": [{"_id": "bag", "name": "Bag"}]}
    with patch("atlas.routers.resources.resource_settings_service.update_resource_settings") as mock:
        mock.return_value = ResourceSettingsPayload(resource_type="kits", settings=settings, is_enabled=True)
        response = client.put(f"/api/v1/events/{event_id}/resources/settings/kits", json={"settings": settings})

    assert response.status_code == 200
    assert response.json()["message"] == "Kit Bag settings updated"


def test_get_options(client):
    with patch("atlas.routers.resources.resource_settings_service.get_resource_options") as mock:
        mock.return_value = [ResourceOption(id="0_Breakfast", name="Breakfast (Jan 1)", day_index=0)]
        response = client.get(f"/api/v1/events/{uuid.uuid4()}/resources/options/food")

    option = response.json()["data"][0]
    assert option["_id"] == "0_Breakfast"
    assert option["name"] == "Breakfast (Jan 1)"


def test_statistics(client):
    event_id = uuid.uuid4()
    with patch("atlas.routers.resources.statistics_service.get_resource_statistics") as mock:
        mock.return_value = ResourceStatistics(count=4, today=2, unique_attendees=3)
        response = client.get(f"/api/v1/resources/statistics/{event_id}/food?resourceOptionId=0_Breakfast")

    data = response.json()["data"]
    assert (data["count"], data["today"], data["uniqueAttendees"]) == (4, 2, 3)
    mock.assert_called_once()
    assert mock.call_args.args[1:] == (event_id, "food", "0_Breakfast")


def test_statistics_evenement_introuvable(client):
    with patch("atlas.routers.resources.statistics_service.get_resource_statistics") as mock:
        mock.side_effect = NotFoundError("Event not found.")
        response = client.get(f"/api/v1/resources/statistics/{uuid.uuid4()}/food")

    assert response.status_code == 404


def test_recent_scans(client):
    event_id = uuid.uuid4()
    with patch("atlas.routers.resources.statistics_service.get_recent_scans") as mock:
        mock.return_value = []
        response = client.get(f"/api/v1/resources/recent-scans?eventId={event_id}&type=food&limit=5")

    assert response.json() == {"success": True, "message": None, "data": [], "code": None}
    assert mock.call_args.args[1:] == (event_id, "food", None, 5)


def test_recent_scans_event_obligatoire(client):
    assert client.get("/api/v1/resources/recent-scans").status_code == 422


# ============================================================
# Certificats
# ============================================================

def test_generate_pdf(client):
    url = (f"/api/v1/resources/events/{uuid.uuid4()}/certificate-templates/tpl1"
           f"/registrations/{uuid.uuid4()}/generate-pdf")
    with patch("atlas.routers.resources.certificate_service.generate_certificate_pdf") as mock:
        mock.return_value = b"%PDF-1.4 fake"
        response = client.get(url)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content == b"%PDF-1.4 fake"
    assert mock.call_args.kwargs == {"background": True, "abstract_id": None}


def test_generate_pdf_sans_fond_pour_papier_pre_imprime(client):
    abstract_id = uuid.uuid4()
    url = (f"/api/v1/resources/events/{uuid.uuid4()}/certificate-templates/tpl1"
           f"/registrations/{uuid.uuid4()}/generate-pdf?background=false&abstractId={abstract_id}")
    with patch("atlas.routers.resources.certificate_service.generate_certificate_pdf") as mock:
        mock.return_value = b"%PDF-1.4 fake"
        response = client.get(url)

    assert response.status_code == 200
    assert mock.call_args.kwargs == {"background": False, "abstract_id": abstract_id}


def test_generate_pdf_template_introuvable(client):
    url = (f"/api/v1/resources/events/{uuid.uuid4()}/certificate-templates/absent"
           f"/registrations/{uuid.uuid4()}/generate-pdf")
    with patch("atlas.routers.resources.certificate_service.generate_certificate_pdf") as mock:
        mock.side_effect = NotFoundError("Certificate template absent not found.")
        response = client.get(url)

    assert response.status_code == 404
    assert response.json()["success"] is False
