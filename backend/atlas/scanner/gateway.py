"""
Passerelle HTTP du poste de scan vers l'API Onsite Atlas (httpx, synchrone).

Toutes les méthodes retournent Ok/Err (voir envelope.py) et ne lèvent jamais d'exception
réseau : un timeout ou une connexion refusée devient Err(TRANSPORT, ...).
"""

import logging
import uuid
from typing import Any, Dict, Optional

import httpx

from atlas.config import settings
from atlas.scanner.envelope import HTTP, MALFORMED, TRANSPORT, Err, Ok, Result, parse_envelope

logger = logging.getLogger(__name__)


class ScannerGateway:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ):
        self._client = client or httpx.Client(
            base_url=base_url or settings.SCANNER_API_URL,
            timeout=timeout if timeout is not None else settings.SCANNER_HTTP_TIMEOUT,
        )

    def close(self) -> None:
        self._client.close()

    def _send(self, method: str, path: str, **kwargs) -> Any:
        """Retourne la réponse httpx, ou un Err(TRANSPORT) si la requête n'a pas abouti."""
        try:
            return self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Requête %s %s en échec : %s", method, path, exc)
            return Err(TRANSPORT, "Network error", details=str(exc))

    def _envelope(self, method: str, path: str, **kwargs) -> Result:
        response = self._send(method, path, **kwargs)
        if isinstance(response, Err):
            return response
        try:
            payload = response.json()
        except ValueError:
            return Err(MALFORMED, "Unexpected response from server", details=f"HTTP {response.status_code}")
        return parse_envelope(payload)

    # ----------------------------------------------------------------
    # Catalogue
    # ----------------------------------------------------------------

    def get_resource_settings(self, event_id: str, resource_type: str) -> Result:
        return self._envelope("GET", f"/api/v1/events/{event_id}/resources/settings/{resource_type}")

    # ----------------------------------------------------------------
    # Scan
    # ----------------------------------------------------------------

    def validate_scan(self, event_id: str, resource_type: str, option_id: str, code: str) -> Result:
        return self._envelope(
            "POST",
            "/api/v1/resources/validate-scan",
            json={
                "eventId": str(event_id),
                "resourceType": resource_type,
                "resourceOptionId": option_id,
                "qrCode": code,
            },
        )

    def record_usage(
        self,
        event_id: str,
        resource_type: str,
        option_id: str,
        code: str,
        client_uuid: uuid.UUID,
    ) -> Result:
        return self._envelope(
            "POST",
            "/api/v1/resources/record-usage",
            json={
                "eventId": str(event_id),
                "resourceType": resource_type,
                "resourceOptionId": option_id,
                "qrCode": code,
                "clientUuid": str(client_uuid),
            },
        )

    def lookup_registration(self, event_id: str, code: str) -> Result:
        """Détails d'affichage du participant (réponse hors enveloppe)."""
        response = self._send("GET", f"/api/v1/events/{event_id}/registrations/scan", params={"code": code})
        if isinstance(response, Err):
            return response
        if response.status_code != 200:
            return Err(HTTP, "Registration lookup failed", details=f"HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError:
            return Err(MALFORMED, "Unexpected response from server", details=f"HTTP {response.status_code}")
        if not isinstance(payload, dict):
            return Err(MALFORMED, "Unexpected response from server", details="Registration details must be an object")
        return Ok(payload)

    # ----------------------------------------------------------------
    # Lectures (statistiques, derniers scans)
    # ----------------------------------------------------------------

    def get_recent_scans(
        self,
        event_id: str,
        resource_type: str,
        option_id: Optional[str] = None,
        limit: int = 20,
    ) -> Result:
        params: Dict[str, Any] = {"eventId": str(event_id), "type": resource_type, "limit": limit}
        if option_id:
            params["resourceOptionId"] = option_id
        return self._envelope("GET", "/api/v1/resources/recent-scans", params=params)

    def get_statistics(self, event_id: str, resource_type: str, option_id: Optional[str] = None) -> Result:
        params = {"resourceOptionId": option_id} if option_id else None
        return self._envelope("GET", f"/api/v1/resources/statistics/{event_id}/{resource_type}", params=params)

    # ----------------------------------------------------------------
    # Certificats
    # ----------------------------------------------------------------

    def generate_certificate_pdf(self, event_id: str, template_id: str, registration_id: str) -> Result:
        """Ok(bytes du PDF) ou Err avec le message de l'API."""
        response = self._send(
            "GET",
            f"/api/v1/resources/events/{event_id}/certificate-templates/{template_id}"
            f"/registrations/{registration_id}/generate-pdf",
        )
        if isinstance(response, Err):
            return response
        if response.status_code == 200 and response.headers.get("content-type", "").startswith("application/pdf"):
            return Ok(response.content)
        try:
            return parse_envelope(response.json())
        except ValueError:
            return Err(HTTP, "Certificate generation failed", details=f"HTTP {response.status_code}")
