"""
Poste de scan : orchestre la saisie d'un code (caméra ou manuelle), la validation,
l'enregistrement de la remise et le rafraîchissement des statistiques.

Cycle d'un scan :
  IDLE → start_camera() → SCANNING → décodage / saisie → PROCESSING
       → SCANNING (caméra, après la pause de RESUME_DELAY_SECONDS) | IDLE (manuel)

process_qr_code est le seul chemin commun aux deux modes :
  1. configuration (événement, type, option) vérifiée sans appel réseau
  2. validation par l'API ; refus → message de l'API tel quel, rien n'est enregistré
  3. enregistrement avec un client_uuid neuf ; échec → message distinct
  4. détails du participant (best-effort, un échec est seulement loggué)
  5. impression de certificat en tâche de fond (certificatePrinting)
  6. un rafraîchissement des derniers scans et un des statistiques
"""

import logging
import threading
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Deque, Dict, Optional, Protocol

from atlas.config import settings
from atlas.scanner.catalog import ResourceCatalog
from atlas.scanner.gateway import ScannerGateway
from atlas.services.resource_types import CERTIFICATE_PRINTING, display_name, normalize_resource_type

logger = logging.getLogger(__name__)

IDLE = "idle"
SCANNING = "scanning"
PROCESSING = "processing"

CAMERA = "camera"
MANUAL = "manual"

RECORD_FAILED_MESSAGE = "Recording failed after successful validation"
MAX_NOTIFICATIONS = 50
CAMERA_ERROR_MESSAGE = "Camera Error: unable to start the camera. Check permissions or switch to manual entry."


class Camera(Protocol):
    """Décodeur QR lié à un périphérique caméra."""

    def render(self, on_success: Callable[[str], Any], on_failure: Callable[[str], Any]) -> None: ...

    def pause(self) -> None: ...

    def resume(self) -> None: ...

    def clear(self) -> None: ...


@dataclass
class ScanResult:
    success: bool
    message: str
    details: Optional[str] = None
    registration: Optional[Dict[str, Any]] = None
    resource_option: Optional[str] = None


@dataclass
class ReadState:
    """Dernière valeur lue avec succès ; stale=True si le dernier rafraîchissement a échoué."""
    value: Any
    stale: bool = False
    error: Optional[str] = None


def _empty_statistics() -> Dict[str, int]:
    return {"count": 0, "today": 0, "uniqueAttendees": 0}


@dataclass
class Notification:
    level: str
    message: str
    at: datetime = field(default_factory=datetime.now)


class ScannerStation:
    """
    `scheduler` est un planificateur APScheduler (BackgroundScheduler en production) :
    il porte la reprise de la caméra après la pause et la génération des PDF de certificat.
    """

    def __init__(
        self,
        gateway: ScannerGateway,
        camera_factory: Callable[[], Camera],
        scheduler,
        event_id: Optional[str] = None,
        resume_delay: Optional[float] = None,
        certificate_handler: Optional[Callable[[bytes], Any]] = None,
    ):
        self.gateway = gateway
        self.catalog = ResourceCatalog(gateway)
        self.scheduler = scheduler
        self.event_id = event_id
        self.resume_delay = resume_delay if resume_delay is not None else settings.SCANNER_RESUME_DELAY_SECONDS
        self.certificate_handler = certificate_handler

        self.resource_type: Optional[str] = None
        self.scanner_type = CAMERA
        self.state = IDLE
        self.manual_input = ""
        self.camera_error: Optional[str] = None
        self.last_result: Optional[ScanResult] = None
        self.notifications: Deque[Notification] = deque(maxlen=MAX_NOTIFICATIONS)

        self.statistics = ReadState(_empty_statistics())
        self.recent_scans = ReadState([])

        self._camera_factory = camera_factory
        self._camera: Optional[Camera] = None
        self._camera_lock = threading.Lock()

    # ----------------------------------------------------------------
    # Configuration
    # ----------------------------------------------------------------

    @property
    def selected_option(self):
        return self.catalog.selected

    def select_resource_type(self, resource_type: str) -> None:
        """Arrête la caméra active, puis charge les options du nouveau type."""
        resource_type = normalize_resource_type(resource_type)
        self.stop_camera()
        self.resource_type = resource_type
        if self.event_id:
            self.catalog.load(self.event_id, resource_type)
        else:
            self.catalog.clear()
        self.refresh_data()

    def select_option(self, option_id: str) -> None:
        self.catalog.select(option_id)
        self.refresh_data()

    def select_scanner_type(self, scanner_type: str) -> None:
        if scanner_type not in (CAMERA, MANUAL):
            raise ValueError(f"Invalid scanner type: {scanner_type}")
        self.stop_camera()
        self.scanner_type = scanner_type
        self.camera_error = None

    # ----------------------------------------------------------------
    # Caméra
    # ----------------------------------------------------------------

    def start_camera(self) -> bool:
        """Crée le décodeur (jamais deux à la fois). False et camera_error renseigné en cas d'échec."""
        with self._camera_lock:
            if self._camera is not None:
                self._release_camera()
            try:
                camera = self._camera_factory()
                camera.render(self.on_decode, self._on_decode_failure)
            except Exception as exc:
                logger.error("Démarrage de la caméra impossible : %s", exc)
                self.camera_error = CAMERA_ERROR_MESSAGE
                self.state = IDLE
                return False
            self._camera = camera
            self.camera_error = None
            self.state = SCANNING
            return True

    def stop_camera(self) -> None:
        with self._camera_lock:
            if self._camera is not None:
                self._release_camera()
            self.state = IDLE

    def _release_camera(self) -> None:
        camera, self._camera = self._camera, None
        try:
            camera.clear()
        except Exception as exc:
            logger.warning("Arrêt de la caméra en erreur : %s", exc)

    def _on_decode_failure(self, error: str) -> None:
        # Appelé à chaque image sans QR lisible
        pass

    def on_decode(self, text: str) -> ScanResult:
        """Code décodé par la caméra : pause, traitement, reprise planifiée après la pause."""
        with self._camera_lock:
            if self._camera is not None:
                self._camera.pause()
        try:
            return self.process_qr_code(text)
        finally:
            # La caméra reprend même si le traitement a levé une exception
            self.scheduler.add_job(
                self._resume_camera,
                trigger="date",
                run_date=datetime.now() + timedelta(seconds=self.resume_delay),
                id="scanner_resume",
                replace_existing=True,
            )

    def _resume_camera(self) -> None:
        with self._camera_lock:
            if self._camera is None or self.scanner_type != CAMERA:
                return
            self._camera.resume()
            self.state = SCANNING

    # ----------------------------------------------------------------
    # Saisie manuelle
    # ----------------------------------------------------------------

    def submit_manual(self, text: Optional[str] = None) -> Optional[ScanResult]:
        """Soumet le code saisi. Saisie vide : aucun appel, retourne None."""
        code = (self.manual_input if text is None else text).strip()
        if not code:
            return None
        result = self.process_qr_code(code)
        self.manual_input = ""
        return result

    # ----------------------------------------------------------------
    # Traitement d'un scan
    # ----------------------------------------------------------------

    def process_qr_code(self, code: str) -> ScanResult:
        option = self.catalog.selected
        if not self.event_id:
            return self._finish(ScanResult(False, "No event selected"))
        if not self.resource_type or option is None:
            return self._finish(ScanResult(False, "Please select a resource type and option"))
        if option.placeholder:
            return self._finish(
                ScanResult(False, "No valid resource option selected", details="Check the resource settings")
            )

        self.state = PROCESSING
        code = code.strip()

        validation = self.gateway.validate_scan(self.event_id, self.resource_type, option.id, code)
        if not validation.ok:
            logger.info("Scan refusé (%s) : %s", code, validation.message)
            return self._finish(ScanResult(False, validation.message, details=validation.details))

        record = self.gateway.record_usage(self.event_id, self.resource_type, option.id, code, uuid.uuid4())
        if not record.ok:
            logger.error("Enregistrement en échec après validation (%s) : %s", code, record.message)
            return self._finish(ScanResult(False, RECORD_FAILED_MESSAGE, details=record.message))

        registration = (validation.value or {}).get("registration") or {}
        lookup = self.gateway.lookup_registration(self.event_id, code)
        if lookup.ok and isinstance(lookup.value, dict):
            registration = {**registration, **lookup.value}
        else:
            logger.warning("Détails du participant indisponibles (%s) : %s", code, lookup.message)

        result = ScanResult(
            True,
            f"{display_name(self.resource_type)} recorded successfully",
            registration=registration,
            resource_option=option.name,
        )

        if self.resource_type == CERTIFICATE_PRINTING and registration.get("_id"):
            self.scheduler.add_job(
                self._print_certificate,
                args=[self.event_id, option.id, registration["_id"]],
            )

        self.refresh_recent_scans()
        self.refresh_statistics()
        return self._finish(result)

    def _finish(self, result: ScanResult) -> ScanResult:
        self.last_result = result
        if self.scanner_type == MANUAL:
            self.state = IDLE
        return result

    def _print_certificate(self, event_id: str, template_id: str, registration_id: str) -> None:
        """Tâche de fond : un échec est notifié mais ne change pas le résultat du scan."""
        result = self.gateway.generate_certificate_pdf(event_id, template_id, registration_id)
        if not result.ok:
            logger.error("Génération du certificat en échec : %s", result.message)
            self.notifications.append(Notification("error", f"Certificate generation failed: {result.message}"))
            return
        if self.certificate_handler is not None:
            self.certificate_handler(result.value)
        self.notifications.append(
            Notification("info", "Certificate ready. Print in landscape orientation.")
        )

    # ----------------------------------------------------------------
    # Rafraîchissements
    # ----------------------------------------------------------------

    def _read_scope(self):
        option = self.catalog.selected
        option_id = option.id if option is not None and not option.placeholder else None
        return self.event_id, self.resource_type, option_id

    def refresh_statistics(self) -> None:
        event_id, resource_type, option_id = self._read_scope()
        if not event_id or not resource_type:
            return
        result = self.gateway.get_statistics(event_id, resource_type, option_id)
        if result.ok:
            self.statistics = ReadState({**_empty_statistics(), **(result.value or {})})
        else:
            logger.warning("Rafraîchissement des statistiques en échec : %s", result.message)
            self.statistics = ReadState(self.statistics.value, stale=True, error=result.message)

    def refresh_recent_scans(self) -> None:
        event_id, resource_type, option_id = self._read_scope()
        if not event_id or not resource_type:
            return
        result = self.gateway.get_recent_scans(event_id, resource_type, option_id)
        if result.ok:
            self.recent_scans = ReadState(list(result.value or []))
        else:
            logger.warning("Rafraîchissement des derniers scans en échec : %s", result.message)
            self.recent_scans = ReadState(self.recent_scans.value, stale=True, error=result.message)

    def refresh_data(self) -> None:
        """Bouton « Refresh Data »."""
        self.refresh_recent_scans()
        self.refresh_statistics()
