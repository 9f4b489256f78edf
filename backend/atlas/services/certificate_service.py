"""
Génération du PDF de certificat d'un participant à partir d'un template certificatePrinting.

Le template décrit une image de fond (templateUrl) et des champs texte positionnés :
  {"label": "Name", "type": "text", "dataSource": "Registration.personalInfo.fullName",
   "position": {"x": 120, "y": 80}, "style": {"fontSize": 24, "align": "center", "maxWidth": 200}}
Les positions sont exprimées dans templateUnit (pt, mm, cm, in, px) avec l'origine en haut à gauche.
Le PDF est toujours en A4 paysage.
"""

import io
import logging
import os
import uuid
from typing import Any, Dict, Optional

from reportlab.lib.colors import HexColor, black
from reportlab.lib.pagesizes import A4, landscape
from reportlab.pdfgen import canvas
from sqlalchemy import select
from sqlalchemy.orm import Session

from atlas.config import settings as app_settings
from atlas.models.abstract import Abstract
from atlas.models.event import Category, Event
from atlas.models.registration import Registration
from atlas.models.resource import ResourceSetting
from atlas.services.errors import NotFoundError
from atlas.services.resource_catalog import find_template
from atlas.services.resource_types import CERTIFICATE_PRINTING

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = landscape(A4)

_POINTS_PER_UNIT = {"pt": 1.0, "mm": 2.83465, "cm": 28.3465, "in": 72.0, "px": 0.75}

_BOLD_FONTS = {"Helvetica": "Helvetica-Bold", "Times-Roman": "Times-Bold", "Courier": "Courier-Bold"}


def to_points(value: Any, unit: Optional[str] = "pt") -> float:
    """Convertit une valeur du template en points PDF (px supposés à 96 dpi)."""
    if not value:
        return 0.0
    return float(value) * _POINTS_PER_UNIT.get(unit or "pt", 1.0)


def resolve_data_source(
    data_source: Optional[str],
    registration: Registration,
    event: Event,
    category: Optional[Category] = None,
    abstract: Optional[Abstract] = None,
) -> str:
    """Valeur texte d'une source de données en notation pointée ('' si inconnue)."""
    if not data_source:
        return ""
    if data_source.lower().startswith("static."):
        return data_source[len("static."):]

    values = {
        "Registration.personalInfo.fullName": f"{registration.first_name or ''} {registration.last_name or ''}".strip(),
        "Registration.personalInfo.firstName": registration.first_name or "",
        "Registration.personalInfo.lastName": registration.last_name or "",
        "Registration.personalInfo.organization": registration.organization or "",
        "Registration.registrationId": registration.registration_id or "",
        "Registration.category.name": category.name if category else "",
        "Event.name": event.name or "",
        "Event.venue.name": event.venue_name or "",
        "Event.venue.city": event.venue_city or "",
        "Event.startDate": event.start_date.strftime("%d/%m/%Y") if event.start_date else "",
        "Event.endDate": event.end_date.strftime("%d/%m/%Y") if event.end_date else "",
        "Abstract.title": abstract.title if abstract else "",
        "Abstract.authors": abstract.authors if abstract else "",
    }
    if data_source not in values:
        logger.warning("Source de données inconnue dans le template : %s", data_source)
    return values.get(data_source, "")


def _font_name(style: Dict[str, Any], pdf: canvas.Canvas) -> str:
    name = style.get("font") or "Helvetica"
    if style.get("fontWeight") == "bold":
        name = _BOLD_FONTS.get(name, name)
    if name not in pdf.getAvailableFonts():
        logger.warning("Police %s indisponible, Helvetica utilisée", name)
        return "Helvetica"
    return name


def _fill_color(style: Dict[str, Any]):
    try:
        return HexColor(style.get("color") or "#000000")
    except ValueError:
        return black


def _draw_field(pdf: canvas.Canvas, field: Dict[str, Any], text: str, unit: Optional[str]) -> None:
    style = field.get("style") or {}
    position = field.get("position") or {}
    x = to_points(position.get("x"), unit)
    # Origine du template en haut à gauche, celle de reportlab en bas à gauche
    y = PAGE_HEIGHT - to_points(position.get("y"), unit)
    font_size = float(style.get("fontSize") or 12)
    align = style.get("align") or "left"
    max_width = to_points(style.get("maxWidth"), unit)
    rotation = float(style.get("rotation") or 0)

    pdf.saveState()
    pdf.setFont(_font_name(style, pdf), font_size)
    pdf.setFillColor(_fill_color(style))
    pdf.translate(x, y - font_size)
    if rotation:
        pdf.rotate(-rotation)

    if align == "center" and max_width:
        pdf.drawCentredString(max_width / 2, 0, text)
    elif align == "right" and max_width:
        pdf.drawRightString(max_width, 0, text)
    else:
        pdf.drawString(0, 0, text)
    pdf.restoreState()


def _draw_background(pdf: canvas.Canvas, template: Dict[str, Any]) -> bool:
    """Dessine l'image de fond pleine page. Retourne False (et écrit l'erreur sur la page) en cas d'échec."""
    template_url = template.get("templateUrl")
    path = None
    if template_url and not template_url.startswith("http"):
        path = os.path.join(app_settings.CERTIFICATE_TEMPLATE_DIR, template_url.lstrip("/"))

    if not path or not os.path.exists(path):
        logger.error("Image de fond du certificat introuvable : %s", path or template_url)
        pdf.setFont("Helvetica", 12)
        pdf.drawString(
            50, PAGE_HEIGHT - 50,
            f"Error: certificate template background not found ({path or 'not specified'}).",
        )
        return False

    pdf.drawImage(path, 0, 0, width=PAGE_WIDTH, height=PAGE_HEIGHT)
    return True


def generate_certificate_pdf(
    db: Session,
    event_id: uuid.UUID,
    template_id: str,
    registration_id: uuid.UUID,
    background: bool = True,
    abstract_id: Optional[uuid.UUID] = None,
) -> bytes:
    """
    Produit le PDF (A4 paysage) du certificat d'un participant.

    background=False : champs seuls, pour une impression sur papier pré-imprimé.
    abstract_id choisit l'abstract utilisé par les champs Abstract.* (sinon le premier trouvé).

    Lève NotFoundError si l'impression n'est pas configurée, si le template, l'inscription
    ou l'abstract est introuvable, ValueError si l'inscription appartient à un autre événement.
    """
    setting = db.execute(
        select(ResourceSetting).where(
            ResourceSetting.event_id == event_id,
            ResourceSetting.resource_type == CERTIFICATE_PRINTING,
            ResourceSetting.is_enabled.is_(True),
        )
    ).scalar()
    if setting is None:
        raise NotFoundError("Certificate printing is not configured for this event.")

    template = find_template(setting.settings, template_id)
    if template is None:
        raise NotFoundError(f"Certificate template {template_id} not found.")

    registration = db.get(Registration, registration_id)
    if registration is None:
        raise NotFoundError(f"Registration {registration_id} not found.")
    if registration.event_id != event_id:
        raise ValueError("Registration does not belong to this event.")

    event = db.get(Event, event_id)
    category = db.get(Category, registration.category_id) if registration.category_id else None
    if abstract_id is not None:
        abstract = db.get(Abstract, abstract_id)
        if abstract is None or abstract.registration_id != registration_id:
            raise NotFoundError(f"Abstract {abstract_id} not found.")
    else:
        abstract = db.execute(
            select(Abstract).where(
                Abstract.registration_id == registration_id,
                Abstract.event_id == event_id,
            )
        ).scalars().first()

    buf = io.BytesIO()
    pdf = canvas.Canvas(buf, pagesize=(PAGE_WIDTH, PAGE_HEIGHT))
    pdf.setTitle(f"certificate-{registration.registration_id}")

    if not background or _draw_background(pdf, template):
        unit = template.get("templateUnit") or "pt"
        for field in template.get("fields") or []:
            if field.get("type", "text") != "text":
                continue
            if field.get("dataSource"):
                text = resolve_data_source(field["dataSource"], registration, event, category, abstract)
            else:
                text = field.get("staticText") or ""
            _draw_field(pdf, field, text, unit)

    pdf.showPage()
    pdf.save()

    logger.info("Certificat %s généré pour %s", template_id, registration.registration_id)
    return buf.getvalue()
