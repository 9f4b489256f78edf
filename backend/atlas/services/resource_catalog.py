"""
Catalogue des options de ressources.

Les options sont toujours dérivées de la configuration de l'événement
(ResourceSetting.settings) ; le poste de scan n'en crée jamais.
Fonctions pures, partagées par le serveur (validation) et le poste de scan (sélecteur).

Formes attendues :
  food                : {"days": [{"date": "2026-01-01", "meals": [{"name": "Breakfast"}]}]}
  kits                : {"items": [{"_id": "...", "name": "..."}]}
  certificates        : {"types": [{"_id": "...", "name": "..."}]}
  certificatePrinting : {"templates": [{"_id": "...", "name": "...", "fields": [...]}]}
Une forme absente ou malformée donne simplement aucune option.
"""

import datetime as dt
import logging
from typing import Any, Dict, List, Optional

from atlas.schemas.resource import ResourceOption
from atlas.services.resource_types import (
    CERTIFICATE_PRINTING,
    CERTIFICATES,
    FOOD,
    KITS,
    display_name,
)

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Dict[str, Dict[str, Any]] = {
    FOOD: {"enabled": True, "meals": [], "days": []},
    KITS: {"enabled": True, "items": []},
    CERTIFICATES: {"enabled": True, "types": []},
    CERTIFICATE_PRINTING: {"enabled": True, "templates": []},
}

# Clé de la liste d'options par type (avec clés de repli)
_LIST_KEYS = {
    KITS: ("items",),
    CERTIFICATES: ("types", "templates"),
    CERTIFICATE_PRINTING: ("templates",),
}

_UNNAMED = {
    KITS: "Unnamed Item",
    CERTIFICATES: "Unnamed Certificate",
    CERTIFICATE_PRINTING: "Unnamed Template",
}


def default_settings(resource_type: str) -> Dict[str, Any]:
    """Configuration par défaut d'un type (copie, modifiable par l'appelant)."""
    base = DEFAULT_SETTINGS.get(resource_type, {"enabled": False})
    return {key: (list(value) if isinstance(value, list) else value) for key, value in base.items()}


def format_day_label(raw_date: Any) -> Optional[str]:
    """'2026-01-01' ou '2026-01-01T00:00:00Z' → 'Jan 1'. None si la date est illisible."""
    if isinstance(raw_date, dt.datetime):
        day = raw_date.date()
    elif isinstance(raw_date, dt.date):
        day = raw_date
    else:
        try:
            day = dt.date.fromisoformat(str(raw_date)[:10])
        except ValueError:
            return None
    return f"{day:%b} {day.day}"


def food_option_id(day_index: int, meal_name: str) -> str:
    return f"{day_index}_{meal_name}"


def _food_options(settings: Dict[str, Any]) -> List[ResourceOption]:
    days = settings.get("days")
    if not isinstance(days, list):
        return []

    options = []
    for day_index, day in enumerate(days):
        if not isinstance(day, dict):
            continue
        label = format_day_label(day.get("date"))
        meals = day.get("meals")
        if not isinstance(meals, list):
            continue
        for meal in meals:
            meal_name = meal.get("name") if isinstance(meal, dict) else None
            if not meal_name:
                continue
            options.append(
                ResourceOption(
                    id=food_option_id(day_index, meal_name),
                    name=f"{meal_name} ({label})" if label else meal_name,
                    day_index=day_index,
                )
            )
    return options


def entry_id(resource_type: str, entry: Dict[str, Any], index: int) -> str:
    """Identifiant d'une entrée configurée ; synthétisé à partir de sa position s'il manque."""
    return str(entry.get("_id") or entry.get("id") or f"{resource_type}_{index}")


def find_template(settings: Optional[Dict[str, Any]], template_id: str) -> Optional[Dict[str, Any]]:
    """Entrée brute d'un template certificatePrinting (avec templateUnit, templateUrl, fields)."""
    templates = settings.get("templates") if isinstance(settings, dict) else None
    if not isinstance(templates, list):
        return None
    for index, entry in enumerate(templates):
        if isinstance(entry, dict) and entry_id(CERTIFICATE_PRINTING, entry, index) == template_id:
            return entry
    return None


def _listed_options(resource_type: str, settings: Dict[str, Any]) -> List[ResourceOption]:
    entries = None
    for key in _LIST_KEYS[resource_type]:
        if isinstance(settings.get(key), list):
            entries = settings[key]
            break
    if entries is None:
        return []

    options = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            continue
        option_id = entry_id(resource_type, entry, index)
        print_fields = None
        if resource_type == CERTIFICATE_PRINTING:
            print_fields = entry.get("fields") if isinstance(entry.get("fields"), list) else []
        options.append(
            ResourceOption(
                id=option_id,
                name=entry.get("name") or _UNNAMED[resource_type],
                print_fields=print_fields,
            )
        )
    return options


def build_options(resource_type: str, settings: Optional[Dict[str, Any]]) -> List[ResourceOption]:
    """Aplatit la configuration d'un type en liste d'options sélectionnables."""
    if not isinstance(settings, dict):
        return []
    if resource_type == FOOD:
        return _food_options(settings)
    if resource_type in _LIST_KEYS:
        return _listed_options(resource_type, settings)
    logger.warning("Type de ressource sans catalogue : %s", resource_type)
    return []


def placeholder_options(resource_type: str) -> List[ResourceOption]:
    """Deux options de repli affichées quand la configuration est vide ou illisible."""
    label = display_name(resource_type)
    return [
        ResourceOption(id=f"{resource_type}_option_{n}", name=f"{label} Option {n}", placeholder=True)
        for n in (1, 2)
    ]


def error_option(resource_type: str) -> List[ResourceOption]:
    """Option unique signalant l'échec du chargement (erreur réseau)."""
    return [
        ResourceOption(
            id=f"{resource_type}_error",
            name=f"Error Loading {display_name(resource_type)} Options",
            placeholder=True,
        )
    ]


def find_option(options: List[ResourceOption], option_id: str) -> Optional[ResourceOption]:
    return next((option for option in options if option.id == option_id), None)
