"""
Types de ressources distribuables et normalisation des variantes reçues par l'API.
"""

FOOD = "food"
KITS = "kits"
CERTIFICATES = "certificates"
CERTIFICATE_PRINTING = "certificatePrinting"

RESOURCE_TYPES = (FOOD, KITS, CERTIFICATES, CERTIFICATE_PRINTING)

# Variantes historiques (kitBag, certificate...) → type canonique
_ALIASES = {
    "food": FOOD,
    "kits": KITS,
    "kit": KITS,
    "kitbag": KITS,
    "certificates": CERTIFICATES,
    "certificate": CERTIFICATES,
    "certificateprinting": CERTIFICATE_PRINTING,
}

_DISPLAY_NAMES = {
    FOOD: "Food",
    KITS: "Kit Bag",
    CERTIFICATES: "Certificate",
    CERTIFICATE_PRINTING: "Certificate Printing",
}


def normalize_resource_type(value: str) -> str:
    """Retourne le type canonique. Lève ValueError si le type est inconnu."""
    canonical = _ALIASES.get((value or "").strip().lower())
    if canonical is None:
        raise ValueError(
            f"Invalid resource type: {value}. Must be one of: {', '.join(RESOURCE_TYPES)}"
        )
    return canonical


def display_name(resource_type: str) -> str:
    if not resource_type:
        return "Resource"
    return _DISPLAY_NAMES.get(resource_type, resource_type[:1].upper() + resource_type[1:])
