"""
Résultat typé des appels du poste de scan vers l'API.

Chaque réponse HTTP est validée une seule fois dans la passerelle et transformée en
Ok(value) ou Err(kind, message, details) ; le reste du poste ne devine jamais la forme
d'une réponse.
"""

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")

# Natures d'erreur
TRANSPORT = "transport"   # pas de réponse (réseau, timeout)
REJECTED = "rejected"     # réponse {success: false}
MALFORMED = "malformed"   # corps illisible ou sans enveloppe
HTTP = "http"             # statut HTTP d'erreur hors enveloppe


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    ok: bool = True


@dataclass(frozen=True)
class Err:
    kind: str
    message: str
    details: Optional[str] = None
    code: Optional[str] = None  # motif machine renvoyé par l'API (ALREADY_REDEEMED, ...)
    ok: bool = False


Result = Union[Ok[Any], Err]


def parse_envelope(payload: Any) -> Result:
    """{success, message?, data?, code?} → Ok(data) ou Err."""
    if not isinstance(payload, dict) or not isinstance(payload.get("success"), bool):
        return Err(MALFORMED, "Unexpected response from server")
    if payload["success"]:
        return Ok(payload.get("data"))
    return Err(
        REJECTED,
        payload.get("message") or "Request failed",
        code=payload.get("code"),
    )
