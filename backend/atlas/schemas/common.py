"""
Enveloppe de réponse commune aux endpoints de ressources.
Les clés JSON sont en camelCase (consommées par le poste de scan et le front).
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ApiResponse(CamelModel, Generic[T]):
    """{success, message?, data?, code?} : le client ne branche que sur success."""

    success: bool
    message: Optional[str] = None
    data: Optional[T] = None
    code: Optional[str] = None  # Motif machine en cas de refus (ALREADY_REDEEMED, ...)
