"""
Exceptions métier levées par les services et traduites en codes HTTP par les routers.
Toutes héritent de ValueError.
"""


class NotFoundError(ValueError):
    """Entité introuvable → 404."""


class ConflictError(ValueError):
    """État incompatible avec l'opération demandée → 409."""


class ScanRejected(ValueError):
    """
    Refus d'un scan ou d'un enregistrement de remise.
    `code` est le motif machine renvoyé au poste de scan.
    """

    UNKNOWN_EVENT = "UNKNOWN_EVENT"
    UNKNOWN_OPTION = "UNKNOWN_OPTION"
    UNKNOWN_CODE = "UNKNOWN_CODE"
    INACTIVE_REGISTRATION = "INACTIVE_REGISTRATION"
    NOT_ELIGIBLE = "NOT_ELIGIBLE"
    ALREADY_REDEEMED = "ALREADY_REDEEMED"

    def __init__(self, code: str, message: str, status_code: int = 400):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
