"""
Catalogue des options côté poste de scan : charge la configuration d'un type de ressource
et l'aplatit en options sélectionnables (mêmes règles que le serveur).
"""

import logging
from typing import List, Optional

from atlas.scanner.envelope import TRANSPORT
from atlas.scanner.gateway import ScannerGateway
from atlas.schemas.resource import ResourceOption
from atlas.services.resource_catalog import build_options, error_option, find_option, placeholder_options

logger = logging.getLogger(__name__)


class ResourceCatalog:
    """
    Options du type de ressource courant et option sélectionnée.

    Le sélecteur n'est jamais vide : configuration vide ou refusée → deux options de repli,
    erreur réseau → une option "Error Loading ...". Ces options de repli sont marquées
    placeholder et refusées par l'API si elles sont scannées.
    """

    def __init__(self, gateway: ScannerGateway):
        self._gateway = gateway
        self.options: List[ResourceOption] = []
        self.selected: Optional[ResourceOption] = None

    def load(self, event_id: str, resource_type: str) -> List[ResourceOption]:
        result = self._gateway.get_resource_settings(event_id, resource_type)

        if result.ok:
            payload = result.value if isinstance(result.value, dict) else {}
            options = build_options(resource_type, payload.get("settings"))
            if not options:
                logger.info("Aucune option configurée pour %s, options de repli", resource_type)
                options = placeholder_options(resource_type)
        elif result.kind == TRANSPORT:
            logger.warning("Chargement des options %s impossible : %s", resource_type, result.details)
            options = error_option(resource_type)
        else:
            logger.warning("Chargement des options %s refusé : %s", resource_type, result.message)
            options = placeholder_options(resource_type)

        self.options = options
        self.selected = options[0] if options else None
        return options

    def select(self, option_id: str) -> ResourceOption:
        option = find_option(self.options, option_id)
        if option is None:
            raise ValueError(f"Unknown resource option: {option_id}")
        self.selected = option
        return option

    def clear(self) -> None:
        self.options = []
        self.selected = None
