# Importe tous les modèles pour enregistrer leurs tables dans Base.metadata
# avant que SQLAlchemy tente de résoudre les clés étrangères inter-modèles.

from atlas.models.event import Category, Event  # noqa: F401  (doit précéder registration)
from atlas.models.registration import Registration  # noqa: F401
from atlas.models.resource import ResourceSetting, ResourceUsage  # noqa: F401
from atlas.models.abstract import Abstract  # noqa: F401
