"""
Cache mémoire borné à expiration (TTL).

Construit une seule fois au démarrage (main.py) et injecté par dépendance FastAPI
dans les routers qui en ont besoin ; aucun état global caché dans les services.
"""

import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Hashable, Optional

logger = logging.getLogger(__name__)

_MISSING = object()


class TTLCache:
    """
    Dictionnaire clé → valeur dont les entrées expirent après `ttl_seconds`.
    Au-delà de `max_entries`, l'entrée la moins récemment utilisée est évincée.
    Thread-safe (les endpoints synchrones tournent dans le threadpool de FastAPI).
    """

    def __init__(self, ttl_seconds: float, max_entries: int = 256, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive.")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1.")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[Hashable, tuple[float, Any]]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key, _MISSING)
            if entry is _MISSING:
                return default
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return default
            self._entries.move_to_end(key)
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + self.ttl_seconds, value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Entrée de cache évincée : %s", evicted)

    def invalidate(self, key: Optional[Hashable] = None, prefix: Optional[str] = None) -> int:
        """
        Supprime une clé, toutes les clés texte commençant par `prefix`,
        ou tout le cache si aucun argument n'est fourni. Retourne le nombre d'entrées supprimées.
        """
        with self._lock:
            if key is None and prefix is None:
                count = len(self._entries)
                self._entries.clear()
                return count
            if key is not None:
                return 1 if self._entries.pop(key, _MISSING) is not _MISSING else 0
            doomed = [k for k in self._entries if isinstance(k, str) and k.startswith(prefix)]
            for k in doomed:
                del self._entries[k]
            return len(doomed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
