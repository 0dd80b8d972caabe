from typing import Dict, List, Optional, Type

from .errors import UnknownImplementationError
from .saver import AbstractSaver, CookiestxtSaver, JSONSaver
from .store import AbstractStore, HashStore


class Registry:
    """Maps store and saver names to their implementation classes."""

    def __init__(
        self,
        stores: Optional[Dict[str, Type[AbstractStore]]] = None,
        savers: Optional[Dict[str, Type[AbstractSaver]]] = None,
    ) -> None:
        self._stores: Dict[str, Type[AbstractStore]] = dict(stores or {})
        self._savers: Dict[str, Type[AbstractSaver]] = dict(savers or {})

    def register_store(self, name: str, store_class: Type[AbstractStore]) -> None:
        self._stores[name] = store_class

    def register_saver(self, name: str, saver_class: Type[AbstractSaver]) -> None:
        self._savers[name] = saver_class

    def store(self, name: str) -> Type[AbstractStore]:
        try:
            return self._stores[name]
        except KeyError:
            raise UnknownImplementationError("store", name) from None

    def saver(self, name: str) -> Type[AbstractSaver]:
        try:
            return self._savers[name]
        except KeyError:
            raise UnknownImplementationError("saver", name) from None

    @property
    def store_names(self) -> List[str]:
        return sorted(self._stores)

    @property
    def saver_names(self) -> List[str]:
        return sorted(self._savers)


def default_registry() -> Registry:
    """Return a new registry holding the built-in implementations."""
    return Registry(
        stores={"hash": HashStore},
        savers={"cookiestxt": CookiestxtSaver, "json": JSONSaver},
    )
