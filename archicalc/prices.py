"""
Price synchronization — catalog defaults overlaid with a user's overrides.

State is a snapshot: `prices` (effective price map keyed by price_key) and
`price_items` (same data as an ordered display list). It is rebuilt in full
by load()/refresh() and patched in place after a confirmed update. It is
never recomputed from the catalog and the override table on its own.

Failure policy: every store error becomes a notification. Nothing is raised,
nothing is retried.
"""

import logging
import threading
from typing import Dict, List, Optional

from .catalog import PriceItem, default_price_items, default_prices, price_key
from .errors import StoreError
from .notifications import Notifier
from .store import DataStore

logger = logging.getLogger(__name__)


class PriceSync:
    def __init__(self, store: DataStore, notifier: Notifier):
        self.store = store
        self.notifier = notifier
        self.prices: Dict[str, float] = default_prices()
        self.price_items: List[PriceItem] = default_price_items()
        self._lock = threading.RLock()

    def load(self, user_id: Optional[int] = None) -> Dict[str, float]:
        """
        Rebuild the snapshot.

        No identity → catalog defaults verbatim. Otherwise every override row
        that matches a catalog composition replaces its price; rows with no
        matching composition are stale and skipped.
        """
        prices = default_prices()
        items = default_price_items()
        if user_id is not None:
            try:
                rows = self.store.select_material_prices(user_id)
            except StoreError as e:
                logger.error("Failed to load prices for user %s: %s", user_id, e)
                self.notifier.error("Erro ao carregar preços", "Usando preços padrão")
                rows = []

            by_position = {(i.material_key, i.composition_index): i for i in items}
            for row in rows:
                item = by_position.get((row["material_key"], row["composition_index"]))
                if item is None:
                    logger.debug(
                        "Skipping stale price override %s_%s",
                        row["material_key"], row["composition_index"],
                    )
                    continue
                unit_price = float(row["unit_price"])
                item.unit_price = unit_price
                prices[price_key(item.material_key, item.composition_index)] = unit_price

        with self._lock:
            self.prices = prices
            self.price_items = items
        return dict(self.prices)

    refresh = load

    def get_price(self, material_key: str, composition_index: int) -> Optional[float]:
        return self.prices.get(price_key(material_key, composition_index))

    def find_item(self, material_key: str, composition_index: int) -> Optional[PriceItem]:
        for item in self.price_items:
            if item.material_key == material_key and item.composition_index == composition_index:
                return item
        return None

    def update_price(
        self,
        user_id: Optional[int],
        material_key: str,
        composition_index: int,
        new_price: float,
    ) -> bool:
        """
        Persist one override, then patch local state.

        Returns True when the override was saved. Unknown items are a silent
        no-op: no store call, no notification.
        """
        if user_id is None:
            self.notifier.error("Login necessário", "Faça login para salvar preços personalizados")
            return False

        item = self.find_item(material_key, composition_index)
        if item is None:
            return False

        try:
            self.store.upsert_material_price(
                user_id=user_id,
                material_key=material_key,
                composition_index=composition_index,
                composition_name=item.composition_name,
                unit=item.unit,
                unit_price=new_price,
            )
        except StoreError as e:
            logger.error("Failed to save price %s_%s: %s", material_key, composition_index, e)
            self.notifier.error("Erro", "Não foi possível salvar o preço")
            return False

        key = price_key(material_key, composition_index)
        with self._lock:
            self.prices = {**self.prices, key: new_price}
            self.price_items = [
                i.model_copy(update={"unit_price": new_price})
                if i.material_key == material_key and i.composition_index == composition_index
                else i
                for i in self.price_items
            ]

        self.notifier.notify("Preço atualizado", f"{item.composition_name}: R$ {new_price:.2f}")
        return True

    def reset_to_defaults(self, user_id: Optional[int]) -> bool:
        """Delete every override the user owns and fall back to catalog defaults."""
        if user_id is None:
            self.notifier.error("Login necessário", "Faça login para restaurar os preços padrão")
            return False

        try:
            deleted = self.store.delete_material_prices(user_id)
        except StoreError as e:
            logger.error("Failed to reset prices for user %s: %s", user_id, e)
            self.notifier.error("Erro", "Não foi possível resetar os preços")
            return False

        logger.info("Removed %d price overrides for user %s", deleted, user_id)
        with self._lock:
            self.prices = default_prices()
            self.price_items = default_price_items()

        self.notifier.notify("Preços resetados", "Todos os preços voltaram aos valores padrão")
        return True
