"""
Restaurant Roster.

Read access to restaurants and their employees. The roster is owned by the
administrative side of the platform; the coordinator only reads it, except
for ``save`` which roster tooling uses to publish a new version.
"""

import json
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from shared.config.constants import StorageKeys
from shared.config.logging import get_logger
from shared.infrastructure.events import RESTAURANTS_CHANGED
from shared.infrastructure.store import SessionStore
from shared.utils.exceptions import RestaurantNotFoundError, StorageQuotaError
from shared.utils.schemas import Restaurant

logger = get_logger(__name__)


DEMO_RESTAURANTS: list[dict] = [
    {
        "id": "trattoria-del-ponte",
        "name": "Trattoria del Ponte",
        "plan": "Digital",
        "employees": [
            {"id": "emp-tdp-1", "name": "Marco Rossi", "role": "Cozinha", "login": "1010", "password": "1"},
            {"id": "emp-tdp-2", "name": "Giulia Bianchi", "role": "Recepção", "login": "2020", "password": "1"},
            {"id": "emp-tdp-3", "name": "Luca Marino", "role": "Caixa", "login": "3030", "password": "1"},
        ],
    },
    {
        "id": "cantina-nonna",
        "name": "Cantina Nonna",
        "plan": "Completo",
        "employees": [
            {"id": "emp-cn-1", "name": "Sofia Ricci", "role": "Garçom", "login": "4040", "password": "1"},
            {"id": "emp-cn-2", "name": "Antonio Gallo", "role": "Cozinha", "login": "5050", "password": "1"},
        ],
    },
    {"id": "sushi-kawa", "name": "Sushi Kawa", "plan": "Digital", "employees": []},
    {"id": "izakaya-matsu", "name": "Izakaya Matsu", "plan": "Insights", "employees": []},
    {"id": "the-rusty-anchor", "name": "The Rusty Anchor", "plan": "Completo", "employees": []},
]


def load_seed(path: str | None = None) -> list[dict]:
    """Seed roster: the JSON file at ``path`` when given, the demo roster otherwise."""
    if not path:
        return DEMO_RESTAURANTS
    with Path(path).open(encoding="utf-8") as f:
        return json.load(f)


class RestaurantRoster:
    """
    Read model over the ``restaurants`` key.

    When the key has never been written the seed list is served, so a fresh
    store already knows the demo restaurants.
    """

    def __init__(self, store: SessionStore, seed: list[dict] | None = None):
        self._store = store
        self._seed = seed if seed is not None else DEMO_RESTAURANTS

    def list_restaurants(self) -> list[Restaurant]:
        raw = self._store.read(StorageKeys.RESTAURANTS, default=None)
        if not isinstance(raw, list):
            raw = self._seed

        restaurants = []
        for entry in raw:
            try:
                restaurants.append(Restaurant.model_validate(entry))
            except PydanticValidationError as e:
                logger.warning("Skipping malformed roster entry", entry_id=entry.get("id") if isinstance(entry, dict) else None, error=str(e))
        return restaurants

    def find(self, restaurant_id: str) -> Restaurant | None:
        return next((r for r in self.list_restaurants() if r.id == restaurant_id), None)

    def get(self, restaurant_id: str) -> Restaurant:
        """Restaurant by id. Raises RestaurantNotFoundError."""
        restaurant = self.find(restaurant_id)
        if restaurant is None:
            raise RestaurantNotFoundError(restaurant_id)
        return restaurant

    def save(self, restaurants: list[Restaurant]) -> None:
        """Replace the roster. Raises StorageQuotaError when the store refuses it."""
        payload = [r.model_dump(mode="json") for r in restaurants]
        if not self._store.write(StorageKeys.RESTAURANTS, payload, topic=RESTAURANTS_CHANGED):
            raise StorageQuotaError(StorageKeys.RESTAURANTS)
        logger.info("Roster saved", restaurants=len(restaurants))
