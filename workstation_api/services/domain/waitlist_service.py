"""
Reception Waitlist Service.

One list per restaurant under ``waitlist-{restaurant_id}``. Entries move
``Aguardando -> Chamado`` and from any status to ``Cancelado``; they leave
the list only through ``remove``.
"""

import secrets
from collections.abc import Callable
from datetime import datetime

from pydantic import ValidationError as PydanticValidationError

from shared.config.constants import WAITLIST_TRANSITIONS, StorageKeys, WaitlistStatus
from shared.config.logging import get_logger
from shared.infrastructure.events import WAITLIST_CHANGED
from shared.infrastructure.store import SessionStore
from shared.utils.exceptions import (
    InvalidTransitionError,
    StorageQuotaError,
    ValidationError,
    WaitlistItemNotFoundError,
)
from shared.utils.schemas import WaitlistItem

from .cash_register_service import utcnow

logger = get_logger(__name__)


def validate_waitlist_transition(current: str, target: str) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is allowed."""
    if target not in WAITLIST_TRANSITIONS.get(current, []):
        raise InvalidTransitionError("lista de espera", current, target)


class WaitlistService:
    def __init__(self, store: SessionStore, clock: Callable[[], datetime] = utcnow):
        self._store = store
        self._clock = clock

    def _load(self, restaurant_id: str) -> list[WaitlistItem]:
        raw = self._store.read(StorageKeys.waitlist(restaurant_id), default=[])
        if not isinstance(raw, list):
            return []

        items = []
        for entry in raw:
            try:
                items.append(WaitlistItem.model_validate(entry))
            except PydanticValidationError as e:
                logger.warning("Skipping malformed waitlist entry", restaurant_id=restaurant_id, error=str(e))
        return items

    def _save(self, restaurant_id: str, items: list[WaitlistItem]) -> None:
        key = StorageKeys.waitlist(restaurant_id)
        if not self._store.write(key, [i.model_dump(mode="json") for i in items], topic=WAITLIST_CHANGED):
            raise StorageQuotaError(key, restaurant_id=restaurant_id)

    def list_items(self, restaurant_id: str) -> list[WaitlistItem]:
        return self._load(restaurant_id)

    def add(self, restaurant_id: str, name: str, phone: str, party_size: int) -> WaitlistItem:
        if not name.strip():
            raise ValidationError("Informe o nome do cliente.")
        if party_size < 1:
            raise ValidationError("O número de pessoas deve ser positivo.")

        now = self._clock()
        item = WaitlistItem(
            id=f"{int(now.timestamp() * 1000)}{secrets.token_hex(4)}",
            restaurant_id=restaurant_id,
            name=name.strip(),
            phone=phone.strip(),
            party_size=party_size,
            created_at=now,
            status=WaitlistStatus.WAITING,
        )

        with self._store.transaction():
            items = self._load(restaurant_id)
            items.append(item)
            self._save(restaurant_id, items)

        logger.info("Waitlist entry added", restaurant_id=restaurant_id, item_id=item.id, party_size=party_size)
        return item

    def update_status(self, restaurant_id: str, item_id: str, status: str) -> WaitlistItem:
        """Raises WaitlistItemNotFoundError or InvalidTransitionError."""
        with self._store.transaction():
            items = self._load(restaurant_id)
            item = next((i for i in items if i.id == item_id), None)
            if item is None:
                raise WaitlistItemNotFoundError(item_id, restaurant_id=restaurant_id)

            validate_waitlist_transition(item.status, status)
            previous = item.status
            item.status = status
            self._save(restaurant_id, items)

        logger.info(
            "Waitlist entry updated",
            restaurant_id=restaurant_id,
            item_id=item_id,
            from_status=previous,
            to_status=status,
        )
        return item

    def remove(self, restaurant_id: str, item_id: str) -> None:
        """Raises WaitlistItemNotFoundError."""
        with self._store.transaction():
            items = self._load(restaurant_id)
            remaining = [i for i in items if i.id != item_id]
            if len(remaining) == len(items):
                raise WaitlistItemNotFoundError(item_id, restaurant_id=restaurant_id)
            self._save(restaurant_id, remaining)

        logger.info("Waitlist entry removed", restaurant_id=restaurant_id, item_id=item_id)
