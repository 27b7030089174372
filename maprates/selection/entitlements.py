"""Subscription tier: premium flag, destination caps and feature gating."""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Mapping, Optional

from maprates.utils.logging import get_logger

logger = get_logger(__name__)

FREE = "free"
PREMIUM = "premium"

PLAN_FEATURES: Dict[str, Dict[str, bool]] = {
    FREE: {
        "historical_charts": False,
        "multiple_overlays": False,
        "export_charts": False,
        "technical_indicators": False,
    },
    PREMIUM: {
        "historical_charts": True,
        "multiple_overlays": True,
        "export_charts": True,
        "technical_indicators": True,
    },
}

DEFAULT_MAX_DESTINATIONS = {FREE: 2, PREMIUM: 5}


class EntitlementSource(ABC):
    """Supplies the premium flag from which destination caps are derived."""

    caps: Mapping[str, int] = DEFAULT_MAX_DESTINATIONS

    @abstractmethod
    def is_premium(self) -> bool:
        """Return True for premium subscribers."""

    @property
    def tier(self) -> str:
        return PREMIUM if self.is_premium() else FREE

    def max_destinations(self) -> int:
        return int(self.caps[self.tier])


class PremiumStatus(EntitlementSource):
    """
    Entitlement flag persisted under `premium_status`.

    With a StateStore the flag lives only in the store under
    `is_premium_user`, so a write through the store is seen by every reader.
    Without one it is kept on the instance.
    """

    STORAGE_KEY = "premium_status"

    def __init__(self, store=None, preferences=None, is_premium: bool = False,
                 caps: Optional[Mapping[str, int]] = None):
        self.store = store
        self.preferences = preferences
        self.caps = dict(caps or DEFAULT_MAX_DESTINATIONS)
        self._is_premium = False
        self._write_flag(self._load(bool(is_premium)))
        if store is not None:
            # Persist writes made directly through the store as well
            store.subscribe("is_premium_user", lambda new, old: self._save())

    def _load(self, default: bool) -> bool:
        if self.preferences is None:
            return default
        saved = self.preferences.get(self.STORAGE_KEY)
        if isinstance(saved, dict) and isinstance(saved.get("is_premium"), bool):
            return saved["is_premium"]
        if saved is not None:
            logger.warning("Ignoring malformed saved premium status")
        return default

    def _save(self) -> None:
        if self.preferences is None:
            return
        self.preferences.set(self.STORAGE_KEY, {
            "is_premium": self.is_premium(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    def _write_flag(self, flag: bool) -> None:
        if self.store is not None:
            self.store.set({"is_premium_user": flag})
        else:
            self._is_premium = flag

    def is_premium(self) -> bool:
        if self.store is not None:
            return bool(self.store.get("is_premium_user"))
        return self._is_premium

    def features(self) -> Dict[str, bool]:
        return dict(PLAN_FEATURES[self.tier])

    def can_access_feature(self, name: str) -> bool:
        return self.is_premium() or PLAN_FEATURES[FREE].get(name, False)

    def set_premium(self, flag: bool) -> None:
        flag = bool(flag)
        if flag == self.is_premium():
            return
        logger.info(f"User status: {'Premium' if flag else 'Free'}")
        self._write_flag(flag)
        if self.store is None:
            self._save()

    def upgrade(self) -> None:
        self.set_premium(True)

    def downgrade(self) -> None:
        self.set_premium(False)
