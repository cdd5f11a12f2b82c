"""
Settings overlays - free-form key/value sidecars attached to entities.

The overlay map is the single source of truth. Each owning record carries a
``settings`` field which is a projection of the overlay, rewritten in the
same call as every overlay mutation, so the two never diverge.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from copy import deepcopy
from typing import Any

from pydantic import TypeAdapter, ValidationError

from models.fixture_models import SettingValue
from operators.repository import EntityRepository
from operators.store_errors import EntityNotFoundError, InvalidOperationError

logger = logging.getLogger(__name__)

_JSON_VALUE = TypeAdapter(SettingValue)


def coerce_string_setting(value: Any) -> str:
    return value if isinstance(value, str) else str(value)


def coerce_json_setting(value: Any) -> SettingValue:
    try:
        return _JSON_VALUE.validate_python(value)
    except ValidationError as exc:
        raise InvalidOperationError(
            f"Setting value of type {type(value).__name__} is not JSON-compatible"
        ) from exc


class SettingsOverlay:
    """Per-owner key/value settings for one entity kind."""

    def __init__(
        self,
        owners: EntityRepository,
        coerce: Callable[[Any], Any] = coerce_json_setting,
    ) -> None:
        self._owners = owners
        self._coerce = coerce
        self._values: dict[str, dict[str, Any]] = {}

    @property
    def kind(self) -> str:
        return self._owners.kind

    def _require_owner(self, owner_id: str):
        owner = self._owners.get(owner_id)
        if owner is None:
            raise EntityNotFoundError(self._owners.kind, owner_id)
        return owner

    def _project(self, owner_id: str) -> None:
        owner = self._owners.get(owner_id)
        if owner is not None:
            owner.settings = deepcopy(self._values.get(owner_id, {}))

    # --- reads ---

    def get(self, owner_id: str, key: str) -> Any | None:
        return deepcopy(self._values.get(owner_id, {}).get(key))

    def get_all(self, owner_id: str) -> dict[str, Any]:
        return deepcopy(self._values.get(owner_id, {}))

    def get_by_prefix(self, owner_id: str, prefix: str) -> dict[str, Any]:
        return {
            key: deepcopy(value)
            for key, value in self._values.get(owner_id, {}).items()
            if key.startswith(prefix)
        }

    def has_overlay(self, owner_id: str) -> bool:
        return owner_id in self._values

    def owner_ids(self) -> list[str]:
        return list(self._values)

    def as_dict(self) -> dict[str, dict[str, Any]]:
        return deepcopy(self._values)

    # --- writes ---

    def set(self, owner_id: str, key: str, value: Any) -> None:
        self._require_owner(owner_id)
        coerced = self._coerce(value)
        self._values.setdefault(owner_id, {})[key] = coerced
        self._project(owner_id)
        logger.debug("setting_set kind=%s owner=%s key=%s", self.kind, owner_id, key)

    def set_many(self, owner_id: str, values: Mapping[str, Any]) -> None:
        self._require_owner(owner_id)
        # Coerce everything first so a bad value leaves the overlay untouched.
        coerced = self.coerce_values(values)
        self._values.setdefault(owner_id, {}).update(coerced)
        self._project(owner_id)
        logger.debug(
            "settings_set_many kind=%s owner=%s keys=%s", self.kind, owner_id, sorted(coerced)
        )

    def delete(self, owner_id: str, key: str) -> None:
        self._require_owner(owner_id)
        overlay = self._values.get(owner_id)
        if overlay is not None:
            overlay.pop(key, None)
        self._project(owner_id)

    def delete_many(self, owner_id: str, keys: list[str]) -> None:
        self._require_owner(owner_id)
        overlay = self._values.get(owner_id)
        if overlay is not None:
            for key in keys:
                overlay.pop(key, None)
        self._project(owner_id)

    def delete_all(self, owner_id: str) -> None:
        self._require_owner(owner_id)
        self._values.pop(owner_id, None)
        self._project(owner_id)

    # --- store internals ---

    def coerce_values(self, values: Mapping[str, Any]) -> dict[str, Any]:
        return {key: self._coerce(value) for key, value in values.items()}

    def seed(self, owner_id: str, values: Mapping[str, Any] | None) -> None:
        """Replace the overlay for a freshly inserted owner."""
        if values:
            self._values[owner_id] = self.coerce_values(deepcopy(dict(values)))
        else:
            self._values.pop(owner_id, None)
        self._project(owner_id)

    def drop(self, owner_id: str) -> None:
        """Forget the overlay of an owner that is being deleted."""
        self._values.pop(owner_id, None)

    def clear(self) -> None:
        self._values.clear()
