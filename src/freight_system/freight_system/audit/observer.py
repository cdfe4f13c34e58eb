from __future__ import annotations

import dataclasses
import logging
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from ..core.constants import SENSITIVE_FIELDS
from .service import AuditService

logger = logging.getLogger(__name__)


def snapshot(entity: Any) -> dict:
    """Flatten a dataclass entity (or mapping) into column -> value."""
    if dataclasses.is_dataclass(entity) and not isinstance(entity, type):
        data = {f.name: getattr(entity, f.name) for f in dataclasses.fields(entity)}
    else:
        data = dict(entity)
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in data.items()}


class AuditObserver:
    """Universal model observer.

    Records create/update of the configured model types into the
    audit log. ``auditable_models`` maps a model name to its settings
    (``enabled``, ``excluded_fields``).
    """

    def __init__(self, audit: AuditService, *, auditable_models: Mapping[str, Mapping[str, Any]]):
        self._audit = audit
        self._models = dict(auditable_models)

    def is_auditable(self, model_name: str) -> bool:
        settings = self._models.get(model_name)
        return bool(settings) and bool(settings.get("enabled", True))

    def excluded_fields(self, model_name: str) -> set[str]:
        settings = self._models.get(model_name) or {}
        return set(SENSITIVE_FIELDS) | set(settings.get("excluded_fields", ()))

    def _filter(self, model_name: str, values: Mapping[str, Any]) -> dict:
        excluded = self.excluded_fields(model_name)
        return {k: v for k, v in values.items() if k not in excluded}

    def changed_fields(self, model_name: str, before: Mapping[str, Any], after: Mapping[str, Any]) -> list[str]:
        excluded = self.excluded_fields(model_name)
        keys: Iterable[str] = list(after.keys()) + [k for k in before.keys() if k not in after]
        return [k for k in keys if k not in excluded and before.get(k) != after.get(k)]

    def created(self, model_name: str, model_id: int, entity: Any, *, user_id: Optional[int] = None):
        if not self.is_auditable(model_name):
            return None
        return self._audit.log_model_created(
            model_name,
            model_id,
            self._filter(model_name, snapshot(entity)),
            user_id=user_id,
        )

    def updated(self, model_name: str, model_id: int, before: Any, after: Any, *, user_id: Optional[int] = None):
        if not self.is_auditable(model_name):
            return None

        old = snapshot(before)
        new = snapshot(after)
        changed = self.changed_fields(model_name, old, new)
        if not changed:
            return None

        return self._audit.log_model_updated(
            model_name,
            model_id,
            {k: old.get(k) for k in changed},
            {k: new.get(k) for k in changed},
            user_id=user_id,
            additional_data={"model_name": model_name, "changed_fields": changed},
        )
