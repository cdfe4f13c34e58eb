from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..core.enums import AuditEventType
from ..core.exceptions import ValidationError
from .context import flask_request_context
from .model import AuditContext, AuditFilters, AuditLog
from .repository import AuditLogRepository

logger = logging.getLogger(__name__)


class AuditService:
    """Write and query the audit trail.

    Writes are best-effort by default: a storage failure is logged and the
    caller's flow continues with ``None``.
    """

    def __init__(
        self,
        logs: AuditLogRepository,
        *,
        enabled: bool = True,
        context_provider: Callable[[], AuditContext] = flask_request_context,
        clock: Callable = now_local,
    ):
        self._logs = logs
        self._enabled = enabled
        self._context_provider = context_provider
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return self._enabled

    @staticmethod
    def _coerce_event_type(event_type) -> AuditEventType:
        if isinstance(event_type, AuditEventType):
            return event_type
        if not event_type or not str(event_type).strip():
            raise ValidationError("Event type is required")
        try:
            return AuditEventType(str(event_type).strip())
        except ValueError:
            raise ValidationError(f"Unknown audit event type: {event_type}")

    def log(
        self,
        *,
        event_type,
        action: str,
        user_id: Optional[int] = None,
        auditable_type: Optional[str] = None,
        auditable_id: Optional[int] = None,
        old_values: Optional[dict] = None,
        new_values: Optional[dict] = None,
        additional_data: Optional[dict] = None,
        best_effort: bool = True,
    ) -> Optional[AuditLog]:
        if not self._enabled:
            return None

        event = self._coerce_event_type(event_type)
        if not action or not action.strip():
            raise ValidationError("Action is required")

        ctx = self._context_provider()
        created_at = self._clock()
        actor_id = user_id if user_id is not None else ctx.user_id

        try:
            log_id = self._logs.create(
                user_id=actor_id,
                event_type=event,
                action=action.strip(),
                auditable_type=auditable_type,
                auditable_id=auditable_id,
                old_values=old_values,
                new_values=new_values,
                url=ctx.url,
                ip_address=ctx.ip_address,
                user_agent=ctx.user_agent,
                additional_data=additional_data,
                created_at=created_at,
            )
        except Exception:
            if not best_effort:
                raise
            logger.exception("Failed to create audit log (event_type=%s, action=%s)", event.value, action)
            return None

        return AuditLog(
            audit_log_id=log_id,
            user_id=actor_id,
            event_type=event,
            action=action.strip(),
            auditable_type=auditable_type,
            auditable_id=auditable_id,
            old_values=old_values,
            new_values=new_values,
            url=ctx.url,
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
            additional_data=additional_data,
            created_at=created_at,
        )

    def log_authentication(self, action: str, *, user_id: Optional[int], additional_data: Optional[dict] = None):
        return self.log(
            event_type=AuditEventType.AUTHENTICATION,
            action=action,
            user_id=user_id,
            auditable_type="User" if user_id else None,
            auditable_id=user_id,
            additional_data=additional_data,
        )

    def log_authorization(self, action: str, additional_data: Optional[dict] = None, *, user_id: Optional[int] = None):
        return self.log(
            event_type=AuditEventType.AUTHORIZATION,
            action=action,
            user_id=user_id,
            additional_data=additional_data,
        )

    def log_model_created(self, model_name: str, model_id: int, new_values: dict, *, user_id: Optional[int] = None):
        return self.log(
            event_type=AuditEventType.MODEL_CREATED,
            action="create",
            user_id=user_id,
            auditable_type=model_name,
            auditable_id=model_id,
            new_values=new_values,
            additional_data={"model_name": model_name},
        )

    def log_model_updated(
        self,
        model_name: str,
        model_id: int,
        old_values: dict,
        new_values: dict,
        *,
        user_id: Optional[int] = None,
        additional_data: Optional[dict] = None,
    ):
        return self.log(
            event_type=AuditEventType.MODEL_UPDATED,
            action="update",
            user_id=user_id,
            auditable_type=model_name,
            auditable_id=model_id,
            old_values=old_values,
            new_values=new_values,
            additional_data=additional_data,
        )

    def log_business_action(
        self,
        action: str,
        *,
        auditable_type: Optional[str] = None,
        auditable_id: Optional[int] = None,
        additional_data: Optional[dict] = None,
        user_id: Optional[int] = None,
    ):
        return self.log(
            event_type=AuditEventType.BUSINESS_ACTION,
            action=action,
            user_id=user_id,
            auditable_type=auditable_type,
            auditable_id=auditable_id,
            additional_data=additional_data,
        )

    def log_financial_transaction(
        self,
        action: str,
        transaction_data: dict,
        *,
        customer_id: Optional[int] = None,
        user_id: Optional[int] = None,
    ):
        return self.log(
            event_type=AuditEventType.FINANCIAL_TRANSACTION,
            action=action,
            user_id=user_id,
            auditable_type="User" if customer_id else None,
            auditable_id=customer_id,
            new_values=transaction_data,
        )

    def log_security_event(self, action: str, additional_data: Optional[dict] = None, *, user_id: Optional[int] = None):
        return self.log(
            event_type=AuditEventType.SECURITY_EVENT,
            action=action,
            user_id=user_id,
            additional_data=additional_data,
        )

    def log_system_event(self, action: str, additional_data: Optional[dict] = None):
        return self.log(event_type=AuditEventType.SYSTEM_EVENT, action=action, additional_data=additional_data)

    def search(self, filters: Optional[AuditFilters] = None, *, limit: int = 100) -> Sequence[AuditLog]:
        return self._logs.search(filters or AuditFilters(), limit=int(limit))
