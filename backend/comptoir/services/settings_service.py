# Overview: Typed application settings persisted as unique key/value rows.

"""
Settings repository.

The settings table is a plain key -> JSON map. Nothing outside this module
reads it directly: callers load an AppSettings aggregate, change typed
fields, and save it back. Per-week account balances live under
"account_balance_week_<N>" keys and have their own accessors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, asdict
from typing import Any

from ..extensions import db
from ..models import Setting
from ..validation import ValidationError, parse_amount, parse_int


logger = logging.getLogger(__name__)

ACCOUNT_BALANCE_KEY = "account_balance_week_{week}"


@dataclass
class DeliveryStatus:
    is_active: bool = False
    company_name: str = ""


@dataclass
class AppSettings:
    current_week_id: int = 1
    bonus_percentage: float = 0.0
    executive_salary: float = 20000.0
    webhook_enabled: bool = False
    webhook_url: str | None = None
    delivery_status: DeliveryStatus = field(default_factory=DeliveryStatus)

    def to_dict(self) -> dict:
        return asdict(self)


# Returned by a coercer when the stored value has the wrong type
_MALFORMED = object()


def _coerce_int(value: Any):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return _MALFORMED
    return int(value)


def _coerce_float(value: Any):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return _MALFORMED
    return float(value)


def _coerce_bool(value: Any):
    return value if isinstance(value, bool) else _MALFORMED


def _coerce_str(value: Any):
    return value if isinstance(value, str) else _MALFORMED


def _coerce_delivery(value: Any):
    if not isinstance(value, dict):
        return _MALFORMED
    return DeliveryStatus(
        is_active=bool(value.get("is_active", False)),
        company_name=str(value.get("company_name") or ""),
    )


_COERCERS = {
    "current_week_id": _coerce_int,
    "bonus_percentage": _coerce_float,
    "executive_salary": _coerce_float,
    "webhook_enabled": _coerce_bool,
    "webhook_url": _coerce_str,
    "delivery_status": _coerce_delivery,
}


class SettingsRepository:
    """Loads and saves AppSettings through the key/value rows."""

    def _row(self, key: str) -> Setting | None:
        return db.session.query(Setting).filter_by(key=key).first()

    def has(self, key: str) -> bool:
        return self._row(key) is not None

    def load(self) -> AppSettings:
        defaults = AppSettings()
        names = [f.name for f in fields(AppSettings)]
        rows = db.session.query(Setting).filter(Setting.key.in_(names)).all()
        stored = {row.key: row.value for row in rows}

        values = {}
        for name in names:
            default = getattr(defaults, name)
            if stored.get(name) is None:
                values[name] = default
                continue
            value = _COERCERS[name](stored[name])
            if value is _MALFORMED:
                logger.warning("Ignoring malformed setting %s=%r", name, stored[name])
                value = default
            values[name] = value
        return AppSettings(**values)

    def put(self, key: str, value: Any, *, user_id: int | None = None) -> Setting:
        """Upsert one row. Does not commit."""
        row = self._row(key)
        if row is None:
            row = Setting(key=key, value=value, updated_by_user_id=user_id)
            db.session.add(row)
        else:
            row.value = value
            row.updated_by_user_id = user_id
        db.session.flush()
        return row

    def save(self, settings: AppSettings, *, only: tuple[str, ...] | None = None, user_id: int | None = None) -> None:
        """Persist the given fields (all when only is None). Does not commit."""
        data = settings.to_dict()
        for name in only or tuple(data):
            self.put(name, data[name], user_id=user_id)

    def get_account_balance(self, week_id: int) -> float:
        row = self._row(ACCOUNT_BALANCE_KEY.format(week=week_id))
        if row is None:
            return 0.0
        balance = _coerce_float(row.value)
        return 0.0 if balance is _MALFORMED else balance

    def set_account_balance(self, week_id: int, balance: float, *, user_id: int | None = None) -> None:
        self.put(ACCOUNT_BALANCE_KEY.format(week=week_id), balance, user_id=user_id)


repository = SettingsRepository()


def load_settings() -> AppSettings:
    return repository.load()


def update_settings(payload: dict, *, user_id: int) -> AppSettings:
    """
    Apply an admin update to the writable settings.

    current_week_id is not writable here: it only moves through week rollover.
    """
    settings = repository.load()
    changed: list[str] = []

    if "bonus_percentage" in payload:
        value = parse_amount(payload["bonus_percentage"], "bonus_percentage")
        if value > 1:
            raise ValidationError("bonus_percentage must be a fraction between 0 and 1")
        settings.bonus_percentage = value
        changed.append("bonus_percentage")

    if "executive_salary" in payload:
        settings.executive_salary = parse_amount(payload["executive_salary"], "executive_salary")
        changed.append("executive_salary")

    if "webhook_enabled" in payload:
        if not isinstance(payload["webhook_enabled"], bool):
            raise ValidationError("webhook_enabled must be a boolean")
        settings.webhook_enabled = payload["webhook_enabled"]
        changed.append("webhook_enabled")

    if "webhook_url" in payload:
        url = payload["webhook_url"]
        if url in (None, ""):
            settings.webhook_url = None
        elif not isinstance(url, str) or not url.startswith(("http://", "https://")):
            raise ValidationError("webhook_url must be an http(s) URL")
        else:
            settings.webhook_url = url
        changed.append("webhook_url")

    if "delivery_status" in payload:
        settings.delivery_status = _parse_delivery(payload["delivery_status"])
        changed.append("delivery_status")

    unknown = set(payload) - {"bonus_percentage", "executive_salary", "webhook_enabled", "webhook_url", "delivery_status"}
    if unknown:
        raise ValidationError(f"Unknown or read-only settings: {', '.join(sorted(unknown))}")
    if not changed:
        raise ValidationError("No settings to update")

    repository.save(settings, only=tuple(changed), user_id=user_id)
    db.session.commit()
    return settings


def _parse_delivery(value: Any) -> DeliveryStatus:
    if not isinstance(value, dict):
        raise ValidationError("delivery_status must be an object")
    is_active = value.get("is_active", False)
    if not isinstance(is_active, bool):
        raise ValidationError("delivery_status.is_active must be a boolean")
    company_name = value.get("company_name") or ""
    if not isinstance(company_name, str):
        raise ValidationError("delivery_status.company_name must be a string")
    return DeliveryStatus(is_active=is_active, company_name=company_name.strip())


def set_delivery_status(payload: dict, *, user_id: int) -> DeliveryStatus:
    settings = repository.load()
    settings.delivery_status = _parse_delivery(payload)
    repository.save(settings, only=("delivery_status",), user_id=user_id)
    db.session.commit()
    return settings.delivery_status


def set_account_balance(week: Any, balance: Any, *, user_id: int) -> tuple[int, float]:
    if week in (None, ""):
        raise ValidationError("week is required")
    week_id = parse_int(week, "week", minimum=1)
    amount = parse_amount(balance, "balance", allow_negative=True)
    repository.set_account_balance(week_id, amount, user_id=user_id)
    db.session.commit()
    return week_id, amount
