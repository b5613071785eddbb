from __future__ import annotations

import datetime as dt
import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, PositiveInt, ValidationError, field_validator, model_validator

from dish_reservations.utils.errors import ConfigurationError


class ReservationRequest(BaseModel):
    """
    What it does:
    - The validated reservation payload the form driver consumes.

    Why it matters:
    - Every input problem is caught here, before a browser is even started.

    Behavior:
    - `name` is split into first/last (single token -> used for both).
    - `time` accepts "HH:MM" or a full ISO datetime (time part kept).
    - Accepts `people` for `guests` and `note` for `notes` (older payload variants).
    - Either `table` or all of guests/name/phone must be present.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    date: dt.date
    time: dt.time
    guests: PositiveInt | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    notes: str | None = None
    table: str | None = None
    duration: str | None = None
    source: str | None = None
    occasion: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_payload(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        if "guests" not in data and "people" in data:
            data["guests"] = data.pop("people")
        if "notes" not in data and "note" in data:
            data["notes"] = data.pop("note")

        name = data.pop("name", None)
        if isinstance(name, str) and name.strip():
            parts = name.split()
            data.setdefault("first_name", parts[0])
            data.setdefault("last_name", " ".join(parts[1:]) or parts[0])
        return data

    @field_validator("time", mode="before")
    @classmethod
    def _time_from_datetime(cls, value: Any) -> Any:
        if isinstance(value, str) and "T" in value:
            return dt.datetime.fromisoformat(value.replace("Z", "+00:00")).time().replace(tzinfo=None)
        return value

    @field_validator("phone", "notes", "table", "first_name", "last_name", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @model_validator(mode="after")
    def _require_party_or_table(self) -> ReservationRequest:
        if self.table:
            return self
        missing = [
            key
            for key, value in (
                ("guests", self.guests),
                ("name", self.first_name),
                ("phone", self.phone),
            )
            if value is None
        ]
        if missing:
            raise ValueError(f"either 'table' or {', '.join(missing)} is required")
        return self

    @property
    def time_text(self) -> str:
        return f"{self.time.hour:02d}:{self.time.minute:02d}"


def parse_reservation_request(raw: str, *, source: str = "payload") -> ReservationRequest:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{source} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{source} must be a JSON object, got {type(data).__name__}")

    try:
        return ReservationRequest.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'payload'}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"Invalid {source}: {problems}") from e


def load_reservation_request(*, path: str | None = None, raw: str | None = None) -> ReservationRequest:
    """
    Loads the request from a JSON file, falling back to a JSON string
    (the RESERVATION_DATA environment value).
    """
    if path:
        p = Path(path)
        if not p.is_file():
            raise ConfigurationError(f"Payload file not found: {p}")
        return parse_reservation_request(p.read_text(encoding="utf-8"), source=str(p))

    if raw and raw.strip():
        return parse_reservation_request(raw, source="RESERVATION_DATA")

    raise ConfigurationError("No reservation payload: pass a JSON file or set RESERVATION_DATA.")
