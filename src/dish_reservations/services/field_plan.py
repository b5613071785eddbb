from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from dish_reservations.services.driver_config import DriverConfig
from dish_reservations.services.field_resolver import LabelPattern, describe_label
from dish_reservations.services.reservation_request import ReservationRequest


class FieldKind(StrEnum):
    TEXT = "native-text"
    SELECT = "native-select"
    PICKER = "custom-picker"


def _label(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


# Czech wording of the DISH back office, English as a fallback for localized tenants.
GUESTS_LABEL = _label(r"^\s*(po[čc]et\s+host[ůu]|guests?|number\s+of\s+guests|persons?)")
TABLE_LABEL = _label(r"^\s*(st[ůu]l|table)")
DATE_LABEL = _label(r"^\s*(datum|date)")
TIME_LABEL = _label(r"^\s*([čc]as|time)\s*\*?\s*$")
DURATION_LABEL = _label(r"^\s*(doba\s+trv[áa]n[íi]|duration)")
SOURCE_LABEL = _label(r"^\s*(zdroj|source)")
OCCASION_LABEL = _label(r"^\s*(p[řr][íi]le[žz]itost|occasion)")
LAST_NAME_LABEL = _label(r"^\s*(p[řr][íi]jmen[íi]|last\s*name|surname)")
FIRST_NAME_LABEL = _label(r"^\s*(jm[ée]no|first\s*name)")
PHONE_LABEL = _label(r"^\s*(telefon|phone)")
NOTES_LABEL = _label(r"^\s*(pozn[áa]mk|notes?)")


@dataclass(frozen=True)
class FieldSpec:
    """
    One step of the field-plan.

    `option_text` is what gets clicked when the control turns out to be a picker
    (the calendar wants the day number, a native date input wants the ISO date).
    """

    name: str
    label: LabelPattern
    value: str
    kind: FieldKind = FieldKind.TEXT
    required: bool = True
    option_text: str | None = None
    timeout_ms: int | None = None

    @property
    def pick_text(self) -> str:
        return self.option_text if self.option_text is not None else self.value

    def describe(self) -> str:
        return f"{self.name} ({describe_label(self.label)})"


def build_field_plan(request: ReservationRequest, config: DriverConfig) -> list[FieldSpec]:
    """
    What it does:
    - Lists the reservation form fields in the order they must be filled.

    Why it matters:
    - Order matters: the guest count has to be set before the date picker renders
      correctly, and the duration list depends on the chosen time.

    Behavior:
    - Party fields (guests/name/phone) appear only when the request carries them.
    - Duration/source/occasion are optional: the form pre-selects a default and some
      layouts hide them.
    - Notes are included only when the request has notes.
    """
    plan: list[FieldSpec] = []

    if request.guests is not None:
        plan.append(FieldSpec("guests", GUESTS_LABEL, str(request.guests), FieldKind.TEXT))
    if request.table:
        plan.append(FieldSpec("table", TABLE_LABEL, request.table, FieldKind.PICKER))

    plan.append(
        FieldSpec(
            "date",
            DATE_LABEL,
            request.date.isoformat(),
            FieldKind.PICKER,
            option_text=str(request.date.day),
        )
    )
    plan.append(FieldSpec("time", TIME_LABEL, request.time_text, FieldKind.PICKER))

    plan.append(
        FieldSpec("duration", DURATION_LABEL, request.duration or config.duration, FieldKind.PICKER, required=False)
    )
    plan.append(FieldSpec("source", SOURCE_LABEL, request.source or config.source, FieldKind.PICKER, required=False))
    plan.append(
        FieldSpec("occasion", OCCASION_LABEL, request.occasion or config.occasion, FieldKind.PICKER, required=False)
    )

    if request.last_name:
        plan.append(FieldSpec("last_name", LAST_NAME_LABEL, request.last_name))
    if request.first_name:
        plan.append(FieldSpec("first_name", FIRST_NAME_LABEL, request.first_name))
    if request.phone:
        plan.append(FieldSpec("phone", PHONE_LABEL, request.phone))
    if request.notes:
        plan.append(FieldSpec("notes", NOTES_LABEL, request.notes, required=False))

    return plan
