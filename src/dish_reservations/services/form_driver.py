"""
form_driver.py

What this module does
- Runs one reservation through the DISH back office form as an explicit state machine:
    idle -> navigating -> (logging-in) -> form-ready -> filling(i) -> submitting
         -> confirmed | failed

Why it matters
- Each state has one failure meaning, so skip/abort rules are testable without a browser.
- Nothing is retried at this level: a half-filled form or a second click on "Uložit"
  can create duplicate reservations.

Behavior summary
- Optional fields that are not on the page are skipped and logged.
- A required field that cannot be resolved aborts with failed(missing-field).
- Before any failure propagates, a screenshot and the page markup are saved.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from urllib.parse import urlencode, urlsplit

from dish_reservations.services.authenticator import Authenticator
from dish_reservations.services.diagnostics import capture_artifacts
from dish_reservations.services.driver_config import DriverConfig
from dish_reservations.services.field_plan import FieldKind, FieldSpec, build_field_plan
from dish_reservations.services.field_resolver import ControlKind, FieldResolver
from dish_reservations.services.page_handle import PageHandle
from dish_reservations.services.reservation_request import ReservationRequest
from dish_reservations.services.session_material import Credentials
from dish_reservations.services.value_setter import OptionPicker, ValueSetter
from dish_reservations.utils.errors import (
    AuthenticationError,
    ConfirmationTimeout,
    FieldNotFound,
    FieldResolutionError,
    InteractionError,
    NavigationError,
    ReservationError,
    SubmissionError,
)
from dish_reservations.utils.waiting import poll_until

logger = logging.getLogger(__name__)


class DriverState(StrEnum):
    IDLE = "idle"
    NAVIGATING = "navigating"
    LOGGING_IN = "logging-in"
    FORM_READY = "form-ready"
    FILLING = "filling"
    SUBMITTING = "submitting"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class FailureReason(StrEnum):
    NAVIGATION = "navigation"
    AUTHENTICATION = "authentication"
    MISSING_FIELD = "missing-field"
    INTERACTION = "interaction"
    SUBMISSION = "submission"
    NO_CONFIRMATION = "no-confirmation"


_REASON_BY_ERROR: tuple[tuple[type[Exception], FailureReason], ...] = (
    (NavigationError, FailureReason.NAVIGATION),
    (AuthenticationError, FailureReason.AUTHENTICATION),
    (FieldResolutionError, FailureReason.MISSING_FIELD),
    (InteractionError, FailureReason.INTERACTION),
    (SubmissionError, FailureReason.SUBMISSION),
    (ConfirmationTimeout, FailureReason.NO_CONFIRMATION),
)


@dataclass(frozen=True)
class ReservationOutcome:
    state: DriverState
    final_url: str
    skipped_fields: tuple[str, ...] = ()
    transitions: tuple[str, ...] = ()


def reservation_url(base_url: str, request: ReservationRequest) -> str:
    query = urlencode({"date": request.date.isoformat()})
    return f"{base_url.rstrip('/')}/reservation/add?{query}"


def is_auth_redirect(url: str, markers: tuple[str, ...]) -> bool:
    parts = urlsplit(url)
    where = f"{parts.netloc}{parts.path}".lower()
    return any(marker in where for marker in markers)


class ReservationFormDriver:
    """
    What it does:
    - Fills and submits the reservation form on a page owned by the caller.

    Why it matters:
    - Single entry point for the CLI; all browser specifics stay behind PageHandle.

    Behavior:
    - `run()` returns a ReservationOutcome in state confirmed, or raises the
      ReservationError that moved it to failed (after capturing artifacts).
    - `state`, `failure_reason`, `field_index` and `transitions` stay readable afterwards.
    - One driver instance runs one reservation.
    """

    def __init__(
        self,
        *,
        page: PageHandle,
        config: DriverConfig,
        authenticator: Authenticator | None = None,
        credentials: Credentials | None = None,
        resolver: FieldResolver | None = None,
        setter: ValueSetter | None = None,
        picker: OptionPicker | None = None,
    ) -> None:
        self.page = page
        self.config = config
        self.authenticator = authenticator
        self.credentials = credentials

        self.resolver = resolver or FieldResolver(
            poll_interval_ms=config.poll_interval_ms,
            strict_visibility=config.strict_visibility,
        )
        self.setter = setter or ValueSetter(type_delay_ms=config.type_delay_ms, settle_ms=config.settle_ms)
        self.picker = picker or OptionPicker(
            resolver=self.resolver,
            type_delay_ms=config.type_delay_ms,
            settle_ms=config.settle_ms,
            poll_interval_ms=config.poll_interval_ms,
        )

        self.state = DriverState.IDLE
        self.failure_reason: FailureReason | None = None
        self.field_index: int | None = None
        self.transitions: list[str] = [DriverState.IDLE.value]
        self.skipped_fields: list[str] = []
        self.artifacts: list[Path] = []

        self._submit_pattern = re.compile(
            r"^\s*(" + "|".join(re.escape(label) for label in config.submit_labels) + r")\b",
            re.IGNORECASE,
        )
        self._confirmation_pattern = re.compile(config.confirmation_pattern, re.IGNORECASE)

    # -------------------- Public API --------------------

    def run(self, request: ReservationRequest) -> ReservationOutcome:
        if self.state is not DriverState.IDLE:
            raise RuntimeError("ReservationFormDriver runs a single reservation; create a new driver.")

        try:
            url = reservation_url(self.config.base_url, request)
            self._navigate(url)
            self._prepare_form()
            self._fill(build_field_plan(request, self.config))
            self._submit()
            self._await_confirmation()
        except ReservationError as e:
            self._fail(self._reason_for(e), e)
            raise
        except Exception as e:
            self._fail(FailureReason.INTERACTION, e)
            raise

        return ReservationOutcome(
            state=self.state,
            final_url=self.page.url,
            skipped_fields=tuple(self.skipped_fields),
            transitions=tuple(self.transitions),
        )

    # -------------------- States --------------------

    def _navigate(self, url: str) -> None:
        self._enter(DriverState.NAVIGATING)
        logger.info("Navigating to %s", url)
        self.page.goto(url, timeout_ms=self.config.timeout_ms)

        if is_auth_redirect(self.page.url, self.config.auth_markers):
            self._login(url)

    def _login(self, url: str) -> None:
        self._enter(DriverState.LOGGING_IN)
        if self.authenticator is None or self.credentials is None:
            raise AuthenticationError(
                f"Redirected to login ({self.page.url}) and no credentials are configured; "
                "session cookies are missing or expired."
            )

        self.authenticator.login(self.page, self.credentials, timeout_ms=self.config.timeout_ms)

        # The login redirect may drop the ?date= query; go back explicitly.
        logger.info("Logged in; re-opening %s", url)
        self.page.goto(url, timeout_ms=self.config.timeout_ms)
        if is_auth_redirect(self.page.url, self.config.auth_markers):
            raise AuthenticationError(f"Still on a login page after signing in: {self.page.url}")

    def _prepare_form(self) -> None:
        self.page.dismiss_overlays()
        self._enter(DriverState.FORM_READY)

    def _fill(self, plan: list[FieldSpec]) -> None:
        for i, spec in enumerate(plan):
            self.field_index = i
            self._enter(DriverState.FILLING, detail=f"{i}:{spec.name}")
            self._fill_field(spec)

    def _fill_field(self, spec: FieldSpec) -> None:
        timeout_ms = spec.timeout_ms or (
            self.config.timeout_ms if spec.required else self.config.optional_field_timeout_ms
        )

        try:
            control = self.resolver.resolve(self.page, spec.label, timeout_ms=timeout_ms)
        except FieldNotFound as e:
            if spec.required:
                raise
            logger.warning("Skipping optional field %s: %s", spec.name, e)
            self.skipped_fields.append(spec.name)
            return

        logger.info("Setting %s via %s (%s)", spec.describe(), control.strategy, control.kind)
        picks_from_list = spec.kind is FieldKind.PICKER and control.kind in (
            ControlKind.CUSTOM_WIDGET,
            ControlKind.CONTENTEDITABLE,
        )
        if picks_from_list:
            self.picker.choose(control, spec.pick_text, timeout_ms=timeout_ms)
        else:
            self.setter.set_value(control, spec.value, timeout_ms=timeout_ms)

    def _submit(self) -> None:
        self._enter(DriverState.SUBMITTING)
        buttons = poll_until(
            lambda: self.page.buttons_by_name(self._submit_pattern),
            page=self.page,
            timeout_ms=self.config.timeout_ms,
            interval_ms=self.config.poll_interval_ms,
        )
        if not buttons:
            raise SubmissionError(f"No submit button ({', '.join(self.config.submit_labels)}) found.")

        button = next((b for b in buttons if b.is_visible()), buttons[0])
        try:
            button.scroll_into_view()
            button.click(timeout_ms=self.config.timeout_ms)
        except InteractionError as e:
            raise SubmissionError(f"Submit click failed: {e}") from e

    def _await_confirmation(self) -> None:
        matched = poll_until(
            lambda: self._confirmation_pattern.search(self.page.body_text()),
            page=self.page,
            timeout_ms=self.config.confirmation_timeout_ms,
            interval_ms=self.config.poll_interval_ms,
        )
        if matched is None:
            raise ConfirmationTimeout(
                f"No confirmation text within {self.config.confirmation_timeout_ms} ms "
                f"(url={self.page.url})"
            )
        logger.info("Confirmation seen: %r", matched.group(0))
        self._enter(DriverState.CONFIRMED)

    # -------------------- Helpers --------------------

    def _enter(self, state: DriverState, *, detail: str | None = None) -> None:
        label = f"{state.value}({detail})" if detail else state.value
        logger.info("State %s -> %s", self.transitions[-1], label)
        self.state = state
        self.transitions.append(label)

    def _fail(self, reason: FailureReason, error: Exception) -> None:
        self.failure_reason = reason
        self._enter(DriverState.FAILED, detail=reason.value)
        logger.error("Reservation failed (%s): %s", reason, error)
        self.artifacts = capture_artifacts(self.page, self.config.artifacts_dir, f"failed_{reason.value}")

    def _reason_for(self, error: ReservationError) -> FailureReason:
        for error_type, reason in _REASON_BY_ERROR:
            if isinstance(error, error_type):
                return reason
        return FailureReason.INTERACTION
