from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from dish_reservations.config.paths import artifacts_path

DEFAULT_SUBMIT_LABELS: tuple[str, ...] = (
    "Uložit",
    "Vytvořit",
    "Odeslat",
    "Rezervovat",
    "Save",
    "Create",
    "Submit",
)

DEFAULT_CONFIRMATION_PATTERN = (
    r"rezervace\s+(byla\s+)?(úspěšně\s+)?(vytvořena|uložena)"
    r"|úspěšně\s+uloženo"
    r"|reservation\s+(was\s+)?(successfully\s+)?(created|saved)"
)

DEFAULT_AUTH_MARKERS: tuple[str, ...] = ("login", "signin", "sign-in", "sign_in", "auth")


@dataclass(frozen=True)
class DriverConfig:
    """
    What it does:
    - Everything a ReservationFormDriver run needs besides the request and the page.

    Why it matters:
    - The driver never reads environment or module-level state; tests build this directly.

    Behavior:
    - `duration`, `source`, `occasion` are the default picker selections; a request
      value overrides them.
    - All `*_ms` values bound a single wait; none of them is retried.
    """

    duration: str = "2:00"
    source: str = "Telefon"
    occasion: str = "Normální návštěva"
    timeout_ms: int = 60_000

    base_url: str = "https://reservation.dish.co"
    optional_field_timeout_ms: int = 5_000
    confirmation_timeout_ms: int = 15_000
    settle_ms: int = 250
    type_delay_ms: int = 35
    poll_interval_ms: int = 250
    strict_visibility: bool = False

    submit_labels: tuple[str, ...] = DEFAULT_SUBMIT_LABELS
    confirmation_pattern: str = DEFAULT_CONFIRMATION_PATTERN
    auth_markers: tuple[str, ...] = DEFAULT_AUTH_MARKERS
    artifacts_dir: Path = field(default_factory=lambda: artifacts_path("artifacts"))

    @classmethod
    def from_settings(cls, settings: Any, **overrides: Any) -> DriverConfig:
        config = cls(
            duration=settings.duration_option,
            source=settings.source_option,
            occasion=settings.occasion_option,
            timeout_ms=settings.timeout_ms,
            base_url=settings.dish_base_url,
            confirmation_timeout_ms=settings.confirmation_timeout_ms,
            artifacts_dir=artifacts_path(settings.artifacts_dir),
        )
        return replace(config, **overrides) if overrides else config
