class ReservationError(Exception):
    """Base class for every failure a reservation run can surface."""


class ConfigurationError(ReservationError):
    """Raised when the payload, credentials or session material are missing or malformed."""


class NavigationError(ReservationError):
    """Raised when the reservation page cannot be loaded."""


class AuthenticationError(ReservationError):
    """Raised when login fails or the site keeps redirecting to its login page."""


class PageTimeoutError(ReservationError):
    """Raised by a page adapter when a low-level query times out or its node is re-rendered away."""


class FieldResolutionError(ReservationError):
    """Raised when a label cannot be turned into exactly one interactable control."""

    def __init__(self, label: str, detail: str) -> None:
        super().__init__(f"{label!r}: {detail}")
        self.label = label
        self.detail = detail


class FieldNotFound(FieldResolutionError):
    pass


class AmbiguousNoVisibleMatch(FieldResolutionError):
    pass


class ResolutionTimeout(FieldResolutionError):
    pass


class InteractionError(ReservationError):
    """Raised when a value could not be set on a control after all fallbacks."""


class OptionNotFound(InteractionError):
    """Raised when a select or option list does not offer the requested value."""

    def __init__(self, label: str, option: str, available: list[str] | None = None) -> None:
        msg = f"{label!r}: option {option!r} not offered"
        if available:
            msg += f" (available: {', '.join(available)})"
        super().__init__(msg)
        self.label = label
        self.option = option
        self.available = available or []


class SubmissionError(ReservationError):
    """Raised when the submit control is missing or cannot be clicked."""


class ConfirmationTimeout(ReservationError):
    """Raised when no confirmation text shows up after submitting."""
