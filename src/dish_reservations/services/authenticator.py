from __future__ import annotations

import logging
import re
from typing import Protocol

from dish_reservations.services.field_resolver import FieldResolver
from dish_reservations.services.page_handle import PageHandle
from dish_reservations.services.session_material import Credentials
from dish_reservations.services.value_setter import ValueSetter
from dish_reservations.utils.errors import (
    AuthenticationError,
    FieldResolutionError,
    InteractionError,
    NavigationError,
)
from dish_reservations.utils.waiting import poll_until

logger = logging.getLogger(__name__)

USERNAME_LABEL = re.compile(r"e-?mail|user\s*name|u[žz]ivatel", re.IGNORECASE)
PASSWORD_LABEL = re.compile(r"password|heslo", re.IGNORECASE)
LOGIN_BUTTON = re.compile(r"p[řr]ihl[áa]sit|log\s*in|sign\s*in|continue|pokra[čc]ovat", re.IGNORECASE)


class Authenticator(Protocol):
    """
    What it does:
    - Exchanges credentials for an authenticated session on the current page.

    Behavior:
    - Called only when navigation landed on a login page.
    - Raises AuthenticationError on any failure.
    """

    def login(self, page: PageHandle, credentials: Credentials, *, timeout_ms: int) -> None: ...


class FormLoginAuthenticator:
    """
    Fills the site's login form with the same resolution engine the reservation
    form uses, clicks the login button and waits for the page to settle.
    """

    def __init__(
        self,
        *,
        resolver: FieldResolver,
        setter: ValueSetter,
        poll_interval_ms: int = 250,
    ) -> None:
        self.resolver = resolver
        self.setter = setter
        self.poll_interval_ms = poll_interval_ms

    def login(self, page: PageHandle, credentials: Credentials, *, timeout_ms: int) -> None:
        logger.info("Login form detected at %s; signing in as %s", page.url, credentials.username)
        try:
            username = self.resolver.resolve(page, USERNAME_LABEL, timeout_ms=timeout_ms)
            self.setter.set_value(username, credentials.username, timeout_ms=timeout_ms)

            password = self.resolver.resolve(page, PASSWORD_LABEL, timeout_ms=timeout_ms)
            self.setter.set_value(password, credentials.password, timeout_ms=timeout_ms)
        except FieldResolutionError as e:
            raise AuthenticationError(f"Login form not usable: {e}") from e
        except InteractionError as e:
            raise AuthenticationError(f"Could not fill login form: {e}") from e

        buttons = poll_until(
            lambda: page.buttons_by_name(LOGIN_BUTTON),
            page=page,
            timeout_ms=timeout_ms,
            interval_ms=self.poll_interval_ms,
        )
        if not buttons:
            raise AuthenticationError("Login button not found.")

        button = next((b for b in buttons if b.is_visible()), buttons[0])
        try:
            button.click(timeout_ms=timeout_ms)
            page.wait_for_load(timeout_ms=timeout_ms)
        except (InteractionError, NavigationError) as e:
            raise AuthenticationError(f"Login submit failed: {e}") from e
