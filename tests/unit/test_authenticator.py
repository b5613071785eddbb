from __future__ import annotations

import pytest

from dish_reservations.services.authenticator import FormLoginAuthenticator
from dish_reservations.services.field_resolver import FieldResolver
from dish_reservations.services.session_material import Credentials
from dish_reservations.services.value_setter import ValueSetter
from dish_reservations.testing.fakes import FakePage, node
from dish_reservations.testing.pages import login_form
from dish_reservations.utils.errors import AuthenticationError

CREDS = Credentials("host@example.com", "secret")


def _authenticator() -> FormLoginAuthenticator:
    return FormLoginAuthenticator(resolver=FieldResolver(), setter=ValueSetter())


@pytest.mark.unit
def test_fills_login_form_and_clicks_login():
    clicked = []
    page = FakePage(login_form(on_login=clicked.append))

    _authenticator().login(page, CREDS, timeout_ms=2_000)

    inputs = [el for el in page.body.descendants() if el.tag == "input"]
    assert [el.value for el in inputs] == ["host@example.com", "secret"]
    assert len(clicked) == 1
    assert page.call_names()[-1] == "wait_for_load"


@pytest.mark.unit
def test_page_without_login_form_is_an_authentication_error():
    page = FakePage(node("body", node("div", text="Přístup odepřen")))

    with pytest.raises(AuthenticationError, match="Login form not usable"):
        _authenticator().login(page, CREDS, timeout_ms=1_000)


@pytest.mark.unit
def test_missing_login_button_is_an_authentication_error():
    body = login_form()
    next(el for el in body.descendants() if el.tag == "button").remove()

    with pytest.raises(AuthenticationError, match="Login button not found"):
        _authenticator().login(FakePage(body), CREDS, timeout_ms=1_000)
