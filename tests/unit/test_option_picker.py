from __future__ import annotations

import pytest

from dish_reservations.services.field_resolver import FieldResolver
from dish_reservations.services.value_setter import OptionPicker
from dish_reservations.testing.fakes import FakePage, node
from dish_reservations.testing.pages import dish_picker_row
from dish_reservations.utils.errors import FieldNotFound, OptionNotFound


def _picker() -> OptionPicker:
    return OptionPicker(resolver=FieldResolver(), settle_ms=200)


def _widget(page: FakePage):
    return next(el for el in page.body.descendants() if el.attrs.get("role") == "button")


@pytest.mark.unit
def test_waits_for_option_list_attached_after_the_click():
    """
    What it does:
    - Opens a widget whose option list is attached to <body> 1.5 s after the click.

    Why it matters:
    - A single immediate lookup misses the list; the old scripts failed here.

    Behavior:
    - Polls until the option shows up, clicks it, the widget shows the choice.
    """
    page = FakePage(node("body", dish_picker_row("Čas", ["18:00", "18:30"], attach_delay_ms=1_500)))

    _picker().select_option(page, "Čas", "18:30", timeout_ms=5_000)

    assert _widget(page).own_text == "18:30"
    assert page.now_ms >= 1_500
    assert not any(el.attrs.get("role") == "listbox" for el in page.body.descendants())


@pytest.mark.unit
def test_option_absent_from_list_raises_option_not_found():
    page = FakePage(node("body", dish_picker_row("Čas", ["18:00", "18:30"])))

    with pytest.raises(OptionNotFound) as exc:
        _picker().select_option(page, "Čas", "22:00", timeout_ms=2_000)

    assert exc.value.option == "22:00"
    assert _widget(page).own_text == "Vyberte"


@pytest.mark.unit
def test_list_that_attaches_after_the_timeout_is_not_waited_for():
    page = FakePage(node("body", dish_picker_row("Zdroj", ["Telefon"], attach_delay_ms=10_000)))

    with pytest.raises(OptionNotFound):
        _picker().select_option(page, "Zdroj", "Telefon", timeout_ms=2_000)

    assert page.now_ms < 10_000


@pytest.mark.unit
def test_plain_text_options_without_role_are_accepted():
    chosen = []
    widget = node("div", text="1:30", role="combobox")

    def open_list(el):
        item = node("li", text="2:00")
        item.on_click = lambda opt: chosen.append(opt.own_text)
        el.owner().body.append(node("ul", item))

    widget.on_click = open_list
    page = FakePage(node("body", node("div", node("label", text="Doba trvání"), widget)))

    _picker().select_option(page, "Doba trvání", "2:00", timeout_ms=1_000)

    assert chosen == ["2:00"]


@pytest.mark.unit
def test_missing_control_propagates_field_not_found():
    with pytest.raises(FieldNotFound):
        _picker().select_option(FakePage(), "Příležitost", "Narozeniny", timeout_ms=500)


@pytest.mark.unit
def test_field_label_with_the_same_text_is_not_taken_for_an_option():
    """
    What it does:
    - Picks "Telefon" as booking source while a field labelled "Telefon" exists.

    Why it matters:
    - Clicking the label instead of waiting for the list would leave the source unset.

    Behavior:
    - The label is ignored; the picker waits for the late option list.
    """
    phone_row = node("div", node("label", text="Telefon"), node("input", type="tel"), class_="form-group")
    page = FakePage(node("body", dish_picker_row("Zdroj", ["Web", "Telefon"], attach_delay_ms=1_000), phone_row))

    _picker().select_option(page, "Zdroj", "Telefon", timeout_ms=5_000)

    assert _widget(page).value == "Telefon"
