from __future__ import annotations

import logging

from dish_reservations.services.field_resolver import (
    ControlKind,
    FieldResolver,
    LabelPattern,
    ResolvedControl,
)
from dish_reservations.services.page_handle import ElementHandle, PageHandle
from dish_reservations.utils.errors import OptionNotFound
from dish_reservations.utils.waiting import poll_until

logger = logging.getLogger(__name__)


class ValueSetter:
    """
    What it does:
    - Writes a value into a resolved control using the strategy its kind needs.

    Why it matters:
    - Native inputs, native selects and the site's custom widgets each accept input
      differently; input masks (phone, guest counter) drop programmatic bulk writes.

    Behavior:
    - native text: scroll, direct fill; if the fill is refused or leaves the control
      empty -> click, select all, type key by key with `type_delay_ms` between keys.
    - native select: pick the option whose value or text equals the value, else
      OptionNotFound (selection untouched).
    - custom widget / contenteditable: click to focus, then type keystrokes.
    - Always pauses `settle_ms` afterwards so client-side re-renders can finish.
    """

    def __init__(self, *, type_delay_ms: int = 35, settle_ms: int = 250) -> None:
        self.type_delay_ms = type_delay_ms
        self.settle_ms = settle_ms

    def set_value(self, control: ResolvedControl, value: str, *, timeout_ms: int) -> None:
        if control.kind is ControlKind.NATIVE_TEXT:
            self._fill_text(control, value, timeout_ms)
        elif control.kind is ControlKind.NATIVE_SELECT:
            self._choose_native_option(control, value, timeout_ms)
        else:
            self._type_into_widget(control, value, timeout_ms)
        self.settle(control.page)

    def settle(self, page: PageHandle) -> None:
        page.sleep(self.settle_ms)

    def _fill_text(self, control: ResolvedControl, value: str, timeout_ms: int) -> None:
        el = control.element
        el.scroll_into_view()

        if el.try_fill(value, timeout_ms=timeout_ms) and _fill_accepted(el, value):
            return

        logger.debug("Direct fill refused for %r; typing key by key", control.label)
        el.click(timeout_ms=timeout_ms)
        el.select_all()
        el.type_text(value, delay_ms=self.type_delay_ms)

    def _choose_native_option(self, control: ResolvedControl, value: str, timeout_ms: int) -> None:
        el = control.element
        choices = el.option_choices()
        wanted = value.strip()

        for option_value, option_text in choices:
            if option_value == wanted or option_text.strip() == wanted:
                el.scroll_into_view()
                el.select_option(option_value, timeout_ms=timeout_ms)
                return

        raise OptionNotFound(control.label, value, [text for _, text in choices])

    def _type_into_widget(self, control: ResolvedControl, value: str, timeout_ms: int) -> None:
        el = control.element
        el.scroll_into_view()
        el.click(timeout_ms=timeout_ms)
        control.page.type_keys(value, delay_ms=self.type_delay_ms)


class OptionPicker(ValueSetter):
    """
    What it does:
    - Handles controls that open a transient option list when clicked
      (custom dropdowns, the date picker).

    Why it matters:
    - The list is often rendered at document root to escape clipping, and it
      attaches some time after the click.

    Behavior:
    - Clicks the control, then polls the whole page for a role=option element or an
      element whose text equals `option_text`; clicks the first (visible preferred).
    - OptionNotFound if nothing shows up within the timeout.
    """

    def __init__(
        self,
        *,
        resolver: FieldResolver,
        type_delay_ms: int = 35,
        settle_ms: int = 250,
        poll_interval_ms: int = 250,
    ) -> None:
        super().__init__(type_delay_ms=type_delay_ms, settle_ms=settle_ms)
        self.resolver = resolver
        self.poll_interval_ms = poll_interval_ms

    def select_option(
        self,
        page: PageHandle,
        label: LabelPattern,
        option_text: str,
        *,
        timeout_ms: int,
    ) -> None:
        control = self.resolver.resolve(page, label, timeout_ms=timeout_ms)
        self.choose(control, option_text, timeout_ms=timeout_ms)

    def choose(self, control: ResolvedControl, option_text: str, *, timeout_ms: int) -> None:
        page = control.page
        el = control.element
        el.scroll_into_view()
        el.click(timeout_ms=timeout_ms)

        options = poll_until(
            lambda: page.option_elements(option_text),
            page=page,
            timeout_ms=timeout_ms,
            interval_ms=self.poll_interval_ms,
        )
        if not options:
            raise OptionNotFound(control.label, option_text)

        target = next((o for o in options if o.is_visible()), options[0])
        target.scroll_into_view()
        target.click(timeout_ms=timeout_ms)
        self.settle(page)


def _fill_accepted(el: ElementHandle, value: str) -> bool:
    # Masked inputs swallow a bulk write silently and stay empty.
    return not value or bool(el.input_value().strip())
