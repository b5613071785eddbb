from __future__ import annotations

import re
from pathlib import Path
from typing import Protocol

# Controls a structural search may return, in document order.
CONTROL_CSS = ", ".join(
    [
        "input:not([type='hidden'])",
        "textarea",
        "select",
        "button",
        "[role='combobox']",
        "[role='spinbutton']",
        "[role='button']",
        "[contenteditable='true']",
        "[contenteditable='']",
    ]
)

CONTROL_ROLES = frozenset({"combobox", "spinbutton", "button"})

# Generic block elements that count as a label's enclosing row/section.
CONTAINER_TAGS = frozenset({"div", "section", "fieldset", "li", "tr", "td", "article"})
ROOT_TAGS = frozenset({"body", "html"})

LABEL_TAGS = frozenset({"label", "legend"})
LABEL_CSS = ", ".join(sorted(LABEL_TAGS))

# Elements whose text equals an option but which are never the option itself
# (the field label, the closed widget showing its current choice).
NON_OPTION_TAGS = LABEL_TAGS
NON_OPTION_ROLES = frozenset({"combobox"})
NON_OPTION_CSS = "".join(f":not({tag})" for tag in sorted(NON_OPTION_TAGS)) + "".join(
    f":not([role='{role}'])" for role in sorted(NON_OPTION_ROLES)
)


class ElementHandle(Protocol):
    """
    What it does:
    - One element inside a PageHandle.

    Why it matters:
    - The resolution engine only talks to this surface, so it runs unchanged
      against Playwright and against the in-memory fake.

    Behavior:
    - Read methods never wait; a read the page cannot answer raises PageTimeoutError.
    - `try_fill` reports refusal by returning False instead of raising.
    - `click`, `type_text` and `select_option` raise InteractionError when the
      element refuses the action.
    """

    def tag_name(self) -> str: ...

    def get_attribute(self, name: str) -> str | None: ...

    def text(self) -> str: ...

    def is_visible(self) -> bool: ...

    def parent(self) -> ElementHandle | None: ...

    def interactive_descendants(self) -> list[ElementHandle]: ...

    def label_count(self) -> int:
        """Number of label/legend elements inside this element."""
        ...

    def scroll_into_view(self) -> None: ...

    def click(self, *, timeout_ms: int) -> None: ...

    def try_fill(self, value: str, *, timeout_ms: int) -> bool: ...

    def select_all(self) -> None: ...

    def type_text(self, value: str, *, delay_ms: int) -> None: ...

    def option_choices(self) -> list[tuple[str, str]]: ...

    def select_option(self, value: str, *, timeout_ms: int) -> None: ...

    def input_value(self) -> str: ...


class PageHandle(Protocol):
    """
    What it does:
    - A live connection to a single rendered document.

    Why it matters:
    - The caller owns it; the driver and the engine never open or close it.

    Behavior:
    - Query methods return every current match in document order (possibly empty).
    - `goto` and `wait_for_load` raise NavigationError.
    - `screenshot` and `content` may raise anything; diagnostics guard them.
    """

    @property
    def url(self) -> str: ...

    def goto(self, url: str, *, timeout_ms: int) -> None: ...

    def wait_for_load(self, *, timeout_ms: int) -> None: ...

    def dismiss_overlays(self) -> None: ...

    def controls_by_accessible_name(self, pattern: re.Pattern[str]) -> list[ElementHandle]: ...

    def label_elements(self, pattern: re.Pattern[str]) -> list[ElementHandle]: ...

    def element_by_id(self, element_id: str) -> ElementHandle | None: ...

    def option_elements(self, text: str) -> list[ElementHandle]:
        """role=option elements named `text`, then exact text matches that are not labels."""
        ...

    def buttons_by_name(self, pattern: re.Pattern[str]) -> list[ElementHandle]: ...

    def type_keys(self, value: str, *, delay_ms: int) -> None: ...

    def sleep(self, ms: int) -> None: ...

    def body_text(self) -> str: ...

    def screenshot(self, path: Path) -> None: ...

    def content(self) -> str: ...
