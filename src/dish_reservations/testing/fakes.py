from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from dish_reservations.services.page_handle import CONTROL_ROLES, LABEL_TAGS, NON_OPTION_ROLES, NON_OPTION_TAGS
from dish_reservations.utils.errors import InteractionError, NavigationError

_HIDDEN_INPUT_TYPES = frozenset({"hidden"})


@dataclass(eq=False)
class FakeElement:
    """
    What it does:
    - A node of the in-memory DOM behind FakePage; implements ElementHandle.

    Why it matters:
    - Lets us test resolution, value setting and the driver without a browser.

    Behavior:
    - `visible=False` on any ancestor hides the node.
    - `fill_works=False` makes direct fill refuse (input masks).
    - A `disabled` attribute makes click raise InteractionError.
    - `on_click(element)` runs after every successful click.
    """

    tag: str
    own_text: str = ""
    attrs: dict[str, str] = field(default_factory=dict)
    visible: bool = True
    value: str = ""
    options: list[tuple[str, str]] = field(default_factory=list)
    fill_works: bool = True
    on_click: Callable[[FakeElement], None] | None = None
    children: list[FakeElement] = field(default_factory=list)
    parent_node: FakeElement | None = field(default=None, repr=False)
    page: FakePage | None = field(default=None, repr=False)
    _replace_on_type: bool = field(default=False, repr=False)

    # -------------------- Tree building --------------------

    def append(self, *children: FakeElement) -> FakeElement:
        for child in children:
            child.parent_node = self
            self.children.append(child)
        return self

    def remove(self) -> None:
        if self.parent_node is not None:
            self.parent_node.children.remove(self)
            self.parent_node = None

    def descendants(self) -> list[FakeElement]:
        out: list[FakeElement] = []
        for child in self.children:
            out.append(child)
            out.extend(child.descendants())
        return out

    def owner(self) -> FakePage | None:
        node = self
        while node.parent_node is not None:
            node = node.parent_node
        return node.page

    def _record(self, action: str, payload: object = None) -> None:
        page = self.owner()
        if page is not None:
            page.calls.append((action, self if payload is None else (self, payload)))

    # -------------------- ElementHandle --------------------

    def tag_name(self) -> str:
        return self.tag

    def get_attribute(self, name: str) -> str | None:
        return self.attrs.get(name)

    def inner_text(self) -> str:
        parts = [self.own_text] + [c.inner_text() for c in self.children if c.visible]
        return " ".join(p for p in parts if p).strip()

    def text(self) -> str:
        return self.inner_text()

    def is_visible(self) -> bool:
        node: FakeElement | None = self
        while node is not None:
            if not node.visible:
                return False
            node = node.parent_node
        return self.owner() is not None

    def parent(self) -> FakeElement | None:
        return self.parent_node

    def interactive_descendants(self) -> list[FakeElement]:
        return [el for el in self.descendants() if is_interactive(el)]

    def label_count(self) -> int:
        return sum(1 for el in self.descendants() if el.tag in LABEL_TAGS)

    def scroll_into_view(self) -> None:
        self._record("scroll")

    def click(self, *, timeout_ms: int) -> None:
        if "disabled" in self.attrs or self.owner() is None:
            raise InteractionError(f"click failed on <{self.tag}>")
        self._record("click")
        page = self.owner()
        page.focused = self
        if self.on_click is not None:
            self.on_click(self)

    def try_fill(self, value: str, *, timeout_ms: int) -> bool:
        self._record("fill", value)
        if not self.fill_works or self.tag not in ("input", "textarea"):
            return False
        self.value = value
        return True

    def select_all(self) -> None:
        self._record("select_all")
        self._replace_on_type = True

    def type_text(self, value: str, *, delay_ms: int) -> None:
        self._record("type", value)
        self.value = value if self._replace_on_type else self.value + value
        self._replace_on_type = False

    def option_choices(self) -> list[tuple[str, str]]:
        return list(self.options)

    def select_option(self, value: str, *, timeout_ms: int) -> None:
        if value not in {v for v, _ in self.options}:
            raise InteractionError(f"no option {value!r}")
        self._record("select", value)
        self.value = value

    def input_value(self) -> str:
        if self.tag in ("input", "textarea", "select"):
            return self.value
        return self.value or self.inner_text()


def node(tag: str, *children: FakeElement, text: str = "", **attrs: str) -> FakeElement:
    """
    Builds a FakeElement; keyword arguments become attributes
    (`aria_label` -> `aria-label`, `for_` -> `for`).
    """
    attributes = {k.rstrip("_").replace("_", "-"): v for k, v in attrs.items()}
    return FakeElement(tag=tag, own_text=text, attrs=attributes).append(*children)


def is_interactive(el: FakeElement) -> bool:
    if el.tag == "input":
        return (el.attrs.get("type") or "text").lower() not in _HIDDEN_INPUT_TYPES
    if el.tag in ("textarea", "select", "button"):
        return True
    if el.attrs.get("role") in CONTROL_ROLES:
        return True
    return el.attrs.get("contenteditable") in ("", "true")


def accessible_name(el: FakeElement, page: FakePage) -> str:
    for attr in ("aria-label", "placeholder", "title"):
        if el.attrs.get(attr):
            return el.attrs[attr]
    labelled_by = el.attrs.get("aria-labelledby")
    if labelled_by:
        ref = page.element_by_id(labelled_by)
        if ref is not None:
            return ref.inner_text()
    return ""


class FakePage:
    """
    What it does:
    - In-memory PageHandle with a virtual clock.

    Why it matters:
    - Timeouts of 60 s run instantly: `sleep()` only advances `now_ms` and fires
      anything scheduled with `schedule()` (delayed DOM insertions, confirmations).

    Behavior:
    - Every query and action is appended to `calls`.
    - Accessible names come from aria-label, placeholder, title or aria-labelledby;
      a <label for> association is deliberately NOT an accessible name here, so the
      label-element strategy can be exercised on its own.
    - `on_goto(page, url)` lets a test emulate redirects; default just sets `url`.
    """

    def __init__(
        self,
        body: FakeElement | None = None,
        *,
        url: str = "about:blank",
        on_goto: Callable[[FakePage, str], None] | None = None,
    ) -> None:
        self.body = body or FakeElement("body")
        self.body.page = self
        self.url = url
        self.on_goto = on_goto
        self.calls: list[tuple[str, object]] = []
        self.now_ms = 0
        self.focused: FakeElement | None = None
        self.fail_screenshot = False
        self.fail_content = False
        self.fail_navigation = False
        self._scheduled: list[tuple[int, Callable[[], None]]] = []

    # -------------------- Test helpers --------------------

    def set_body(self, body: FakeElement) -> None:
        self.body.page = None
        self.body = body
        self.body.page = self
        self.focused = None

    def schedule(self, delay_ms: int, action: Callable[[], None]) -> None:
        self._scheduled.append((self.now_ms + delay_ms, action))

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def _elements(self) -> list[FakeElement]:
        return self.body.descendants()

    # -------------------- PageHandle --------------------

    def goto(self, url: str, *, timeout_ms: int) -> None:
        self.calls.append(("goto", url))
        if self.fail_navigation:
            raise NavigationError(f"Failed to load {url}")
        if self.on_goto is not None:
            self.on_goto(self, url)
        else:
            self.url = url

    def wait_for_load(self, *, timeout_ms: int) -> None:
        self.calls.append(("wait_for_load", timeout_ms))

    def dismiss_overlays(self) -> None:
        self.calls.append(("dismiss_overlays", None))
        for el in self._elements():
            if el.attrs.get("id") == "usercentrics-root":
                el.remove()

    def controls_by_accessible_name(self, pattern: re.Pattern[str]) -> list[FakeElement]:
        self.calls.append(("controls_by_accessible_name", pattern.pattern))
        return [
            el
            for el in self._elements()
            if is_interactive(el) and pattern.search(accessible_name(el, self))
        ]

    def label_elements(self, pattern: re.Pattern[str]) -> list[FakeElement]:
        self.calls.append(("label_elements", pattern.pattern))
        elements = self._elements()
        labels = [el for el in elements if el.tag in ("label", "legend") and pattern.search(el.inner_text())]
        if labels:
            return labels
        return [el for el in elements if el.own_text and el.is_visible() and pattern.search(el.own_text)]

    def element_by_id(self, element_id: str) -> FakeElement | None:
        return next((el for el in self._elements() if el.attrs.get("id") == element_id), None)

    def option_elements(self, text: str) -> list[FakeElement]:
        self.calls.append(("option_elements", text))
        wanted = text.strip()
        by_role = [
            el for el in self._elements() if el.attrs.get("role") == "option" and el.inner_text() == wanted
        ]
        by_text = [
            el
            for el in self._elements()
            if el.own_text.strip() == wanted
            and el not in by_role
            and el.tag not in NON_OPTION_TAGS
            and el.attrs.get("role") not in NON_OPTION_ROLES
        ]
        return by_role + by_text

    def buttons_by_name(self, pattern: re.Pattern[str]) -> list[FakeElement]:
        self.calls.append(("buttons_by_name", pattern.pattern))
        found = []
        for el in self._elements():
            is_button = (
                el.tag == "button"
                or el.attrs.get("role") == "button"
                or (el.tag == "input" and el.attrs.get("type") == "submit")
            )
            if not is_button:
                continue
            name = el.attrs.get("aria-label") or el.inner_text() or el.value
            if pattern.search(name):
                found.append(el)
        return found

    def type_keys(self, value: str, *, delay_ms: int) -> None:
        self.calls.append(("type_keys", value))
        if self.focused is not None:
            self.focused.value += value

    def sleep(self, ms: int) -> None:
        self.calls.append(("sleep", ms))
        self.now_ms += ms
        due = [item for item in self._scheduled if item[0] <= self.now_ms]
        self._scheduled = [item for item in self._scheduled if item[0] > self.now_ms]
        for _, action in sorted(due, key=lambda item: item[0]):
            action()

    def body_text(self) -> str:
        return self.body.inner_text()

    def screenshot(self, path: Path) -> None:
        self.calls.append(("screenshot", str(path)))
        if self.fail_screenshot:
            raise RuntimeError("screenshot failed")
        Path(path).write_bytes(b"\x89PNG fake screenshot")

    def content(self) -> str:
        if self.fail_content:
            raise RuntimeError("page crashed")
        return _serialize(self.body)


def _serialize(el: FakeElement) -> str:
    attrs = "".join(f' {k}="{v}"' for k, v in el.attrs.items())
    inner = el.own_text + "".join(_serialize(c) for c in el.children)
    return f"<{el.tag}{attrs}>{inner}</{el.tag}>"


@dataclass
class FakeBrowserSession:
    """
    Stand-in for DishBrowserSession in CLI tests.

    - Yields the given FakePage and records that it was opened/closed.
    """

    page: FakePage
    opened: bool = False
    closed: bool = False
    kwargs: dict = field(default_factory=dict)

    def __enter__(self) -> FakePage:
        self.opened = True
        return self.page

    def __exit__(self, exc_type, exc, tb) -> None:
        self.closed = True
