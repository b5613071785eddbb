"""
dish_playwright.py

What this module does
- Implements `PageHandle` / `ElementHandle` on top of Playwright's sync API.
- Owns the browser lifecycle for one reservation run (`DishBrowserSession`).

Why it matters
- Keeps every Playwright call, selector and Playwright exception in one file; the
  resolution engine and the form driver never import Playwright.

Behavior summary
- Query methods turn a Locator into a list of single-element Locators (`.nth(i)`).
- Playwright TimeoutError / Error never leave this module untranslated:
    goto / load state / context setup -> NavigationError
    click / type / select / overlays  -> InteractionError
    counts, visibility, reads         -> PageTimeoutError (timeout, or the node was
                                         re-rendered and its context destroyed)
- `try_fill` reports refusal as False; it is the first branch of a two-branch strategy.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Locator, Page
from playwright.sync_api import TimeoutError as PWTimeoutError
from playwright.sync_api import sync_playwright

from dish_reservations.services.page_handle import CONTROL_CSS, LABEL_CSS, NON_OPTION_CSS
from dish_reservations.services.session_material import SessionCookie
from dish_reservations.utils.errors import (
    InteractionError,
    NavigationError,
    PageTimeoutError,
    ReservationError,
)

# Element reads should answer immediately; a long wait means the node was re-rendered.
ELEMENT_READ_TIMEOUT_MS = 2_000

# Consent layers the DISH back office injects; usercentrics renders into a shadow root.
OVERLAY_SELECTORS: tuple[str, ...] = (
    "#usercentrics-root",
    "#usercentrics-cmp-ui",
    "#onetrust-consent-sdk",
)

_REMOVE_OVERLAYS_JS = """(selectors) => {
    let removed = 0;
    for (const sel of selectors) {
        document.querySelectorAll(sel).forEach((el) => {
            if (el.shadowRoot) el.shadowRoot.innerHTML = "";
            el.remove();
            removed += 1;
        });
    }
    document.body && (document.body.style.overflow = "");
    return removed;
}"""


@contextmanager
def _translated(error_type: type[ReservationError], what: str) -> Iterator[None]:
    try:
        yield
    except PlaywrightError as e:
        raise error_type(f"{what} failed: {e}") from e


def _locators(loc: Locator) -> list[Locator]:
    with _translated(PageTimeoutError, "locator query"):
        return [loc.nth(i) for i in range(loc.count())]


class PlaywrightElement:
    """A single-element Locator behind the ElementHandle surface."""

    def __init__(self, locator: Locator) -> None:
        self._loc = locator

    def __repr__(self) -> str:
        return f"PlaywrightElement({self._loc})"

    # -------------------- Reads --------------------

    def _evaluate(self, expression: str):
        with _translated(PageTimeoutError, "element read"):
            return self._loc.evaluate(expression, timeout=ELEMENT_READ_TIMEOUT_MS)

    def tag_name(self) -> str:
        return self._evaluate("el => el.tagName.toLowerCase()") or ""

    def get_attribute(self, name: str) -> str | None:
        with _translated(PageTimeoutError, f"attribute {name!r} read"):
            return self._loc.get_attribute(name, timeout=ELEMENT_READ_TIMEOUT_MS)

    def text(self) -> str:
        with _translated(PageTimeoutError, "text read"):
            return self._loc.inner_text(timeout=ELEMENT_READ_TIMEOUT_MS).strip()

    def is_visible(self) -> bool:
        with _translated(PageTimeoutError, "visibility check"):
            return self._loc.is_visible()

    def parent(self) -> PlaywrightElement | None:
        parents = _locators(self._loc.locator("xpath=.."))
        return PlaywrightElement(parents[0]) if parents else None

    def interactive_descendants(self) -> list[PlaywrightElement]:
        return [PlaywrightElement(loc) for loc in _locators(self._loc.locator(CONTROL_CSS))]

    def label_count(self) -> int:
        with _translated(PageTimeoutError, "label count"):
            return self._loc.locator(LABEL_CSS).count()

    def option_choices(self) -> list[tuple[str, str]]:
        pairs = self._evaluate(
            "el => Array.from(el.options || []).map(o => [o.value, (o.textContent || '').trim()])"
        )
        return [(str(v), str(t)) for v, t in (pairs or [])]

    def input_value(self) -> str:
        is_form_control = self.tag_name() in ("input", "textarea", "select")
        with _translated(PageTimeoutError, "value read"):
            if is_form_control:
                return self._loc.input_value(timeout=ELEMENT_READ_TIMEOUT_MS)
            return self._loc.inner_text(timeout=ELEMENT_READ_TIMEOUT_MS)

    # -------------------- Actions --------------------

    def scroll_into_view(self) -> None:
        try:
            self._loc.scroll_into_view_if_needed(timeout=ELEMENT_READ_TIMEOUT_MS)
        except PlaywrightError:
            # Off-screen custom widgets still accept a forced click below.
            pass

    def click(self, *, timeout_ms: int) -> None:
        try:
            self._loc.click(timeout=timeout_ms)
            return
        except PlaywrightError as first:
            # Overlays intercept pointer events; dispatch the click on the node itself.
            try:
                self._loc.dispatch_event("click", timeout=ELEMENT_READ_TIMEOUT_MS)
            except PlaywrightError as e:
                raise InteractionError(f"click failed: {first}") from e

    def try_fill(self, value: str, *, timeout_ms: int) -> bool:
        try:
            self._loc.fill(value, timeout=timeout_ms)
        except PlaywrightError:
            return False
        return True

    def select_all(self) -> None:
        with _translated(InteractionError, "select-all"):
            self._loc.press("ControlOrMeta+a", timeout=ELEMENT_READ_TIMEOUT_MS)

    def type_text(self, value: str, *, delay_ms: int) -> None:
        with _translated(InteractionError, "typing"):
            self._loc.press_sequentially(value, delay=delay_ms)

    def select_option(self, value: str, *, timeout_ms: int) -> None:
        with _translated(InteractionError, f"select_option({value!r})"):
            self._loc.select_option(value=value, timeout=timeout_ms)


class PlaywrightPageHandle:
    """
    What it does:
    - PageHandle over one Playwright Page.

    Behavior:
    - Accessible-name lookup uses get_by_label (labels, aria-label, aria-labelledby)
      plus get_by_placeholder.
    - Label lookup prefers <label>/<legend>; bare text nodes are the fallback.
    """

    def __init__(self, page: Page) -> None:
        self._page = page

    @property
    def raw(self) -> Page:
        return self._page

    @property
    def url(self) -> str:
        return self._page.url

    def goto(self, url: str, *, timeout_ms: int) -> None:
        try:
            self._page.goto(url, wait_until="networkidle", timeout=timeout_ms)
        except PWTimeoutError as e:
            raise NavigationError(f"Timed out loading {url}: {e}") from e
        except PlaywrightError as e:
            raise NavigationError(f"Failed to load {url}: {e}") from e

    def wait_for_load(self, *, timeout_ms: int) -> None:
        with _translated(NavigationError, "waiting for the page to settle"):
            self._page.wait_for_load_state("networkidle", timeout=timeout_ms)

    def dismiss_overlays(self) -> None:
        with _translated(InteractionError, "removing consent overlays"):
            self._page.evaluate(_REMOVE_OVERLAYS_JS, list(OVERLAY_SELECTORS))

    def _wrap(self, loc: Locator) -> list[PlaywrightElement]:
        return [PlaywrightElement(one) for one in _locators(loc)]

    def controls_by_accessible_name(self, pattern: re.Pattern[str]) -> list[PlaywrightElement]:
        loc = self._page.get_by_label(pattern).or_(self._page.get_by_placeholder(pattern))
        return self._wrap(loc)

    def label_elements(self, pattern: re.Pattern[str]) -> list[PlaywrightElement]:
        labels = self._wrap(self._page.locator(LABEL_CSS).filter(has_text=pattern))
        return labels or self._wrap(self._page.get_by_text(pattern))

    def element_by_id(self, element_id: str) -> PlaywrightElement | None:
        escaped = element_id.replace("\\", "\\\\").replace('"', '\\"')
        found = _locators(self._page.locator(f'[id="{escaped}"]'))
        return PlaywrightElement(found[0]) if found else None

    def option_elements(self, text: str) -> list[PlaywrightElement]:
        by_text = self._page.get_by_text(text, exact=True).and_(self._page.locator(f"*{NON_OPTION_CSS}"))
        loc = self._page.get_by_role("option", name=text, exact=True).or_(by_text)
        return self._wrap(loc)

    def buttons_by_name(self, pattern: re.Pattern[str]) -> list[PlaywrightElement]:
        return self._wrap(self._page.get_by_role("button", name=pattern))

    def type_keys(self, value: str, *, delay_ms: int) -> None:
        with _translated(InteractionError, "keyboard typing"):
            self._page.keyboard.type(value, delay=delay_ms)

    def sleep(self, ms: int) -> None:
        with _translated(PageTimeoutError, "wait"):
            self._page.wait_for_timeout(ms)

    def body_text(self) -> str:
        try:
            return self._page.inner_text("body", timeout=ELEMENT_READ_TIMEOUT_MS)
        except PlaywrightError:
            # Body is replaced during client-side navigation; the next poll reads it again.
            return ""

    def screenshot(self, path: Path) -> None:
        self._page.screenshot(path=str(path), full_page=True)

    def content(self) -> str:
        return self._page.content()


class DishBrowserSession:
    """
    What it does:
    - Starts Chromium, creates a context with the session cookies and opens one page.

    Why it matters:
    - The page handle it yields is owned by exactly one reservation run.

    Behavior:
    - Context manager: `with DishBrowserSession(...) as page:` yields a PlaywrightPageHandle.
    - `close()` is safe to call multiple times.
    - A Chromium that is not installed surfaces as NavigationError with install hints.
    - Rejected cookies or a context that cannot be created surface as NavigationError.
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        cookies: list[SessionCookie] | None = None,
        default_timeout_ms: int = 60_000,
        locale: str = "cs-CZ",
        timezone_id: str = "Europe/Prague",
    ) -> None:
        self.headless = headless
        self.cookies = cookies or []
        self.default_timeout_ms = default_timeout_ms
        self.locale = locale
        self.timezone_id = timezone_id

        self._pw = None
        self._browser = None
        self._context = None
        self._page: PlaywrightPageHandle | None = None

    def __enter__(self) -> PlaywrightPageHandle:
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def start(self) -> PlaywrightPageHandle:
        if self._page is not None:
            return self._page

        self._pw = sync_playwright().start()
        try:
            self._browser = self._pw.chromium.launch(headless=self.headless)
        except PlaywrightError as e:
            self.close()
            raise NavigationError(
                "Failed to launch Playwright Chromium.\n"
                "If this is the first time on this machine, run:\n\n"
                "  playwright install chromium\n"
            ) from e

        try:
            self._context = self._browser.new_context(locale=self.locale, timezone_id=self.timezone_id)
            if self.cookies:
                self._context.add_cookies([c.to_playwright() for c in self.cookies])
            page = self._context.new_page()
            page.set_default_timeout(self.default_timeout_ms)
        except PlaywrightError as e:
            self.close()
            raise NavigationError(f"Failed to prepare the browser context: {e}") from e

        self._page = PlaywrightPageHandle(page)
        return self._page

    def close(self) -> None:
        try:
            if self._context:
                self._context.close()
        finally:
            self._context = None

        try:
            if self._browser:
                self._browser.close()
        finally:
            self._browser = None

        try:
            if self._pw:
                self._pw.stop()
        finally:
            self._pw = None
            self._page = None
