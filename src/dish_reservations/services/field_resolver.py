"""
field_resolver.py

What this module does
- Turns a human-readable label ("Počet hostů", "Telefon", ...) into exactly one
  interactable control on the reservation page.

Why it matters
- The DISH back office markup drifts between UI versions: labels lose their `for`
  attribute, native inputs become custom role=button widgets, wording changes.
- Every field step goes through here, so a markup change degrades one heuristic
  instead of breaking the whole run.

Resolution chain (first success wins)
1) accessible name (aria-label / labelledby / placeholder / associated label)
2) label element with an explicit `for` pointing at the control
3) structural proximity: nearest enclosing container of the label that holds a control,
   never climbing past the field's own row (a container with another label)
Nothing matched after `timeout_ms` -> FieldNotFound.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import StrEnum

from dish_reservations.services.page_handle import (
    CONTAINER_TAGS,
    LABEL_TAGS,
    ROOT_TAGS,
    ElementHandle,
    PageHandle,
)
from dish_reservations.utils.errors import (
    AmbiguousNoVisibleMatch,
    FieldNotFound,
    FieldResolutionError,
    PageTimeoutError,
    ResolutionTimeout,
)
from dish_reservations.utils.waiting import poll_until

logger = logging.getLogger(__name__)

LabelPattern = str | re.Pattern[str]

BUTTON_INPUT_TYPES = frozenset({"button", "submit", "reset", "image", "checkbox", "radio"})


class ControlKind(StrEnum):
    NATIVE_TEXT = "native-text"
    NATIVE_SELECT = "native-select"
    CUSTOM_WIDGET = "custom-widget"
    CONTENTEDITABLE = "contenteditable"


class ResolutionStrategy(StrEnum):
    ACCESSIBLE_NAME = "accessible-name"
    LABEL_FOR = "label-for"
    STRUCTURAL = "structural"


@dataclass(frozen=True)
class ResolvedControl:
    """One control, valid for a single field step only (the page may re-render)."""

    page: PageHandle
    element: ElementHandle
    kind: ControlKind
    strategy: ResolutionStrategy
    label: str


def compile_label(label: LabelPattern) -> re.Pattern[str]:
    """Plain strings match as case-insensitive substrings; compiled patterns are used as given."""
    if isinstance(label, re.Pattern):
        return label
    return re.compile(re.escape(label.strip()), re.IGNORECASE)


def describe_label(label: LabelPattern) -> str:
    return label.pattern if isinstance(label, re.Pattern) else label


def detect_kind(element: ElementHandle) -> ControlKind:
    tag = element.tag_name()
    if tag == "select":
        return ControlKind.NATIVE_SELECT
    if tag == "textarea":
        return ControlKind.NATIVE_TEXT
    if tag == "input":
        input_type = (element.get_attribute("type") or "text").lower()
        if input_type in BUTTON_INPUT_TYPES:
            return ControlKind.CUSTOM_WIDGET
        return ControlKind.NATIVE_TEXT

    editable = element.get_attribute("contenteditable")
    if editable is not None and editable.lower() in ("", "true", "plaintext-only"):
        return ControlKind.CONTENTEDITABLE
    return ControlKind.CUSTOM_WIDGET


class FieldResolver:
    """
    What it does:
    - Applies the resolution chain until a control turns up or the timeout expires.

    Why it matters:
    - Callers get a ResolvedControl or a typed FieldResolutionError, never None.

    Behavior:
    - Polls the whole chain every `poll_interval_ms` (labels render late on slow loads).
    - A page query that keeps failing until the timeout ends as ResolutionTimeout.
    - Structural candidates: first visible wins; if none is visible the first one is
      returned anyway, unless `strict_visibility` is set.
    - `max_container_depth` bounds how many enclosing containers are inspected per label.
    """

    def __init__(
        self,
        *,
        poll_interval_ms: int = 250,
        strict_visibility: bool = False,
        max_container_depth: int = 5,
    ) -> None:
        self.poll_interval_ms = poll_interval_ms
        self.strict_visibility = strict_visibility
        self.max_container_depth = max_container_depth

    def resolve(self, page: PageHandle, label: LabelPattern, *, timeout_ms: int) -> ResolvedControl:
        pattern = compile_label(label)
        name = describe_label(label)
        last_failure: FieldResolutionError | None = None

        def attempt() -> ResolvedControl | None:
            nonlocal last_failure
            try:
                return self._resolve_once(page, pattern, name)
            except (FieldNotFound, AmbiguousNoVisibleMatch) as e:
                last_failure = e
                return None
            except PageTimeoutError as e:
                # Re-renders destroy the nodes being read; the next poll queries afresh.
                last_failure = ResolutionTimeout(name, f"page query did not answer: {e}")
                last_failure.__cause__ = e
                return None

        control = poll_until(
            attempt,
            page=page,
            timeout_ms=timeout_ms,
            interval_ms=self.poll_interval_ms,
        )
        if control is not None:
            logger.debug("Resolved %r via %s (%s)", name, control.strategy, control.kind)
            return control

        if last_failure is not None:
            raise last_failure
        raise FieldNotFound(name, f"nothing matched within {timeout_ms} ms")

    # -------------------- Strategies --------------------

    def _resolve_once(self, page: PageHandle, pattern: re.Pattern[str], name: str) -> ResolvedControl:
        accessible = page.controls_by_accessible_name(pattern)
        visible = _first_visible(accessible)
        if visible is not None:
            return self._resolved(page, visible, ResolutionStrategy.ACCESSIBLE_NAME, name)

        labels = page.label_elements(pattern)

        # A `for` target hidden behind a custom widget loses to a visible control in the row.
        hidden_target: ElementHandle | None = None
        for label_el in labels:
            target_id = label_el.get_attribute("for")
            if not target_id:
                continue
            target = page.element_by_id(target_id)
            if target is None:
                continue
            if target.is_visible():
                return self._resolved(page, target, ResolutionStrategy.LABEL_FOR, name)
            hidden_target = hidden_target or target

        for label_el in labels:
            candidate = self._nearest_container_control(label_el, name)
            if candidate is not None:
                return self._resolved(page, candidate, ResolutionStrategy.STRUCTURAL, name)

        if hidden_target is not None:
            if self.strict_visibility:
                raise AmbiguousNoVisibleMatch(name, "label target is not visible")
            logger.debug("Using invisible label target for %r", name)
            return self._resolved(page, hidden_target, ResolutionStrategy.LABEL_FOR, name)

        if accessible:
            raise AmbiguousNoVisibleMatch(
                name, f"{len(accessible)} accessible match(es), none visible"
            )
        if not labels:
            raise FieldNotFound(name, "no control or label with matching text")
        raise FieldNotFound(name, "label found but no container holds a control")

    def _nearest_container_control(self, label_el: ElementHandle, name: str) -> ElementHandle | None:
        # A container holding any other label is past the field's own row.
        own_labels = 1 if label_el.tag_name() in LABEL_TAGS else 0
        depth = 0
        node = label_el.parent()
        while node is not None and depth < self.max_container_depth:
            tag = node.tag_name()
            if tag in ROOT_TAGS or node.label_count() > own_labels:
                return None
            if tag in CONTAINER_TAGS:
                depth += 1
                candidates = node.interactive_descendants()
                if candidates:
                    visible = _first_visible(candidates)
                    if visible is not None:
                        return visible
                    if self.strict_visibility:
                        raise AmbiguousNoVisibleMatch(
                            name, f"{len(candidates)} structural candidate(s), none visible"
                        )
                    logger.debug("No visible candidate for %r; using first of %d", name, len(candidates))
                    return candidates[0]
            node = node.parent()
        return None

    def _resolved(
        self,
        page: PageHandle,
        element: ElementHandle,
        strategy: ResolutionStrategy,
        name: str,
    ) -> ResolvedControl:
        return ResolvedControl(
            page=page,
            element=element,
            kind=detect_kind(element),
            strategy=strategy,
            label=name,
        )


def _first_visible(elements: list[ElementHandle]) -> ElementHandle | None:
    for el in elements:
        if el.is_visible():
            return el
    return None
