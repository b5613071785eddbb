from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from dish_reservations.services.page_handle import PageHandle

logger = logging.getLogger(__name__)


def capture_artifacts(page: PageHandle | None, artifacts_dir: Path, tag: str) -> list[Path]:
    """
    What it does:
    - Saves a full-page screenshot and the rendered markup of the current page.

    Why it matters:
    - Form automation mostly fails on overlays, timing and markup drift; the screenshot
      plus HTML is the fastest diagnosis.

    Behavior:
    - Writes <artifacts_dir>/<tag>_<timestamp>.png and .html.
    - Best effort: every problem is logged and the paths written so far are returned.
      It never raises, so the original failure is the one that propagates.
    """
    if page is None:
        return []

    written: list[Path] = []
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    base = artifacts_dir / f"{tag}_{stamp}"

    try:
        artifacts_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning("Cannot create artifacts directory %s: %s", artifacts_dir, e)
        return written

    shot = base.with_suffix(".png")
    try:
        page.screenshot(shot)
        written.append(shot)
    except Exception as e:
        logger.warning("Screenshot capture failed: %s", e)

    markup = base.with_suffix(".html")
    try:
        markup.write_text(page.content(), encoding="utf-8")
        written.append(markup)
    except Exception as e:
        logger.warning("Markup capture failed: %s", e)

    for p in written:
        logger.info("Saved diagnostic artifact %s", p)
    return written
