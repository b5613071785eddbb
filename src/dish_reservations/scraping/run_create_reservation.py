from __future__ import annotations

import argparse
import logging
import sys

from dish_reservations.config.paths import artifacts_path
from dish_reservations.config.settings import settings
from dish_reservations.scraping.dish_playwright import DishBrowserSession
from dish_reservations.services.authenticator import FormLoginAuthenticator
from dish_reservations.services.driver_config import DriverConfig
from dish_reservations.services.field_resolver import FieldResolver
from dish_reservations.services.form_driver import ReservationFormDriver
from dish_reservations.services.reservation_request import load_reservation_request
from dish_reservations.services.session_material import load_session_cookies, require_credentials
from dish_reservations.services.value_setter import ValueSetter
from dish_reservations.utils.errors import ConfigurationError, ReservationError

logger = logging.getLogger("dish_reservations")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dish-reservation",
        description="Fill and submit one reservation in the DISH back office.",
    )
    parser.add_argument(
        "payload",
        nargs="?",
        default=None,
        help="Path to the reservation JSON. Defaults to the RESERVATION_DATA environment value.",
    )
    parser.add_argument("--headful", action="store_true", help="Show the browser window for debugging.")
    parser.add_argument("--artifacts-dir", default=None, help="Where failure screenshots/HTML are written.")
    parser.add_argument("--timeout-ms", type=int, default=None, help="Per-operation timeout.")
    parser.add_argument(
        "--strict-visibility",
        action="store_true",
        help="Fail instead of using an invisible control when no visible candidate exists.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """
    What it does:
    - Validates input, opens a browser session and runs one ReservationFormDriver.

    Why it matters:
    - CI jobs call this directly and rely on the exit code.

    Behavior:
    - Configuration problems (payload, credentials, cookies) are reported before
      the browser starts.
    - 0 when the confirmation text was seen, 1 for every failure (message on stderr,
      artifacts in the artifacts directory), including errors no adapter translated.
    """
    args = _build_parser().parse_args(argv)
    _configure_logging(settings.log_level)

    try:
        request = load_reservation_request(path=args.payload, raw=settings.reservation_data)
        cookies = load_session_cookies(settings.dish_cookies)
        credentials = require_credentials(
            settings.dish_username,
            settings.dish_password,
            cookies_present=bool(cookies),
        )

        overrides = {}
        if args.timeout_ms is not None:
            overrides["timeout_ms"] = args.timeout_ms
        if args.strict_visibility:
            overrides["strict_visibility"] = True
        if args.artifacts_dir:
            overrides["artifacts_dir"] = artifacts_path(args.artifacts_dir)
        config = DriverConfig.from_settings(settings, **overrides)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    headless = settings.dish_headless and not args.headful
    logger.info(
        "Reservation %s %s (guests=%s) headless=%s cookies=%d",
        request.date.isoformat(),
        request.time_text,
        request.guests,
        headless,
        len(cookies),
    )

    try:
        with DishBrowserSession(
            headless=headless,
            cookies=cookies,
            default_timeout_ms=config.timeout_ms,
        ) as page:
            resolver = FieldResolver(
                poll_interval_ms=config.poll_interval_ms,
                strict_visibility=config.strict_visibility,
            )
            setter = ValueSetter(type_delay_ms=config.type_delay_ms, settle_ms=config.settle_ms)
            driver = ReservationFormDriver(
                page=page,
                config=config,
                authenticator=FormLoginAuthenticator(resolver=resolver, setter=setter),
                credentials=credentials,
                resolver=resolver,
                setter=setter,
            )
            outcome = driver.run(request)
    except ReservationError as e:
        print(f"Reservation failed: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.exception("Unexpected error during the reservation run")
        print(f"Reservation failed: unexpected {type(e).__name__}: {e}", file=sys.stderr)
        return 1

    print(f"OK: reservation confirmed, final_url={outcome.final_url}")
    if outcome.skipped_fields:
        print(f"Skipped optional fields: {', '.join(outcome.skipped_fields)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
