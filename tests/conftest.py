from __future__ import annotations

import types

import pytest

from dish_reservations.services.driver_config import DriverConfig


@pytest.fixture()
def config(tmp_path) -> DriverConfig:
    return DriverConfig(artifacts_dir=tmp_path / "artifacts")


@pytest.fixture()
def fake_settings(tmp_path):
    """
    Minimal settings stub for the CLI runner.

    Behavior:
    - Credentials present, no cookies, artifacts under tmp_path.
    - Tests override attributes as needed.
    """
    return types.SimpleNamespace(
        log_level="INFO",
        dish_base_url="https://reservation.dish.co",
        dish_username="host@example.com",
        dish_password="secret",
        dish_cookies=None,
        dish_headless=True,
        reservation_data=None,
        duration_option="2:00",
        source_option="Telefon",
        occasion_option="Normální návštěva",
        timeout_ms=60_000,
        confirmation_timeout_ms=15_000,
        artifacts_dir=str(tmp_path / "artifacts"),
    )
