from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

from dish_reservations.utils.errors import ConfigurationError

DEFAULT_COOKIE_DOMAIN = ".dish.co"


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str


@dataclass(frozen=True)
class SessionCookie:
    name: str
    value: str
    domain: str = DEFAULT_COOKIE_DOMAIN
    path: str = "/"
    secure: bool = True
    http_only: bool = False
    same_site: str = "Lax"

    def to_playwright(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "domain": self.domain,
            "path": self.path,
            "secure": self.secure,
            "httpOnly": self.http_only,
            "sameSite": self.same_site,
        }


def _decode_cookie_blob(raw: str) -> str:
    """
    DISH_COOKIES may hold base64 of the JSON export or the JSON itself.
    Base64 wins only when it decodes to a JSON list.
    """
    text = raw.strip()
    try:
        decoded = base64.b64decode(text, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return text
    return decoded if decoded.lstrip().startswith("[") else text


def load_session_cookies(raw: str | None) -> list[SessionCookie]:
    """
    What it does:
    - Parses pre-authenticated cookies exported from a browser session.

    Why it matters:
    - With cookies the run skips the login form entirely.

    Behavior:
    - None/blank -> [].
    - Missing attributes get site defaults (domain .dish.co, path /, secure, Lax).
    - Anything that is not a JSON list of {name, value, ...} -> ConfigurationError.
    """
    if raw is None or not raw.strip():
        return []

    blob = _decode_cookie_blob(raw)
    try:
        data = json.loads(blob)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"DISH_COOKIES is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise ConfigurationError("DISH_COOKIES must be a JSON list of cookie objects.")

    cookies: list[SessionCookie] = []
    for i, item in enumerate(data):
        if not isinstance(item, dict) or not item.get("name") or "value" not in item:
            raise ConfigurationError(f"DISH_COOKIES[{i}] needs at least 'name' and 'value'.")
        cookies.append(
            SessionCookie(
                name=str(item["name"]),
                value=str(item["value"]),
                domain=item.get("domain") or DEFAULT_COOKIE_DOMAIN,
                path=item.get("path") or "/",
                http_only=bool(item.get("httpOnly", False)),
            )
        )
    return cookies


def require_credentials(
    username: str | None,
    password: str | None,
    *,
    cookies_present: bool = False,
) -> Credentials | None:
    """
    Returns the login credentials.

    Without session cookies both values are mandatory. With cookies they are
    optional and only used if the site still redirects to its login page.
    """
    missing = [
        env_name
        for env_name, value in (("DISH_USERNAME", username), ("DISH_PASSWORD", password))
        if not value or not value.strip()
    ]
    if not missing:
        return Credentials(username=username.strip(), password=password)
    if cookies_present:
        return None
    raise ConfigurationError(f"Missing required credentials: {', '.join(missing)}")
