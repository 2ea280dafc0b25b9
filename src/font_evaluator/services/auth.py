"""Credential check against the static users file."""

from __future__ import annotations

import hmac
import json
from pathlib import Path
from typing import Any

import structlog

from font_evaluator.core.errors import AuthenticationError

logger = structlog.get_logger()


class UserDirectory:
    """Users listed in a JSON file shaped ``{"users": [{username, password, ...}]}``."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> list[dict[str, Any]]:
        with self.path.open(encoding="utf-8") as f:
            data = json.load(f)
        users = data.get("users", []) if isinstance(data, dict) else []
        return [u for u in users if isinstance(u, dict)]

    def authenticate(self, username: str, password: str) -> dict[str, Any]:
        """Return the matching user without its password.

        Raises:
            AuthenticationError: If no user matches.
        """
        for user in self._load():
            if user.get("username") != username:
                continue
            stored = str(user.get("password", ""))
            if hmac.compare_digest(stored.encode(), password.encode()):
                logger.info("login_succeeded", username=username)
                return {k: v for k, v in user.items() if k != "password"}
            break
        logger.info("login_failed", username=username)
        raise AuthenticationError("Invalid username or password")
