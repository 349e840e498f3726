"""Claude Code OAuth credential source.

Reads ``~/.claude/.credentials.json`` (written by ``claude login``)::

    {"claudeAiOauth": {"accessToken": "...", "expiresAt": 1767225600000,
                       "subscriptionType": "max"}}
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

from loguru import logger

from claude_meter.usage.errors import NotLoggedIn
from claude_meter.usage.models import Credentials, utc_now

CREDENTIALS_PATH = Path.home() / ".claude" / ".credentials.json"

# Tokens this close to expiry are treated as already expired.
EXPIRY_BUFFER = timedelta(minutes=5)


def load_credentials(path: Path | None = None, now: datetime | None = None) -> Credentials:
    """Load the access token, raising ``NotLoggedIn`` when none is usable."""
    target = path or CREDENTIALS_PATH
    try:
        data = json.loads(target.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise NotLoggedIn(f"No credentials file at {target}") from None
    except (OSError, json.JSONDecodeError) as exc:
        logger.debug(f"[usage] Cannot read credentials: {exc}")
        raise NotLoggedIn("Credentials file unreadable") from exc

    oauth = data.get("claudeAiOauth") if isinstance(data, dict) else None
    if not isinstance(oauth, dict):
        raise NotLoggedIn("No claudeAiOauth entry in credentials")

    token = oauth.get("accessToken")
    if not isinstance(token, str) or not token.strip():
        raise NotLoggedIn("No accessToken in credentials")

    expires_at = None
    expires_ms = oauth.get("expiresAt")
    if isinstance(expires_ms, (int, float)) and not isinstance(expires_ms, bool):
        try:
            expires_at = datetime.fromtimestamp(expires_ms / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.warning(f"[usage] Ignoring credentials with invalid expiresAt={expires_ms!r}")
            raise NotLoggedIn("Invalid token expiry") from None
        if expires_at < (now or utc_now()) + EXPIRY_BUFFER:
            logger.warning("[usage] OAuth token has expired or is about to expire")
            raise NotLoggedIn("Access token expired")

    plan = oauth.get("subscriptionType")
    return Credentials(
        access_token=token.strip(),
        plan=plan if isinstance(plan, str) and plan else None,
        expires_at=expires_at,
    )
