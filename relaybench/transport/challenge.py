"""Pulling rate-limit details out of relay error payloads.

Signal reports throttling in several shapes: a JSON-RPC error whose
``data`` holds ``challenge``/``options``/``wait``, a nested object with a
``captcha`` field, or just a ``signalcaptcha://`` token somewhere in a
message string. Bare UUIDs are not treated as challenges unless their key
says so, because recipient addresses are UUIDs too.
"""

from __future__ import annotations

import re
from collections import deque
from typing import Any

CAPTCHA_RE = re.compile(r"signalcaptcha://[^\s'\"}]+")
RETRY_AFTER_RE = re.compile(r"retry[ -]?after[^0-9]*(\d+(?:\.\d+)?)", re.IGNORECASE)
RATE_LIMIT_RE = re.compile(r"rate[ _-]?limit|captcha|proof required", re.IGNORECASE)


def extract_challenge(payload: Any) -> str | None:
    """Breadth-first search for a challenge token in an arbitrary payload."""
    queue = deque([payload])
    seen: set[int] = set()

    while queue:
        current = queue.popleft()
        if current is None:
            continue
        if isinstance(current, str):
            match = CAPTCHA_RE.search(current)
            if match:
                return match.group(0)
            continue
        if isinstance(current, (list, tuple)):
            if id(current) in seen:
                continue
            seen.add(id(current))
            queue.extend(current)
            continue
        if not isinstance(current, dict) or id(current) in seen:
            continue
        seen.add(id(current))

        for key, value in current.items():
            lowered = str(key).lower()
            if "captcha" not in lowered and "challenge" not in lowered:
                continue
            if isinstance(value, str):
                match = CAPTCHA_RE.search(value)
                if match:
                    return match.group(0)
                if "challenge" in lowered:
                    return value
            elif isinstance(value, dict):
                if isinstance(value.get("challenge"), str):
                    return value["challenge"]
                captcha = value.get("captcha")
                if isinstance(captcha, str):
                    match = CAPTCHA_RE.search(captcha)
                    if match:
                        return match.group(0)
        queue.extend(current.values())
    return None


def _as_options(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def _as_seconds(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def rate_limit_details(error: dict[str, Any]) -> tuple[str | None, list[str], float | None]:
    """Return ``(challenge, options, wait_seconds)`` from a JSON-RPC error object."""
    data = error.get("data")
    if not isinstance(data, dict):
        data = {}
    challenge = data.get("challenge") or data.get("token")
    if not isinstance(challenge, str):
        challenge = extract_challenge(error)
    options = _as_options(data.get("options", data.get("availableOptions")))
    wait = _as_seconds(data.get("wait", data.get("retryAfter")))
    return challenge, options, wait


def wait_hint_from_text(text: str) -> float | None:
    """Parse a ``retry after N`` hint from free-form error output."""
    match = RETRY_AFTER_RE.search(text)
    return float(match.group(1)) if match else None
