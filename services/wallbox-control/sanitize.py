"""Redact credentials from captured command output before logging.

The pattern list covers the common flag spellings seen in E3DC tool
invocations.  It is heuristic: unusual spellings can slip through and
harmless text like ``key:value`` gets redacted too.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

COMMAND_MARKER = "[COMMAND REDACTED]"
PATTERN_MARKER = "[REDACTED]"
SECRET_MARKER = "***"
PREVIEW_CHARS = 200

SENSITIVE_PATTERNS = [
    re.compile(r"--password[=\s]+\S+", re.IGNORECASE),
    re.compile(r"--pass[=\s]+\S+", re.IGNORECASE),
    re.compile(r"--token[=\s]+\S+", re.IGNORECASE),
    re.compile(r"--auth[=\s]+\S+", re.IGNORECASE),
    re.compile(r"--apikey[=\s]+\S+", re.IGNORECASE),
    re.compile(r"--api-key[=\s]+\S+", re.IGNORECASE),
    re.compile(r"--secret[=\s]+\S+", re.IGNORECASE),
    re.compile(r"-p[=\s]+\S+", re.IGNORECASE),
    re.compile(r"\b(password|pass|token|auth|apikey|api-key|secret|key)[=:]\S+", re.IGNORECASE),
]


def sanitize_output(text: str, command: str, extra_secrets: Iterable[str] = ()) -> str:
    """Return ``text`` with the command, credential flags and secrets masked.

    Order matters: the full command string goes first (it usually contains
    the credentials itself), then the generic patterns, then any remaining
    literal secret values.
    """
    sanitized = text
    if command:
        sanitized = sanitized.replace(command, COMMAND_MARKER)

    for pattern in SENSITIVE_PATTERNS:
        sanitized = pattern.sub(PATTERN_MARKER, sanitized)

    for secret in extra_secrets:
        if secret and secret.strip():
            sanitized = sanitized.replace(secret, SECRET_MARKER)

    return sanitized


def preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    return text[:limit]
