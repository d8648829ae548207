"""Slack request signature verification (HMAC-SHA256, ``v0`` scheme)."""

from __future__ import annotations

import hmac
import time
from hashlib import sha256


SLACK_SIGNATURE_HEADER = "X-Slack-Signature"
SLACK_TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"
VERSION = "v0"
DEFAULT_TOLERANCE = 60 * 5


def compute_signature(signing_secret: str, timestamp: str, body: str) -> str:
    basestring = f"{VERSION}:{timestamp}:{body}".encode("utf-8")
    digest = hmac.new(signing_secret.encode("utf-8"), basestring, sha256).hexdigest()
    return f"{VERSION}={digest}"


def is_valid_slack_request(
    *,
    signing_secret: str,
    timestamp: str | None,
    body: str,
    signature: str | None,
    tolerance: int = DEFAULT_TOLERANCE,
    now: float | None = None,
) -> bool:
    """Return True when *signature* matches and *timestamp* is within *tolerance* seconds."""

    if not timestamp or not signature:
        return False

    try:
        request_ts = int(timestamp)
    except (TypeError, ValueError):
        return False

    current_ts = int(time.time() if now is None else now)
    if abs(current_ts - request_ts) > tolerance:
        return False

    return hmac.compare_digest(compute_signature(signing_secret, timestamp, body), signature)
