from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import os
import threading
import time
from collections import defaultdict, deque
from typing import Any, Callable


LOGGER = logging.getLogger("agri_inventory.auth")

SESSION_TTL_SECONDS = 60 * 60 * 12

AUTH_ATTEMPT_WINDOW_SECONDS = int(os.environ.get("AUTH_ATTEMPT_WINDOW_SECONDS") or "300")
AUTH_MAX_ATTEMPTS_PER_IP = int(os.environ.get("AUTH_MAX_ATTEMPTS_PER_IP") or "50")
AUTH_MAX_ATTEMPTS_PER_ACCOUNT = int(os.environ.get("AUTH_MAX_ATTEMPTS_PER_ACCOUNT") or "8")
AUTH_LOCKOUT_SECONDS = int(os.environ.get("AUTH_LOCKOUT_SECONDS") or "900")

_LOCK = threading.Lock()
_REVOKED_TOKENS: dict[str, float] = {}


def _require_session_secret() -> bytes:
    raw = (os.environ.get("SESSION_SIGNING_SECRET") or "").strip()
    if len(raw) < 32:
        raise RuntimeError("SESSION_SIGNING_SECRET must be set and at least 32 characters long.")
    return raw.encode("utf-8")


_SESSION_SECRET = _require_session_secret()


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64decode(encoded: str) -> bytes:
    return base64.urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4))


def create_session(payload: dict[str, Any]) -> str:
    session_payload = dict(payload)
    session_payload["expiresAt"] = time.time() + SESSION_TTL_SECONDS
    body = json.dumps(session_payload, ensure_ascii=True, separators=(",", ":"), default=str).encode("utf-8")
    encoded = _b64encode(body)
    signature = hmac.new(_SESSION_SECRET, encoded.encode("ascii"), hashlib.sha256).digest()
    return f"{encoded}.{_b64encode(signature)}"


def _decode_token(token: str) -> dict[str, Any] | None:
    try:
        encoded, encoded_sig = token.split(".", 1)
        expected_sig = hmac.new(_SESSION_SECRET, encoded.encode("ascii"), hashlib.sha256).digest()
        if not hmac.compare_digest(expected_sig, _b64decode(encoded_sig)):
            return None
        decoded = json.loads(_b64decode(encoded).decode("utf-8"))
    except (ValueError, UnicodeError):
        return None
    return decoded if isinstance(decoded, dict) else None


def get_session(token: str | None) -> dict[str, Any] | None:
    if not token:
        return None
    decoded_session = _decode_token(token)
    if decoded_session is None:
        return None

    now = time.time()
    expires_at = float(decoded_session.get("expiresAt") or 0.0)
    with _LOCK:
        for revoked_token, revoked_exp in list(_REVOKED_TOKENS.items()):
            if now >= revoked_exp:
                _REVOKED_TOKENS.pop(revoked_token, None)
        if now >= expires_at or token in _REVOKED_TOKENS:
            return None
    return decoded_session


def remove_session(token: str | None) -> None:
    """Revoke a token until its own expiry. Tokens with a bad signature are ignored."""
    if not token:
        return
    decoded_session = _decode_token(token)
    if decoded_session is None:
        return
    expires_at = float(decoded_session.get("expiresAt") or 0.0)
    with _LOCK:
        if expires_at > time.time():
            _REVOKED_TOKENS[token] = expires_at


class LoginGuard:
    """Sliding-window login throttle per client IP and per account, with account lockout."""

    def __init__(
        self,
        window_seconds: int,
        max_per_ip: int,
        max_per_account: int,
        lockout_seconds: int,
        clock: Callable[[], float] = time.time,
    ):
        self.window_seconds = max(window_seconds, 1)
        self.max_per_ip = max(max_per_ip, 1)
        self.max_per_account = max(max_per_account, 1)
        self.lockout_seconds = max(lockout_seconds, 1)
        self._clock = clock
        self._lock = threading.Lock()
        self._by_ip: dict[str, deque[float]] = defaultdict(deque)
        self._by_account: dict[str, deque[float]] = defaultdict(deque)
        self._locked_until: dict[str, float] = {}

    def _window(self, attempts: dict[str, deque[float]], key: str, now: float) -> deque[float]:
        window = attempts[key]
        while window and window[0] < now - self.window_seconds:
            window.popleft()
        return window

    def _lock_account(self, account_key: str, now: float) -> None:
        self._locked_until[account_key] = now + self.lockout_seconds
        LOGGER.warning("Account locked key=%s seconds=%s", account_key, self.lockout_seconds)

    def retry_after(self, client_ip: str, account_key: str) -> int | None:
        """Seconds the caller must wait before another attempt, or ``None``."""
        now = self._clock()
        with self._lock:
            locked_until = self._locked_until.get(account_key)
            if locked_until is not None:
                if locked_until > now:
                    return max(1, int(locked_until - now))
                del self._locked_until[account_key]
                LOGGER.info("Account lockout expired key=%s", account_key)

            ip_window = self._window(self._by_ip, client_ip, now)
            if len(ip_window) >= self.max_per_ip:
                LOGGER.warning("Login attempts over limit ip=%s attempts=%s", client_ip, len(ip_window))
                return max(1, int(ip_window[0] + self.window_seconds - now))
            if len(self._window(self._by_account, account_key, now)) >= self.max_per_account:
                self._lock_account(account_key, now)
                return self.lockout_seconds
        return None

    def record_failure(self, client_ip: str, account_key: str) -> None:
        now = self._clock()
        with self._lock:
            self._window(self._by_ip, client_ip, now).append(now)
            account_window = self._window(self._by_account, account_key, now)
            account_window.append(now)
            if len(account_window) >= self.max_per_account and account_key not in self._locked_until:
                self._lock_account(account_key, now)

    def record_success(self, account_key: str) -> None:
        with self._lock:
            self._by_account.pop(account_key, None)
            self._locked_until.pop(account_key, None)

    def reset(self) -> None:
        with self._lock:
            self._by_ip.clear()
            self._by_account.clear()
            self._locked_until.clear()


login_guard = LoginGuard(
    window_seconds=AUTH_ATTEMPT_WINDOW_SECONDS,
    max_per_ip=AUTH_MAX_ATTEMPTS_PER_IP,
    max_per_account=AUTH_MAX_ATTEMPTS_PER_ACCOUNT,
    lockout_seconds=AUTH_LOCKOUT_SECONDS,
)
