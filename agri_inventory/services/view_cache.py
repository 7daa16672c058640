from __future__ import annotations

import copy
import os
import threading
import time
from typing import Any, Callable, Iterable, Optional


_CACHE_TTL_SECONDS = int(os.environ.get("STATS_CACHE_TTL_SECONDS") or "60")
ORGANIZATION_SCOPE = "*"

_LOCK = threading.Lock()
_VIEW_CACHE: dict[str, tuple[float, Any]] = {}
# Bumped on every invalidation of a scope; a build that straddles a bump is not stored.
_GENERATIONS: dict[str, int] = {}
_EPOCH = 0


def _scope_key(department_id: Optional[str]) -> str:
    return department_id or ORGANIZATION_SCOPE


def _generation(scope: str) -> tuple[int, int]:
    return _EPOCH, _GENERATIONS.get(scope, 0)


def get_or_build(view: str, department_id: Optional[str], builder: Callable[[], Any]) -> Any:
    scope = _scope_key(department_id)
    key = f"{view}:{scope}"
    now = time.time()
    with _LOCK:
        cached = _VIEW_CACHE.get(key)
        if cached and now < cached[0]:
            return copy.deepcopy(cached[1])
        started_at = _generation(scope)

    value = builder()
    if _CACHE_TTL_SECONDS > 0:
        with _LOCK:
            if _generation(scope) == started_at:
                _VIEW_CACHE[key] = (now + _CACHE_TTL_SECONDS, copy.deepcopy(value))
    return value


def invalidate_departments(department_ids: Iterable[Optional[str]]) -> None:
    """Drop cached views of the given departments and the organization-wide view.

    Builds already running for those scopes keep their result but do not cache it.
    """
    scopes = {_scope_key(department_id) for department_id in department_ids if department_id}
    scopes.add(ORGANIZATION_SCOPE)
    with _LOCK:
        for scope in scopes:
            _GENERATIONS[scope] = _GENERATIONS.get(scope, 0) + 1
        for key in list(_VIEW_CACHE.keys()):
            if key.split(":", 1)[1] in scopes:
                _VIEW_CACHE.pop(key, None)


def clear() -> None:
    global _EPOCH
    with _LOCK:
        _VIEW_CACHE.clear()
        _GENERATIONS.clear()
        _EPOCH += 1


def cached_keys() -> list[str]:
    with _LOCK:
        return sorted(_VIEW_CACHE.keys())
