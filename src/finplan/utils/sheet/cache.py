import json
import os
import threading
import time
from pathlib import Path
from typing import Any, Callable
from finplan.utils.logger import logger
from finplan.utils.error import ErrorService
import finplan.const as const


class LocalCache:
    """Process-local cache tier: key -> (value, expires_at).

    Lives as long as its owning CacheLayer, which is one request or command.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._entries: dict[str, tuple[Any, float]] = {}
        self._clock = clock

    def get(self, key: str) -> tuple[bool, Any]:
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        value, expires_at = entry
        if expires_at <= self._clock():
            del self._entries[key]
            return False, None
        return True, value

    def put(self, key: str, value: Any, ttl_seconds: float) -> None:
        self._entries[key] = (value, self._clock() + ttl_seconds)

    def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    def remove_prefix(self, prefix: str) -> list[str]:
        removed = [key for key in self._entries if key.startswith(prefix)]
        for key in removed:
            del self._entries[key]
        return removed

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class MemoryCacheStore:
    """Shared cache tier kept in memory: string values with a TTL, no listing."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._entries: dict[str, tuple[str, float]] = {}
        self._clock = clock
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return value

    def put(self, key: str, value: str, ttl_seconds: float) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl_seconds)

    def remove(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def remove_all(self, keys: list[str]) -> None:
        with self._lock:
            for key in keys:
                self._entries.pop(key, None)


class FileCacheStore:
    """Shared cache tier persisted to a JSON file so it survives restarts.

    File layout: {"<key>": {"value": "<string>", "expires_at": <epoch seconds>}}
    """

    def __init__(self, path: str | Path, clock: Callable[[], float] = time.time):
        self.path = Path(path)
        self._clock = clock
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            entries = self._read()
            entry = entries.get(key)
            if entry is None:
                return None
            if entry.get("expires_at", 0) <= self._clock():
                del entries[key]
                self._write(entries)
                return None
            return entry.get("value")

    def put(self, key: str, value: str, ttl_seconds: float) -> None:
        if not isinstance(value, str):
            raise TypeError("FileCacheStore only stores strings")
        with self._lock:
            entries = self._read()
            entries[key] = {"value": value, "expires_at": self._clock() + ttl_seconds}
            self._write(entries)

    def remove(self, key: str) -> None:
        self.remove_all([key])

    def remove_all(self, keys: list[str]) -> None:
        with self._lock:
            entries = self._read()
            changed = False
            for key in keys:
                if key in entries:
                    del entries[key]
                    changed = True
            if changed:
                self._write(entries)

    def _read(self) -> dict:
        try:
            with open(self.path, "r") as cache_file:
                data = json.load(cache_file)
            return data if isinstance(data, dict) else {}
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as e:
            logger.warning(f"Cache file {self.path} is corrupt, starting empty: {e}")
            return {}

    def _write(self, entries: dict) -> None:
        now = self._clock()
        live = {k: v for k, v in entries.items() if v.get("expires_at", 0) > now}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w") as cache_file:
            json.dump(live, cache_file)
        os.replace(tmp_path, self.path)


class CacheLayer:
    """
    Two-tier cache: a process-local tier in front of a shared string store.

    Values must be JSON-serializable to reach the shared tier. Serialization
    or shared-store failures are logged and treated as a miss; only errors
    raised by ``compute_fn`` itself reach the caller.

    Args:
        shared: shared tier with get/put/remove/remove_all, or None for local only.
        enabled: when False every lookup computes and writes are no-ops.
        default_expiry_seconds: TTL used when a call passes none.
        known_keys: un-namespaced keys that invalidate_all evicts from the shared tier.
        error_service: receives warnings about cache failures.
        clock: time source in epoch seconds.
    """

    def __init__(
        self,
        shared=None,
        enabled: bool = const.CACHE_ENABLED,
        default_expiry_seconds: float = const.CACHE_EXPIRY_SECONDS,
        known_keys: list[str] | None = None,
        error_service: ErrorService | None = None,
        namespace: str = const.CACHE_NAMESPACE,
        clock: Callable[[], float] = time.time,
    ):
        self.shared = shared
        self.enabled = enabled
        self.default_expiry_seconds = default_expiry_seconds
        self.known_keys = (
            list(const.CACHE_KEYS.values()) if known_keys is None else list(known_keys)
        )
        self.error_service = error_service or ErrorService()
        self.namespace = namespace
        self.local = LocalCache(clock)

    def _key(self, key: str) -> str:
        return f"{self.namespace}{key}"

    def _expiry(self, ttl_seconds: float | None) -> float:
        return self.default_expiry_seconds if ttl_seconds is None else ttl_seconds

    def _warn(self, message: str, error: BaseException | None = None, **details) -> None:
        if error is not None:
            details["original_error"] = str(error)
        self.error_service.log(self.error_service.create(message, severity="warning", **details))

    def get_or_build(
        self, key: str, compute_fn: Callable[[], Any], ttl_seconds: float | None = None
    ) -> Any:
        """Return the cached value for key, computing and storing it on a miss"""
        if not self.enabled:
            return compute_fn()

        ttl = self._expiry(ttl_seconds)
        cache_key = self._key(key)

        hit, value = self.local.get(cache_key)
        if hit:
            logger.debug(f"Using local cache for {key}")
            return value

        cached = self._shared_get(cache_key)
        if cached is not None:
            try:
                value = json.loads(cached)
                self.local.put(cache_key, value, ttl)
                logger.debug(f"Using shared cache for {key}")
                return value
            except (TypeError, ValueError) as e:
                self._warn(f"Failed to parse cached value for key {key}", e)

        logger.debug(f"Cache miss for {key}, computing fresh value")
        result = compute_fn()
        try:
            serialized = json.dumps(result)
        except (TypeError, ValueError) as e:
            self._warn(f"Failed to cache result for key {key}", e)
            return result

        self._shared_put(cache_key, serialized, ttl)
        self.local.put(cache_key, result, ttl)
        return result

    def put(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        """Store value in both tiers, replacing any previous entry"""
        if not self.enabled:
            return

        ttl = self._expiry(ttl_seconds)
        cache_key = self._key(key)
        self.local.put(cache_key, value, ttl)
        try:
            serialized = json.dumps(value)
        except (TypeError, ValueError) as e:
            self._warn(f"Failed to put value in cache for key {key}", e)
            self._shared_remove([cache_key])
            return
        self._shared_put(cache_key, serialized, ttl)

    def invalidate(self, key: str) -> None:
        if not self.enabled:
            return
        cache_key = self._key(key)
        self.local.remove(cache_key)
        self._shared_remove([cache_key])
        logger.debug(f"Invalidated cache for {key}")

    def invalidate_by_prefix(self, prefix: str) -> None:
        """Evict local entries and known shared keys starting with prefix.

        The shared tier cannot be listed, so shared keys that are not in
        ``known_keys`` survive until their TTL runs out.
        """
        if not self.enabled:
            return
        cache_prefix = self._key(prefix)
        removed = self.local.remove_prefix(cache_prefix)
        shared_keys = [
            self._key(k) for k in self.known_keys if self._key(k).startswith(cache_prefix)
        ]
        self._shared_remove(shared_keys)
        logger.info(
            f"Invalidated {len(removed)} local and {len(shared_keys)} known shared "
            f"cache entries for prefix {cache_prefix}; other shared entries expire by TTL"
        )

    def invalidate_all(self) -> None:
        if not self.enabled:
            return
        self.local.clear()
        self._shared_remove([self._key(k) for k in self.known_keys])
        logger.info("Invalidated all known cache entries")

    def _shared_get(self, cache_key: str) -> str | None:
        if self.shared is None:
            return None
        try:
            return self.shared.get(cache_key)
        except Exception as e:
            self._warn(f"Shared cache read failed for {cache_key}", e)
            return None

    def _shared_put(self, cache_key: str, serialized: str, ttl: float) -> None:
        if self.shared is None:
            return
        try:
            self.shared.put(cache_key, serialized, ttl)
        except Exception as e:
            self._warn(f"Shared cache write failed for {cache_key}", e)

    def _shared_remove(self, cache_keys: list[str]) -> None:
        if self.shared is None or not cache_keys:
            return
        try:
            if len(cache_keys) == 1:
                self.shared.remove(cache_keys[0])
            else:
                self.shared.remove_all(cache_keys)
        except Exception as e:
            self._warn("Shared cache removal failed", e, keys=cache_keys)
