"""Pipeline configuration — a string-keyed bag with typed getters.

Every pipeline execution carries one ``PipelineConfig``.  Keys are plain
strings and values are arbitrary; typed getters convert explicitly and
raise :class:`~conduit.core.errors.ConfigError` rather than guessing.

A handful of well-known keys (storage credentials, paths, named
connection strings) have convenience setters so connectors agree on
names; any other key is equally valid.

The mapping is shared by every concurrently running operation and node,
so reads and writes are guarded by a lock.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator, Mapping
from typing import Any

from conduit.core.errors import ConfigError

# Well-known keys
AWS_ACCESS_KEY_ID = "aws.access_key_id"
AWS_SECRET_ACCESS_KEY = "aws.secret_access_key"
AWS_REGION = "aws.region"
S3_BUCKET = "s3.bucket"
TEMP_PATH = "storage.temp_path"
CONNECTION_PREFIX = "connections."

_TRUE = {"1", "true", "yes", "on", "y", "t"}
_FALSE = {"0", "false", "no", "off", "n", "f"}

_MISSING = object()


class PipelineConfig(Mapping[str, Any]):
    """Thread-safe configuration mapping for one pipeline execution."""

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._lock = threading.RLock()
        self._values: dict[str, Any] = dict(values or {})

    # ── Mapping protocol ─────────────────────────────────────────

    def __getitem__(self, key: str) -> Any:
        with self._lock:
            return self._values[key]

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._values))

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._values

    # ── Writes ───────────────────────────────────────────────────

    def set(self, key: str, value: Any) -> PipelineConfig:
        with self._lock:
            self._values[key] = value
        return self

    def update(self, values: Mapping[str, Any]) -> PipelineConfig:
        with self._lock:
            self._values.update(values)
        return self

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    # ── Typed getters ────────────────────────────────────────────

    def require(self, key: str) -> Any:
        """Return the value for *key* or raise ConfigError."""
        with self._lock:
            if key not in self._values:
                raise ConfigError(f"Missing required configuration key: {key}", key=key)
            return self._values[key]

    def get_str(self, key: str, default: Any = _MISSING) -> str:
        value = self._lookup(key, default)
        return value if value is None else str(value)

    def get_int(self, key: str, default: Any = _MISSING) -> int:
        value = self._lookup(key, default)
        if value is None or isinstance(value, int) and not isinstance(value, bool):
            return value
        try:
            return int(str(value).strip())
        except ValueError as e:
            raise ConfigError(f"Configuration key '{key}' is not an integer: {value!r}", key=key, cause=e)

    def get_float(self, key: str, default: Any = _MISSING) -> float:
        value = self._lookup(key, default)
        if value is None or isinstance(value, float):
            return value
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Configuration key '{key}' is not a number: {value!r}", key=key, cause=e)

    def get_bool(self, key: str, default: Any = _MISSING) -> bool:
        value = self._lookup(key, default)
        if value is None or isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ConfigError(f"Configuration key '{key}' is not a boolean: {value!r}", key=key)

    def _lookup(self, key: str, default: Any) -> Any:
        with self._lock:
            if key in self._values:
                return self._values[key]
        if default is _MISSING:
            raise ConfigError(f"Missing required configuration key: {key}", key=key)
        return default

    # ── Well-known keys ──────────────────────────────────────────

    def set_aws_credentials(
        self, access_key_id: str, secret_access_key: str, region: str | None = None
    ) -> PipelineConfig:
        self.set(AWS_ACCESS_KEY_ID, access_key_id)
        self.set(AWS_SECRET_ACCESS_KEY, secret_access_key)
        if region is not None:
            self.set(AWS_REGION, region)
        return self

    def set_s3_bucket(self, bucket: str) -> PipelineConfig:
        return self.set(S3_BUCKET, bucket)

    def set_temp_path(self, path: str) -> PipelineConfig:
        return self.set(TEMP_PATH, path)

    def set_connection_string(self, name: str, url: str) -> PipelineConfig:
        return self.set(f"{CONNECTION_PREFIX}{name}", url)

    def get_connection_string(self, name: str) -> str:
        return self.get_str(f"{CONNECTION_PREFIX}{name}")

    def to_dict(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._values)

    def __repr__(self) -> str:
        return f"PipelineConfig(keys={sorted(self.to_dict())})"


__all__ = [
    "PipelineConfig",
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_REGION",
    "S3_BUCKET",
    "TEMP_PATH",
    "CONNECTION_PREFIX",
]
