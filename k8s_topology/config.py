"""Configuration loading from environment variables."""

import os

from k8s_topology.models import GraphSettings

ENV_PREFIX = "K8S_TOPOLOGY_"

_TRUE_VALUES = ("true", "1", "yes")


def _env_name(key: str) -> str:
    return f"{ENV_PREFIX}{key}"


def _env(key: str, default: str = "") -> str:
    return os.environ.get(_env_name(key), default).strip()


def _env_flag(key: str, default: bool) -> bool:
    raw = _env(key)
    if not raw:
        return default
    return raw.lower() in _TRUE_VALUES


def _env_seconds(key: str, default: int, upper: int) -> int:
    """Read a whole number of seconds, clamped to ``[0, upper]``."""
    raw = _env(key)
    if not raw:
        return default
    try:
        seconds = int(raw)
    except ValueError:
        raise ValueError(f"{_env_name(key)} must be a whole number of seconds, got {raw!r}") from None
    return min(max(seconds, 0), upper)


def load_settings() -> GraphSettings:
    """Load graph settings from K8S_TOPOLOGY_* environment variables."""
    return GraphSettings(
        graph_cache_ttl_seconds=_env_seconds("GRAPH_CACHE_TTL", 0, upper=86400),
        cluster_domain=_env("CLUSTER_DOMAIN", "cluster.local"),
        include_network_policies=_env_flag("INCLUDE_NETWORK_POLICIES", True),
        include_mesh=_env_flag("INCLUDE_MESH", True),
    )
