"""Reconciler configuration for edgesync."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from edgesync._constants import CLUSTER_LABEL, EDGE_VERSION_LABEL
from edgesync.exceptions import EdgeSyncConfigError
from edgesync.state.policy import DeletePolicy


def _env_float(env: Mapping[str, str], key: str) -> float | None:
    value = env.get(key)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise EdgeSyncConfigError(f"{key} must be a number, got {value!r}") from exc


def _env_int(env: Mapping[str, str], key: str) -> int | None:
    value = env.get(key)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise EdgeSyncConfigError(f"{key} must be an integer, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with exponential backoff for optimistic-concurrency conflicts.

    Parameters
    ----------
    max_attempts : int or None
        Maximum number of write attempts per entry.  ``None`` retries
        until the write lands (or the deadline passes).
    initial_backoff : float
        Seconds to wait before the first retry.
    max_backoff : float
        Upper bound for the wait between two attempts.
    multiplier : float
        Growth factor applied to the backoff after every conflict.
    """

    max_attempts: int | None = 10
    initial_backoff: float = 0.05
    max_backoff: float = 2.0
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts is not None and self.max_attempts < 1:
            raise EdgeSyncConfigError(f"max_attempts must be >= 1 or None, got {self.max_attempts}")
        if self.initial_backoff < 0 or self.max_backoff < 0:
            raise EdgeSyncConfigError("backoff values must be non-negative")
        if self.multiplier < 1:
            raise EdgeSyncConfigError(f"multiplier must be >= 1, got {self.multiplier}")

    def backoff(self, conflicts: int) -> float:
        """Seconds to wait after the *conflicts*-th consecutive conflict."""
        if conflicts <= 0:
            return 0.0
        delay = self.initial_backoff * (self.multiplier ** (conflicts - 1))
        return min(delay, self.max_backoff)

    def allows(self, attempts: int) -> bool:
        """Whether another attempt may follow *attempts* finished ones."""
        return self.max_attempts is None or attempts < self.max_attempts


@dataclasses.dataclass(frozen=True)
class RegistryEndpoint:
    """Connection settings for :class:`edgesync._transport.HttpNodeRegistry`.

    Parameters
    ----------
    base_url : str
        Registry API base URL, without the ``/api/v1/nodes`` suffix.
    token : str or None
        Bearer token sent with every request.
    request_timeout : float
        Total timeout for a single HTTP request in seconds.
    """

    base_url: str = "http://127.0.0.1:8080"
    token: str | None = None
    request_timeout: float = 10.0


@dataclasses.dataclass(frozen=True)
class ReconcilerConfig:
    """Reconciler configuration.

    Parameters
    ----------
    edge_version_label : str
        Label key carrying the edge-assigned version counter.
    cluster_label : str
        Label key naming the reporting edge cluster.  When present on a
        node, the cluster name is appended to the node name to form its
        registry key.
    delete_policy : DeletePolicy
        Whether delete events are applied unconditionally or only when
        the stored node is not newer than the delete.
    max_concurrency : int
        Number of node keys reconciled at the same time within a report.
    entry_timeout : float
        Seconds allowed for a single entry, retries included.  ``0``
        disables the per-entry deadline.
    retry : RetryPolicy
        Conflict retry policy.
    registry : RegistryEndpoint
        HTTP registry settings.
    """

    edge_version_label: str = EDGE_VERSION_LABEL
    cluster_label: str = CLUSTER_LABEL
    delete_policy: DeletePolicy = DeletePolicy.UNCONDITIONAL
    max_concurrency: int = 16
    entry_timeout: float = 0.0
    retry: RetryPolicy = dataclasses.field(default_factory=RetryPolicy)
    registry: RegistryEndpoint = dataclasses.field(default_factory=RegistryEndpoint)

    def __post_init__(self) -> None:
        if not self.edge_version_label:
            raise EdgeSyncConfigError("edge_version_label must be non-empty")
        try:
            object.__setattr__(self, "delete_policy", DeletePolicy(self.delete_policy))
        except ValueError as exc:
            raise EdgeSyncConfigError(f"unknown delete_policy {self.delete_policy!r}") from exc
        if self.max_concurrency < 1:
            raise EdgeSyncConfigError(f"max_concurrency must be >= 1, got {self.max_concurrency}")
        if self.entry_timeout < 0:
            raise EdgeSyncConfigError(f"entry_timeout must be >= 0, got {self.entry_timeout}")

    @classmethod
    def from_env(cls, **overrides: Any) -> ReconcilerConfig:
        """Create configuration from environment variables.

        Reads optional ``EDGESYNC_*`` variables.  Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        ReconcilerConfig
            Populated configuration.
        """
        env = os.environ

        retry_kwargs: dict[str, Any] = {}
        attempts = _env_int(env, "EDGESYNC_RETRY_MAX_ATTEMPTS")
        if attempts is not None:
            # 0 means "retry until the write lands".
            retry_kwargs["max_attempts"] = None if attempts == 0 else attempts
        _ENV_RETRY_MAP = {
            "EDGESYNC_RETRY_INITIAL_BACKOFF": "initial_backoff",
            "EDGESYNC_RETRY_MAX_BACKOFF": "max_backoff",
            "EDGESYNC_RETRY_MULTIPLIER": "multiplier",
        }
        for env_key, field_name in _ENV_RETRY_MAP.items():
            val = _env_float(env, env_key)
            if val is not None:
                retry_kwargs[field_name] = val

        retry_overrides = overrides.pop("retry", None)
        if isinstance(retry_overrides, dict):
            retry_kwargs.update(retry_overrides)
        elif isinstance(retry_overrides, RetryPolicy):
            retry_kwargs = dataclasses.asdict(retry_overrides)

        registry_kwargs: dict[str, Any] = {}
        if env.get("EDGESYNC_REGISTRY_URL") is not None:
            registry_kwargs["base_url"] = env["EDGESYNC_REGISTRY_URL"].rstrip("/")
        if env.get("EDGESYNC_REGISTRY_TOKEN") is not None:
            registry_kwargs["token"] = env["EDGESYNC_REGISTRY_TOKEN"]
        request_timeout = _env_float(env, "EDGESYNC_REGISTRY_TIMEOUT")
        if request_timeout is not None:
            registry_kwargs["request_timeout"] = request_timeout

        registry_overrides = overrides.pop("registry", None)
        if isinstance(registry_overrides, dict):
            registry_kwargs.update(registry_overrides)
        elif isinstance(registry_overrides, RegistryEndpoint):
            registry_kwargs = dataclasses.asdict(registry_overrides)

        config_kwargs: dict[str, Any] = {
            "retry": RetryPolicy(**retry_kwargs),
            "registry": RegistryEndpoint(**registry_kwargs),
        }

        _ENV_LABEL_MAP = {
            "EDGESYNC_EDGE_VERSION_LABEL": "edge_version_label",
            "EDGESYNC_CLUSTER_LABEL": "cluster_label",
        }
        for env_key, field_name in _ENV_LABEL_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        policy_env = env.get("EDGESYNC_DELETE_POLICY")
        if policy_env is not None and "delete_policy" not in overrides:
            try:
                config_kwargs["delete_policy"] = DeletePolicy(policy_env.strip().lower().replace("-", "_"))
            except ValueError as exc:
                raise EdgeSyncConfigError(f"EDGESYNC_DELETE_POLICY: unknown policy {policy_env!r}") from exc

        concurrency = _env_int(env, "EDGESYNC_MAX_CONCURRENCY")
        if concurrency is not None and "max_concurrency" not in overrides:
            config_kwargs["max_concurrency"] = concurrency

        entry_timeout = _env_float(env, "EDGESYNC_ENTRY_TIMEOUT")
        if entry_timeout is not None and "entry_timeout" not in overrides:
            config_kwargs["entry_timeout"] = entry_timeout

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
