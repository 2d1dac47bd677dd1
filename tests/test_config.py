from __future__ import annotations

import pytest

from edgesync.config import ReconcilerConfig, RegistryEndpoint, RetryPolicy
from edgesync.exceptions import EdgeSyncConfigError
from edgesync.state.policy import DeletePolicy

_ENV_KEYS = (
    "EDGESYNC_RETRY_MAX_ATTEMPTS",
    "EDGESYNC_RETRY_INITIAL_BACKOFF",
    "EDGESYNC_RETRY_MAX_BACKOFF",
    "EDGESYNC_RETRY_MULTIPLIER",
    "EDGESYNC_REGISTRY_URL",
    "EDGESYNC_REGISTRY_TOKEN",
    "EDGESYNC_REGISTRY_TIMEOUT",
    "EDGESYNC_EDGE_VERSION_LABEL",
    "EDGESYNC_CLUSTER_LABEL",
    "EDGESYNC_DELETE_POLICY",
    "EDGESYNC_MAX_CONCURRENCY",
    "EDGESYNC_ENTRY_TIMEOUT",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults() -> None:
    config = ReconcilerConfig.from_env()

    assert config == ReconcilerConfig()
    assert config.edge_version_label == "edge-version"
    assert config.cluster_label == "ote-cluster"
    assert config.delete_policy == DeletePolicy.UNCONDITIONAL
    assert config.retry.max_attempts == 10


def test_from_env_reads_all_sections(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EDGESYNC_RETRY_MAX_ATTEMPTS", "4")
    monkeypatch.setenv("EDGESYNC_RETRY_INITIAL_BACKOFF", "0.5")
    monkeypatch.setenv("EDGESYNC_REGISTRY_URL", "https://registry.local:6443/")
    monkeypatch.setenv("EDGESYNC_REGISTRY_TOKEN", "tok")
    monkeypatch.setenv("EDGESYNC_REGISTRY_TIMEOUT", "3")
    monkeypatch.setenv("EDGESYNC_EDGE_VERSION_LABEL", "edge.io/version")
    monkeypatch.setenv("EDGESYNC_DELETE_POLICY", " Version-Gated ")
    monkeypatch.setenv("EDGESYNC_MAX_CONCURRENCY", "3")
    monkeypatch.setenv("EDGESYNC_ENTRY_TIMEOUT", "1.5")

    config = ReconcilerConfig.from_env()

    assert config.retry == RetryPolicy(max_attempts=4, initial_backoff=0.5)
    assert config.registry == RegistryEndpoint(base_url="https://registry.local:6443", token="tok", request_timeout=3.0)
    assert config.edge_version_label == "edge.io/version"
    assert config.delete_policy == DeletePolicy.VERSION_GATED
    assert config.max_concurrency == 3
    assert config.entry_timeout == 1.5


def test_zero_max_attempts_means_unbounded(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EDGESYNC_RETRY_MAX_ATTEMPTS", "0")

    assert ReconcilerConfig.from_env().retry.max_attempts is None


def test_overrides_win_over_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EDGESYNC_MAX_CONCURRENCY", "3")
    monkeypatch.setenv("EDGESYNC_DELETE_POLICY", "version_gated")
    monkeypatch.setenv("EDGESYNC_RETRY_MULTIPLIER", "3")

    config = ReconcilerConfig.from_env(
        max_concurrency=8,
        delete_policy="unconditional",
        retry={"max_attempts": 2},
        registry=RegistryEndpoint(base_url="http://other"),
    )

    assert config.max_concurrency == 8
    assert config.delete_policy == DeletePolicy.UNCONDITIONAL
    assert config.retry == RetryPolicy(max_attempts=2, multiplier=3.0)
    assert config.registry.base_url == "http://other"


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("EDGESYNC_RETRY_MAX_ATTEMPTS", "many"),
        ("EDGESYNC_RETRY_MAX_ATTEMPTS", "-1"),
        ("EDGESYNC_RETRY_MAX_BACKOFF", "soon"),
        ("EDGESYNC_DELETE_POLICY", "sometimes"),
        ("EDGESYNC_MAX_CONCURRENCY", "0"),
        ("EDGESYNC_ENTRY_TIMEOUT", "-1"),
        ("EDGESYNC_RETRY_MULTIPLIER", "0.5"),
        ("EDGESYNC_EDGE_VERSION_LABEL", ""),
    ],
)
def test_invalid_env_values_raise(monkeypatch: pytest.MonkeyPatch, key: str, value: str) -> None:
    monkeypatch.setenv(key, value)

    with pytest.raises(EdgeSyncConfigError):
        ReconcilerConfig.from_env()


def test_retry_policy_backoff_is_capped() -> None:
    policy = RetryPolicy(initial_backoff=0.1, multiplier=3.0, max_backoff=0.5)

    assert policy.backoff(0) == 0.0
    assert policy.backoff(1) == pytest.approx(0.1)
    assert policy.backoff(2) == pytest.approx(0.3)
    assert policy.backoff(3) == pytest.approx(0.5)
    assert policy.backoff(10) == pytest.approx(0.5)


def test_retry_policy_allows() -> None:
    assert RetryPolicy(max_attempts=2).allows(1)
    assert not RetryPolicy(max_attempts=2).allows(2)
    assert RetryPolicy(max_attempts=None).allows(10_000)
