from __future__ import annotations

from edgesync._redact import redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "metadata": {
            "name": "n1",
            "annotations": {
                "kubectl.kubernetes.io/last-applied-configuration": '{"big": "blob"}',
                "edge.io/bootstrap-token": "abc.def",
                "edge.io/owner": "ops",
            },
        },
        "Authorization": "Bearer xyz",
        "password": "pw",
    }

    redacted = redact_for_log(payload)
    annotations = redacted["metadata"]["annotations"]
    assert annotations["kubectl.kubernetes.io/last-applied-configuration"] == "<redacted>"
    assert annotations["edge.io/bootstrap-token"] == "<redacted>"
    assert annotations["edge.io/owner"] == "ops"
    assert redacted["Authorization"] == "<redacted>"
    assert redacted["password"] == "<redacted>"
    assert redacted["metadata"]["name"] == "n1"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_summarises_bytes_and_walks_lists() -> None:
    redacted = redact_for_log({"items": [b"\x00\x01", {"token": "t"}, 3, None]})
    assert redacted["items"] == ["<bytes:2b>", {"token": "<redacted>"}, 3, None]
