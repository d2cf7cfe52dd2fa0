from __future__ import annotations

from careerforge._redact import redact_body, redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "Authorization": "Bearer abc.def.ghi",
        "refreshToken": "r1",
        "refresh_token": "r2",
        "password": "pw",
        "nested": {"token": "t", "projects": ["cv"]},
    }

    redacted = redact_for_log(payload)
    assert redacted["Authorization"] == "<redacted>"
    assert redacted["refreshToken"] == "<redacted>"
    assert redacted["refresh_token"] == "<redacted>"
    assert redacted["password"] == "<redacted>"
    assert redacted["nested"]["token"] == "<redacted>"
    assert redacted["nested"]["projects"] == ["cv"]


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_body_parses_json_bodies() -> None:
    assert redact_body('{"refreshToken":"secret","keep":1}') == {"refreshToken": "<redacted>", "keep": 1}
    assert redact_body(b'{"token":"secret"}') == {"token": "<redacted>"}


def test_redact_body_passes_plain_text_and_none() -> None:
    assert redact_body("not json") == "not json"
    assert redact_body(None) is None
