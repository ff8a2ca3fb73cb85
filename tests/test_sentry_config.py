"""
Tests for Sentry event scrubbing.
"""

from unittest.mock import patch

from apps.core.sentry_config import before_send, initialize_sentry, mask_email, scrub_sensitive_data


def test_sensitive_keys_are_redacted():
    data = {
        "verification_pin": "482913",
        "bank": {"account_number": "001234567890", "bank_name": "Wahda Bank"},
        "amount": "100.00",
    }
    assert scrub_sensitive_data(data) == {
        "verification_pin": "[REDACTED]",
        "bank": {"account_number": "[REDACTED]", "bank_name": "Wahda Bank"},
        "amount": "100.00",
    }


def test_strings_are_masked():
    assert scrub_sensitive_data("IBAN LY83002048000020100120361") == "IBAN [IBAN]"
    assert scrub_sensitive_data(["mail amira@example.com"]) == ["mail am***@example.com"]
    assert scrub_sensitive_data("call 091-234 5678") == "call XXX-5678"


def test_other_values_pass_through():
    assert scrub_sensitive_data(42) == 42
    assert scrub_sensitive_data(None) is None


def test_mask_email():
    assert mask_email("omar@example.com") == "om***@example.com"
    assert mask_email("not-an-email") == "REDACTED@EMAIL"


def test_before_send_scrubs_request_and_user():
    event = {
        "request": {"data": {"password": "secret"}, "cookies": {"sessionid": "abc"}},
        "user": {"email": "amira@example.com", "ip_address": "10.0.0.1"},
        "exception": {"values": [{"value": "No wallet for amira@example.com"}]},
    }
    scrubbed = before_send(event, {})

    assert scrubbed["request"]["data"] == {"password": "[REDACTED]"}
    assert scrubbed["request"]["cookies"] == {"sessionid": "[REDACTED]"}
    assert scrubbed["user"] == {"email": "am***@example.com", "ip_address": "XXX.XXX.XXX.XXX"}
    assert scrubbed["exception"]["values"][0]["value"] == "No wallet for am***@example.com"


@patch("apps.core.sentry_config.sentry_sdk.init")
def test_initialize_without_dsn_is_a_no_op(mock_init):
    initialize_sentry("")
    mock_init.assert_not_called()


@patch("apps.core.sentry_config.sentry_sdk.init")
def test_initialize_with_dsn(mock_init):
    initialize_sentry("https://key@sentry.example.com/1", environment="production")
    kwargs = mock_init.call_args.kwargs
    assert kwargs["environment"] == "production"
    assert kwargs["before_send"] is before_send
    assert kwargs["send_default_pii"] is False
