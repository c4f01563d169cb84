"""Settings loading and startup helpers."""

import pytest

from payrelay.common.config import CommonSettings, load_settings
from payrelay.common.errors import StartupConfigError
from payrelay.common.startup import log_startup_config


def test_missing_credentials_fail_fast(monkeypatch):
    monkeypatch.delenv("RAZORPAY_KEY_ID", raising=False)
    monkeypatch.delenv("RAZORPAY_KEY_SECRET", raising=False)

    with pytest.raises(StartupConfigError) as exc_info:
        load_settings(_env_file=None)

    assert "RAZORPAY_KEY_ID" in str(exc_info.value)
    assert "RAZORPAY_KEY_SECRET" in str(exc_info.value)


def test_blank_secret_is_rejected(monkeypatch):
    monkeypatch.setenv("RAZORPAY_KEY_SECRET", "   \n")

    with pytest.raises(StartupConfigError):
        load_settings(_env_file=None)


def test_credentials_are_trimmed(monkeypatch):
    monkeypatch.setenv("RAZORPAY_KEY_ID", " rzp_test_key ")
    monkeypatch.setenv("RAZORPAY_KEY_SECRET", "testsecret\n")

    settings = CommonSettings(_env_file=None)

    assert settings.razorpay_key_id == "rzp_test_key"
    assert settings.razorpay_key_secret == "testsecret"


def test_defaults(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.delenv("APP_ENV", raising=False)
    monkeypatch.delenv("NODE_ENV", raising=False)

    settings = CommonSettings(_env_file=None)

    assert settings.port == 5000
    assert settings.app_env == "development"
    assert settings.enforce_capture_amount_match is False


def test_node_env_is_accepted(monkeypatch):
    monkeypatch.delenv("APP_ENV", raising=False)
    monkeypatch.setenv("NODE_ENV", "production")

    assert CommonSettings(_env_file=None).app_env == "production"


def test_secret_is_not_in_repr():
    assert "testsecret" not in repr(CommonSettings(_env_file=None))


def test_startup_config_redacts_secrets(monkeypatch):
    monkeypatch.setenv("SERVICE_NAME", "payrelay")

    config = log_startup_config("payrelay", ["SERVICE_NAME", "RAZORPAY_KEY_SECRET", "UNSET_THING"])

    assert config["SERVICE_NAME"] == "payrelay"
    assert config["RAZORPAY_KEY_SECRET"] == "<redacted>"
    assert config["UNSET_THING"] == "<unset>"
