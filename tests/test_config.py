from datetime import timedelta

import pytest

from storefront.config import Settings
from storefront.guard import OnDuplicate


def test_defaults() -> None:
    settings = Settings.from_env({})

    assert settings == Settings()
    assert settings.gateway_timeout == timedelta(seconds=15)
    assert settings.on_duplicate is OnDuplicate.REJECT


def test_environment_overrides() -> None:
    settings = Settings.from_env({
        "STOREFRONT_BASE_URL": "https://shop.example.vn/",
        "STOREFRONT_CURRENCY": "USD",
        "STOREFRONT_GATEWAY_TIMEOUT": "2.5",
        "STOREFRONT_SUBMISSION_TTL": "120",
        "STOREFRONT_ON_DUPLICATE": "coalesce",
        "STOREFRONT_LOG_LEVEL": "debug",
        "UNRELATED": "ignored",
    })

    assert settings.currency == "USD"
    assert settings.gateway_timeout == timedelta(seconds=2.5)
    assert settings.submission_ttl == timedelta(seconds=120)
    assert settings.on_duplicate is OnDuplicate.COALESCE
    assert settings.log_level == "DEBUG"
    assert settings.return_url("ord_1") == "https://shop.example.vn/checkout/success?orderId=ord_1"


def test_unknown_duplicate_strategy_is_rejected() -> None:
    with pytest.raises(KeyError):
        Settings.from_env({"STOREFRONT_ON_DUPLICATE": "ignore"})


def test_with_methods_return_new_settings() -> None:
    base = Settings()

    changed = base.with_submission_wait(seconds=5)

    assert base.submission_wait == timedelta(seconds=30)
    assert changed.submission_wait == timedelta(seconds=5)
