"""
Settings — runtime configuration.

Immutable; every ``with_*`` returns a new Settings.

    settings = (
        Settings.from_env()
        .with_base_url("https://shop.example.vn")
        .with_gateway_timeout(seconds=10)
    )
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import timedelta

from storefront.guard import OnDuplicate

ENV_PREFIX = "STOREFRONT_"


@dataclass(frozen=True, slots=True)
class Settings:
    base_url: str = "http://localhost:3000"
    currency: str = "VND"
    gateway_timeout: timedelta = timedelta(seconds=15)
    submission_ttl: timedelta = timedelta(seconds=60)
    submission_wait: timedelta = timedelta(seconds=30)
    on_duplicate: OnDuplicate = OnDuplicate.REJECT
    log_level: str = "INFO"

    @property
    def return_url_template(self) -> str:
        """Where every wallet flow lands after the gateway is done."""
        return self.base_url.rstrip("/") + "/checkout/success?orderId={order_id}"

    def return_url(self, order_id: str) -> str:
        return self.return_url_template.format(order_id=order_id)

    def with_base_url(self, base_url: str) -> Settings:
        return replace(self, base_url=base_url)

    def with_currency(self, currency: str) -> Settings:
        return replace(self, currency=currency)

    def with_gateway_timeout(self, *, seconds: float) -> Settings:
        return replace(self, gateway_timeout=timedelta(seconds=seconds))

    def with_submission_ttl(self, *, seconds: float) -> Settings:
        return replace(self, submission_ttl=timedelta(seconds=seconds))

    def with_submission_wait(self, *, seconds: float) -> Settings:
        return replace(self, submission_wait=timedelta(seconds=seconds))

    def with_on_duplicate(self, strategy: OnDuplicate) -> Settings:
        return replace(self, on_duplicate=strategy)

    def with_log_level(self, level: str) -> Settings:
        return replace(self, log_level=level.upper())

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """
        Read ``STOREFRONT_*`` variables; anything unset keeps its default.

            STOREFRONT_BASE_URL, STOREFRONT_CURRENCY,
            STOREFRONT_GATEWAY_TIMEOUT (seconds), STOREFRONT_SUBMISSION_TTL (seconds),
            STOREFRONT_SUBMISSION_WAIT (seconds), STOREFRONT_ON_DUPLICATE (REJECT|COALESCE),
            STOREFRONT_LOG_LEVEL
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            return env.get(ENV_PREFIX + name)

        settings = cls()
        if (value := get("BASE_URL")) is not None:
            settings = settings.with_base_url(value)
        if (value := get("CURRENCY")) is not None:
            settings = settings.with_currency(value)
        if (value := get("GATEWAY_TIMEOUT")) is not None:
            settings = settings.with_gateway_timeout(seconds=float(value))
        if (value := get("SUBMISSION_TTL")) is not None:
            settings = settings.with_submission_ttl(seconds=float(value))
        if (value := get("SUBMISSION_WAIT")) is not None:
            settings = settings.with_submission_wait(seconds=float(value))
        if (value := get("ON_DUPLICATE")) is not None:
            settings = settings.with_on_duplicate(OnDuplicate[value.upper()])
        if (value := get("LOG_LEVEL")) is not None:
            settings = settings.with_log_level(value)
        return settings


def configure_logging(settings: Settings) -> None:
    """Root handler for applications and examples. The library itself never calls this."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


__all__ = ("Settings", "configure_logging", "ENV_PREFIX")
