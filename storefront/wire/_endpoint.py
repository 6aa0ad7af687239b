from __future__ import annotations

from dataclasses import dataclass, field
from typing import Self

from storefront.ops import Runner
from storefront.wire._types import Codec, Exposure, Trigger


@dataclass(slots=True)
class Endpoint:
    runner: Runner
    exposures: list[Exposure] = field(default_factory=list)

    def expose(self, trigger: Trigger, codec: Codec) -> Endpoint:
        return Endpoint(runner=self.runner, exposures=[*self.exposures, (trigger, codec)])


def endpoint(runner: Runner) -> Endpoint:
    return Endpoint(runner=runner)


class Application:
    def __init__(self) -> None:
        self.endpoints: list[Endpoint] = []

    def mount(self, *endps: Endpoint) -> Self:
        self.endpoints.extend(endps)
        return self


def application() -> Application:
    return Application()


__all__ = ("Endpoint", "endpoint", "Application", "application")
