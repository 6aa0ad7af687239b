"""
Address cascade — province → district → ward.

Each level's load can be overtaken by a newer selection above it. A
generation counter per level decides whether a response is still wanted;
the superseded load is also cancelled. Dependent selections are cleared
before the new load starts, so a late response can never refill a child
list under the wrong parent.

    cascade = AddressCascade(directory)
    await cascade.load_provinces()
    await cascade.select_province(1)
    await cascade.select_district(101)
    cascade.select_ward(10101)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from storefront.errors import NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Region:
    code: int
    name: str


class AddressDirectory(Protocol):
    """Read-only administrative-division lookups."""

    async def provinces(self) -> Sequence[Region]: ...

    async def districts(self, province_code: int) -> Sequence[Region]: ...

    async def wards(self, district_code: int) -> Sequence[Region]: ...


class Level(StrEnum):
    DISTRICTS = "districts"
    WARDS = "wards"


class AddressCascade:
    def __init__(self, directory: AddressDirectory) -> None:
        self._directory = directory
        self.provinces: tuple[Region, ...] = ()
        self.districts: tuple[Region, ...] = ()
        self.wards: tuple[Region, ...] = ()
        self.province: Region | None = None
        self.district: Region | None = None
        self.ward: Region | None = None
        self._generation: dict[Level, int] = {Level.DISTRICTS: 0, Level.WARDS: 0}
        self._loading: dict[Level, asyncio.Task[Sequence[Region]]] = {}

    @property
    def complete(self) -> bool:
        return None not in (self.province, self.district, self.ward)

    async def load_provinces(self) -> tuple[Region, ...]:
        self.provinces = tuple(await self._directory.provinces())
        return self.provinces

    async def select_province(self, code: int) -> tuple[Region, ...] | None:
        """
        Select a province and load its districts.

        Returns None when a newer selection overtook this load.
        """
        self.province = _find(self.provinces, "province", code)
        self._reset(Level.DISTRICTS)
        return await self._load(Level.DISTRICTS, self._directory.districts(code))

    async def select_district(self, code: int) -> tuple[Region, ...] | None:
        if self.province is None:
            raise ValueError("select a province first")
        self.district = _find(self.districts, "district", code)
        self._reset(Level.WARDS)
        return await self._load(Level.WARDS, self._directory.wards(code))

    def select_ward(self, code: int) -> Region:
        if self.district is None:
            raise ValueError("select a district first")
        self.ward = _find(self.wards, "ward", code)
        return self.ward

    # ═══════════════════════════════════════════════════════════════════════
    # Internals
    # ═══════════════════════════════════════════════════════════════════════

    def _reset(self, level: Level) -> None:
        """Clear ``level`` and everything below it, abandoning their loads."""
        levels = (Level.DISTRICTS, Level.WARDS) if level is Level.DISTRICTS else (Level.WARDS,)
        for lvl in levels:
            self._generation[lvl] += 1
            task = self._loading.pop(lvl, None)
            if task is not None and not task.done():
                task.cancel()
        if level is Level.DISTRICTS:
            self.districts = ()
            self.district = None
        self.wards = ()
        self.ward = None

    async def _load(self, level: Level, lookup: Awaitable[Sequence[Region]]) -> tuple[Region, ...] | None:
        generation = self._generation[level]
        task = asyncio.ensure_future(lookup)
        self._loading[level] = task
        try:
            regions = tuple(await task)
        except asyncio.CancelledError:
            if generation != self._generation[level]:
                logger.debug("%s load superseded (generation %d)", level, generation)
                return None
            raise
        except Exception:
            if generation != self._generation[level]:
                logger.debug("ignoring failure of a superseded %s load", level, exc_info=True)
                return None
            raise
        finally:
            if self._loading.get(level) is task:
                del self._loading[level]

        if generation != self._generation[level]:
            logger.debug("discarded stale %s response (generation %d)", level, generation)
            return None
        if level is Level.DISTRICTS:
            self.districts = regions
        else:
            self.wards = regions
        return regions


def _find(regions: tuple[Region, ...], kind: str, code: int) -> Region:
    for region in regions:
        if region.code == code:
            return region
    raise NotFoundError(kind, code)


__all__ = ("Region", "AddressDirectory", "AddressCascade")
