"""Site eligibility checks gating sitemap publication."""

from __future__ import annotations

from typing import Protocol

from sitemap_builder.services.option_store import KeyValueStore

SITE_PUBLIC_OPTION = "site_public"


class SiteEligibility(Protocol):
    async def is_eligible(self) -> bool: ...


class StaticSiteEligibility:
    """Fixed answer, for tests and sites without a runtime toggle."""

    def __init__(self, eligible: bool = True) -> None:
        self.eligible = eligible

    async def is_eligible(self) -> bool:
        return self.eligible


class OptionSiteEligibility:
    """Read the ``site_public`` option, falling back to the configured default.

    Operators flip the option to take a site private without a restart; a
    running generation observes the change before its next partition.
    """

    def __init__(self, *, store: KeyValueStore, default: bool = True) -> None:
        self._store = store
        self._default = default

    async def is_eligible(self) -> bool:
        value = await self._store.get(SITE_PUBLIC_OPTION)
        if value is None:
            return self._default
        return bool(value)

    async def set_public(self, public: bool) -> None:
        await self._store.set(SITE_PUBLIC_OPTION, public)


__all__ = [
    "OptionSiteEligibility",
    "SITE_PUBLIC_OPTION",
    "SiteEligibility",
    "StaticSiteEligibility",
]
