"""Non-organic holder classification.

Only holders at or above a market-cap-scaled share of supply are checked:
below it, an exchange or pool wallet moves the aggregates too little to be
worth the RPC budget. Large holders are matched against the static denylist
first (free), then their wallets' owning programs are resolved and matched
against known AMM/DLMM programs.

An owner whose program cannot be resolved stays in the holder set. Missing
a pool costs a little accuracy; excluding a real holder would erase their
balance from every statistic.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from loguru import logger

from holder_radar.parsers.chain_reader import HolderRecord
from holder_radar.parsers.exclusion_cache import OwnerProgramCache
from holder_radar.parsers.exclusion_lists import (
    AMM_PROGRAM_IDS,
    EXCLUDED_OWNERS,
    FALLBACK_THRESHOLD,
    MARKET_CAP_TIERS,
)


class ExclusionCategory(str, Enum):
    STATIC_DENYLIST = "static-denylist"
    PROGRAM_OWNED = "program-owned"


class OwnerResolver(Protocol):
    async def resolve_owners(self, addresses: list[str]) -> dict[str, str | None]: ...


@dataclass(frozen=True)
class Exclusion:
    owner: str
    category: ExclusionCategory
    reason: str
    share_pct: float  # largest single account of this owner, % of supply


@dataclass(frozen=True)
class ExclusionPolicy:
    """Denylist, program list and threshold tiers, injectable per instance."""

    excluded_owners: Mapping[str, str] = field(default_factory=lambda: dict(EXCLUDED_OWNERS))
    amm_program_ids: Mapping[str, str] = field(default_factory=lambda: dict(AMM_PROGRAM_IDS))
    tiers: tuple[tuple[float, float], ...] = MARKET_CAP_TIERS
    fallback_threshold: float = FALLBACK_THRESHOLD

    def threshold_for(self, market_cap_usd: float) -> float:
        """Share of supply above which a holder is checked."""
        for min_market_cap, fraction in self.tiers:
            if market_cap_usd > min_market_cap:
                return fraction
        return self.fallback_threshold

    def with_extra(
        self,
        *,
        owners: list[str] | None = None,
        program_ids: list[str] | None = None,
    ) -> "ExclusionPolicy":
        """Copy of this policy with additional denylisted owners / AMM programs."""
        merged_owners = dict(self.excluded_owners)
        for owner in owners or []:
            merged_owners.setdefault(owner, "configured denylist")
        merged_programs = dict(self.amm_program_ids)
        for program_id in program_ids or []:
            merged_programs.setdefault(program_id, "configured AMM program")
        return ExclusionPolicy(
            excluded_owners=merged_owners,
            amm_program_ids=merged_programs,
            tiers=self.tiers,
            fallback_threshold=self.fallback_threshold,
        )


def parse_address_list(value: str) -> list[str]:
    """Split a comma-separated settings value into addresses."""
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class ExclusionSet:
    """Owners classified as non-organic for one snapshot."""

    threshold: float
    raw_supply: int
    exclusions: dict[str, Exclusion] = field(default_factory=dict)

    @property
    def owners(self) -> frozenset[str]:
        return frozenset(self.exclusions)

    def __len__(self) -> int:
        return len(self.exclusions)

    def __contains__(self, owner: object) -> bool:
        return owner in self.exclusions

    def by_category(self, category: ExclusionCategory) -> list[Exclusion]:
        return [e for e in self.exclusions.values() if e.category == category]

    def is_large(self, holder: HolderRecord) -> bool:
        if self.raw_supply <= 0:
            return False
        return holder.raw_balance / self.raw_supply >= self.threshold

    def apply(self, holders: list[HolderRecord]) -> list[HolderRecord]:
        """Drop large accounts of excluded owners; small accounts always stay."""
        return [
            h for h in holders
            if not (h.owner in self.exclusions and self.is_large(h))
        ]


class ExclusionClassifier:
    def __init__(
        self,
        resolver: OwnerResolver,
        policy: ExclusionPolicy | None = None,
        *,
        cache: OwnerProgramCache | None = None,
    ) -> None:
        self._resolver = resolver
        self._policy = policy or ExclusionPolicy()
        self._cache = cache

    @property
    def policy(self) -> ExclusionPolicy:
        return self._policy

    async def classify(
        self,
        holders: list[HolderRecord],
        raw_supply: int,
        market_cap_usd: float,
    ) -> ExclusionSet:
        threshold = self._policy.threshold_for(market_cap_usd)
        result = ExclusionSet(threshold=threshold, raw_supply=raw_supply)

        # owner → largest share among its large accounts
        large: dict[str, float] = {}
        for holder in holders:
            if not result.is_large(holder):
                continue
            share = holder.raw_balance / raw_supply
            if share > large.get(holder.owner, 0.0):
                large[holder.owner] = share

        logger.info(
            f"[EXCLUDE] {len(large)} owners at or above {threshold * 100:.2f}% "
            f"(mcap ${market_cap_usd:,.0f})"
        )
        if not large:
            return result

        unmatched: list[str] = []
        for owner, share in large.items():
            label = self._policy.excluded_owners.get(owner)
            if label is None:
                unmatched.append(owner)
                continue
            result.exclusions[owner] = Exclusion(
                owner=owner,
                category=ExclusionCategory.STATIC_DENYLIST,
                reason=f"known wallet: {label}",
                share_pct=share * 100,
            )
            logger.info(f"[EXCLUDE] Known wallet {owner} ({label}) holding {share * 100:.2f}%")

        if unmatched:
            owner_programs = await self._resolve(unmatched)
            for owner in unmatched:
                program_id = owner_programs.get(owner)
                if program_id is None:
                    continue
                label = self._policy.amm_program_ids.get(program_id)
                if label is None:
                    continue
                share = large[owner]
                result.exclusions[owner] = Exclusion(
                    owner=owner,
                    category=ExclusionCategory.PROGRAM_OWNED,
                    reason=f"owned by {label} ({program_id})",
                    share_pct=share * 100,
                )
                logger.info(
                    f"[EXCLUDE] Program-owned {owner} ({label}) holding {share * 100:.2f}%"
                )

        logger.info(
            f"[EXCLUDE] {len(result)} excluded: "
            f"{len(result.by_category(ExclusionCategory.STATIC_DENYLIST))} denylist, "
            f"{len(result.by_category(ExclusionCategory.PROGRAM_OWNED))} program-owned"
        )
        return result

    async def _resolve(self, owners: list[str]) -> dict[str, str | None]:
        """Owning program per owner wallet, cache first."""
        programs: dict[str, str | None] = {}
        if self._cache is not None:
            programs.update(await self._cache.get_many(owners))

        missing = [o for o in owners if o not in programs]
        if missing:
            fetched = await self._resolver.resolve_owners(missing)
            programs.update(fetched)
            if self._cache is not None:
                await self._cache.set_many(
                    {o: p for o, p in fetched.items() if p is not None}
                )
            unknown = sum(1 for o in missing if fetched.get(o) is None)
            if unknown:
                logger.debug(f"[EXCLUDE] {unknown}/{len(missing)} owners unresolved, kept")
        return programs
