"""Builders for raw account data, holder records and snapshots."""

import struct
from datetime import datetime

from solders.pubkey import Pubkey

from holder_radar.parsers.account_decoder import SPL_ACCOUNT_SIZE, SPL_MINT_SIZE
from holder_radar.parsers.chain_reader import HolderRecord
from holder_radar.parsers.stats_models import (
    ConcentrationMetric,
    ExcludedOwner,
    HolderThreshold,
    Snapshot,
)


def new_address() -> str:
    return str(Pubkey.new_unique())


def make_mint_data(raw_supply: int, decimals: int, *, initialized: bool = True) -> bytes:
    data = bytearray(SPL_MINT_SIZE)
    struct.pack_into("<Q", data, 36, raw_supply)
    data[44] = decimals
    data[45] = 1 if initialized else 0
    return bytes(data)


def make_token_2022_mint_data(raw_supply: int, decimals: int, extensions: bytes) -> bytes:
    """Mint padded to the account size, AccountType::Mint byte, then TLV data."""
    data = bytearray(make_mint_data(raw_supply, decimals))
    data.extend(bytes(SPL_ACCOUNT_SIZE - SPL_MINT_SIZE))
    data.append(1)
    return bytes(data) + extensions


def make_token_account_data(mint: str, owner: str, amount: int, state: int = 1) -> bytes:
    data = bytearray(SPL_ACCOUNT_SIZE)
    data[0:32] = bytes(Pubkey.from_string(mint))
    data[32:64] = bytes(Pubkey.from_string(owner))
    struct.pack_into("<Q", data, 64, amount)
    data[108] = state
    return bytes(data)


def holder(owner: str, raw_balance: int, token_account: str | None = None) -> HolderRecord:
    return HolderRecord(
        token_account=token_account or f"ata-{owner[:8]}-{raw_balance}",
        owner=owner,
        raw_balance=raw_balance,
    )


def make_snapshot(
    mint: str,
    *,
    timestamp: datetime,
    distribution_score: float | None = None,
    excluded: list[ExcludedOwner] | None = None,
    hhi: float = 5400.0,
) -> Snapshot:
    return Snapshot(
        mint=mint,
        timestamp=timestamp,
        price=1.0,
        supply=100.0,
        market_cap=100.0,
        decimals=0,
        total_holders=3,
        organic_holder_count=3,
        holder_thresholds=[
            HolderThreshold(
                usd_threshold=10,
                holder_count=3,
                total_holders=3,
                pct_of_total=100.0,
                pct_of_baseline=100.0,
                market_cap_per_holder=33.3,
                slice_value_usd=100.0,
            )
        ],
        concentration_metrics=[ConcentrationMetric(top_n=1, pct_of_supply=70.0)],
        hhi=hhi,
        distribution_score=distribution_score,
        excluded_owners=excluded or [],
    )
