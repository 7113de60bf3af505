"""Chain reader: mint metadata, holder set and batched owner resolution."""

import asyncio
from dataclasses import dataclass

from loguru import logger

from holder_radar.parsers.account_decoder import (
    SPL_ACCOUNT_SIZE,
    TOKEN_PROGRAM_ID,
    TOKEN_PROGRAM_IDS,
    AccountDecodeError,
    MintInfo,
    decode_mint,
    decode_token_account,
    is_valid_address,
)
from holder_radar.parsers.exceptions import InvalidMintError
from holder_radar.parsers.solana_rpc.client import SolanaRpcClient

DEFAULT_BATCH_SIZE = 25
DEFAULT_BATCH_CONCURRENCY = 4


@dataclass(frozen=True)
class HolderRecord:
    """One token account holding the mint. Discarded after aggregation."""

    token_account: str
    owner: str
    raw_balance: int


class ChainReader:
    def __init__(
        self,
        rpc: SolanaRpcClient,
        *,
        min_raw_balance: int = 0,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_concurrency: int = DEFAULT_BATCH_CONCURRENCY,
    ) -> None:
        self._rpc = rpc
        self._min_raw_balance = min_raw_balance
        self._batch_size = batch_size
        self._batch_concurrency = batch_concurrency

    async def get_mint_info(self, mint: str) -> MintInfo:
        """Fetch and decode the mint account.

        Raises InvalidMintError if the address is malformed, the account is
        missing, or it is not a mint owned by a token program.
        """
        if not is_valid_address(mint):
            raise InvalidMintError(f"Not a valid address: {mint!r}")

        account = await self._rpc.get_account_info(mint)
        if account is None:
            raise InvalidMintError(f"Mint account {mint} not found")
        if account.owner not in TOKEN_PROGRAM_IDS:
            raise InvalidMintError(f"{mint} is owned by {account.owner}, not a token program")

        try:
            return decode_mint(account.data, program_id=account.owner)
        except AccountDecodeError as e:
            raise InvalidMintError(f"{mint}: {e}") from e

    async def get_holders(self, mint: str, mint_info: MintInfo) -> list[HolderRecord]:
        """All initialized token accounts for ``mint`` above the minimum balance.

        Sorted by balance, largest first. Malformed accounts are skipped.
        """
        # Token-2022 accounts carry extensions past the base layout
        data_size = SPL_ACCOUNT_SIZE if mint_info.program_id == TOKEN_PROGRAM_ID else None
        accounts = await self._rpc.get_program_accounts(
            mint_info.program_id, mint=mint, data_size=data_size
        )

        holders: list[HolderRecord] = []
        skipped = 0
        for account in accounts:
            try:
                token_account = decode_token_account(account.data)
            except AccountDecodeError:
                skipped += 1
                continue
            if token_account.mint != mint or not token_account.is_initialized:
                skipped += 1
                continue
            if token_account.amount <= self._min_raw_balance:
                continue
            holders.append(
                HolderRecord(
                    token_account=account.pubkey,
                    owner=token_account.owner,
                    raw_balance=token_account.amount,
                )
            )

        holders.sort(key=lambda h: h.raw_balance, reverse=True)
        logger.info(
            f"[CHAIN] {mint[:12]}: {len(accounts)} token accounts, "
            f"{len(holders)} holders, {skipped} skipped"
        )
        return holders

    async def resolve_owners(self, addresses: list[str]) -> dict[str, str | None]:
        """Map each address to the program that owns its account.

        Batches of ``batch_size`` run ``batch_concurrency`` at a time. A failed
        batch leaves its addresses as None (unknown) instead of failing the
        whole resolution.
        """
        unique = list(dict.fromkeys(addresses))
        resolved: dict[str, str | None] = {addr: None for addr in unique}
        batches = [
            unique[i:i + self._batch_size]
            for i in range(0, len(unique), self._batch_size)
        ]
        wave_size = self._batch_concurrency

        for wave_num, start in enumerate(range(0, len(batches), wave_size), start=1):
            wave = batches[start:start + wave_size]
            results = await asyncio.gather(
                *(self._rpc.get_multiple_accounts(batch) for batch in wave),
                return_exceptions=True,
            )
            for batch, result in zip(wave, results):
                if isinstance(result, Exception):
                    logger.warning(
                        f"[CHAIN] Owner batch of {len(batch)} failed, "
                        f"treating as unknown: {type(result).__name__}: {result}"
                    )
                    continue
                if isinstance(result, BaseException):
                    raise result
                for addr, account in zip(batch, result):
                    if account is not None:
                        resolved[addr] = account.owner
            logger.debug(
                f"[CHAIN] Owner wave {wave_num}: {sum(len(b) for b in wave)} addresses, "
                f"{len(wave)} RPC calls"
            )

        return resolved
