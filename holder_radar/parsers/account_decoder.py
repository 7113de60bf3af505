"""SPL Token / Token-2022 account layout decoding.

Both programs share the same base layouts; Token-2022 appends extension
TLV data after them, which the snapshot does not need.
"""

import struct
from dataclasses import dataclass
from enum import IntEnum

from solders.pubkey import Pubkey

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"
TOKEN_PROGRAM_IDS = frozenset({TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID})

# SPL Token mint layout: 82 bytes
# [0:36]   mintAuthorityOption (4) + mintAuthority (32)
# [36:44]  supply (u64)
# [44:45]  decimals (u8)
# [45:46]  isInitialized (bool)
# [46:82]  freezeAuthorityOption (4) + freezeAuthority (32)
SPL_MINT_SIZE = 82

# SPL Token account layout: 165 bytes
# [0:32]    mint
# [32:64]   owner
# [64:72]   amount (u64)
# [72:108]  delegateOption (4) + delegate (32)
# [108:109] state (u8)
# [109:165] isNative, delegatedAmount, closeAuthority
SPL_ACCOUNT_SIZE = 165

# Token-2022 accounts with extensions pad the base layout to 165 bytes and
# put an AccountType byte right after it
ACCOUNT_TYPE_OFFSET = SPL_ACCOUNT_SIZE
ACCOUNT_TYPE_MINT = 1


class AccountState(IntEnum):
    UNINITIALIZED = 0
    INITIALIZED = 1
    FROZEN = 2


class AccountDecodeError(ValueError):
    pass


@dataclass(frozen=True)
class MintInfo:
    """Decimals and raw supply of a mint, read fresh for every snapshot."""

    decimals: int
    raw_supply: int
    program_id: str = TOKEN_PROGRAM_ID

    @property
    def supply(self) -> float:
        """Decimal-adjusted supply."""
        return self.raw_supply / 10**self.decimals


@dataclass(frozen=True)
class TokenAccount:
    mint: str
    owner: str
    amount: int
    state: AccountState

    @property
    def is_initialized(self) -> bool:
        # Frozen accounts still hold balance; only never-initialized ones are skipped
        return self.state != AccountState.UNINITIALIZED


def decode_mint(raw: bytes, *, program_id: str = TOKEN_PROGRAM_ID) -> MintInfo:
    if len(raw) < SPL_MINT_SIZE:
        raise AccountDecodeError(f"Mint data too short: {len(raw)} bytes")
    if not _is_mint_layout(raw, program_id):
        raise AccountDecodeError(f"Not a mint account: {len(raw)} bytes of data")
    if raw[45] != 1:
        raise AccountDecodeError("Mint is not initialized")

    supply = struct.unpack_from("<Q", raw, 36)[0]
    decimals = raw[44]
    return MintInfo(decimals=decimals, raw_supply=supply, program_id=program_id)


def _is_mint_layout(raw: bytes, program_id: str) -> bool:
    if len(raw) == SPL_MINT_SIZE:
        return True
    if program_id != TOKEN_2022_PROGRAM_ID:
        return False
    return len(raw) > ACCOUNT_TYPE_OFFSET and raw[ACCOUNT_TYPE_OFFSET] == ACCOUNT_TYPE_MINT


def decode_token_account(raw: bytes) -> TokenAccount:
    if len(raw) < SPL_ACCOUNT_SIZE:
        raise AccountDecodeError(f"Token account data too short: {len(raw)} bytes")

    state_byte = raw[108]
    try:
        state = AccountState(state_byte)
    except ValueError:
        raise AccountDecodeError(f"Unknown account state {state_byte}") from None

    return TokenAccount(
        mint=str(Pubkey.from_bytes(raw[0:32])),
        owner=str(Pubkey.from_bytes(raw[32:64])),
        amount=struct.unpack_from("<Q", raw, 64)[0],
        state=state,
    )


def is_valid_address(address: str) -> bool:
    """True if ``address`` is a base58-encoded 32-byte public key."""
    try:
        Pubkey.from_string(address)
    except ValueError:
        return False
    return True
