"""Tests for SPL mint / token account decoding."""

import pytest

from holder_radar.parsers.account_decoder import (
    TOKEN_2022_PROGRAM_ID,
    AccountDecodeError,
    AccountState,
    MintInfo,
    decode_mint,
    decode_token_account,
    is_valid_address,
)
from tests.factories import (
    make_mint_data,
    make_token_2022_mint_data,
    make_token_account_data,
    new_address,
)


class TestDecodeMint:
    def test_supply_and_decimals(self) -> None:
        info = decode_mint(make_mint_data(1_000_000_000_000, 6))
        assert info.raw_supply == 1_000_000_000_000
        assert info.decimals == 6
        assert info.supply == 1_000_000.0

    def test_program_id_is_kept(self) -> None:
        info = decode_mint(make_mint_data(10, 0), program_id=TOKEN_2022_PROGRAM_ID)
        assert info.program_id == TOKEN_2022_PROGRAM_ID

    def test_token_2022_extensions_are_ignored(self) -> None:
        data = make_token_2022_mint_data(500, 2, b"\x01" * 120)
        info = decode_mint(data, program_id=TOKEN_2022_PROGRAM_ID)
        assert info.raw_supply == 500
        assert info.decimals == 2

    def test_token_account_is_not_a_mint(self) -> None:
        data = bytearray(make_token_account_data(new_address(), new_address(), 123))
        data[36:44] = (123).to_bytes(8, "little")
        data[45] = 1
        with pytest.raises(AccountDecodeError):
            decode_mint(bytes(data))
        with pytest.raises(AccountDecodeError):
            decode_mint(bytes(data), program_id=TOKEN_2022_PROGRAM_ID)

    def test_token_2022_account_type_must_be_mint(self) -> None:
        data = bytearray(make_token_2022_mint_data(500, 2, b"\x00" * 8))
        data[165] = 2
        with pytest.raises(AccountDecodeError):
            decode_mint(bytes(data), program_id=TOKEN_2022_PROGRAM_ID)

    def test_extended_data_rejected_for_legacy_program(self) -> None:
        data = make_token_2022_mint_data(500, 2, b"\x00" * 8)
        with pytest.raises(AccountDecodeError):
            decode_mint(data)

    def test_too_short(self) -> None:
        with pytest.raises(AccountDecodeError):
            decode_mint(b"\x00" * 40)

    def test_uninitialized_mint(self) -> None:
        with pytest.raises(AccountDecodeError):
            decode_mint(make_mint_data(10, 0, initialized=False))


class TestDecodeTokenAccount:
    def test_fields(self) -> None:
        mint, owner = new_address(), new_address()
        account = decode_token_account(make_token_account_data(mint, owner, 42))
        assert account.mint == mint
        assert account.owner == owner
        assert account.amount == 42
        assert account.state == AccountState.INITIALIZED
        assert account.is_initialized

    def test_frozen_counts_as_initialized(self) -> None:
        data = make_token_account_data(new_address(), new_address(), 1, state=2)
        account = decode_token_account(data)
        assert account.state == AccountState.FROZEN
        assert account.is_initialized

    def test_uninitialized(self) -> None:
        data = make_token_account_data(new_address(), new_address(), 1, state=0)
        assert not decode_token_account(data).is_initialized

    def test_unknown_state(self) -> None:
        data = make_token_account_data(new_address(), new_address(), 1, state=7)
        with pytest.raises(AccountDecodeError):
            decode_token_account(data)

    def test_too_short(self) -> None:
        with pytest.raises(AccountDecodeError):
            decode_token_account(b"\x00" * 100)


def test_is_valid_address() -> None:
    assert is_valid_address(new_address())
    assert is_valid_address("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
    assert not is_valid_address("not-a-mint")
    assert not is_valid_address("")


def test_mint_info_supply_zero_decimals() -> None:
    assert MintInfo(decimals=0, raw_supply=7).supply == 7.0
