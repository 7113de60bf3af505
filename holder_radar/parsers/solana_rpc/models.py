"""Pydantic models for Solana JSON-RPC account responses."""

from pydantic import BaseModel


class RpcAccount(BaseModel):
    """Account as returned by getAccountInfo / getProgramAccounts / getMultipleAccounts."""

    pubkey: str = ""  # only set for getProgramAccounts entries
    owner: str  # owning program ID
    lamports: int = 0
    data: bytes = b""
    executable: bool = False
