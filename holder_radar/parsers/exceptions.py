class HolderRadarError(Exception):
    pass


class ChainUnavailableError(HolderRadarError):
    """RPC transport, timeout or provider-side failure. Retried next tick."""


class InvalidMintError(HolderRadarError):
    """Address does not decode or is not a token mint account."""


class PriceUnavailableError(HolderRadarError):
    """No USD quote for the mint (unlisted or no liquidity yet)."""


class StorageError(HolderRadarError):
    pass
