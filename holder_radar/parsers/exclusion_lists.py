"""Known non-organic holders and AMM/DEX program IDs.

Wallets listed here hold tokens on behalf of many users (exchange deposit
and hot wallets, bridge custody, pool authorities) or as liquidity.
"""

# Owner wallet → label
EXCLUDED_OWNERS: dict[str, str] = {
    "5Q544fKrFoe6tsEbD7S8EmxGTJYAKtTVhAW5Q5pge4j1": "Raydium LP authority",
    "u6PJ8DtQuPFnfmwHbGFULQ4u4EgjDiyYKjVEsynXq2w": "Gate.io",
    "A77HErqtfN1hLLpvZ9pCtu66FEtM8BveoaKbbMoZ4RiR": "Bitget",
    "HVh6wHNBAsG3pq1Bj5oCzRjoWKVogEDHwUHkRz3ekFgt": "KuCoin",
    "ASTyfSima4LLAdDgoFGkgqoKowG1LZFDr9fAQrg7iaJZ": "MEXC",
    "5PAhQiYdLBd6SVdjzBQDxUAEFyDdF5ExNPQfcscnPRj5": "MEXC #2",
    "3ADzk5YDP9sgorvPSs9YPxigJiSqhgddpwHwwPwmEFib": "Binance Deposit",
    "5tzFkiKscXHK5ZXCGbXZxdw7gTjjD1mBwuoFbhUvuAi9": "Binance #2",
    "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM": "Binance #3",
    "AC5RDfQFmDS1deWZos921JfqscXdByf8BKHs5ACWjtW2": "Bybit",
    "FWznbcNXWQuHTawe9RxvQ2LdCENssh12dsznf4RiouN5": "Kraken",
    "9cNE6KBg2Xmf34FPMMvzDF8yUHMrgLRzBV3vD7b1JnUS": "Kraken Deposit",
    "GugU1tP7doLeTw9hQP51xRJyS8Da1fWxuiy2rVrnMD2m": "Wormhole Custody",
    "9un5wqE3q4oCjyrDkwsdD48KteCJitQX5978Vh7KKxHo": "OKX #2",
    "6FEVkH17P9y8Q9aCkDdPcMDjvj7SVxrTETaYEm8f51Jy": "Crypto.com #1",
}

# Program ID → label. A holder wallet owned by one of these is a pool/position PDA.
AMM_PROGRAM_IDS: dict[str, str] = {
    "CAMMCzo5YL8w4VFF8KVHrK22GGUsp5VTaW7grrKgrWqK": "Raydium CLMM",
    "LBUZKhRxPF3XUpBCjp4YzTKgLccjZhTSDM9YuVaPwxo": "Meteora DLMM",
    "whirLbMiicVdio4qvUfM5KAg6Ct8VwpYzGff3uctyCc": "Orca Whirlpool",
}

# (market cap strictly above, share of supply), evaluated top-down, first match wins
MARKET_CAP_TIERS: tuple[tuple[float, float], ...] = (
    (1_000_000_000, 0.005),
    (100_000_000, 0.003),
    (10_000_000, 0.002),
    (5_000_000, 0.001),
)
FALLBACK_THRESHOLD = 0.0003
