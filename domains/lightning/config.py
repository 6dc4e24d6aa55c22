"""
Lightning Push Configuration - fixed tables shared by every push run.

Values are immutable; nothing here is written after import.
"""

from types import MappingProxyType

# Coins whose fiat prices are requested alongside the fiat symbols
COINS = ("BTC", "LTC")

# Fiat currencies exposed as amount variables (lowercased: "eur", "usd")
FIATS = ("EUR", "USD")

# Network name (as reported by the node) → coin ticker used for pricing
NETWORK_COINS = MappingProxyType({
    "btc": "BTC",
    "btcregtest": "BTC",
    "btcsignet": "BTC",
    "btctestnet": "BTC",
    "ltc": "LTC",
})

# Base-unit tokens per whole coin
TOKENS_PER_COIN = 100_000_000

# Minimum amount that can be pushed
MIN_TOKENS = 1

# Quiz answers travel as custom records numbered from this type
QUIZ_RECORD_START = 80509
MIN_QUIZ_ANSWERS = 2
MAX_QUIZ_ANSWERS = 10

# Custom record types understood by receiving wallets
MESSAGE_RECORD_TYPE = 34349334
KEYSEND_RECORD_TYPE = 5482373484

# Public keys are 33-byte compressed points in hex
PUBLIC_KEY_HEX_LENGTH = 66


def get_price_symbols() -> list[str]:
    """Symbols requested from the price feed for each push."""
    return [*COINS, *FIATS]
