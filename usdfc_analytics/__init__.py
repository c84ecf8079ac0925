"""
USDFC Analytics: event classification and stateful aggregation for the USDFC
stablecoin protocol on Filecoin.

Consumes ordered contract events (token transfers, trove lifecycle, stability
pool, staking, liquidations, redemptions, price feed, DEX and bridge activity)
and maintains per-account rollups, per-position lifecycle records, and
global/daily statistics behind a swappable entity store.
"""

__version__ = "0.1.0"
