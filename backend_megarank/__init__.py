"""
Backend MegaRank — activity aggregation and reputation scoring for MegaETH addresses.

Pulls raw transaction history from a Blockscout explorer, reduces it into
durable per-address metrics, and turns those into a multiplier-weighted
score with a global dense rank. Modular layout: explorer client, analysis
engine, identity resolver, database, aggregation service, API server.
"""

__version__ = "0.1.0"
