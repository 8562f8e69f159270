# src/rwabuild/__init__.py
"""
RWA Build - Real-World Asset Tokenization on the XRP Ledger

A client-side orchestration layer that issues, transfers and trades tokens
representing real-world assets, with constant-product AMM math for pricing
swaps and liquidity operations.
"""

__version__ = "0.3.0"
