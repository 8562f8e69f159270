# src/rwabuild/adapters/__init__.py
"""
Adapters Layer - External System Integrations

Ledger access (xrpl-py) and the tool invocation boundary.
"""
