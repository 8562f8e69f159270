# src/rwabuild/application/__init__.py
"""
Application Layer - Orchestration Services

Portfolio aggregation, issuance and transfer, AMM lifecycle, wallet
utilities and health checks, each built over an injected LedgerGateway.
"""
