# src/rwabuild/application/session.py
"""
Session Wiring - Per-Invocation Gateway and Services

Opens one ledger connection per tool invocation and builds the services on
top of it. Nothing here outlives the ``async with`` block: the connection
is closed on every exit path and the signing contexts go out of scope with
the session.

Files that USE this module:
- rwabuild.app (session factory for the tool registry)

Files that this module USES:
- rwabuild.adapters.ledger.xrpl_gateway (default gateway factory)
- rwabuild.application.* (service classes)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncContextManager, AsyncIterator, Callable, Optional

from rwabuild.adapters.ledger.base import LedgerGateway
from rwabuild.adapters.ledger.signing import SigningContext
from rwabuild.adapters.ledger.xrpl_gateway import XrplLedgerGateway
from rwabuild.application.amm_service import AmmService
from rwabuild.application.issuance_service import IssuanceService
from rwabuild.application.portfolio_service import PortfolioAggregator
from rwabuild.application.wallet_service import WalletService
from rwabuild.config.settings import LedgerConfig, Settings

GatewayFactory = Callable[[str], AsyncContextManager[LedgerGateway]]


@dataclass
class Services:
    """Everything one tool invocation may need."""
    gateway: LedgerGateway
    portfolio: PortfolioAggregator
    issuance: IssuanceService
    amm: AmmService
    wallet: WalletService


def build_services(gateway: LedgerGateway, config: LedgerConfig, settings: Settings) -> Services:
    operator = SigningContext(config.credential)
    issuer: Optional[SigningContext] = None
    if config.issuer_credential is not None:
        issuer = SigningContext(config.issuer_credential, label="issuer")

    portfolio = PortfolioAggregator(
        gateway,
        reserve_threshold=settings.reserve_threshold_xrp,
        lookup_concurrency=settings.metadata_lookup_concurrency,
        history_page_size=settings.history_page_size,
        history_max_pages=settings.history_max_pages,
    )
    return Services(
        gateway=gateway,
        portfolio=portfolio,
        issuance=IssuanceService(
            gateway, portfolio, operator, issuer,
            network=config.network, reserve_xrp=settings.reserve_threshold_xrp,
        ),
        amm=AmmService(gateway, portfolio, operator),
        wallet=WalletService(gateway, portfolio, operator, network=config.network),
    )


@asynccontextmanager
async def open_session(
    config: LedgerConfig,
    settings: Settings,
    gateway_factory: GatewayFactory = XrplLedgerGateway.connect,
) -> AsyncIterator[Services]:
    """
    Connect to ``config.endpoint`` and yield the wired services.

    Raises:
        ConfigurationError: If a configured seed is malformed
        LedgerUnavailableError: If the node cannot be reached
    """
    async with gateway_factory(config.endpoint) as gateway:
        yield build_services(gateway, config, settings)
