# src/rwabuild/adapters/tools/registry.py
"""
Tool Registry - Named Operations with Typed Inputs

Maps tool names to a schema and an async handler. ``invoke`` validates the
parameters, opens a fresh ledger session, runs the handler under the
caller's deadline and renders a tagged result. The session is released
when the handler finishes, fails or is cancelled by the deadline.

Files that USE this module:
- rwabuild.app (one tool call per process run)

Files that this module USES:
- rwabuild.adapters.tools.schemas (input models)
- rwabuild.application.session (Services bundle)
- rwabuild.application.health (offline health tool)
- rwabuild.domain.results (Success / Failure rendering)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncContextManager, Awaitable, Callable, Dict, List, Mapping, Optional, Type

from pydantic import ValidationError as SchemaError

from rwabuild.adapters.tools import schemas
from rwabuild.application.health import HealthChecker
from rwabuild.application.issuance_service import TokenizeRequest
from rwabuild.application.session import Services
from rwabuild.domain.errors import (
    ConfigurationError,
    DomainError,
    InsufficientBalanceError,
    LedgerUnavailableError,
    ValidationError,
)
from rwabuild.domain.results import Failure, OperationResult, Success

log = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncContextManager[Services]]
Handler = Callable[[Any, Any], Awaitable[Any]]

DEFAULT_TIMEOUT_SECONDS = 120.0


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    schema: Type[schemas.ToolInput]
    handler: Handler
    requires_session: bool = True

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.schema.model_json_schema(),
        }


# --- Portfolio handlers ---

async def _get_portfolio(s: Services, a: schemas.AddressInput) -> Any:
    return await s.portfolio.get_holdings(a.address)


async def _get_asset_info(s: Services, a: schemas.TokenIdInput) -> Any:
    return await s.portfolio.require_asset(a.token_id)


async def _get_token_supply(s: Services, a: schemas.TokenIdInput) -> Any:
    return await s.portfolio.get_token_supply(a.token_id)


async def _get_token_holders(s: Services, a: schemas.TokenHoldersInput) -> Any:
    return await s.portfolio.get_token_holders(a.token_id, a.min_balance)


# --- Issuance handlers ---

async def _tokenize_asset(s: Services, a: schemas.TokenizeAssetInput) -> Any:
    return await s.issuance.tokenize_asset(TokenizeRequest(**a.model_dump()))


async def _send_token(s: Services, a: schemas.SendTokenInput) -> Any:
    return await s.issuance.send_token(a.token_id, a.destination, a.amount, a.destination_tag, a.memo)


async def _plan_yield(s: Services, a: schemas.PlanYieldInput) -> Any:
    return await s.issuance.plan_yield_distribution(a.token_id, a.annual_rate, a.frequency, a.principal)


async def _distribute_yield(s: Services, a: schemas.DistributeYieldInput) -> Any:
    return await s.issuance.distribute_yield(a.token_id, a.total_amount, a.recipients, a.memo)


# --- Wallet handlers ---

async def _wallet_info(s: Services, a: schemas.NoInput) -> Any:
    return await s.wallet.get_wallet_info()


async def _validate_address(s: Services, a: schemas.AddressInput) -> Any:
    return await s.wallet.validate_address(a.address)


async def _account_balances(s: Services, a: schemas.OptionalAddressInput) -> Any:
    return await s.wallet.get_account_balances(a.address)


async def _send_xrp(s: Services, a: schemas.SendXrpInput) -> Any:
    return await s.wallet.send_xrp(a.destination, a.amount, a.destination_tag, a.memo)


async def _create_trustline(s: Services, a: schemas.CreateTrustlineInput) -> Any:
    return await s.wallet.create_trustline(a.currency, a.issuer, a.limit)


async def _transaction_history(s: Services, a: schemas.TransactionHistoryInput) -> Any:
    return await s.wallet.get_transaction_history(a.address, a.limit)


# --- AMM handlers ---

async def _amm_info(s: Services, a: schemas.TokenIdInput) -> Any:
    return await s.amm.get_pool_info(a.token_id)


async def _create_pool(s: Services, a: schemas.CreatePoolInput) -> Any:
    return await s.amm.create_pool(a.token_id, a.token_amount, a.xrp_amount, a.trading_fee)


async def _deposit(s: Services, a: schemas.DepositInput) -> Any:
    return await s.amm.deposit(
        a.token_id, a.mode, a.token_amount, a.xrp_amount, a.lp_tokens_out, a.slippage_percent
    )


async def _withdraw(s: Services, a: schemas.WithdrawInput) -> Any:
    return await s.amm.withdraw(a.token_id, a.mode, a.lp_tokens, a.token_amount, a.xrp_amount, a.percentage)


async def _quote_swap(s: Services, a: schemas.SwapInput) -> Any:
    return await s.amm.quote_swap(a.from_asset, a.to_asset, a.amount, a.desired_output, a.slippage_percent)


async def _swap(s: Services, a: schemas.ExecuteSwapInput) -> Any:
    return await s.amm.swap(
        a.from_asset, a.to_asset, a.amount, a.desired_output, a.slippage_percent, a.memo
    )


# --- Offline handlers ---

async def _health_check(checker: HealthChecker, a: schemas.NoInput) -> Any:
    # requests is blocking
    return await asyncio.to_thread(checker.get_overall_health)


def default_tools() -> List[Tool]:
    return [
        Tool("rwa_get_portfolio", "Classified holdings, valuation and diversification of an account",
             schemas.AddressInput, _get_portfolio),
        Tool("rwa_get_asset_info", "Tokenization metadata of an asset token",
             schemas.TokenIdInput, _get_asset_info),
        Tool("rwa_get_token_supply", "Outstanding supply and holder count of an asset token",
             schemas.TokenIdInput, _get_token_supply),
        Tool("rwa_get_token_holders", "Holders of an asset token with ownership share",
             schemas.TokenHoldersInput, _get_token_holders),
        Tool("rwa_tokenize_asset", "Tokenize a real-world asset and issue its supply to the operator wallet",
             schemas.TokenizeAssetInput, _tokenize_asset),
        Tool("rwa_send_token", "Transfer asset tokens from the operator wallet",
             schemas.SendTokenInput, _send_token),
        Tool("rwa_plan_yield_distribution", "Compute a yield payout schedule without submitting",
             schemas.PlanYieldInput, _plan_yield),
        Tool("rwa_distribute_yield", "Pay XRP yield to token holders",
             schemas.DistributeYieldInput, _distribute_yield),
        Tool("rwa_get_wallet_info", "Operator wallet address, balance and reserve health",
             schemas.NoInput, _wallet_info),
        Tool("rwa_validate_address", "Check an address format and whether the account exists",
             schemas.AddressInput, _validate_address),
        Tool("rwa_get_account_balances", "XRP and token balances of an account",
             schemas.OptionalAddressInput, _account_balances),
        Tool("rwa_send_xrp", "Send XRP from the operator wallet",
             schemas.SendXrpInput, _send_xrp),
        Tool("rwa_create_trustline", "Open a trust line from the operator wallet",
             schemas.CreateTrustlineInput, _create_trustline),
        Tool("rwa_get_transaction_history", "Recent transactions of an account",
             schemas.TransactionHistoryInput, _transaction_history),
        Tool("rwa_get_amm_info", "Pool reserves, price and the operator's LP position",
             schemas.TokenIdInput, _amm_info),
        Tool("rwa_create_amm_pool", "Create a token/XRP AMM pool",
             schemas.CreatePoolInput, _create_pool),
        Tool("rwa_amm_deposit", "Add liquidity to a token/XRP pool",
             schemas.DepositInput, _deposit),
        Tool("rwa_amm_withdraw", "Remove liquidity from a token/XRP pool",
             schemas.WithdrawInput, _withdraw),
        Tool("rwa_quote_swap", "Estimate a swap against current pool reserves",
             schemas.SwapInput, _quote_swap),
        Tool("rwa_swap", "Execute a swap through AMM pools",
             schemas.ExecuteSwapInput, _swap),
        Tool("rwa_health_check", "Ledger reachability and credential diagnostics",
             schemas.NoInput, _health_check, requires_session=False),
    ]


def _schema_failure(error: SchemaError) -> Failure:
    problems = [
        {"field": ".".join(str(p) for p in e["loc"]) or None, "message": e["msg"]}
        for e in error.errors()
    ]
    first = problems[0] if problems else {"field": None, "message": "Invalid parameters"}
    message = f"{first['field']}: {first['message']}" if first["field"] else first["message"]
    return Failure(kind=ValidationError.__name__, message=message,
                   details={"field": first["field"], "errors": problems})


class ToolRegistry:
    """Named tools bound to a session factory."""

    def __init__(
        self,
        session_factory: SessionFactory,
        health_checker: Optional[HealthChecker] = None,
        default_timeout: float = DEFAULT_TIMEOUT_SECONDS,
        tools: Optional[List[Tool]] = None,
    ):
        self.session_factory = session_factory
        self.health_checker = health_checker
        self.default_timeout = default_timeout
        self._tools: Dict[str, Tool] = {}
        for tool in default_tools() if tools is None else tools:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool {tool.name} is already registered")
        self._tools[tool.name] = tool

    @property
    def names(self) -> List[str]:
        return sorted(self._tools)

    def list_tools(self) -> List[Dict[str, Any]]:
        return [self._tools[name].describe() for name in self.names]

    async def _run(self, tool: Tool, args: schemas.ToolInput) -> Any:
        if not tool.requires_session:
            if self.health_checker is None:
                raise ConfigurationError(f"{tool.name} is not available in this process")
            return await tool.handler(self.health_checker, args)
        async with self.session_factory() as services:
            return await tool.handler(services, args)

    async def call(
        self, name: str, params: Optional[Mapping[str, Any]] = None, timeout: Optional[float] = None
    ) -> OperationResult:
        """
        Run one tool and return a tagged result. Domain errors never escape.
        """
        tool = self._tools.get(name)
        if tool is None:
            return Failure.from_error(ValidationError(f"Unknown tool: {name}", field="tool"))
        try:
            args = tool.schema.model_validate(dict(params or {}))
        except SchemaError as e:
            return _schema_failure(e)

        deadline = timeout or self.default_timeout
        try:
            payload = await asyncio.wait_for(self._run(tool, args), deadline)
        except asyncio.TimeoutError:
            log.error("%s did not complete within %ss", name, deadline)
            return Failure.from_error(LedgerUnavailableError(f"{name} did not complete within {deadline}s"))
        except (ValidationError, InsufficientBalanceError) as e:
            log.info("%s rejected: %s", name, e)
            return Failure.from_error(e)
        except DomainError as e:
            log.error("%s failed: %s: %s", name, e.kind, e)
            return Failure.from_error(e)
        return Success(payload)

    async def invoke(
        self, name: str, params: Optional[Mapping[str, Any]] = None, timeout: Optional[float] = None
    ) -> Dict[str, Any]:
        """Run one tool and render the result as a JSON-safe dict."""
        result = await self.call(name, params, timeout)
        return result.to_dict()
