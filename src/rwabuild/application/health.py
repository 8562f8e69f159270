# src/rwabuild/application/health.py
"""
Health Checker - Ledger Reachability and Credential Diagnostics

Checks that the configured XRPL network answers a JSON-RPC ``server_info``
call and that the configured seeds derive valid addresses. Seeds are never
included in any status message or detail.

Files that USE this module:
- rwabuild.app (``health`` command)
- rwabuild.adapters.tools.registry (rwa_health_check tool)

Files that this module USES:
- rwabuild.config.settings (network endpoints and credentials)
- rwabuild.adapters.ledger.signing (address derivation)
- requests (HTTP library for the JSON-RPC probe)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests  # type: ignore[import-untyped]  # HTTP library for the server_info probe

from rwabuild.adapters.ledger.signing import SigningContext
from rwabuild.config.settings import Settings
from rwabuild.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class HealthStatus:
    """Represents the health status of a component."""
    is_healthy: bool
    message: str
    last_check: datetime
    details: Optional[Dict[str, Any]] = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


class HealthChecker:
    """Health checks for the ledger connection and configured credentials."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def check_ledger(self) -> HealthStatus:
        """Probe the network's JSON-RPC endpoint with server_info."""
        url = self.settings.rpc_url
        try:
            response = requests.post(
                url,
                json={"method": "server_info", "params": [{}]},
                timeout=self.settings.http_timeout_seconds,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Ledger health check failed for %s: %s", url, e)
            return HealthStatus(False, f"Ledger unreachable: {e}", _now(), {"endpoint": url})

        info = (data.get("result") or {}).get("info") if isinstance(data, dict) else None
        if not isinstance(info, dict):
            return HealthStatus(False, "Ledger returned an invalid server_info response", _now(), {"endpoint": url})

        validated = info.get("validated_ledger") or {}
        state = info.get("server_state", "unknown")
        details = {
            "endpoint": url,
            "network": self.settings.xrpl_network,
            "server_state": state,
            "build_version": info.get("build_version"),
            "validated_ledger_seq": validated.get("seq"),
            "reserve_base_xrp": validated.get("reserve_base_xrp"),
            "reserve_inc_xrp": validated.get("reserve_inc_xrp"),
        }
        if not validated:
            return HealthStatus(False, f"Ledger {state}, no validated ledger yet", _now(), details)
        return HealthStatus(True, f"Ledger healthy ({state}, ledger {validated.get('seq')})", _now(), details)

    def check_credentials(self) -> HealthStatus:
        """Derive the operator (and issuer, if set) addresses without touching the network."""
        config = self.settings.ledger_config()
        details: Dict[str, Any] = {}
        try:
            details["operator_address"] = SigningContext(config.credential).address
            if config.issuer_credential is not None:
                details["issuer_address"] = SigningContext(config.issuer_credential, "issuer").address
        except ConfigurationError as e:
            return HealthStatus(False, str(e), _now(), details)

        if details.get("issuer_address") == details["operator_address"]:
            return HealthStatus(False, "Issuer and operator seeds resolve to the same account", _now(), details)
        message = "Credentials valid"
        if "issuer_address" not in details:
            message += " (no issuer seed, tokenization disabled)"
        return HealthStatus(True, message, _now(), details)

    def get_overall_health(self) -> Dict[str, Any]:
        """Aggregate every check; overall healthy only if all checks pass."""
        checks = {
            "ledger": self.check_ledger(),
            "credentials": self.check_credentials(),
        }
        failed = [name for name, check in checks.items() if not check.is_healthy]
        overall = not failed
        return {
            "overall_healthy": overall,
            "status": "healthy" if overall else "degraded",
            "message": "All systems healthy" if overall else f"Degraded - failed: {', '.join(failed)}",
            "failed_components": failed,
            "timestamp": _now().isoformat(),
            "checks": {
                name: {
                    "healthy": check.is_healthy,
                    "message": check.message,
                    "last_check": check.last_check.isoformat(),
                    "details": check.details,
                }
                for name, check in checks.items()
            },
        }
