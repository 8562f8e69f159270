# src/rwabuild/app.py
"""
Application Entry Point - One Tool Call per Run

Composition root: configures logging, loads settings (environment plus
``--name=value`` flags), builds the tool registry and runs a single tool.
The JSON result goes to stdout; logs go to stderr and the optional log file.

Usage:
    python -m rwabuild list
    python -m rwabuild health
    python -m rwabuild <tool_name> ['{"param": "value"}'] [--xrpl_network=devnet ...]

Files that USE this module:
- rwabuild.__main__ (python -m rwabuild)
- rwa-build console script

Files that this module USES:
- rwabuild.shared.logging_conf (setup_logging)
- rwabuild.config (load_settings, parse_flag_overrides)
- rwabuild.application.session (open_session)
- rwabuild.application.health (HealthChecker)
- rwabuild.adapters.tools (ToolRegistry)
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError as SchemaError

from rwabuild.adapters.tools import ToolRegistry, default_tools
from rwabuild.application.health import HealthChecker
from rwabuild.application.session import open_session
from rwabuild.config import Settings, load_settings, parse_flag_overrides
from rwabuild.domain.errors import ConfigurationError
from rwabuild.domain.results import Failure
from rwabuild.shared.logging_conf import setup_logging

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2

HEALTH_TOOL = "rwa_health_check"


def _emit(payload: Dict[str, Any]) -> None:
    json.dump(payload, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")


def _settings_failure(error: SchemaError) -> Failure:
    # only locations and messages; pydantic's str() would echo raw input values
    problems = ["{}: {}".format(".".join(str(p) for p in e["loc"]), e["msg"]) for e in error.errors()]
    return Failure.from_error(ConfigurationError("Invalid configuration: " + "; ".join(problems)))


def build_registry(settings: Settings) -> ToolRegistry:
    config = settings.ledger_config()
    return ToolRegistry(
        session_factory=lambda: open_session(config, settings),
        health_checker=HealthChecker(settings),
        default_timeout=float(settings.operation_timeout_seconds),
    )


def _parse_params(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    params = json.loads(raw)
    if not isinstance(params, dict):
        raise ValueError("Tool parameters must be a JSON object")
    return params


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Run one command and return the process exit code.

    Returns:
        0 on success, 1 if the tool returned an error, 2 on usage or configuration errors
    """
    args: List[str] = list(sys.argv[1:] if argv is None else argv)
    positional = [a for a in args if not a.startswith("--")]
    if not positional:
        sys.stderr.write(__doc__ or "")
        return EXIT_USAGE

    command = positional[0]
    if command == "list":
        _emit({"tools": [tool.describe() for tool in default_tools()]})
        return EXIT_OK

    try:
        settings = load_settings(parse_flag_overrides(args))
    except SchemaError as e:
        _emit(_settings_failure(e).to_dict())
        return EXIT_USAGE

    setup_logging(
        level=getattr(logging, settings.log_level),
        log_file=settings.log_file,
        log_dir=settings.log_dir,
        max_bytes=settings.log_max_bytes,
        backup_count=settings.log_backup_count,
        log_to_stdout=settings.log_stdout,
    )
    logger = logging.getLogger(__name__)

    tool_name = HEALTH_TOOL if command == "health" else command
    try:
        params = _parse_params(positional[1] if len(positional) > 1 else None)
    except ValueError as e:
        _emit(Failure("ValidationError", f"Invalid tool parameters: {e}").to_dict())
        return EXIT_USAGE

    logger.info("Running %s on %s", tool_name, settings.xrpl_network)
    registry = build_registry(settings)
    result = asyncio.run(registry.invoke(tool_name, params))
    _emit(result)
    return EXIT_OK if result["status"] == "success" else EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
