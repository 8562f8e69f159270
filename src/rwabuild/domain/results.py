# src/rwabuild/domain/results.py
"""
Operation Results - Tagged Success/Failure Values

Every tool invocation returns either ``Success`` with a payload or
``Failure`` carrying an error kind from the domain taxonomy. ``to_dict``
renders either one into a JSON-safe structure (Decimals as strings,
dataclasses and pydantic models expanded).

Files that USE this module:
- rwabuild.adapters.tools.registry (wraps handler outcomes)
- rwabuild.app (prints rendered results)

Files that this module USES:
- rwabuild.domain.errors (DomainError for Failure.from_error)
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Union

from pydantic import BaseModel

from rwabuild.domain.errors import DomainError


def to_jsonable(value: Any) -> Any:
    """Recursively convert domain values into JSON-compatible primitives."""
    if isinstance(value, Decimal):
        return format(value.normalize(), "f") if value.is_finite() else str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(v) for v in value]
    return value


@dataclass(frozen=True)
class Success:
    payload: Any

    @property
    def ok(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {"status": "success", "result": to_jsonable(self.payload)}


@dataclass(frozen=True)
class Failure:
    kind: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return False

    @classmethod
    def from_error(cls, error: DomainError) -> "Failure":
        return cls(kind=error.kind, message=str(error), details=error.details())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "error",
            "error": {"kind": self.kind, "message": self.message, **to_jsonable(self.details)},
        }


OperationResult = Union[Success, Failure]
