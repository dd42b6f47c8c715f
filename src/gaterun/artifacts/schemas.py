from __future__ import annotations

"""Outcome schemas.

CONTRACT
- Inputs: Pydantic models
- Outputs:
  - Validated JSON-serializable objects (CheckOutcome, GateResult)
- Invariants:
  - GateResult.checks holds only the checks that were invoked, in order
  - status == "success" iff exit_code == 0
  - All schemas have schema_version int field
- Failure:
  - Raises ValidationError on schema mismatch
"""

from typing import Literal

from pydantic import BaseModel, Field, model_validator


class CheckOutcome(BaseModel):
    schema_version: int = 1
    name: str
    ok: bool
    exit_code: int
    launched: bool = True
    elapsed_s: float = 0.0
    details: str = ""


class GateResult(BaseModel):
    schema_version: int = 1
    status: Literal["success", "failure"]
    exit_code: int
    checks: list[CheckOutcome] = Field(default_factory=list)
    failed_check: str | None = None

    @model_validator(mode="after")
    def _status_matches_exit_code(self) -> "GateResult":
        if (self.status == "success") != (self.exit_code == 0):
            raise ValueError(f"status {self.status!r} does not match exit_code {self.exit_code}")
        return self

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def invoked(self) -> list[str]:
        return [c.name for c in self.checks]
