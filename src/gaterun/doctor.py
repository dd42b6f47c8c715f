from __future__ import annotations

"""Preflight checks.

CONTRACT
- Inputs: Repo path, optional config path
- Outputs (required):
  - DoctorReport (ok=bool, items=[(name, status, details)])
- Invariants:
  - Checks: pipeline config, working directory, one item per check executable
  - Does not run any check (read-only, nothing is launched)
- Failure:
  - Returns DoctorReport with ok=False if the config is invalid, the working
    directory is missing, or a check's executable cannot be resolved
"""

import os
from dataclasses import dataclass
from pathlib import Path

from .config import ConfigError, resolve_config
from .util.shell import which


@dataclass(frozen=True)
class DoctorItem:
    name: str
    status: str
    details: str


@dataclass(frozen=True)
class DoctorReport:
    ok: bool
    items: list[DoctorItem]


def doctor_report(repo: Path, config_path: Path | None = None) -> DoctorReport:
    items: list[DoctorItem] = []

    try:
        cfg = resolve_config(repo, config_path)
    except ConfigError as e:
        return DoctorReport(ok=False, items=[DoctorItem("pipeline config", "FAIL", str(e))])

    ok = True
    if cfg.source is None:
        items.append(DoctorItem("pipeline config", "INFO", "No .gate/pipeline.yaml; using defaults"))
    else:
        items.append(DoctorItem("pipeline config", "OK", f"{len(cfg.pipeline)} checks in {cfg.source}"))

    cwd = cfg.context.cwd
    if cwd.is_dir():
        items.append(DoctorItem("workdir", "OK", str(cwd)))
    else:
        ok = False
        items.append(DoctorItem("workdir", "FAIL", f"Not a directory: {cwd}"))

    # Same PATH the children get: the caller's, unless the config overrides it.
    search_path = (os.environ | cfg.context.env).get("PATH", "")
    for check in cfg.pipeline:
        exe = check.command[0]
        # Relative paths like ./scripts/lint.sh resolve against the workdir.
        if "/" in exe and not Path(exe).is_absolute():
            found = which(str(cwd / exe))
        else:
            found = which(exe, path=search_path)
        if found:
            items.append(DoctorItem(f"check {check.name}", "OK", found))
        else:
            ok = False
            items.append(DoctorItem(f"check {check.name}", "FAIL", f"{exe} not found or not executable"))

    return DoctorReport(ok=ok, items=items)
