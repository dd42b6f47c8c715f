from __future__ import annotations

"""Configuration models.

CONTRACT
- Inputs: YAML file path (.gate/pipeline.yaml) or dictionary data
- Outputs (required):
  - Validated Check, Pipeline, GateContext, GateConfig objects
- Invariants:
  - Pipeline is non-empty, immutable, and keeps declaration order
  - Check names are unique and match `[A-Za-z0-9][A-Za-z0-9_.-]{0,31}`
  - Without a config file the default pipeline is format -> lint -> test
- Failure:
  - Raises ConfigError on unreadable or invalid YAML, schema violations, bad
    names, empty commands, or empty pipelines (from YAML or direct construction)
"""

import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import yaml

from .util.ids import validate_check_name
from .util.shell import split_cmd

FailPolicy = Literal["abort"]

CONFIG_DIR = ".gate"
CONFIG_FILE = "pipeline.yaml"


class ConfigError(ValueError):
    """Raised when a pipeline definition cannot be loaded."""


@dataclass(frozen=True)
class Check:
    name: str
    command: tuple[str, ...]
    fail_policy: FailPolicy = "abort"

    def __post_init__(self) -> None:
        try:
            validate_check_name(self.name)
        except ValueError as e:
            raise ConfigError(str(e)) from e
        if isinstance(self.command, str):
            raise ConfigError(f"Check {self.name}: command must be an argv sequence, not a string")
        command = tuple(str(a) for a in self.command)
        if not command or not command[0]:
            raise ConfigError(f"Check {self.name}: empty command")
        if self.fail_policy != "abort":
            raise ConfigError(f"Check {self.name}: unsupported fail_policy {self.fail_policy!r}")
        object.__setattr__(self, "command", command)

    def display_command(self) -> str:
        return shlex.join(self.command)


@dataclass(frozen=True)
class Pipeline:
    checks: tuple[Check, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "checks", tuple(self.checks))
        if not self.checks:
            raise ConfigError("Pipeline must contain at least one check.")
        seen: set[str] = set()
        for c in self.checks:
            if c.name in seen:
                raise ConfigError(f"Duplicate check name: {c.name}")
            seen.add(c.name)

    def __iter__(self):
        return iter(self.checks)

    def __len__(self) -> int:
        return len(self.checks)

    def names(self) -> list[str]:
        return [c.name for c in self.checks]


@dataclass(frozen=True)
class GateContext:
    """Working directory and environment the checks run with."""

    cwd: Path
    env: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class GateConfig:
    pipeline: Pipeline
    context: GateContext
    source: Path | None = None  # None means the built-in default pipeline


DEFAULT_CHECKS: tuple[Check, ...] = (
    Check("format", ("cargo", "fmt", "--all")),
    Check("lint", ("cargo", "clippy", "--all-targets", "--all-features", "--", "-D", "warnings")),
    Check("test", ("cargo", "test")),
)


def default_pipeline() -> Pipeline:
    return Pipeline(DEFAULT_CHECKS)


PIPELINE_SCHEMA = {
    "type": "object",
    "properties": {
        "schema_version": {"type": "integer", "enum": [1]},
        "workdir": {"type": "string"},
        "env": {
            "type": "object",
            "additionalProperties": {"type": ["string", "number", "boolean"]},
        },
        "checks": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "pattern": "^[A-Za-z0-9][A-Za-z0-9_.-]{0,31}$"},
                    "cmd": {
                        "oneOf": [
                            {"type": "string", "minLength": 1},
                            {"type": "array", "items": {"type": "string"}, "minItems": 1},
                        ]
                    },
                    "fail_policy": {"type": "string", "enum": ["abort"]},
                },
                "required": ["name", "cmd"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["checks"],
    "additionalProperties": False,
}


def _env_value(v: Any) -> str:
    if isinstance(v, bool):
        return "1" if v else "0"
    return str(v)


def parse_config(data: dict[str, Any], repo: Path, source: Path | None = None) -> GateConfig:
    import jsonschema  # lazy import

    try:
        jsonschema.validate(instance=data, schema=PIPELINE_SCHEMA)
    except jsonschema.ValidationError as e:
        where = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigError(f"Invalid pipeline config at {where}: {e.message}") from e

    checks: list[Check] = []
    for c in data["checks"]:
        try:
            name = validate_check_name(str(c["name"]))
            argv = split_cmd(c["cmd"])
        except ValueError as e:
            raise ConfigError(str(e)) from e
        checks.append(
            Check(name=name, command=tuple(argv), fail_policy=c.get("fail_policy", "abort"))
        )

    env = {str(k): _env_value(v) for k, v in (data.get("env") or {}).items()}
    cwd = (repo / data.get("workdir", ".")).resolve()
    return GateConfig(
        pipeline=Pipeline(tuple(checks)),
        context=GateContext(cwd=cwd, env=env),
        source=source,
    )


def load_pipeline_file(path: Path, repo: Path) -> GateConfig:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read pipeline config {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise ConfigError(f"Pipeline config {path} is not valid UTF-8: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Pipeline config {path} must be a mapping with a 'checks' list.")
    return parse_config(data, repo=repo, source=path)


def default_config_path(repo: Path) -> Path:
    return repo / CONFIG_DIR / CONFIG_FILE


def resolve_config(repo: Path, config_path: Path | None = None) -> GateConfig:
    """Explicit config file, else `<repo>/.gate/pipeline.yaml`, else the defaults."""
    repo = repo.resolve()
    if config_path is not None:
        if not config_path.exists():
            raise ConfigError(f"Pipeline config not found: {config_path}")
        return load_pipeline_file(config_path, repo=repo)
    candidate = default_config_path(repo)
    if candidate.exists():
        return load_pipeline_file(candidate, repo=repo)
    return GateConfig(pipeline=default_pipeline(), context=GateContext(cwd=repo))


if __name__ == "__main__":
    import argparse
    import sys

    parser = argparse.ArgumentParser(description="Pipeline config loader")
    parser.add_argument("--repo", default=".", help="Repo root")
    parser.add_argument("--config", help="Path to pipeline.yaml")
    args = parser.parse_args()

    try:
        cfg = resolve_config(Path(args.repo), Path(args.config) if args.config else None)
        print(f"Loaded {len(cfg.pipeline)} checks from {cfg.source or 'defaults'}.")
        for c in cfg.pipeline:
            print(f"  {c.name}: {c.display_command()}")
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
