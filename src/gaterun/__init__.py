"""gaterun package.

Simple API for scripts and CI wrappers:

    import gaterun

    # Run the repo's gate (format -> lint -> test), stop at the first failure
    result = gaterun.run_gate("/path/to/repo")
    raise SystemExit(result.exit_code)
"""

from pathlib import Path
from typing import Optional

from .artifacts.schemas import CheckOutcome, GateResult
from .config import Check, ConfigError, GateConfig, GateContext, Pipeline, resolve_config
from .runner import GateRunner, run_pipeline

__version__ = "0.1.0"


def run_gate(
    repo: str | Path = ".",
    *,
    config: Optional[str | Path] = None,
) -> GateResult:
    """Run the gate for a repository.

    Args:
        repo: Repository root; checks run here unless the config sets `workdir`.
        config: Optional pipeline.yaml path (default: <repo>/.gate/pipeline.yaml,
            falling back to the built-in format/lint/test pipeline).

    Returns:
        GateResult; `exit_code` is 0 on success, else the first failing check's status.

    Raises:
        ConfigError: if the pipeline config is missing or invalid.
    """
    cfg = resolve_config(Path(repo), Path(config) if config else None)
    return GateRunner(cfg.pipeline, cfg.context).run()


__all__ = [
    "__version__",
    "run_gate",
    "run_pipeline",
    "resolve_config",
    "Check",
    "CheckOutcome",
    "ConfigError",
    "GateConfig",
    "GateContext",
    "GateResult",
    "GateRunner",
    "Pipeline",
]
