from __future__ import annotations

"""Template initializer.

CONTRACT
- Inputs: Repo path
- Outputs (required):
  - Writes .gate/pipeline.yaml
- Invariants:
  - Creates .gate directory if missing
  - Does not overwrite an existing pipeline.yaml (unless force=True)
- Failure:
  - Raises OSError on permission issues
"""

from pathlib import Path

from .config import CONFIG_DIR, CONFIG_FILE
from .util.paths import copy_template, ensure_dir


def write_templates(repo: Path, force: bool = False) -> Path | None:
    """Returns the written path, or None if an existing file was kept."""
    gate_dir = repo / CONFIG_DIR
    ensure_dir(gate_dir)

    dest = gate_dir / CONFIG_FILE
    if copy_template(CONFIG_FILE, dest, overwrite=force):
        return dest
    return None
