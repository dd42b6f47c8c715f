from __future__ import annotations

"""Child process execution.

CONTRACT
- Inputs: Command (argv list or string), cwd, env overrides
- Outputs (required):
  - CmdResult(returncode, elapsed_s, launch_error)
- Invariants:
  - Child inherits stdin/stdout/stderr (nothing captured or rewritten)
  - Never uses a shell; strings are split with shlex
  - Blocks until the child exits (no timeout)
- Failure:
  - Returns CmdResult with exit code (does NOT raise on non-zero exit)
  - Returns CmdResult with launch_error set if the child could not start
"""

import os
import shlex
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

# POSIX shell conventions for "could not run the command".
EXIT_NOT_FOUND = 127
EXIT_NOT_EXECUTABLE = 126


def which(cmd: str, path: str | None = None) -> str | None:
    """Resolve `cmd` like exec would, searching `path` (default: this process's PATH)."""
    if os.sep in cmd or (os.altsep and os.altsep in cmd):
        p = Path(cmd)
        return str(p) if p.is_file() and os.access(p, os.X_OK) else None
    search = os.environ.get("PATH", "") if path is None else path
    for p in search.split(os.pathsep):
        if not p:
            continue
        candidate = Path(p) / cmd
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return str(candidate)
    return None


def split_cmd(cmd: str | list[str] | tuple[str, ...]) -> list[str]:
    argv = shlex.split(cmd) if isinstance(cmd, str) else [str(a) for a in cmd]
    if not argv:
        raise ValueError("Empty command")
    return argv


@dataclass(frozen=True)
class CmdResult:
    cmd: str
    returncode: int
    elapsed_s: float
    launch_error: str | None = None

    @property
    def launched(self) -> bool:
        return self.launch_error is None


def run_cmd(
    cmd: str | list[str] | tuple[str, ...],
    cwd: Path,
    env: dict[str, str] | None = None,
) -> CmdResult:
    """Run a command with the caller's streams and wait for it.

    CONTRACT:
    - Accepts cmd as list[str] (argv) or str (split with shlex); never shell=True.
    - stdin/stdout/stderr are inherited from this process.
    - Never raises for non-zero exit; caller inspects return code.
    - A child that cannot be started yields returncode 127 (not found) or 126
      (anything else) and a launch_error message.
    """
    argv = split_cmd(cmd)
    display = shlex.join(argv)

    start_t = time.perf_counter()
    if not Path(cwd).is_dir():
        return CmdResult(
            cmd=display,
            returncode=EXIT_NOT_EXECUTABLE,
            elapsed_s=0.0,
            launch_error=f"working directory does not exist: {cwd}",
        )
    try:
        p = subprocess.run(
            argv,
            cwd=str(cwd),
            env=(os.environ | env) if env else None,
            check=False,
        )
    except FileNotFoundError as e:
        return CmdResult(
            cmd=display,
            returncode=EXIT_NOT_FOUND,
            elapsed_s=time.perf_counter() - start_t,
            launch_error=f"command not found: {e.filename or argv[0]}",
        )
    except OSError as e:
        # PermissionError, NotADirectoryError, exec format errors, ...
        return CmdResult(
            cmd=display,
            returncode=EXIT_NOT_EXECUTABLE,
            elapsed_s=time.perf_counter() - start_t,
            launch_error=f"cannot execute {argv[0]}: {e.strerror or e}",
        )

    return CmdResult(
        cmd=display,
        returncode=p.returncode,
        elapsed_s=time.perf_counter() - start_t,
    )


if __name__ == "__main__":
    import argparse
    import sys

    parser = argparse.ArgumentParser(description="Run a command with inherited streams")
    parser.add_argument("--cmd", required=True, help="Command to run")
    parser.add_argument("--cwd", default=".", help="Working directory")
    args = parser.parse_args()

    res = run_cmd(cmd=args.cmd, cwd=Path(args.cwd))
    if not res.launched:
        print(f"Error: {res.launch_error}", file=sys.stderr)
    print(f"Exit code: {res.returncode} ({res.elapsed_s:.2f}s)")
    sys.exit(res.returncode)
