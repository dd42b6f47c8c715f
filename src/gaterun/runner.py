from __future__ import annotations

"""Gate runner.

CONTRACT
- Inputs: Pipeline (ordered checks), GateContext (cwd + env)
- Outputs (required):
  - GateResult(status, exit_code, checks, failed_check)
- Invariants:
  - Checks run one at a time, in declaration order, each at most once
  - The first failing check stops the run; later checks are never invoked
  - A check that cannot be started fails the run exactly like a non-zero exit
  - exit_code is 0 iff every check succeeded, else the first failure's status
- Failure:
  - Check failures are values in GateResult, never exceptions
  - Raises RuntimeError if the same runner is asked to run twice
"""

from dataclasses import dataclass
from typing import Callable, Union

from loguru import logger

from .artifacts.schemas import CheckOutcome, GateResult
from .config import Check, GateContext, Pipeline
from .util.shell import CmdResult, run_cmd

# Exit status used when a failing check's own status can't be passed through.
GATE_FAILURE_SENTINEL = 1

Executor = Callable[[Check, GateContext], CmdResult]
StartHook = Callable[[int, Check], None]
FinishHook = Callable[[int, Check, CheckOutcome], None]


@dataclass(frozen=True)
class Success:
    pass


@dataclass(frozen=True)
class Failure:
    status: int


Outcome = Union[Success, Failure]


@dataclass(frozen=True)
class Pending:
    pass


@dataclass(frozen=True)
class Running:
    index: int


@dataclass(frozen=True)
class Done:
    outcome: Outcome


RunnerState = Union[Pending, Running, Done]


def exit_status_for(returncode: int) -> int:
    """Map a failing child's return code to the gate's exit status.

    1..255 passes through. A child killed by signal N (negative return code)
    maps to 128+N like a POSIX shell. Anything else can't be represented as a
    process exit status and becomes GATE_FAILURE_SENTINEL.
    """
    if 0 < returncode <= 255:
        return returncode
    if -128 < returncode < 0:
        return 128 - returncode
    return GATE_FAILURE_SENTINEL


def default_executor(check: Check, context: GateContext) -> CmdResult:
    return run_cmd(check.command, cwd=context.cwd, env=context.env or None)


def _outcome_for(check: Check, res: CmdResult) -> CheckOutcome:
    if not res.launched:
        return CheckOutcome(
            name=check.name,
            ok=False,
            exit_code=exit_status_for(res.returncode),
            launched=False,
            elapsed_s=res.elapsed_s,
            details=f"could not start: {res.launch_error}",
        )
    if res.returncode == 0:
        return CheckOutcome(
            name=check.name, ok=True, exit_code=0, elapsed_s=res.elapsed_s
        )
    return CheckOutcome(
        name=check.name,
        ok=False,
        exit_code=exit_status_for(res.returncode),
        elapsed_s=res.elapsed_s,
        details=f"exited with status {res.returncode}",
    )


class GateRunner:
    """Runs a pipeline fail-fast. One runner per gate invocation."""

    def __init__(
        self,
        pipeline: Pipeline,
        context: GateContext,
        executor: Executor | None = None,
        on_start: StartHook | None = None,
        on_finish: FinishHook | None = None,
    ):
        self.pipeline = pipeline
        self.context = context
        self.executor = executor or default_executor
        self.on_start = on_start
        self.on_finish = on_finish
        self._state: RunnerState = Pending()

    @property
    def state(self) -> RunnerState:
        return self._state

    def run(self) -> GateResult:
        if not isinstance(self._state, Pending):
            raise RuntimeError(f"GateRunner already used (state: {self._state})")

        checks = tuple(self.pipeline)
        outcomes: list[CheckOutcome] = []
        self._state = Running(0)

        while isinstance(self._state, Running):
            i = self._state.index
            check = checks[i]
            logger.debug(f"[{i + 1}/{len(checks)}] {check.name}: {check.display_command()}")
            if self.on_start:
                self.on_start(i, check)

            outcome = _outcome_for(check, self.executor(check, self.context))
            outcomes.append(outcome)
            if self.on_finish:
                self.on_finish(i, check, outcome)

            if outcome.ok:
                logger.debug(f"Check {check.name} passed in {outcome.elapsed_s:.2f}s")
                self._state = Running(i + 1) if i + 1 < len(checks) else Done(Success())
            elif not outcome.launched:
                logger.warning(f"Check {check.name} {outcome.details}")
                self._state = Done(Failure(outcome.exit_code))
            else:
                logger.info(f"Check {check.name} failed: {outcome.details}")
                self._state = Done(Failure(outcome.exit_code))

        final = self._state.outcome
        if isinstance(final, Success):
            logger.debug(f"Gate passed ({len(outcomes)} checks)")
            return GateResult(status="success", exit_code=0, checks=outcomes)

        failed = outcomes[-1]
        logger.debug(f"Gate failed at {failed.name} with exit code {final.status}")
        return GateResult(
            status="failure",
            exit_code=final.status,
            checks=outcomes,
            failed_check=failed.name,
        )


def run_pipeline(
    pipeline: Pipeline,
    context: GateContext,
    executor: Executor | None = None,
) -> GateResult:
    return GateRunner(pipeline, context, executor=executor).run()
