"""
Batch Coordinator — many targets, one ordered answer.

A batch request is an action plus an ordered list of targets. Each
target is classified at dispatch time:

- ``path::symbol``   → address
- contains ``*``/``?`` → glob pattern, expanded against the full listing
- anything else      → file

A pattern names files explicitly, so exclusion rules never filter it.

Every unit of work (one address, one file, one file of an expanded
pattern) runs in the orchestrator pool. Results are re-assembled in
request order; one target's failure is recorded in its own outcome and
never removes or reorders another's.

Usage:
    coordinator = BatchCoordinator(run_unit, source, orchestrator)
    plan = BatchPlan.create("symbols", ["src/**/*.py", "lib/util.rs::parse"])
    result = coordinator.run(plan, cancel=cancel_event)
"""

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, TYPE_CHECKING

import structlog

from .core.address import SEPARATOR, SymbolAddress
from .core.errors import InvalidRequest, InvalidTarget, NoFilesMatched, QuarryError
from .core.globbing import expand, is_pattern
from .orchestrator import TaskOrchestrator, make_task, outcome_error

if TYPE_CHECKING:
    from .core.sources import ContentSource

log = structlog.get_logger()


class Action(Enum):
    """Operations a batch can apply to each target."""
    SYMBOLS = "symbols"
    CONTEXT = "context"
    AFFECTED = "affected"


class TargetType(Enum):
    FILE = "file"
    PATTERN = "pattern"
    ADDRESS = "address"


# Target types each action accepts
ACCEPTED_TARGETS = {
    Action.SYMBOLS: {TargetType.FILE, TargetType.PATTERN, TargetType.ADDRESS},
    Action.CONTEXT: {TargetType.ADDRESS},
    Action.AFFECTED: {TargetType.ADDRESS},
}

# One unit: (action, address, public_only) -> (payload type, payload)
UnitRunner = Callable[[Action, SymbolAddress, bool], Tuple[str, Any]]


def classify(text: str) -> TargetType:
    """Target type of one request string."""
    if SEPARATOR in text:
        return TargetType.ADDRESS
    if is_pattern(text):
        return TargetType.PATTERN
    return TargetType.FILE


# =============================================================================
# Plan
# =============================================================================

@dataclass(frozen=True)
class BatchTarget:
    text: str
    target_type: TargetType

    def to_dict(self) -> Dict[str, str]:
        return {"target": self.text, "type": self.target_type.value}


@dataclass
class BatchPlan:
    """
    Validated batch request.

    Only a malformed request as a whole (unknown action, no targets)
    fails here; problems with individual targets surface as per-item
    outcomes at run time.
    """
    action: Action
    targets: List[BatchTarget] = field(default_factory=list)
    public_only: bool = False

    @classmethod
    def create(cls, action: str, targets: List[str], public_only: bool = False) -> 'BatchPlan':
        """
        Build a plan from raw request values.

        Raises:
            InvalidRequest: Unknown action, or no targets
        """
        try:
            parsed_action = Action(action)
        except ValueError:
            valid = ", ".join(a.value for a in Action)
            raise InvalidRequest(f"Unknown batch action '{action}'. Valid: {valid}")

        if isinstance(targets, str) or not targets:
            raise InvalidRequest("Batch request needs a non-empty list of targets")
        for text in targets:
            if not isinstance(text, str):
                raise InvalidRequest(f"Batch target must be a string, got {type(text).__name__}")

        return cls(
            action=parsed_action,
            targets=[BatchTarget(text=t, target_type=classify(t)) for t in targets],
            public_only=public_only,
        )

    def __len__(self) -> int:
        return len(self.targets)


# =============================================================================
# Results
# =============================================================================

@dataclass
class Outcome:
    """
    Success-or-error result for one target (or one file of a pattern).

    Pattern outcomes carry ``children``: one nested outcome per matched
    file, in listing order.
    """
    target: str
    type: Optional[str] = None
    data: Any = None
    error: Optional[QuarryError] = None
    children: List['Outcome'] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def succeeded(self) -> int:
        return sum(1 for c in self.children if c.success)

    @property
    def failed(self) -> int:
        return sum(1 for c in self.children if not c.success)

    def to_dict(self) -> Dict[str, Any]:
        if self.error is not None:
            data = self.error.to_dict()
            data["target"] = self.target
            return data
        return {"target": self.target, "error": False, "type": self.type, "data": self.data}


@dataclass
class BatchResult:
    """Ordered outcomes, one per request target."""
    action: Action
    outcomes: List[Outcome] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failed(self) -> int:
        return len(self.outcomes) - self.succeeded

    def __len__(self) -> int:
        return len(self.outcomes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action.value,
            "results": [o.to_dict() for o in self.outcomes],
            "summary": {
                "total": len(self.outcomes),
                "succeeded": self.succeeded,
                "failed": self.failed,
            },
        }


# =============================================================================
# Coordinator
# =============================================================================

@dataclass
class _Unit:
    """One schedulable piece of work and where its outcome goes."""
    index: int                       # Position in the request
    child: Optional[int]             # Position within a pattern, or None
    address: SymbolAddress


class BatchCoordinator:
    """
    Fans a BatchPlan out over the orchestrator pool.

    Key design decisions:
    - Units touch disjoint Symbol Tables; the shared cache is the only
      synchronization point
    - Cancelled or timed-out units become per-item errors, completed
      units are always kept
    - Output order is request order, never completion order
    """

    def __init__(
        self,
        run_unit: UnitRunner,
        source: 'ContentSource',
        orchestrator: TaskOrchestrator,
    ):
        """
        Args:
            run_unit: Answers one unit, raising QuarryError on failure
            source: Supplies the listing patterns expand against
            orchestrator: Worker pool
        """
        self.run_unit = run_unit
        self.source = source
        self.orchestrator = orchestrator

    def run(
        self,
        plan: BatchPlan,
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
    ) -> BatchResult:
        """
        Execute every target of the plan.

        Args:
            plan: Validated request
            cancel: Caller's cancellation signal
            timeout: Per-unit timeout in seconds (default: orchestrator's)

        Returns:
            BatchResult with exactly ``len(plan)`` outcomes in request order
        """
        start = time.monotonic()
        outcomes: List[Outcome] = [Outcome(target=t.text) for t in plan.targets]
        units: List[_Unit] = []
        listing: Optional[List[str]] = None

        for index, target in enumerate(plan.targets):
            outcome = outcomes[index]

            if target.target_type not in ACCEPTED_TARGETS[plan.action]:
                outcome.error = InvalidTarget(
                    f"'{plan.action.value}' needs a '<path>{SEPARATOR}<symbol>' address, "
                    f"got a {target.target_type.value}",
                    address=target.text,
                )
                continue

            if target.target_type == TargetType.PATTERN:
                if listing is None:
                    listing = self.source.list_files()
                matched = expand(target.text, listing)
                if not matched:
                    outcome.error = NoFilesMatched(
                        f"Pattern '{target.text}' matched no files",
                        path=target.text,
                    )
                    continue
                outcome.type = "pattern"
                for child, path in enumerate(matched):
                    outcome.children.append(Outcome(target=path))
                    units.append(_Unit(index=index, child=child, address=SymbolAddress(path=path)))
                continue

            try:
                address = SymbolAddress.parse(
                    target.text,
                    require_symbol=target.target_type == TargetType.ADDRESS,
                )
            except QuarryError as e:
                outcome.error = e
                continue
            units.append(_Unit(index=index, child=None, address=address))

        tasks = [
            make_task(
                fn=self.run_unit,
                args=(plan.action, unit.address, plan.public_only),
                name=f"{plan.action.value}:{unit.address}",
            )
            for unit in units
        ]
        results = self.orchestrator.run_ordered(tasks, cancel=cancel, timeout=timeout)

        for unit, task_result in zip(units, results):
            parent = outcomes[unit.index]
            outcome = parent.children[unit.child] if unit.child is not None else parent
            if task_result.success:
                outcome.type, outcome.data = task_result.result
            else:
                outcome.error = outcome_error(
                    task_result,
                    path=unit.address.path,
                    address=str(unit.address) if not unit.address.is_file else None,
                )

        for outcome in outcomes:
            if outcome.type == "pattern" and outcome.error is None:
                outcome.data = {
                    "matched": len(outcome.children),
                    "succeeded": outcome.succeeded,
                    "failed": outcome.failed,
                    "results": [c.to_dict() for c in outcome.children],
                }

        batch = BatchResult(
            action=plan.action,
            outcomes=outcomes,
            duration_ms=(time.monotonic() - start) * 1000,
        )
        log.info(
            "batch_completed",
            action=plan.action.value,
            targets=len(plan),
            units=len(units),
            succeeded=batch.succeeded,
            failed=batch.failed,
            duration_ms=round(batch.duration_ms, 2),
        )
        return batch
