"""Step Validator — static analysis for step lists before a flow runs.

Catches structural issues in a step list *before* the engine starts
navigating it: missing or duplicate ids, malformed payloads, static
cycles and dangling references.

Architecture::

    StepValidator.validate(steps)
    │
    ├── _check_empty            W001
    ├── _check_ids              E001, E002
    ├── _check_payloads         E003
    ├── _check_cycles           E004
    ├── _check_links            W002
    └── _check_unreachable      W003 (fully static flows only)
    │
    ▼
    ValidationResult
    ├── diagnostics: list[ValidationDiagnostic]
    ├── passed → bool (no errors)
    ├── errors / warnings
    └── summary() → str

Only literal edges are analysed.  Dynamic edges and conditions depend on
run-time context, so a flow that uses any of them skips W003.

Example::

    from onboard.engine.validator import StepValidator

    result = StepValidator().validate(steps)
    if not result.passed:
        for d in result.errors:
            print(f"[{d.code}] {d.message}")
"""

from __future__ import annotations

from collections import deque
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from onboard.core.logging import get_logger
from onboard.core.settings import get_settings
from onboard.engine.step_types import DynamicRef, LiteralRef, Step, StepType

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Diagnostic model
# ---------------------------------------------------------------------------

class Severity(str, Enum):
    """Severity level for a validation diagnostic."""

    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class ValidationDiagnostic:
    """A single validation finding.

    Attributes:
        code: Short identifier (e.g. ``"E002"``).
        severity: ``error`` or ``warning``.
        message: Human-readable description.
        step_id: Offending step (if applicable).
        details: Extra structured data for logs.
    """

    code: str
    severity: Severity
    message: str
    step_id: Any = None
    details: Mapping[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        location = f" in step '{self.step_id}'" if self.step_id is not None else ""
        return f"[{self.code}] {self.severity.value.upper()}{location}: {self.message}"


@dataclass
class ValidationResult:
    """Aggregated result of validating a step list."""

    diagnostics: list[ValidationDiagnostic] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        """True if there are no error-level diagnostics."""
        return not any(d.severity == Severity.ERROR for d in self.diagnostics)

    @property
    def errors(self) -> list[ValidationDiagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[ValidationDiagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARNING]

    def summary(self) -> str:
        status = "PASS" if self.passed else "FAIL"
        parts = [status]
        if self.errors:
            parts.append(f"{len(self.errors)} errors")
        if self.warnings:
            parts.append(f"{len(self.warnings)} warnings")
        return " | ".join(parts)


def _error(code: str, message: str, step_id: Any = None, **details: Any) -> ValidationDiagnostic:
    return ValidationDiagnostic(code, Severity.ERROR, message, step_id, details)


def _warning(code: str, message: str, step_id: Any = None, **details: Any) -> ValidationDiagnostic:
    return ValidationDiagnostic(code, Severity.WARNING, message, step_id, details)


def _literal(ref: Any) -> Any:
    """Static target id of an edge, or None."""
    if isinstance(ref, LiteralRef) and ref.step_id is not None:
        return ref.step_id
    return None


def _has_id(step: Step) -> bool:
    return step.id is not None and step.id != ""


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------

class StepValidator:
    """Runs every structural check over a step list."""

    def __init__(self, max_depth: int | None = None):
        self.max_depth = max_depth if max_depth is not None else get_settings().max_validation_depth

    def validate(self, steps: Sequence[Step]) -> ValidationResult:
        result = ValidationResult()
        if not steps:
            result.diagnostics.append(_warning("W001", "No steps defined in the flow"))
            return result

        for check in (
            self._check_ids,
            self._check_payloads,
            self._check_cycles,
            self._check_links,
            self._check_unreachable,
        ):
            result.diagnostics.extend(check(steps))

        if not result.passed:
            logger.error("step_validation_failed", errors=[str(d) for d in result.errors])
        if result.warnings:
            logger.warning("step_validation_warnings", warnings=[str(d) for d in result.warnings])
        return result

    # -- E001 / E002 ---------------------------------------------------------

    def _check_ids(self, steps: Sequence[Step]) -> list[ValidationDiagnostic]:
        found: list[ValidationDiagnostic] = []
        seen: dict[Any, int] = {}
        for index, step in enumerate(steps):
            if not _has_id(step):
                found.append(_error(
                    "E001",
                    f"Step at index {index} is missing an 'id'",
                    index=index,
                    step_type=step.type.value,
                ))
                continue
            if step.id in seen:
                found.append(_error(
                    "E002",
                    f"Duplicate step ID '{step.id}' found at indices {seen[step.id]} and {index}",
                    step.id,
                    indices=[seen[step.id], index],
                ))
            else:
                seen[step.id] = index
        return found

    # -- E003 ------------------------------------------------------------------

    def _check_payloads(self, steps: Sequence[Step]) -> list[ValidationDiagnostic]:
        found: list[ValidationDiagnostic] = []
        for step in steps:
            payload = step.payload if isinstance(step.payload, Mapping) else {}

            if step.type == StepType.CUSTOM_COMPONENT and not payload.get("component_key"):
                found.append(_error(
                    "E003",
                    f"Step '{step.id}' of type 'CUSTOM_COMPONENT' must have a 'component_key' in its payload",
                    step.id,
                ))

            if step.type in (StepType.SINGLE_CHOICE, StepType.MULTIPLE_CHOICE):
                options = payload.get("options")
                if not isinstance(options, (list, tuple)) or not options:
                    found.append(_error(
                        "E003",
                        f"Step '{step.id}' of type '{step.type.value}' must have a non-empty 'options' list in its payload",
                        step.id,
                    ))

            if step.type == StepType.CHECKLIST:
                checklist = step.checklist_payload
                if checklist is None or not checklist.data_key:
                    found.append(_error(
                        "E003",
                        f"Step '{step.id}' of type 'CHECKLIST' must have a 'data_key' and valid 'items' in its payload",
                        step.id,
                    ))
                elif not checklist.items:
                    found.append(_error(
                        "E003",
                        f"Step '{step.id}' of type 'CHECKLIST' must have a non-empty 'items' list in its payload",
                        step.id,
                    ))
        return found

    # -- E004 ------------------------------------------------------------------

    def _static_targets(self, step: Step) -> list[Any]:
        targets = []
        if (target := _literal(step.next_step)) is not None:
            targets.append(target)
        if step.is_skippable and (target := _literal(step.skip_to_step)) is not None:
            targets.append(target)
        return targets

    def _check_cycles(self, steps: Sequence[Step]) -> list[ValidationDiagnostic]:
        by_id = {step.id: step for step in steps if _has_id(step)}
        found: list[ValidationDiagnostic] = []
        reported: set[frozenset[Any]] = set()
        finished: set[Any] = set()

        def visit(step_id: Any, path: list[Any]) -> None:
            if len(path) >= self.max_depth:
                found.append(_error(
                    "E004",
                    f"Potential circular navigation: path depth exceeds {self.max_depth} steps",
                    step_id,
                    start_step=path[0],
                    max_depth=self.max_depth,
                ))
                return
            if step_id in path:
                cycle = path[path.index(step_id):] + [step_id]
                key = frozenset(cycle)
                if key not in reported:
                    reported.add(key)
                    found.append(_error(
                        "E004",
                        f"Circular navigation detected in path: {' -> '.join(map(str, cycle))}",
                        step_id,
                        cycle=cycle,
                    ))
                return
            if step_id in finished or step_id not in by_id:
                return

            path.append(step_id)
            for target in self._static_targets(by_id[step_id]):
                visit(target, path)
            path.pop()
            finished.add(step_id)

        for step_id in by_id:
            visit(step_id, [])
        return found

    # -- W002 ------------------------------------------------------------------

    def _check_links(self, steps: Sequence[Step]) -> list[ValidationDiagnostic]:
        known = {step.id for step in steps if _has_id(step)}
        found: list[ValidationDiagnostic] = []
        for step in steps:
            edges = [("next_step", step.next_step), ("previous_step", step.previous_step)]
            if step.is_skippable:
                edges.append(("skip_to_step", step.skip_to_step))
            for name, ref in edges:
                target = _literal(ref)
                if target is not None and target not in known:
                    found.append(_warning(
                        "W002",
                        f"Step '{step.id}' has a '{name}' reference to non-existent step '{target}'",
                        step.id,
                        target_step=target,
                    ))
        return found

    # -- W003 ------------------------------------------------------------------

    def _check_unreachable(self, steps: Sequence[Step]) -> list[ValidationDiagnostic]:
        is_dynamic = any(
            step.condition is not None
            or any(
                isinstance(ref, DynamicRef)
                for ref in (step.next_step, step.previous_step, step.skip_to_step)
            )
            for step in steps
        )
        if is_dynamic:
            return []

        order = [step.id for step in steps]
        by_id = {step.id: step for step in steps}
        reachable: set[Any] = set()
        queue = deque([steps[0].id])
        while queue:
            current = queue.popleft()
            if current in reachable or current not in by_id:
                continue
            reachable.add(current)
            step = by_id[current]

            if isinstance(step.next_step, LiteralRef):
                if step.next_step.step_id is not None:
                    queue.append(step.next_step.step_id)
            else:
                index = order.index(current)
                if index + 1 < len(order):
                    queue.append(order[index + 1])

            if step.is_skippable and (target := _literal(step.skip_to_step)) is not None:
                queue.append(target)

        return [
            _warning("W003", f"Step '{step.id}' may be unreachable from the first step", step.id)
            for step in steps
            if _has_id(step) and step.id not in reachable
        ]


__all__ = [
    "Severity",
    "ValidationDiagnostic",
    "ValidationResult",
    "StepValidator",
]
