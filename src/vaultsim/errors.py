"""Error taxonomy for compounding scenarios.

Fatal errors (``FixedPointError``, ``ScenarioAborted`` subclasses) stop a run
at the point of failure. Invariant violations are records collected by the
verifier and only become an exception through ``VerificationFailed``.
"""

from typing import Optional


class FixedPointError(ArithmeticError):
    """Division by zero or an invalid scale in fixed-point arithmetic."""


class ScenarioAborted(RuntimeError):
    """An adapter operation failed while the driver was running or draining."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        detail = f": {cause!r}" if cause is not None else ""
        super().__init__(f"{operation} failed{detail}")


class CompoundingFailed(ScenarioAborted):
    """``trigger_compounding`` raised for a target. Never retried."""

    def __init__(self, target_id: str, cause: Optional[BaseException] = None):
        self.target_id = target_id
        super().__init__(f"trigger_compounding({target_id!r})", cause)


class DrainingFailed(ScenarioAborted):
    """A withdrawal or pool exit raised during the draining phase."""


class DriverStateError(RuntimeError):
    """The driver was asked to perform a transition its state does not allow."""


class SnapshotOrderError(ValueError):
    """A snapshot was appended out of order."""


class VerificationFailed(AssertionError):
    """One or more end-to-end invariants were violated."""

    def __init__(self, violations):
        self.violations = list(violations)
        lines = [f"{len(self.violations)} invariant violation(s):"]
        lines.extend(f"  - {v.describe()}" for v in self.violations)
        super().__init__("\n".join(lines))
