"""Step definitions and the structured results of step gating."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Optional

# Extra completion condition evaluated against the form state
CompletionPredicate = Callable[[Mapping[str, Any]], bool]


@dataclass(frozen=True)
class StepSpec:
    """
    One wizard step.

    A step gates only on the fields it owns, the derived values it
    lists in ``requires``, and its optional ``is_complete`` predicate.
    """

    index: int
    title: str
    owned_fields: frozenset[str] = field(default_factory=frozenset)
    requires: frozenset[str] = field(default_factory=frozenset)
    is_complete: Optional[CompletionPredicate] = None
    incomplete_message: str = "Please complete this step"


class IssueKind(str, Enum):
    """Why a step (or submission) was blocked."""

    FIELD = "field"
    PENDING = "pending"
    DERIVED_FAILED = "derived_failed"
    DERIVED_MISSING = "derived_missing"
    INCOMPLETE = "incomplete"
    NAVIGATION = "navigation"


@dataclass(frozen=True)
class GateIssue:
    """A single reason forward navigation was refused."""

    kind: IssueKind
    target: str
    message: str
    retryable: bool = False


@dataclass
class StepResult:
    """Outcome of next(), jump_to(), or a completeness check."""

    ok: bool
    step_index: int
    issues: list[GateIssue] = field(default_factory=list)

    @property
    def errors(self) -> dict[str, str]:
        """Per-field messages, one per invalid field."""
        return {i.target: i.message for i in self.issues if i.kind == IssueKind.FIELD}

    @property
    def pending(self) -> list[str]:
        """Derived values still computing."""
        return [i.target for i in self.issues if i.kind == IssueKind.PENDING]

    @property
    def is_loading(self) -> bool:
        return bool(self.pending)

    def messages(self) -> list[str]:
        return [i.message for i in self.issues]
