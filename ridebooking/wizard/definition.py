"""
Wizard definition: the field registry, ordered steps, derived values,
and named cross-field checks that make up one multi-step form.

Definitions are validated when built, so an unknown field, a field owned
by two steps, or a step gating on an undeclared derived value is a
construction-time error rather than a silent runtime key.
"""

from dataclasses import dataclass, field
from typing import Mapping, Optional

from ridebooking.wizard.derived import DerivedSpec
from ridebooking.wizard.rules import CustomCheck, FieldDefinition, RuleKind
from ridebooking.wizard.scheduling import SchedulingBinding
from ridebooking.wizard.steps import StepSpec


class WizardDefinitionError(Exception):
    """Raised when a wizard definition is internally inconsistent."""


class UnknownFieldError(KeyError):
    """Raised when a field name is not in the wizard's registry."""


@dataclass(frozen=True)
class WizardDefinition:
    """Immutable description of a wizard."""

    name: str
    fields: tuple[FieldDefinition, ...]
    steps: tuple[StepSpec, ...]
    derived: tuple[DerivedSpec, ...] = ()
    checks: Mapping[str, CustomCheck] = field(default_factory=dict)
    scheduling: Optional[SchedulingBinding] = None

    def __post_init__(self) -> None:
        self._check_fields()
        self._check_steps()
        self._check_derived()
        self._check_scheduling()

    def _check_fields(self) -> None:
        seen: set[str] = set()
        for defn in self.fields:
            if defn.name in seen:
                raise WizardDefinitionError(f"Duplicate field: {defn.name}")
            seen.add(defn.name)
        for defn in self.fields:
            unknown = defn.depends_on - seen
            if unknown:
                raise WizardDefinitionError(
                    f"Field '{defn.name}' depends on unknown fields: {sorted(unknown)}"
                )
            for rule in defn.rules:
                if rule.kind == RuleKind.CUSTOM and rule.param("check") not in self.checks:
                    raise WizardDefinitionError(
                        f"Field '{defn.name}' uses unregistered check '{rule.param('check')}'"
                    )

    def _check_steps(self) -> None:
        if not self.steps:
            raise WizardDefinitionError("A wizard needs at least one step")
        names = self.field_names
        owner: dict[str, int] = {}
        for position, step in enumerate(self.steps):
            if step.index != position:
                raise WizardDefinitionError(
                    f"Step '{step.title}' has index {step.index}, expected {position}"
                )
            unknown = step.owned_fields - names
            if unknown:
                raise WizardDefinitionError(
                    f"Step '{step.title}' owns unknown fields: {sorted(unknown)}"
                )
            for name in step.owned_fields:
                if name in owner:
                    raise WizardDefinitionError(
                        f"Field '{name}' owned by steps {owner[name]} and {position}"
                    )
                owner[name] = position

    def _check_derived(self) -> None:
        names = self.field_names
        derived_names: set[str] = set()
        for spec in self.derived:
            if spec.name in derived_names:
                raise WizardDefinitionError(f"Duplicate derived value: {spec.name}")
            derived_names.add(spec.name)
            unknown = spec.inputs - names
            if unknown:
                raise WizardDefinitionError(
                    f"Derived '{spec.name}' reads unknown fields: {sorted(unknown)}"
                )
        for step in self.steps:
            missing = step.requires - derived_names
            if missing:
                raise WizardDefinitionError(
                    f"Step '{step.title}' requires undeclared derived values: {sorted(missing)}"
                )

    def _check_scheduling(self) -> None:
        if self.scheduling is None:
            return
        unknown = self.scheduling.fields - self.field_names
        if unknown:
            raise WizardDefinitionError(
                f"Scheduling fields are not registered: {sorted(unknown)}"
            )

    @property
    def field_names(self) -> frozenset[str]:
        return frozenset(d.name for d in self.fields)

    def get_field(self, name: str) -> FieldDefinition:
        for defn in self.fields:
            if defn.name == name:
                return defn
        raise UnknownFieldError(name)

    def step_of(self, name: str) -> Optional[int]:
        """Index of the step that owns ``name``, if any."""
        for step in self.steps:
            if name in step.owned_fields:
                return step.index
        return None
