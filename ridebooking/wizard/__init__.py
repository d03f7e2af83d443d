from ridebooking.wizard.controller import WizardController, WizardStatus
from ridebooking.wizard.definition import (
    UnknownFieldError,
    WizardDefinition,
    WizardDefinitionError,
)
from ridebooking.wizard.derived import DerivedSpec, DerivedStatus, DerivedValue
from ridebooking.wizard.rules import FieldDefinition, Rule, RuleKind, validate, validate_field
from ridebooking.wizard.scheduling import SchedulingBinding, parse_scheduling_message
from ridebooking.wizard.steps import GateIssue, IssueKind, StepResult, StepSpec
from ridebooking.wizard.submission import (
    PayloadProjection,
    SubmissionErrorKind,
    SubmissionPipeline,
    SubmissionResult,
)

__all__ = [
    "WizardController",
    "WizardStatus",
    "WizardDefinition",
    "WizardDefinitionError",
    "UnknownFieldError",
    "DerivedSpec",
    "DerivedStatus",
    "DerivedValue",
    "FieldDefinition",
    "Rule",
    "RuleKind",
    "validate",
    "validate_field",
    "SchedulingBinding",
    "parse_scheduling_message",
    "GateIssue",
    "IssueKind",
    "StepResult",
    "StepSpec",
    "PayloadProjection",
    "SubmissionErrorKind",
    "SubmissionPipeline",
    "SubmissionResult",
]
