"""Linear multi-step form engine with per-step validity gating."""
from __future__ import annotations

import copy
import math
from dataclasses import dataclass, field
from datetime import date, time
from typing import Any, Callable, Iterable

TEXT = "text"
CHOICE = "choice"
MULTI = "multi"
DATE = "date"
TIME = "time"
NUMBER = "number"

FIELD_KINDS = frozenset({TEXT, CHOICE, MULTI, DATE, TIME, NUMBER})

IN_PROGRESS = "in_progress"
CONFIRMED = "confirmed"


class UnknownFieldError(KeyError):
    """Raised when a field name is not part of the flow's schema."""


class WizardClosedError(RuntimeError):
    """Raised when form data is changed after the wizard was confirmed."""


@dataclass(frozen=True)
class FieldSpec:
    """Schema entry describing one form field."""

    name: str
    kind: str = TEXT
    required: bool = False
    choices: tuple[str, ...] = ()
    default: Any = None

    def __post_init__(self) -> None:
        if self.kind not in FIELD_KINDS:
            raise ValueError(f"Unsupported field kind {self.kind!r}.")

    def initial_value(self) -> Any:
        if self.default is not None:
            return copy.deepcopy(self.default)
        if self.kind == MULTI:
            return []
        if self.kind in (TEXT, CHOICE):
            return ""
        return None

    def is_satisfied(self, value: Any) -> bool:
        """Return whether ``value`` fulfils this field when it is required."""

        if self.kind == MULTI:
            if not value or isinstance(value, (str, bytes)):
                return False
            return not self.choices or all(option in self.choices for option in value)
        if self.kind == NUMBER:
            try:
                number = float(value)
            except (TypeError, ValueError):
                return False
            return math.isfinite(number) and number > 0
        if self.kind in (DATE, TIME):
            if isinstance(value, (date, time)):
                return True
            return isinstance(value, str) and bool(value.strip())
        if self.kind == CHOICE:
            if value in (None, ""):
                return False
            return not self.choices or value in self.choices
        if isinstance(value, str):
            return bool(value.strip())
        return value is not None


@dataclass(frozen=True)
class StepDefinition:
    """A numbered step and the fields it collects."""

    title: str
    fields: tuple[FieldSpec, ...] = ()

    @property
    def required_fields(self) -> tuple[FieldSpec, ...]:
        return tuple(spec for spec in self.fields if spec.required)


@dataclass(frozen=True)
class FlowDefinition:
    """Configuration for one wizard: its ordered steps."""

    name: str
    steps: tuple[StepDefinition, ...]
    fields: dict[str, FieldSpec] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.steps:
            raise ValueError("A flow requires at least one step.")
        index: dict[str, FieldSpec] = {}
        for step in self.steps:
            for spec in step.fields:
                if spec.name in index:
                    raise ValueError(f"Field {spec.name!r} is declared twice.")
                index[spec.name] = spec
        object.__setattr__(self, "fields", index)

    @property
    def step_count(self) -> int:
        return len(self.steps)

    def initial_form_data(self) -> dict[str, Any]:
        return {name: spec.initial_value() for name, spec in self.fields.items()}


@dataclass(slots=True)
class BookingOutcome:
    """Result reported by a booking-confirmation collaborator."""

    accepted: bool
    reference: Any = None
    reason: str | None = None


@dataclass(slots=True)
class SubmitResult:
    """What happened when the host asked the wizard to submit."""

    accepted: bool
    reference: Any = None
    reason: str | None = None
    attempted: bool = True


BookingConfirmer = Callable[[dict[str, Any]], BookingOutcome]


class Wizard:
    """State of one wizard instance.

    ``next`` and ``submit`` refuse silently when the gating step is invalid;
    ``back`` is never gated. Field updates may target any step.
    """

    def __init__(
        self,
        flow: FlowDefinition,
        *,
        step: int = 1,
        form_data: dict[str, Any] | None = None,
        status: str = IN_PROGRESS,
        reference: Any = None,
    ) -> None:
        self.flow = flow
        self.form_data = flow.initial_form_data()
        for name, value in (form_data or {}).items():
            if name in flow.fields:
                self.form_data[name] = _normalize_value(flow.fields[name], value, strict=False)
        self.step = min(max(int(step), 1), flow.step_count)
        self.status = status if status in (IN_PROGRESS, CONFIRMED) else IN_PROGRESS
        self.reference = reference

    def __repr__(self) -> str:
        return f"<Wizard flow={self.flow.name!r} step={self.step} status={self.status!r}>"

    @property
    def step_count(self) -> int:
        return self.flow.step_count

    @property
    def is_confirmed(self) -> bool:
        return self.status == CONFIRMED

    @property
    def current_step(self) -> StepDefinition:
        return self.flow.steps[self.step - 1]

    def is_step_valid(self, step: int) -> bool:
        if step < 1 or step > self.step_count:
            return False
        definition = self.flow.steps[step - 1]
        return all(
            spec.is_satisfied(self.form_data.get(spec.name))
            for spec in definition.required_fields
        )

    def step_validity(self) -> dict[int, bool]:
        return {number: self.is_step_valid(number) for number in range(1, self.step_count + 1)}

    def missing_fields(self, step: int | None = None) -> list[str]:
        """Return required field names that block ``step`` (default: current)."""

        number = self.step if step is None else step
        if number < 1 or number > self.step_count:
            return []
        definition = self.flow.steps[number - 1]
        return [
            spec.name
            for spec in definition.required_fields
            if not spec.is_satisfied(self.form_data.get(spec.name))
        ]

    def next(self) -> bool:
        if self.is_confirmed or self.step >= self.step_count:
            return False
        if not self.is_step_valid(self.step):
            return False
        self.step += 1
        return True

    def back(self) -> bool:
        if self.is_confirmed or self.step <= 1:
            return False
        self.step -= 1
        return True

    def set_field(self, name: str, value: Any) -> None:
        spec = self._spec(name)
        self._ensure_open()
        self.form_data[name] = _normalize_value(spec, value)

    def update_fields(self, values: dict[str, Any]) -> None:
        """Apply several field updates, all or nothing."""

        specs = {name: self._spec(name) for name in values}
        self._ensure_open()
        normalized = {name: _normalize_value(specs[name], value) for name, value in values.items()}
        self.form_data.update(normalized)

    def toggle(self, name: str, value: Any) -> bool:
        """Add ``value`` to a multi-select field, or remove it if present.

        Returns ``True`` when the value is selected afterwards.
        """

        spec = self._spec(name)
        if spec.kind != MULTI:
            raise ValueError(f"{name!r} is not a multi-select field.")
        self._ensure_open()
        if spec.choices and value not in spec.choices:
            raise ValueError(f"{value!r} is not a valid option for {name!r}.")
        selected = list(self.form_data.get(name) or [])
        if value in selected:
            selected.remove(value)
            self.form_data[name] = selected
            return False
        selected.append(value)
        self.form_data[name] = selected
        return True

    def can_submit(self) -> bool:
        return (
            not self.is_confirmed
            and self.step == self.step_count
            and self.is_step_valid(self.step_count)
        )

    def submit(self, confirm: BookingConfirmer) -> SubmitResult:
        """Hand the finished form to ``confirm`` and record its decision."""

        if not self.can_submit():
            return SubmitResult(accepted=False, reason="incomplete", attempted=False)

        outcome = confirm(copy.deepcopy(self.form_data))
        if outcome.accepted:
            self.mark_confirmed(outcome.reference)
            return SubmitResult(accepted=True, reference=outcome.reference)
        return self.mark_rejected(outcome.reason)

    def mark_confirmed(self, reference: Any = None) -> bool:
        if not self.can_submit():
            return False
        self.status = CONFIRMED
        self.reference = reference
        return True

    def mark_rejected(self, reason: str | None = None) -> SubmitResult:
        # Step and form data stay as they were so the user can retry.
        return SubmitResult(accepted=False, reason=reason or "rejected")

    def reset(self) -> None:
        self.step = 1
        self.form_data = self.flow.initial_form_data()
        self.status = IN_PROGRESS
        self.reference = None

    def to_snapshot(self) -> dict[str, Any]:
        return {
            "flow": self.flow.name,
            "step": self.step,
            "status": self.status,
            "reference": self.reference,
            "form_data": copy.deepcopy(self.form_data),
        }

    @classmethod
    def from_snapshot(cls, flow: FlowDefinition, snapshot: dict[str, Any] | None) -> "Wizard":
        snapshot = snapshot or {}
        return cls(
            flow,
            step=snapshot.get("step") or 1,
            form_data=snapshot.get("form_data") or {},
            status=snapshot.get("status") or IN_PROGRESS,
            reference=snapshot.get("reference"),
        )

    def _spec(self, name: str) -> FieldSpec:
        spec = self.flow.fields.get(name)
        if spec is None:
            raise UnknownFieldError(f"Unknown field {name!r} for flow {self.flow.name!r}.")
        return spec

    def _ensure_open(self) -> None:
        if self.is_confirmed:
            raise WizardClosedError(f"Wizard {self.flow.name!r} is already confirmed.")


def _normalize_value(spec: FieldSpec, value: Any, *, strict: bool = True) -> Any:
    """Coerce ``value`` for storage.

    Multi-select values outside the field's choices raise ``ValueError``; when
    restoring a stored snapshot (``strict=False``) they are dropped instead.
    """

    if spec.kind == MULTI:
        selected = _dedupe(value or [])
        if not spec.choices:
            return selected
        unknown = [option for option in selected if option not in spec.choices]
        if unknown and strict:
            raise ValueError(f"{unknown[0]!r} is not a valid option for {spec.name!r}.")
        return [option for option in selected if option in spec.choices]
    if isinstance(value, (date, time)):
        return value.isoformat()
    if spec.kind == CHOICE and value is not None and not isinstance(value, str):
        return str(value)
    return value


def _dedupe(values: Iterable[Any] | Any) -> list[Any]:
    if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
        values = [values]
    result: list[Any] = []
    for value in values:
        if value not in result:
            result.append(value)
    return result
