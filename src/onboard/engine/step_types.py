"""Step Types — definitions for onboarding step variants.

Manifesto:
An onboarding flow is a list of Steps, but steps come in different
flavours: information screens, single and multiple choice questions,
confirmations, checklists and host-rendered custom components.  This
module defines the ``Step`` dataclass, its navigation edges and its
factory methods so that flow authors never deal with raw internals.

ARCHITECTURE
────────────
::

    Step
      ├── .information(id, ...)                   ── plain content screen
      ├── .single_choice(id, options, ...)        ── one option
      ├── .multiple_choice(id, options, ...)      ── many options
      ├── .confirmation(id, ...)                  ── yes / no gate
      ├── .checklist(id, items, data_key, ...)    ── completion policy
      └── .custom(id, component_key, ...)         ── host component

    StepType            ── enum of the six step variants
    StepRef             ── LiteralRef(step_id) | DynamicRef(fn)
    UNSET / UNRESOLVED  ── "edge absent" / "dynamic edge fell through"
    NavigationDirection ── next, previous, skip, goto, initial

Navigation edges (``next_step``, ``previous_step``, ``skip_to_step``)
accept a raw value at construction and are normalised to a ``StepRef``:

    =============  ===================================================
    Raw value      Meaning
    =============  ===================================================
    ``UNSET``      edge absent, fall through to array order (default)
    ``None``       end of flow
    ``"id"`` / 3   literal step id
    callable       ``fn(context)`` returning an id, ``None`` or
                   ``UNRESOLVED``
    =============  ===================================================

Example::

    from onboard.engine import Step

    steps = [
        Step.information("welcome", title="Welcome!"),
        Step.single_choice(
            "role",
            options=[{"id": "dev", "label": "Developer"}],
            data_key="role",
            next_step=lambda ctx: "dev-setup" if ctx.flow_data.get("role") == "dev" else "done",
        ),
        Step.information("dev-setup", condition=lambda ctx: ctx.flow_data.get("role") == "dev"),
        Step.confirmation("done", next_step=None),
    ]

Tags:
    onboard, engine, step-types, checklist, branching
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from onboard.engine.flow_context import FlowContext


StepId = Union[str, int]


class _Sentinel:
    """Named singleton marker distinct from ``None``."""

    __slots__ = ("_name",)

    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> _Sentinel:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> _Sentinel:
        return self


UNSET = _Sentinel("UNSET")
UNRESOLVED = _Sentinel("UNRESOLVED")


class StepType(str, Enum):
    """Type of onboarding step."""

    INFORMATION = "INFORMATION"
    SINGLE_CHOICE = "SINGLE_CHOICE"
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    CONFIRMATION = "CONFIRMATION"
    CHECKLIST = "CHECKLIST"
    CUSTOM_COMPONENT = "CUSTOM_COMPONENT"


class NavigationDirection(str, Enum):
    """Why a transition was requested."""

    NEXT = "next"
    PREVIOUS = "previous"
    SKIP = "skip"
    GOTO = "goto"
    INITIAL = "initial"


# =============================================================================
# Step references
# =============================================================================


@dataclass(frozen=True)
class LiteralRef:
    """A fixed target: a step id, or ``None`` for end of flow."""

    step_id: StepId | None

    def evaluate(self, context: FlowContext) -> StepId | None:
        return self.step_id


@dataclass(frozen=True)
class DynamicRef:
    """A target computed from the context at navigation time."""

    fn: Callable[[FlowContext], Any]

    def evaluate(self, context: FlowContext) -> Any:
        return self.fn(context)


StepRef = Union[LiteralRef, DynamicRef]


def to_step_ref(value: Any) -> StepRef | _Sentinel:
    """Normalise a raw edge value into a ``StepRef`` (``UNSET`` stays ``UNSET``)."""
    if value is UNSET:
        return UNSET
    if isinstance(value, (LiteralRef, DynamicRef)):
        return value
    if callable(value):
        return DynamicRef(value)
    if value is None or isinstance(value, (str, int)):
        return LiteralRef(value)
    raise TypeError(f"Invalid step reference: {value!r}")


# =============================================================================
# Checklist payload
# =============================================================================


@dataclass(frozen=True)
class ChecklistItem:
    """One item of a checklist step.

    Items are mandatory unless ``is_mandatory=False``.  An item whose
    ``condition`` returns False is hidden and ignored by the policy.
    """

    id: str
    label: str = ""
    is_mandatory: bool = True
    condition: Callable[[FlowContext], bool] | None = None
    description: str | None = None
    meta: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ChecklistItem:
        return cls(
            id=data["id"],
            label=data.get("label", ""),
            is_mandatory=data.get("is_mandatory", True) is not False,
            condition=data.get("condition"),
            description=data.get("description"),
            meta=data.get("meta") or {},
        )


@dataclass(frozen=True)
class ChecklistPayload:
    """Payload of a ``CHECKLIST`` step.

    Attributes:
        items: Item definitions in display order
        data_key: ``flow_data`` key holding the item state list
        min_items_to_complete: If set, completion means this many
            visible items are done, regardless of mandatory flags
        title: Optional heading for the host UI
    """

    items: tuple[ChecklistItem, ...]
    data_key: str
    min_items_to_complete: int | None = None
    title: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ChecklistPayload:
        items = tuple(
            item if isinstance(item, ChecklistItem) else ChecklistItem.from_mapping(item)
            for item in data.get("items") or ()
        )
        return cls(
            items=items,
            data_key=data["data_key"],
            min_items_to_complete=data.get("min_items_to_complete"),
            title=data.get("title"),
        )


# =============================================================================
# Step
# =============================================================================


StepHook = Callable[..., Any]


@dataclass(frozen=True, eq=False)
class Step:
    """
    A single node of the onboarding flow graph.

    Steps are immutable configuration; the engine never mutates one.
    Hooks may be plain functions or coroutine functions:

    - ``on_step_active(context)`` runs when the step becomes current
    - ``on_step_complete(step_data, context)`` runs when ``next()`` leaves it
    """

    id: StepId
    type: StepType = StepType.INFORMATION
    payload: Any = field(default_factory=dict)

    next_step: Any = UNSET
    previous_step: Any = UNSET
    skip_to_step: Any = UNSET
    condition: Callable[[FlowContext], bool] | None = None
    is_skippable: bool = False

    on_step_active: StepHook | None = None
    on_step_complete: StepHook | None = None

    title: str | None = None
    description: str | None = None
    meta: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.type, StepType):
            object.__setattr__(self, "type", StepType(self.type))
        for name in ("next_step", "previous_step", "skip_to_step"):
            object.__setattr__(self, name, to_step_ref(getattr(self, name)))
        if self.type == StepType.CHECKLIST and isinstance(self.payload, Mapping):
            try:
                payload = ChecklistPayload.from_mapping(self.payload)
            except (KeyError, TypeError):
                # Left raw when malformed so the validator can report it
                return
            object.__setattr__(self, "payload", payload)

    @property
    def checklist_payload(self) -> ChecklistPayload | None:
        """The checklist payload, or None for other step types."""
        if isinstance(self.payload, ChecklistPayload):
            return self.payload
        return None

    def __repr__(self) -> str:
        return f"Step(id={self.id!r}, type={self.type.value})"

    # =========================================================================
    # Factory Methods
    # =========================================================================

    @classmethod
    def information(cls, id: StepId, **kwargs: Any) -> Step:
        """Create a plain content step."""
        return cls(id=id, type=StepType.INFORMATION, **kwargs)

    @classmethod
    def single_choice(
        cls,
        id: StepId,
        options: list[Mapping[str, Any]],
        data_key: str | None = None,
        **kwargs: Any,
    ) -> Step:
        """Create a step where the user picks one option."""
        payload = {"options": list(options), "data_key": data_key or str(id)}
        return cls(id=id, type=StepType.SINGLE_CHOICE, payload=payload, **kwargs)

    @classmethod
    def multiple_choice(
        cls,
        id: StepId,
        options: list[Mapping[str, Any]],
        data_key: str | None = None,
        **kwargs: Any,
    ) -> Step:
        """Create a step where the user picks any number of options."""
        payload = {"options": list(options), "data_key": data_key or str(id)}
        return cls(id=id, type=StepType.MULTIPLE_CHOICE, payload=payload, **kwargs)

    @classmethod
    def confirmation(cls, id: StepId, **kwargs: Any) -> Step:
        """Create a yes/no confirmation step."""
        return cls(id=id, type=StepType.CONFIRMATION, **kwargs)

    @classmethod
    def checklist(
        cls,
        id: StepId,
        items: list[ChecklistItem | Mapping[str, Any]],
        data_key: str,
        min_items_to_complete: int | None = None,
        title: str | None = None,
        **kwargs: Any,
    ) -> Step:
        """Create a checklist step.

        Example::

            Step.checklist(
                "setup",
                items=[
                    {"id": "profile", "label": "Fill in your profile"},
                    {"id": "avatar", "label": "Upload an avatar", "is_mandatory": False},
                ],
                data_key="setup_items",
            )
        """
        payload = ChecklistPayload.from_mapping(
            {
                "items": items,
                "data_key": data_key,
                "min_items_to_complete": min_items_to_complete,
                "title": title,
            }
        )
        return cls(id=id, type=StepType.CHECKLIST, payload=payload, **kwargs)

    @classmethod
    def custom(cls, id: StepId, component_key: str, **kwargs: Any) -> Step:
        """Create a step rendered by a host-registered component."""
        payload = dict(kwargs.pop("payload", None) or {})
        payload["component_key"] = component_key
        return cls(id=id, type=StepType.CUSTOM_COMPONENT, payload=payload, **kwargs)


__all__ = [
    "StepId",
    "UNSET",
    "UNRESOLVED",
    "StepType",
    "NavigationDirection",
    "LiteralRef",
    "DynamicRef",
    "StepRef",
    "to_step_ref",
    "ChecklistItem",
    "ChecklistPayload",
    "Step",
]
