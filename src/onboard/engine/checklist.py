"""Checklist Policy — completion semantics for ``CHECKLIST`` steps.

Item state lives in ``flow_data[payload.data_key]`` as a list of
``{"id": str, "is_completed": bool}`` dicts, one per item definition.

Rules
-----
- Reading state initialises it: missing state, or state whose length no
  longer matches the definitions, is replaced by a fresh all-incomplete
  list.  Later reads with unchanged context return the stored list as is.
- Items whose ``condition`` fails are invisible and ignored everywhere.
- With ``min_items_to_complete`` set, the step is complete once that many
  visible items are done.  Otherwise it is complete when no visible
  mandatory item is pending.
- Progress is completed / visible, rounded half-up to a whole percent;
  zero visible items means 0%.

``update_item`` writes the new state first, then emits
``checklist.item_toggled`` and ``checklist.progress_changed``, so the
progress payload always reflects the write.
"""

from __future__ import annotations

import inspect
import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from onboard.core.events import EventHub
from onboard.core.logging import get_logger
from onboard.engine.events import (
    ChecklistItemToggledEvent,
    ChecklistProgressChangedEvent,
    EngineEvent,
)
from onboard.engine.flow_context import FlowContext
from onboard.engine.step_types import ChecklistItem, ChecklistPayload, Step

logger = get_logger(__name__)


def percentage(part: int, whole: int) -> int:
    """``part / whole`` as a whole percent, rounded half-up; 0 when ``whole`` is 0."""
    if whole <= 0:
        return 0
    return int(math.floor(part * 100 / whole + 0.5))


@dataclass(frozen=True)
class ChecklistProgress:
    completed: int
    total: int
    percentage: int
    is_complete: bool


def _item_visible(item: ChecklistItem, context: FlowContext) -> bool:
    return item.condition is None or bool(item.condition(context))


class ChecklistPolicy:
    """Reads, evaluates and updates checklist item state."""

    def __init__(self, hub: EventHub):
        self._hub = hub

    @staticmethod
    def _payload(step: Step) -> ChecklistPayload:
        payload = step.checklist_payload
        if payload is None:
            raise TypeError(f"Step '{step.id}' is not a valid checklist step")
        return payload

    def get_items_state(self, step: Step, context: FlowContext) -> list[dict[str, Any]]:
        """Stored item state, initialised (or resynced) on first read."""
        payload = self._payload(step)
        stored = context.flow_data.get(payload.data_key)
        if not isinstance(stored, list) or len(stored) != len(payload.items):
            stored = [{"id": item.id, "is_completed": False} for item in payload.items]
            context.flow_data[payload.data_key] = stored
            logger.debug("checklist_state_initialized", step_id=step.id, items=len(stored))
        return stored

    def _completed_ids(self, step: Step, context: FlowContext) -> set[str]:
        return {
            state["id"]
            for state in self.get_items_state(step, context)
            if isinstance(state, dict) and state.get("is_completed")
        }

    def is_complete(self, step: Step, context: FlowContext) -> bool:
        payload = self._payload(step)
        done = self._completed_ids(step, context)
        completed = 0
        mandatory_pending = 0
        for item in payload.items:
            if not _item_visible(item, context):
                continue
            if item.id in done:
                completed += 1
            elif item.is_mandatory:
                mandatory_pending += 1

        if payload.min_items_to_complete is not None:
            return completed >= payload.min_items_to_complete
        return mandatory_pending == 0

    def get_progress(self, step: Step, context: FlowContext) -> ChecklistProgress:
        payload = self._payload(step)
        done = self._completed_ids(step, context)
        visible = [item for item in payload.items if _item_visible(item, context)]
        completed = sum(1 for item in visible if item.id in done)
        return ChecklistProgress(
            completed=completed,
            total=len(visible),
            percentage=percentage(completed, len(visible)),
            is_complete=self.is_complete(step, context),
        )

    async def update_item(
        self,
        item_id: str,
        is_completed: bool,
        step: Step,
        context: FlowContext,
        persist: Callable[[], Any] | None = None,
    ) -> bool:
        """Set one item's completion flag.

        Returns:
            True if ``flow_data`` actually changed
        """
        payload = self._payload(step)
        if not any(item.id == item_id for item in payload.items):
            logger.warning(
                "checklist_item_not_found",
                step_id=step.id,
                item_id=item_id,
                available=[item.id for item in payload.items],
            )
            return False

        before = context.fingerprint()
        states = [dict(state) for state in self.get_items_state(step, context)]
        for state in states:
            if state.get("id") == item_id:
                state["is_completed"] = is_completed
                break
        else:
            states.append({"id": item_id, "is_completed": is_completed})
        context.flow_data[payload.data_key] = states

        self._hub.notify(
            EngineEvent.CHECKLIST_ITEM_TOGGLED,
            ChecklistItemToggledEvent(
                item_id=item_id, is_completed=is_completed, step=step, context=context
            ),
        )
        self._hub.notify(
            EngineEvent.CHECKLIST_PROGRESS_CHANGED,
            ChecklistProgressChangedEvent(
                step=step, context=context, progress=self.get_progress(step, context)
            ),
        )

        changed = context.fingerprint() != before
        if changed and persist is not None:
            result = persist()
            if inspect.isawaitable(result):
                await result
        return changed


__all__ = ["ChecklistPolicy", "ChecklistProgress", "percentage"]
