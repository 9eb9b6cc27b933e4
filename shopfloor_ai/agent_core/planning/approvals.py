from __future__ import annotations

"""Approvals planner.

Understands three actions: ``list``, ``approve`` and ``reject``. The action
comes from ``context.approval_action`` or, failing that, from keywords in the
goal.

The planner always reads first (``list_pending_approvals``). It only decides a
line when it can name it: ``context.line_id``, or the id of a pending line
that appears verbatim in the goal. Otherwise it reports what is pending and
stops instead of guessing.
"""

import logging
import re
from typing import ClassVar, Optional

from ..schemas.context import PlanContext
from ..schemas.domain import PlannerKind, ToolName
from ..tools.base import ToolContext
from ..tools.registry import ToolRegistry
from .base import EventCallback, PlanSession

logger = logging.getLogger(__name__)

_REJECT = re.compile(r"\b(reject|rejected|decline|declined|deny|denied)\b", re.IGNORECASE)
_APPROVE = re.compile(r"\b(approve|approved|accept|accepted)\b", re.IGNORECASE)

_DECISIONS = {"approve": "approved", "reject": "declined"}


def parse_action(goal: str, context: PlanContext) -> str:
    """Return ``list``, ``approve`` or ``reject``; rejection wins over approval."""
    if context.approval_action is not None:
        return context.approval_action
    if _REJECT.search(goal):
        return "reject"
    if _APPROVE.search(goal):
        return "approve"
    return "list"


class ApprovalsPlanner:
    kind: ClassVar[PlannerKind] = PlannerKind.approvals

    def __init__(self, registry: ToolRegistry) -> None:
        self._registry = registry

    async def run(
        self,
        goal: str,
        context: PlanContext,
        tool_ctx: ToolContext,
        on_event: EventCallback,
    ) -> None:
        session = PlanSession(self._registry, tool_ctx, on_event)
        action = parse_action(goal, context)
        await session.plan(f"Approvals goal: {goal} (action: {action})")

        pending = await session.call(
            ToolName.list_pending_approvals,
            {"work_order_id": context.text("work_order_id")},
        )

        if action == "list":
            await session.final(f"{pending.count} line(s) awaiting approval.")
            return

        line_id = context.text("line_id") or _line_named_in_goal(goal, [item.line_id for item in pending.items])
        if line_id is None:
            logger.debug(f"Approvals planner could not resolve a line to {action}")
            await session.final(
                f"{pending.count} line(s) awaiting approval. Specify which line to {action} (lineId)."
            )
            return

        decided = await session.call(
            ToolName.set_line_approval,
            {"line_id": line_id, "decision": _DECISIONS[action], "note": context.text("approval_note")},
        )
        await session.final(f"Line {decided.line_id} {decided.approval_state}.")


def _line_named_in_goal(goal: str, line_ids: list[str]) -> Optional[str]:
    lowered = goal.lower()
    return next((line_id for line_id in line_ids if line_id.lower() in lowered), None)
