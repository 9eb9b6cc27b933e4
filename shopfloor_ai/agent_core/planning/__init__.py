"""Planners.

 A planner reads a goal plus a ``PlanContext`` and executes an ordered
 sequence of tool calls through a ``PlanSession``, narrating each step as a
 ``PlannerEvent``.

 Available planners (``PlannerKind``):

 - ``simple``: ``MinimalPlanner``, a fixed sequence over a resolved customer
   and vehicle.
 - ``guided``: ``ResolvingPlanner``, resolves or creates the customer and
   vehicle, optionally guided by a ``ReasoningProvider``.
 - ``approvals``: ``ApprovalsPlanner``, lists pending lines and decides one.
 - ``fleet``: ``FleetPlanner``, generates work orders from a fleet program.

 Planners never catch tool failures; the run manager records them.
 """

from .approvals import ApprovalsPlanner
from .base import EventCallback, Planner, PlanSession
from .fleet import FleetPlanner
from .guided import ResolvingPlanner
from .reasoning import GoalInterpretation, PydanticAIReasoningProvider, ReasoningProvider
from .simple import MinimalPlanner

__all__ = [
    "Planner",
    "PlanSession",
    "EventCallback",
    "MinimalPlanner",
    "ResolvingPlanner",
    "ApprovalsPlanner",
    "FleetPlanner",
    "GoalInterpretation",
    "ReasoningProvider",
    "PydanticAIReasoningProvider",
]
