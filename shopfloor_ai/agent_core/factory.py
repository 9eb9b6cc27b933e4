from __future__ import annotations

"""Convenience factories for wiring the agent core.

This module contains small helpers to build the default tool registry and a
``RunManager`` backed by the SQL repositories.

The intent is to keep application wiring and tests concise, while still
allowing deployments to provide their own registry, repositories or
admission collaborators by constructing ``RuntimeDeps`` directly.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .planning.reasoning import ReasoningProvider
from .repos.sql import build_sql_repos
from .runtime import RunManager, RuntimeDeps
from .schemas.domain import PlannerKind
from .tools.approvals import ListPendingApprovalsTool, SetLineApprovalTool
from .tools.customers import CreateCustomerTool, CreateVehicleTool, FindCustomerVehicleTool
from .tools.fleet import (
    FindOrCreateFleetProgramTool,
    FindOrCreateFleetTool,
    GenerateFleetWorkOrdersTool,
    LookupFleetTool,
)
from .tools.inspections import CreateCustomInspectionTool
from .tools.invoices import EmailInvoiceTool, GenerateInvoiceHtmlTool
from .tools.mailer import Mailer
from .tools.registry import ToolRegistry
from .tools.work_orders import (
    AddWorkOrderLineTool,
    AttachPhotoTool,
    CreateWorkOrderTool,
    RecordWorkOrderApprovalTool,
)


def build_default_registry(
    session_factory: async_sessionmaker[AsyncSession],
    mailer: Optional[Mailer] = None,
) -> ToolRegistry:
    """Build the ``ToolRegistry`` with every built-in shop tool.

    Without a ``mailer`` the ``email_invoice`` tool is still registered but
    fails with ``unavailable`` when called.
    """
    reg = ToolRegistry()
    for tool_cls in (
        FindCustomerVehicleTool,
        CreateCustomerTool,
        CreateVehicleTool,
        CreateWorkOrderTool,
        AddWorkOrderLineTool,
        AttachPhotoTool,
        RecordWorkOrderApprovalTool,
        CreateCustomInspectionTool,
        GenerateInvoiceHtmlTool,
        ListPendingApprovalsTool,
        SetLineApprovalTool,
        LookupFleetTool,
        FindOrCreateFleetTool,
        FindOrCreateFleetProgramTool,
        GenerateFleetWorkOrdersTool,
    ):
        reg.register(tool_cls(session_factory))
    reg.register(EmailInvoiceTool(mailer=mailer))
    return reg


def build_run_manager(
    *,
    session_factory: async_sessionmaker[AsyncSession],
    mailer: Optional[Mailer] = None,
    reasoning: Optional[ReasoningProvider] = None,
    default_planner: Optional[PlannerKind] = None,
    max_runs: int = 10,
    window_seconds: int = 60,
    registry: Optional[ToolRegistry] = None,
) -> RunManager:
    """Construct a ``RunManager`` over the SQL stores sharing ``session_factory``."""
    repos = build_sql_repos(session_factory=session_factory, max_runs=max_runs, window_seconds=window_seconds)
    deps = RuntimeDeps(
        runs=repos.runs,
        events=repos.events,
        identity=repos.identity,
        rate_limiter=repos.rate_limiter,
        registry=registry if registry is not None else build_default_registry(session_factory, mailer),
        reasoning=reasoning,
        default_planner=default_planner,
    )
    return RunManager(deps)
