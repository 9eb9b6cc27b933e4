from __future__ import annotations

"""Shared helpers for tools backed by the shop database."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, TypeVar
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ...shop.models import ShopRow
from ..errors import ToolFailure
from .base import ToolContext

RowT = TypeVar("RowT")


@dataclass(frozen=True)
class ShopStoreTool:
    """Base for tools that read and write ``shopfloor_ai.shop.models`` tables.

    Each ``execute`` opens one session and commits once, so a tool's writes
    land together or not at all.
    """

    session_factory: async_sessionmaker[AsyncSession]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


def ensure_in_shop(row: Optional[RowT], ctx: ToolContext, label: str) -> RowT:
    """Return ``row`` when it exists and belongs to the run's shop.

    Raises:
        ToolFailure: ``not_found`` when missing, ``forbidden`` when the row
            belongs to another shop.
    """
    if row is None:
        raise ToolFailure(f"{label} not found", code="not_found")
    if getattr(row, "shop_id", None) != ctx.tenant_id:
        raise ToolFailure("Cross-shop access denied", code="forbidden")
    return row


async def shop_labor_rate(session: AsyncSession, ctx: ToolContext) -> float:
    shop = await session.get(ShopRow, ctx.tenant_id)
    return float(shop.labor_rate) if shop is not None and shop.labor_rate else 0.0
