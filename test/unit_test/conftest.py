"""Shop database fixtures shared by the agent core and server tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from shopfloor_ai.agent_core.factory import build_default_registry
from shopfloor_ai.agent_core.repos.sql import create_all, create_engine, create_sessionmaker
from shopfloor_ai.agent_core.tools.base import ToolContext
from shopfloor_ai.agent_core.tools.mailer import MailDeliveryError
from shopfloor_ai.agent_core.tools.registry import ToolRegistry
from shopfloor_ai.shop.models import CustomerRow, ProfileRow, ShopRow, VehicleRow


@dataclass(frozen=True)
class ShopFixture:
    shop_id: str = "shop-1"
    user_id: str = "user-1"
    customer_id: str = "cust-1"
    vehicle_id: str = "veh-1"
    plate: str = "ABC123"
    vin: str = "1HGCM82633A004352"
    other_shop_id: str = "shop-2"
    other_user_id: str = "user-2"
    other_customer_id: str = "cust-2"
    other_vehicle_id: str = "veh-2"
    homeless_user_id: str = "user-3"


@dataclass
class RecordingMailer:
    sent: List[dict] = field(default_factory=list)
    fail: bool = False

    async def send(self, *, to: str, subject: str, html: str) -> Optional[str]:
        if self.fail:
            raise MailDeliveryError("Mail provider returned 503")
        self.sent.append({"to": to, "subject": subject, "html": html})
        return f"msg-{len(self.sent)}"


@pytest.fixture
async def engine() -> AsyncEngine:
    """In-memory SQLite database with every table created."""
    engine = create_engine("sqlite+aiosqlite:///:memory:")
    await create_all(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_sessionmaker(engine)


@pytest.fixture
async def shop(session_factory: async_sessionmaker[AsyncSession]) -> ShopFixture:
    """Two shops, each with one customer and vehicle, plus a user without a shop."""
    ids = ShopFixture()
    now = datetime.now(timezone.utc)
    async with session_factory() as s:
        s.add_all(
            [
                ShopRow(id=ids.shop_id, name="Main Street Garage", labor_rate=120.0, created_at=now),
                ShopRow(id=ids.other_shop_id, name="Other Garage", labor_rate=90.0, created_at=now),
                ProfileRow(id=ids.user_id, shop_id=ids.shop_id, email="advisor@example.com"),
                ProfileRow(id=ids.other_user_id, shop_id=ids.other_shop_id),
                ProfileRow(id=ids.homeless_user_id, shop_id=None),
                CustomerRow(
                    id=ids.customer_id,
                    shop_id=ids.shop_id,
                    name="Jane Doe",
                    email="jane@example.com",
                    created_at=now,
                ),
                VehicleRow(
                    id=ids.vehicle_id,
                    shop_id=ids.shop_id,
                    customer_id=ids.customer_id,
                    year=2018,
                    make="Toyota",
                    model="Corolla",
                    vin=ids.vin,
                    license_plate=ids.plate,
                    created_at=now,
                ),
                CustomerRow(id=ids.other_customer_id, shop_id=ids.other_shop_id, name="Jane Other", created_at=now),
                VehicleRow(
                    id=ids.other_vehicle_id,
                    shop_id=ids.other_shop_id,
                    customer_id=ids.other_customer_id,
                    license_plate="ZZZ999",
                    created_at=now,
                ),
            ]
        )
        await s.commit()
    return ids


@pytest.fixture
def tool_ctx(shop: ShopFixture) -> ToolContext:
    return ToolContext(tenant_id=shop.shop_id, user_id=shop.user_id)


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def registry(session_factory: async_sessionmaker[AsyncSession], mailer: RecordingMailer) -> ToolRegistry:
    return build_default_registry(session_factory, mailer)
