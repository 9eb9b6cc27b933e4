"""
Request Dependencies.

Provides the process-wide ``RuntimeService`` and the caller identity for API
endpoints. Authentication happens upstream; the authenticated user id and the
shop the user wants to act for arrive as request headers.
"""

from typing import Annotated, Optional

from fastapi import Depends, Header

from shopfloor_ai.agent_core.admission import CallerIdentity, Identity
from shopfloor_ai.server.services.runtime import RuntimeService, get_runtime_service

RuntimeServiceDep = Annotated[RuntimeService, Depends(get_runtime_service)]


def get_caller(
    x_user_id: Annotated[Optional[str], Header()] = None,
    x_shop_id: Annotated[Optional[str], Header()] = None,
) -> CallerIdentity:
    """Read the caller from the ``X-User-Id`` and ``X-Shop-Id`` headers."""
    return CallerIdentity(user_id=x_user_id or None, tenant_hint=x_shop_id or None)


CallerDep = Annotated[CallerIdentity, Depends(get_caller)]


async def get_identity(caller: CallerDep, service: RuntimeServiceDep) -> Identity:
    """Resolve the caller; raises ``NotAuthenticated`` / ``NoActiveTenant``."""
    return await service.resolve(caller)


IdentityDep = Annotated[Identity, Depends(get_identity)]
