"""
Tool Catalog Endpoints.

Publishes the registered tools with their input and output JSON schemas, for
UIs building forms and for external reasoning providers.
"""

from typing import List

from fastapi import APIRouter

from shopfloor_ai.server.schemas import ToolDefinition
from shopfloor_ai.server.services.deps import RuntimeServiceDep

router = APIRouter()


@router.get(
    "/",
    response_model=List[ToolDefinition],
    summary="List Tools",
    description="List every registered tool with its input and output schemas.",
)
async def list_tools(service: RuntimeServiceDep):
    return service.tool_definitions()
