"""Pydantic base schema utilities for agent core models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    Base Pydantic model for runtime records and tool contracts.

    Configures common Pydantic behaviors:
    - ``populate_by_name=True``: Allow initialization by alias or field name.
    - ``extra="forbid"``: Unknown fields are rejected, so a tool never sees a
      key its input schema did not declare.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
    )
