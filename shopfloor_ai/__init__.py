"""ShopFloor-AI.

This package contains the tool invocation and planning runtime used by
ShopFloor-AI to turn a shop user's goal into a persisted, auditable sequence of
side-effecting operations (create a work order, add a line, e-mail an invoice,
generate fleet work orders, ...).

High-level architecture
-----------------------

The codebase is organized around three concepts:

- **Tools**: named, schema-validated operations. Every tool call goes through
  a single dispatch point that validates input before and output after the
  tool body runs.
- **Planners**: deterministic (or externally guided) compositions of tool
  calls. Planners narrate their work as a typed event stream.
- **Runs**: the unit of work. A run is admitted (identity, rate limit,
  idempotency key), executed by one planner and finalized exactly once.

Core subpackages
----------------

- ``shopfloor_ai.agent_core``:

  - Tool contracts, the tool registry and the built-in shop tools.
  - Planners (minimal, guided, approvals, fleet).
  - A LangGraph-based run lifecycle manager.
  - Repository interfaces and SQL implementations for runs and events.

- ``shopfloor_ai.shop``:

  - ORM tables for the shop domain records touched by tools.

- ``shopfloor_ai.server``:

  - FastAPI transport for starting runs and reading/streaming their events.

Typical workflow
----------------

Most integrations should use ``shopfloor_ai.agent_core.factory.build_run_manager``
and call ``RunManager.start_run``:

1. Resolve the caller into a tenant and user.
2. Pass the rate-limit gate and the idempotency check.
3. Create a ``running`` run and execute the selected planner.
4. Finalize the run as ``succeeded`` or ``failed``.
"""
