"""Repository interfaces and SQL implementations for run persistence.

The repository layer is the persistence boundary for the run manager.

Responsibilities
----------------

- Provide a small set of async repository interfaces (Protocols) that the
  runtime can depend on.
- Persist durable, auditable records of a run:

  - run metadata and status (one terminal transition),
  - the event stream (append-only, numbered from 1).

Design notes
------------

The runtime is written against interfaces so it can be used with:

- a SQL database (async SQLAlchemy implementation provided in ``repos.sql``),
- in-memory fakes for unit tests.

The SQL implementation commits at repository-method boundaries, so every
event is durable before the planner proceeds.
"""

from .interfaces import EventRepository, RunRepository

__all__ = [
    "RunRepository",
    "EventRepository",
]
