"""
ShopFloor-AI Server Package.

This package contains the web server implementation for the ShopFloor-AI
planning runtime.

Subpackages:
    api: FastAPI route definitions and endpoint logic.
    core: Configuration, constants and database connections.
    exception_handlers: Mapping of runtime errors to HTTP responses.
    schemas: Pydantic schemas for API request/response validation.
    services: Service layer wrapping the run manager.
"""
