"""
Core utilities and configuration for ShopFloor-AI.

This package provides core functionality including logging configuration
and optional Logfire monitoring.
"""

from shopfloor_ai.core.logging_config import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
