"""
Structured logging for Backend MegaRank.

JSON logs with timestamp, event_type, address and retry context.
Use get_logger() in every module for aggregation-friendly output.
"""

from backend_megarank.megarank_logging.logger import bind_address, get_logger

__all__ = ["bind_address", "get_logger"]
