"""
Saga operation log module for opsdesk.
"""

from .operate_log import (
    DEFAULT_TERMINAL_STATUSES,
    OperateLogStore,
)

__all__ = [
    "DEFAULT_TERMINAL_STATUSES",
    "OperateLogStore",
]
