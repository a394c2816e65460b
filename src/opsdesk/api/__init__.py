"""
opsdesk API module

REST API server and Python SDK.
"""

from opsdesk.api.rest import (
    create_app,
    app,
    ErrorResponse,
    HealthStatus,
)
from opsdesk.api.sdk import (
    OpsDeskSDK,
    SDKConfig,
)

__all__ = [
    "create_app",
    "app",
    "ErrorResponse",
    "HealthStatus",
    # SDK exports
    "OpsDeskSDK",
    "SDKConfig",
]
