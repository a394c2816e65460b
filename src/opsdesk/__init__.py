"""
opsdesk: Docker volume and saga operate log administration

Backend for the admin console's volume registry, the recovery ledger of
soft-deleted volumes and the saga operation audit log, plus an async
client SDK for the same endpoints.
"""

__version__ = "1.0.0"

from opsdesk.manager import OpsDeskManager
from opsdesk.config import OpsDeskConfig
from opsdesk.types import (
    Volume,
    VolumeLabels,
    QuotaRule,
    VolumeOperateParams,
    VolumeRecord,
    VolumeRecordOperateParams,
    OperateLog,
    OperateLogOperateParams,
    SagaStatus,
    CommonSearchParams,
    VolumeSearchParams,
    VolumeRecordSearchParams,
    OperateLogSearchParams,
    PageResult,
    BatchDeleteResult,
)
from opsdesk.docker import VolumeRegistry, VolumeRecordLedger
from opsdesk.saga import OperateLogStore
from opsdesk.api.rest import create_app, ErrorResponse
from opsdesk.api.sdk import OpsDeskSDK, SDKConfig

from opsdesk.errors import (
    OpsDeskError,
    ValidationError,
    NotFoundError,
    VolumeNotFoundError,
    VolumeRecordNotFoundError,
    OperateLogNotFoundError,
    ImmutableFieldError,
    ConflictError,
    ProtectedResourceError,
)

__all__ = [
    "OpsDeskManager",
    "OpsDeskConfig",
    # Types
    "Volume",
    "VolumeLabels",
    "QuotaRule",
    "VolumeOperateParams",
    "VolumeRecord",
    "VolumeRecordOperateParams",
    "OperateLog",
    "OperateLogOperateParams",
    "SagaStatus",
    "CommonSearchParams",
    "VolumeSearchParams",
    "VolumeRecordSearchParams",
    "OperateLogSearchParams",
    "PageResult",
    "BatchDeleteResult",
    # Stores
    "VolumeRegistry",
    "VolumeRecordLedger",
    "OperateLogStore",
    # API exports
    "create_app",
    "ErrorResponse",
    "OpsDeskSDK",
    "SDKConfig",
    # Exception classes
    "OpsDeskError",
    "ValidationError",
    "NotFoundError",
    "VolumeNotFoundError",
    "VolumeRecordNotFoundError",
    "OperateLogNotFoundError",
    "ImmutableFieldError",
    "ConflictError",
    "ProtectedResourceError",
]
