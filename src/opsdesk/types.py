"""
opsdesk type definitions

Wire models shared by the stores, the REST API and the SDK. Field names
are snake_case in Python and camelCase on the wire.
"""

from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

__all__ = [
    "CamelModel",
    "QuotaRule",
    "VolumeLabels",
    "Volume",
    "VolumeOperateParams",
    "VolumeRecord",
    "VolumeRecordOperateParams",
    "SagaStatus",
    "OperateLog",
    "OperateLogOperateParams",
    "CommonSearchParams",
    "VolumeSearchParams",
    "VolumeRecordSearchParams",
    "OperateLogSearchParams",
    "PageResult",
    "BatchDeleteFailure",
    "BatchDeleteResult",
]

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


# =============================================================================
# Volume
# =============================================================================

class QuotaRule(CamelModel):
    """Dataset quota; size is only meaningful when enabled"""

    model_config = ConfigDict(extra="allow")

    enabled: bool = Field(default=False, description="Quota enforced")

    size: int = Field(default=0, ge=0, description="Quota size in bytes")

    @property
    def effective_size(self) -> Optional[int]:
        return self.size if self.enabled else None


class VolumeLabels(CamelModel):
    """
    Volume labels.

    The named fields are the subset every opsdesk volume carries. Labels
    written by other tools (compose project, driver hints, ...) are kept
    as extra keys and returned unchanged.
    """

    model_config = ConfigDict(extra="allow")

    volume_type_enum: str = Field(..., description="Volume type")

    user_id: str = Field(..., description="Owning user ID")

    username: str = Field(default="", description="Owning user name")

    zfs_dataset: str = Field(..., description="Backing ZFS dataset path")

    is_built_in: bool = Field(default=False, description="Built-in volume, not user deletable")

    alias: str = Field(default="", description="Display name")


class Volume(CamelModel):
    """Live Docker volume"""

    name: str = Field(..., description="Volume name (unique, immutable)")

    driver: str = Field(default="local", description="Volume driver")

    create_time: str = Field(..., description="Creation timestamp (ISO 8601)")

    mountpoint: Optional[str] = Field(None, description="Mountpoint when attached")

    options: Dict[str, Any] = Field(
        default_factory=dict,
        description="Driver specific options"
    )

    quota_rule: Optional[QuotaRule] = Field(None, description="Dataset quota")

    labels: VolumeLabels = Field(..., description="Volume labels")


class VolumeOperateParams(CamelModel):
    """Create/update body for volumes; every field is optional on the wire"""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = Field(None, description="Lookup key for updates")
    name: Optional[str] = None
    alias: Optional[str] = None
    driver: Optional[str] = None
    create_time: Optional[str] = None
    user_id: Optional[str] = None
    username: Optional[str] = None
    volume_type: Optional[str] = None
    is_builtin: Optional[bool] = None
    mountpoint: Optional[str] = None
    options: Optional[Dict[str, Any]] = None
    quota_rule: Optional[QuotaRule] = None
    labels: Optional[Dict[str, Any]] = Field(
        None,
        description="Extra labels merged into the volume labels"
    )


# =============================================================================
# Volume recovery ledger
# =============================================================================

class VolumeRecord(CamelModel):
    """Soft-deleted volume kept for restoration"""

    id: str = Field(..., description="Record identifier")

    volume_name: str = Field(..., description="Name of the deleted volume")

    zfs_dataset: str = Field(..., description="Dataset path needed for recovery")

    driver: str = Field(default="local", description="Volume driver")

    labels: str = Field(default="{}", description="Labels as JSON text, kept verbatim")

    options: str = Field(default="{}", description="Options as JSON text, kept verbatim")

    remark: str = Field(default="", description="Free text annotation")

    create_time: str = Field(..., description="Record creation timestamp")

    update_time: Optional[str] = Field(None, description="Last remark edit")


class VolumeRecordOperateParams(CamelModel):
    """Create/update body for volume records"""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    volume_name: Optional[str] = None
    zfs_dataset: Optional[str] = None
    driver: Optional[str] = None
    labels: Optional[Union[str, Dict[str, Any]]] = None
    options: Optional[Union[str, Dict[str, Any]]] = None
    remark: Optional[str] = None


# =============================================================================
# Saga operation log
# =============================================================================

class SagaStatus(str, Enum):
    """Saga statuses known to opsdesk; the orchestrator may report others"""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    COMPENSATING = "compensating"
    COMPENSATED = "compensated"
    FAILED = "failed"


class OperateLog(CamelModel):
    """Snapshot of one saga execution attempt"""

    saga_operate_id: str = Field(..., description="Saga execution attempt ID")

    saga_name: str = Field(..., description="Logical saga name")

    saga_status: str = Field(..., description="Saga status as reported by the orchestrator")

    current_step_name: str = Field(default="", description="Last or active step")

    saga_context_json: str = Field(default="", description="Execution context, opaque JSON text")

    error_details: str = Field(default="", description="Failure detail, empty on success")

    create_time: str = Field(..., description="Creation timestamp")

    update_time: Optional[str] = Field(None, description="Last update timestamp")


class OperateLogOperateParams(CamelModel):
    """Create/update body for saga operate logs"""

    model_config = ConfigDict(extra="ignore")

    saga_operate_id: Optional[str] = None
    saga_name: Optional[str] = None
    saga_status: Optional[str] = None
    current_step_name: Optional[str] = None
    saga_context_json: Optional[str] = None
    error_details: Optional[str] = None


# =============================================================================
# Search and paging
# =============================================================================

class CommonSearchParams(CamelModel):
    """Paging and sorting parameters shared by every list endpoint"""

    model_config = ConfigDict(extra="ignore")

    current: int = Field(default=1, ge=1, description="Page number (1-based)")

    size: int = Field(default=10, ge=1, description="Page size")

    order_by_column: Optional[str] = Field(None, description="camelCase field to sort by")

    is_asc: Optional[bool] = Field(None, description="Ascending sort")


class VolumeSearchParams(CommonSearchParams):
    name: Optional[str] = None
    alias: Optional[str] = None
    username: Optional[str] = None


class VolumeRecordSearchParams(CommonSearchParams):
    volume_name: Optional[str] = None


class OperateLogSearchParams(CommonSearchParams):
    saga_name: Optional[str] = None
    saga_status: Optional[str] = None


class PageResult(CamelModel, Generic[T]):
    """One page of search results"""

    records: List[T] = Field(default_factory=list)

    current: int = Field(default=1, description="Page number")

    size: int = Field(default=10, description="Page size")

    total: int = Field(default=0, description="Total matching records")


# =============================================================================
# Batch delete
# =============================================================================

class BatchDeleteFailure(CamelModel):
    """Identifier that could not be deleted"""

    id: str
    error_code: str
    message: str


class BatchDeleteResult(CamelModel):
    """Per-item outcome of a batch delete"""

    success: bool = True

    deleted: List[str] = Field(default_factory=list)

    failed: List[BatchDeleteFailure] = Field(default_factory=list)

    def add_failure(self, identifier: str, exc: Any) -> None:
        self.success = False
        self.failed.append(
            BatchDeleteFailure(
                id=identifier,
                error_code=exc.error_code,
                message=exc.message,
            )
        )

    def failed_ids(self, error_code: Optional[str] = None) -> List[str]:
        return [
            failure.id for failure in self.failed
            if error_code is None or failure.error_code == error_code
        ]
