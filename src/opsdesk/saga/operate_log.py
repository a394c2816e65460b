"""
Saga operation log

Audit trail of saga executions. Entries are snapshots written by the
orchestrator; this store persists and serves them but never computes
status transitions. Create and update exist for administrative
correction, and pruning is only allowed once a saga has finished.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from ..errors import (
    ConflictError,
    OperateLogNotFoundError,
    OpsDeskError,
    ProtectedResourceError,
    ValidationError,
)
from ..monitoring.metrics import InMemoryMetricsCollector
from ..types import (
    BatchDeleteResult,
    OperateLog,
    OperateLogOperateParams,
    OperateLogSearchParams,
    PageResult,
    SagaStatus,
)
from ..utils.paging import contains_ci, paginate, split_ids

logger = logging.getLogger(__name__)

RESOURCE = "operate_log"

DEFAULT_TERMINAL_STATUSES = (
    SagaStatus.COMPLETED.value,
    SagaStatus.FAILED.value,
    SagaStatus.COMPENSATED.value,
)

# Fields an update may overwrite
MUTABLE_FIELDS = (
    "saga_name",
    "saga_status",
    "current_step_name",
    "saga_context_json",
    "error_details",
)


class OperateLogStore:
    """Store for saga OperateLog entries keyed by sagaOperateId."""

    def __init__(
        self,
        terminal_statuses: Optional[Iterable[str]] = None,
        max_page_size: Optional[int] = None,
        metrics: Optional[InMemoryMetricsCollector] = None,
    ):
        statuses = terminal_statuses if terminal_statuses is not None else DEFAULT_TERMINAL_STATUSES
        self.terminal_statuses = frozenset(status.lower() for status in statuses)
        self.max_page_size = max_page_size
        self._metrics = metrics
        self._lock = asyncio.Lock()
        self._logs: Dict[str, OperateLog] = {}

    def __len__(self) -> int:
        return len(self._logs)

    def is_terminal(self, status: Optional[str]) -> bool:
        """Whether a saga in this status has finished; case-insensitive."""
        return bool(status) and status.lower() in self.terminal_statuses

    async def search(self, params: Optional[OperateLogSearchParams] = None) -> PageResult:
        params = params or OperateLogSearchParams()
        status = params.saga_status.lower() if params.saga_status else None
        matches = [
            log for log in self._logs.values()
            if contains_ci(log.saga_name, params.saga_name)
            and (status is None or log.saga_status.lower() == status)
        ]
        return paginate(matches, params, self.max_page_size, PageResult[OperateLog])

    async def get_detail(self, saga_operate_id: str) -> OperateLog:
        log = self._logs.get(str(saga_operate_id))
        if log is None:
            raise OperateLogNotFoundError(str(saga_operate_id))
        return log

    async def create(self, params: OperateLogOperateParams) -> OperateLog:
        """
        Store a new log entry.

        Args:
            params: Log body; sagaName and sagaStatus are required,
                sagaOperateId is generated when absent

        Raises:
            ValidationError: If a required field is missing
            ConflictError: If the sagaOperateId is already logged
        """
        if not params.saga_name:
            raise ValidationError("sagaName", params.saga_name, "sagaName is required")
        if not params.saga_status:
            raise ValidationError("sagaStatus", params.saga_status, "sagaStatus is required")

        log = OperateLog(
            saga_operate_id=params.saga_operate_id or uuid.uuid4().hex,
            saga_name=params.saga_name,
            saga_status=params.saga_status,
            current_step_name=params.current_step_name or "",
            saga_context_json=params.saga_context_json or "",
            error_details=params.error_details or "",
            create_time=datetime.now(timezone.utc).isoformat(),
        )

        async with self._lock:
            if log.saga_operate_id in self._logs:
                raise ConflictError("sagaOperateId", log.saga_operate_id)
            self._logs[log.saga_operate_id] = log

        logger.info(f"Saga operate log {log.saga_operate_id} created ({log.saga_name}: {log.saga_status})")
        if self._metrics:
            self._metrics.record_mutation(RESOURCE, "create")
        return log

    async def update(self, params: OperateLogOperateParams) -> OperateLog:
        """Overwrite the supplied fields of an existing entry."""
        if not params.saga_operate_id:
            raise ValidationError("sagaOperateId", params.saga_operate_id, "sagaOperateId is required")

        async with self._lock:
            current = self._logs.get(params.saga_operate_id)
            if current is None:
                raise OperateLogNotFoundError(params.saga_operate_id)

            changes: Dict[str, Any] = {
                field_name: getattr(params, field_name)
                for field_name in MUTABLE_FIELDS
                if getattr(params, field_name) is not None
            }
            changes["update_time"] = datetime.now(timezone.utc).isoformat()

            updated = current.model_copy(update=changes)
            self._logs[current.saga_operate_id] = updated

        logger.info(f"Saga operate log {updated.saga_operate_id} corrected: {sorted(changes)}")
        if self._metrics:
            self._metrics.record_mutation(RESOURCE, "update")
        return updated

    async def delete(self, saga_operate_id: str) -> None:
        """
        Prune one entry.

        Raises:
            OperateLogNotFoundError: If the entry does not exist
            ProtectedResourceError: If the saga has not reached a terminal status
        """
        async with self._lock:
            log = self._logs.get(saga_operate_id)
            if log is None:
                raise OperateLogNotFoundError(saga_operate_id)
            if not self.is_terminal(log.saga_status):
                raise ProtectedResourceError(
                    saga_operate_id,
                    f"saga status '{log.saga_status}' is not terminal",
                )
            del self._logs[saga_operate_id]

        logger.info(f"Saga operate log {saga_operate_id} pruned")
        if self._metrics:
            self._metrics.record_mutation(RESOURCE, "delete")

    async def batch_delete(self, ids: Iterable[str]) -> BatchDeleteResult:
        result = BatchDeleteResult()
        for saga_operate_id in split_ids(ids):
            try:
                await self.delete(saga_operate_id)
            except OpsDeskError as e:
                logger.warning(f"Could not prune saga operate log {saga_operate_id}: {e}")
                result.add_failure(saga_operate_id, e)
                if self._metrics:
                    self._metrics.record_delete_failure(RESOURCE, e.error_code)
            else:
                result.deleted.append(saga_operate_id)
        return result
