"""
Volume recovery ledger

Keeps soft-deleted volumes with everything needed to recreate them:
driver, dataset path, and the labels and options as the exact JSON text
they had when the volume was removed.

Record lifecycle: created at volume delete -> remark edits -> purged
"""

import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Union

from ..errors import (
    ImmutableFieldError,
    OpsDeskError,
    ValidationError,
    VolumeRecordNotFoundError,
)
from ..monitoring.metrics import InMemoryMetricsCollector
from ..types import (
    BatchDeleteResult,
    PageResult,
    Volume,
    VolumeRecord,
    VolumeRecordOperateParams,
    VolumeRecordSearchParams,
)
from ..utils.names import validate_dataset_path
from ..utils.paging import contains_ci, paginate, split_ids

logger = logging.getLogger(__name__)

RESOURCE = "volume_record"

# Fields that make up the recovery payload
PAYLOAD_FIELDS = ("volume_name", "zfs_dataset", "driver", "labels", "options")


def serialize_blob(value: Optional[Union[str, Dict[str, Any]]]) -> Optional[str]:
    """
    Turn a labels/options value into the text that is stored.

    Text is kept exactly as given; mappings are serialized once.
    """
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def _or_empty_object(blob: Optional[str]) -> str:
    return "{}" if blob is None else blob


class VolumeRecordLedger:
    """
    Store for VolumeRecord entries.

    Several records may share a volume name: each one is a separate
    deletion event.
    """

    def __init__(
        self,
        allow_payload_edits: bool = False,
        max_page_size: Optional[int] = None,
        metrics: Optional[InMemoryMetricsCollector] = None,
    ):
        """
        Initialize the ledger.

        Args:
            allow_payload_edits: Let update() change the recovery payload
            max_page_size: Upper bound for search page sizes
            metrics: Optional shared metrics collector
        """
        self.allow_payload_edits = allow_payload_edits
        self.max_page_size = max_page_size
        self._metrics = metrics
        self._lock = asyncio.Lock()
        self._records: Dict[str, VolumeRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    async def search(self, params: Optional[VolumeRecordSearchParams] = None) -> PageResult:
        params = params or VolumeRecordSearchParams()
        matches = [
            record for record in self._records.values()
            if contains_ci(record.volume_name, params.volume_name)
        ]
        return paginate(matches, params, self.max_page_size, PageResult[VolumeRecord])

    async def get_detail(self, record_id: str) -> VolumeRecord:
        record = self._records.get(str(record_id))
        if record is None:
            raise VolumeRecordNotFoundError(str(record_id))
        return record

    async def create(self, params: VolumeRecordOperateParams) -> VolumeRecord:
        """
        Add a record.

        Args:
            params: Record body; volumeName and zfsDataset are required

        Returns:
            The stored VolumeRecord

        Raises:
            ValidationError: If a required field is missing
        """
        if not params.volume_name:
            raise ValidationError("volumeName", params.volume_name, "volumeName is required")
        validate_dataset_path(params.zfs_dataset or "")

        record = VolumeRecord(
            id=uuid.uuid4().hex,
            volume_name=params.volume_name,
            zfs_dataset=params.zfs_dataset,
            driver=params.driver or "local",
            labels=_or_empty_object(serialize_blob(params.labels)),
            options=_or_empty_object(serialize_blob(params.options)),
            remark=params.remark or "",
            create_time=datetime.now(timezone.utc).isoformat(),
        )

        async with self._lock:
            self._records[record.id] = record

        logger.info(f"Volume record {record.id} created for volume '{record.volume_name}'")
        if self._metrics:
            self._metrics.record_mutation(RESOURCE, "create")
        return record

    async def record_deleted_volume(self, volume: Volume, remark: str = "") -> VolumeRecord:
        """Write the recovery record for a volume that is being deleted."""
        blobs = {}
        for field_name, value in (
            ("labels", volume.labels.model_dump(by_alias=True)),
            ("options", volume.options),
        ):
            try:
                blobs[field_name] = json.dumps(value, ensure_ascii=False)
            except (TypeError, ValueError) as e:
                raise ValidationError(field_name, value, f"{field_name} is not JSON serializable: {e}") from e

        return await self.create(
            VolumeRecordOperateParams(
                volume_name=volume.name,
                zfs_dataset=volume.labels.zfs_dataset,
                driver=volume.driver,
                labels=blobs["labels"],
                options=blobs["options"],
                remark=remark,
            )
        )

    async def update(self, params: VolumeRecordOperateParams) -> VolumeRecord:
        """
        Update a record.

        Only remark may change unless payload edits are enabled.

        Raises:
            ValidationError: If id is missing
            VolumeRecordNotFoundError: If no record has that id
            ImmutableFieldError: If a payload field would change
        """
        if not params.id:
            raise ValidationError("id", params.id, "id is required")

        async with self._lock:
            current = self._records.get(params.id)
            if current is None:
                raise VolumeRecordNotFoundError(params.id)

            changes: Dict[str, Any] = {}
            for field_name in PAYLOAD_FIELDS:
                value = getattr(params, field_name)
                if field_name in ("labels", "options"):
                    value = serialize_blob(value)
                if value is None or value == getattr(current, field_name):
                    continue
                if not self.allow_payload_edits:
                    raise ImmutableFieldError(field_name, current.id)
                if field_name == "zfs_dataset":
                    validate_dataset_path(value)
                changes[field_name] = value

            if params.remark is not None:
                changes["remark"] = params.remark
            changes["update_time"] = datetime.now(timezone.utc).isoformat()

            updated = current.model_copy(update=changes)
            self._records[current.id] = updated

        logger.info(f"Volume record {updated.id} updated: {sorted(changes)}")
        if self._metrics:
            self._metrics.record_mutation(RESOURCE, "update")
        return updated

    async def delete(self, record_id: str) -> None:
        """Permanently purge one record."""
        async with self._lock:
            if self._records.pop(record_id, None) is None:
                raise VolumeRecordNotFoundError(record_id)

        logger.info(f"Volume record {record_id} purged")
        if self._metrics:
            self._metrics.record_mutation(RESOURCE, "delete")

    async def batch_delete(self, ids: Iterable[str]) -> BatchDeleteResult:
        """Purge records one by one, reporting each identifier's outcome."""
        result = BatchDeleteResult()
        for record_id in split_ids(ids):
            try:
                await self.delete(record_id)
            except OpsDeskError as e:
                logger.warning(f"Could not purge volume record {record_id}: {e}")
                result.add_failure(record_id, e)
                if self._metrics:
                    self._metrics.record_delete_failure(RESOURCE, e.error_code)
            else:
                result.deleted.append(record_id)
        return result
