"""
Volume registry

Authoritative live view of the Docker volumes provisioned for users.
Each volume is backed by a ZFS dataset under the configured root; when a
recovery ledger is attached, deleted volumes are written to it first so
they can be restored later.
"""

import asyncio
import json
import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from ..errors import (
    ConflictError,
    ImmutableFieldError,
    OpsDeskError,
    ProtectedResourceError,
    ValidationError,
    VolumeNotFoundError,
)
from ..monitoring.metrics import InMemoryMetricsCollector
from ..types import (
    BatchDeleteResult,
    PageResult,
    Volume,
    VolumeLabels,
    VolumeOperateParams,
    VolumeSearchParams,
)
from ..utils.names import validate_dataset_path, validate_volume_name
from ..utils.paging import contains_ci, paginate, split_ids
from .records import VolumeRecordLedger

logger = logging.getLogger(__name__)

RESOURCE = "volume"

# Create fields that have no default
REQUIRED_CREATE_FIELDS = {
    "user_id": "userId",
    "volume_type": "volumeType",
    "alias": "alias",
    "is_builtin": "isBuiltin",
}


def _check_serializable(field_name: str, value: Any) -> None:
    """Options and labels must survive the JSON text kept by the recovery ledger."""
    if value is None:
        return
    try:
        json.dumps(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(field_name, value, f"{field_name} must be JSON serializable: {e}") from e


class VolumeRegistry:
    """
    Manages live volumes: search, detail lookup, create, partial update
    and best-effort batch delete.
    """

    def __init__(
        self,
        default_driver: str = "local",
        dataset_root: str = "tank/docker/volumes",
        ledger: Optional[VolumeRecordLedger] = None,
        max_page_size: Optional[int] = None,
        metrics: Optional[InMemoryMetricsCollector] = None,
    ):
        """
        Initialize the registry.

        Args:
            default_driver: Driver for volumes created without one
            dataset_root: Parent dataset of every volume dataset
            ledger: Recovery ledger that receives deleted volumes
            max_page_size: Upper bound for search page sizes
            metrics: Optional shared metrics collector
        """
        self.default_driver = default_driver
        self.dataset_root = dataset_root.rstrip("/")
        self.ledger = ledger
        self.max_page_size = max_page_size
        self._metrics = metrics
        self._lock = asyncio.Lock()
        self._volumes: Dict[str, Volume] = {}

    def __len__(self) -> int:
        return len(self._volumes)

    def dataset_for(self, name: str) -> str:
        return f"{self.dataset_root}/{name}"

    @staticmethod
    def _generate_name(user_id: str) -> str:
        slug = re.sub(r"[^a-zA-Z0-9_.-]", "-", user_id).strip("-_.") or "user"
        return f"vol_{slug}_{uuid.uuid4().hex[:8]}"

    async def search(self, params: Optional[VolumeSearchParams] = None) -> PageResult:
        """
        Search live volumes.

        name, alias and username are case-insensitive substring filters
        combined with AND; missing filters match everything.
        """
        params = params or VolumeSearchParams()
        matches = [
            volume for volume in self._volumes.values()
            if contains_ci(volume.name, params.name)
            and contains_ci(volume.labels.alias, params.alias)
            and contains_ci(volume.labels.username, params.username)
        ]
        logger.debug(f"Volume search matched {len(matches)} of {len(self._volumes)}")
        return paginate(matches, params, self.max_page_size, PageResult[Volume])

    async def get_detail(self, name: str) -> Volume:
        """
        Get a volume by its exact name.

        Raises:
            VolumeNotFoundError: If no live volume has that name
        """
        volume = self._volumes.get(name)
        if volume is None:
            raise VolumeNotFoundError(name)
        return volume

    async def create(self, params: VolumeOperateParams) -> Volume:
        """
        Create a volume.

        Args:
            params: Volume body; userId, volumeType, alias and isBuiltin
                are required, name is generated when absent

        Returns:
            The stored Volume

        Raises:
            ValidationError: If a required field is missing or the name is invalid
            ConflictError: If a live volume already has that name
        """
        for field_name, wire_name in REQUIRED_CREATE_FIELDS.items():
            value = getattr(params, field_name)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationError(wire_name, value, f"{wire_name} is required")

        name = params.name or self._generate_name(params.user_id)
        validate_volume_name(name)
        validate_dataset_path(self.dataset_for(name))
        _check_serializable("options", params.options)
        _check_serializable("labels", params.labels)

        label_data: Dict[str, Any] = dict(params.labels or {})
        label_data.update({
            "volumeTypeEnum": params.volume_type,
            "userId": params.user_id,
            "username": params.username or "",
            "zfsDataset": self.dataset_for(name),
            "isBuiltIn": params.is_builtin,
            "alias": params.alias,
        })

        volume = Volume(
            name=name,
            driver=params.driver or self.default_driver,
            create_time=params.create_time or datetime.now(timezone.utc).isoformat(),
            mountpoint=params.mountpoint,
            options=dict(params.options or {}),
            quota_rule=params.quota_rule,
            labels=VolumeLabels.model_validate(label_data),
        )

        async with self._lock:
            if name in self._volumes:
                raise ConflictError("name", name)
            self._volumes[name] = volume

        logger.info(f"Volume '{name}' created for user {params.user_id} (dataset {volume.labels.zfs_dataset})")
        if self._metrics:
            self._metrics.record_mutation(RESOURCE, "create")
        return volume

    async def update(self, params: VolumeOperateParams) -> Volume:
        """
        Partially update a volume; fields left out keep their value.

        The volume is looked up by id, falling back to name.

        Raises:
            ValidationError: If neither id nor name is given
            VolumeNotFoundError: If the volume does not exist
            ImmutableFieldError: On an attempt to change name, createTime,
                driver or the dataset label
        """
        key = params.id or params.name
        if not key:
            raise ValidationError("name", key, "name is required")

        async with self._lock:
            current = self._volumes.get(key)
            if current is None:
                raise VolumeNotFoundError(key)

            if params.name is not None and params.name != current.name:
                raise ImmutableFieldError("name", current.name)
            if params.create_time is not None and params.create_time != current.create_time:
                raise ImmutableFieldError("createTime", current.name)
            if params.driver is not None and params.driver != current.driver:
                raise ImmutableFieldError("driver", current.name)

            _check_serializable("options", params.options)
            _check_serializable("labels", params.labels)

            extra_labels = dict(params.labels or {})
            dataset = extra_labels.get("zfsDataset")
            if dataset is not None and dataset != current.labels.zfs_dataset:
                raise ImmutableFieldError("zfsDataset", current.name)

            label_data = current.labels.model_dump(by_alias=True)
            label_data.update(extra_labels)
            for field_name, wire_name in (
                ("alias", "alias"),
                ("user_id", "userId"),
                ("username", "username"),
                ("volume_type", "volumeTypeEnum"),
                ("is_builtin", "isBuiltIn"),
            ):
                value = getattr(params, field_name)
                if value is not None:
                    label_data[wire_name] = value

            changes: Dict[str, Any] = {"labels": VolumeLabels.model_validate(label_data)}
            if params.mountpoint is not None:
                changes["mountpoint"] = params.mountpoint
            if params.options is not None:
                changes["options"] = dict(params.options)
            if params.quota_rule is not None:
                changes["quota_rule"] = params.quota_rule

            updated = current.model_copy(update=changes)
            self._volumes[current.name] = updated

        logger.info(f"Volume '{updated.name}' updated")
        if self._metrics:
            self._metrics.record_mutation(RESOURCE, "update")
        return updated

    async def delete(self, name: str) -> None:
        """
        Delete one volume.

        The recovery record is written before the volume is removed, so a
        failed ledger write leaves the volume in place.

        Raises:
            VolumeNotFoundError: If the volume does not exist
            ProtectedResourceError: If the volume is built in
        """
        async with self._lock:
            volume = self._volumes.get(name)
            if volume is None:
                raise VolumeNotFoundError(name)
            if volume.labels.is_built_in:
                raise ProtectedResourceError(name, "built-in volumes cannot be deleted")

            if self.ledger is not None:
                await self.ledger.record_deleted_volume(volume)
            del self._volumes[name]

        logger.info(f"Volume '{name}' deleted")
        if self._metrics:
            self._metrics.record_mutation(RESOURCE, "delete")

    async def batch_delete(self, ids: Iterable[str]) -> BatchDeleteResult:
        """
        Delete volumes one by one.

        Missing and built-in volumes are reported per identifier; they do
        not stop the others from being deleted.
        """
        result = BatchDeleteResult()
        for name in split_ids(ids):
            try:
                await self.delete(name)
            except OpsDeskError as e:
                logger.warning(f"Could not delete volume '{name}': {e}")
                result.add_failure(name, e)
                if self._metrics:
                    self._metrics.record_delete_failure(RESOURCE, e.error_code)
            else:
                result.deleted.append(name)
        return result
