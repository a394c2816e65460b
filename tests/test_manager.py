"""
Unit tests for OpsDeskManager.

Tests store wiring, soft delete, health and metrics.
"""

import pytest

from opsdesk.config import OpsDeskConfig
from opsdesk.manager import OpsDeskManager
from opsdesk.types import OperateLogOperateParams


class TestManagerInit:
    """Tests for manager initialization."""

    def test_default_config(self):
        manager = OpsDeskManager()

        assert manager.config.dataset_root == "tank/docker/volumes"
        assert manager.volumes.ledger is manager.volume_records

    def test_config_flows_to_stores(self, opsdesk_config):
        manager = OpsDeskManager(opsdesk_config)

        assert manager.volumes.dataset_root == "tank/test/volumes"
        assert manager.volumes.max_page_size == 50
        assert manager.operate_logs.is_terminal("compensated")

    def test_soft_delete_disabled(self):
        manager = OpsDeskManager(OpsDeskConfig(soft_delete_volumes=False))

        assert manager.volumes.ledger is None


class TestSoftDelete:
    """Tests for the volume -> recovery record hand-off."""

    @pytest.mark.asyncio
    async def test_deleted_volume_recorded(self, manager, volume_params):
        await manager.volumes.create(volume_params)

        await manager.volumes.batch_delete(["alice-data"])

        page = await manager.volume_records.search()
        assert page.total == 1
        assert page.records[0].volume_name == "alice-data"
        assert page.records[0].zfs_dataset == "tank/test/volumes/alice-data"

    @pytest.mark.asyncio
    async def test_no_record_without_soft_delete(self, volume_params):
        manager = OpsDeskManager(OpsDeskConfig(soft_delete_volumes=False))
        await manager.volumes.create(volume_params)

        await manager.volumes.batch_delete(["alice-data"])

        assert len(manager.volumes) == 0
        assert len(manager.volume_records) == 0


class TestHealthAndMetrics:
    """Tests for health and metrics reporting."""

    @pytest.mark.asyncio
    async def test_health_check(self, manager, volume_params):
        await manager.volumes.create(volume_params)

        health = await manager.health_check()

        assert health["volumes"] == {"status": "healthy", "count": 1}
        assert health["volume_records"]["count"] == 0
        assert health["operate_logs"]["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_metrics_count_mutations_and_failures(self, manager, volume_params):
        await manager.volumes.create(volume_params)
        await manager.operate_logs.create(
            OperateLogOperateParams(saga_operate_id="op-1", saga_name="s", saga_status="running")
        )
        await manager.volumes.batch_delete(["alice-data", "ghost"])
        await manager.operate_logs.batch_delete(["op-1"])

        metrics = manager.get_metrics()

        assert metrics["mutations"]["volume"] == {"create": 1, "delete": 1}
        assert metrics["mutations"]["volume_record"] == {"create": 1}
        assert metrics["delete_failures"]["volume"] == {"VOLUME_NOT_FOUND": 1}
        assert metrics["delete_failures"]["operate_log"] == {"PROTECTED_RESOURCE": 1}
        assert metrics["volumes"] == 0
        assert metrics["volume_records"] == 1
        assert metrics["operate_logs"] == 1
