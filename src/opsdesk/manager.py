"""
opsdesk core manager

Builds the volume registry, the recovery ledger and the saga operate log
from one configuration and exposes their health and metrics.
"""

import logging
from typing import Any, Dict, Optional

from opsdesk.config import OpsDeskConfig
from opsdesk.docker.records import VolumeRecordLedger
from opsdesk.docker.volumes import VolumeRegistry
from opsdesk.monitoring.metrics import InMemoryMetricsCollector
from opsdesk.saga.operate_log import OperateLogStore

logger = logging.getLogger(__name__)


class OpsDeskManager:
    """
    Single entry point for all stores.

    Responsibilities:
    - Store construction from configuration
    - Wiring the volume registry to the recovery ledger (soft delete)
    - Health and metrics reporting
    """

    def __init__(self, config: Optional[OpsDeskConfig] = None):
        """
        Initialize the manager.

        Args:
            config: Optional configuration. If not provided, uses defaults.
        """
        if config is None:
            config = OpsDeskConfig()

        self.config = config
        self.metrics = InMemoryMetricsCollector()

        self.volume_records = VolumeRecordLedger(
            allow_payload_edits=config.allow_record_payload_edits,
            max_page_size=config.max_page_size,
            metrics=self.metrics,
        )
        self.volumes = VolumeRegistry(
            default_driver=config.default_driver,
            dataset_root=config.dataset_root,
            ledger=self.volume_records if config.soft_delete_volumes else None,
            max_page_size=config.max_page_size,
            metrics=self.metrics,
        )
        self.operate_logs = OperateLogStore(
            terminal_statuses=config.terminal_saga_statuses,
            max_page_size=config.max_page_size,
            metrics=self.metrics,
        )

        logger.info(
            f"OpsDeskManager initialized: dataset_root={config.dataset_root}, "
            f"soft_delete={config.soft_delete_volumes}"
        )

    async def health_check(self) -> Dict[str, Dict[str, Any]]:
        """
        Report the status of every store.

        Returns:
            Dict mapping store names to their status and entity count
        """
        return {
            "volumes": {"status": "healthy", "count": len(self.volumes)},
            "volume_records": {"status": "healthy", "count": len(self.volume_records)},
            "operate_logs": {"status": "healthy", "count": len(self.operate_logs)},
        }

    def get_metrics(self) -> Dict[str, Any]:
        """Entity counts plus mutation and delete failure counters."""
        metrics = self.metrics.snapshot().to_dict()
        metrics.update({
            "volumes": len(self.volumes),
            "volume_records": len(self.volume_records),
            "operate_logs": len(self.operate_logs),
        })
        return metrics
