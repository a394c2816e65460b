from pydantic import BaseModel, Field, field_validator
from typing import List

from opsdesk.errors import OpsDeskError
from opsdesk.utils.names import validate_dataset_path


class OpsDeskConfig(BaseModel):
    """
    Runtime configuration for opsdesk.

    This configuration is loaded from:
    1. Environment variables (OPSDESK_*)
    2. Configuration file (if provided)
    3. Default values (hardcoded)

    Priority: Environment variables > Config file > Defaults
    """

    # API server
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )

    api_port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="API server port"
    )

    # Volumes
    default_driver: str = Field(
        default="local",
        description="Driver used when a volume is created without one"
    )

    dataset_root: str = Field(
        default="tank/docker/volumes",
        description="ZFS dataset under which volume datasets are created"
    )

    soft_delete_volumes: bool = Field(
        default=True,
        description="Write a recovery record for every deleted volume"
    )

    allow_record_payload_edits: bool = Field(
        default=False,
        description="Allow updates to change recovery record payload (labels, options, dataset)"
    )

    # Saga operate logs
    terminal_saga_statuses: List[str] = Field(
        default_factory=lambda: ["completed", "failed", "compensated"],
        description="Saga statuses after which an operate log may be pruned"
    )

    # Paging
    default_page_size: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Page size used when a search does not specify one"
    )

    max_page_size: int = Field(
        default=500,
        ge=1,
        le=10000,
        description="Largest page size a search may request"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Root log level (DEBUG/INFO/WARNING/ERROR)"
    )

    @field_validator("dataset_root")
    @classmethod
    def _check_dataset_root(cls, value: str) -> str:
        value = value.rstrip("/")
        try:
            validate_dataset_path(value, field_name="dataset_root")
        except OpsDeskError as e:
            raise ValueError(e.message) from e
        return value

    @classmethod
    def from_env(cls) -> "OpsDeskConfig":
        """
        Load configuration from environment variables.

        Environment variables (OPSDESK_*) override defaults:

        - OPSDESK_API_HOST / OPSDESK_API_PORT: API bind address
        - OPSDESK_DEFAULT_DRIVER: Default volume driver
        - OPSDESK_DATASET_ROOT: Parent ZFS dataset for volumes
        - OPSDESK_SOFT_DELETE: Record deleted volumes (true/false)
        - OPSDESK_ALLOW_RECORD_EDITS: Allow record payload edits (true/false)
        - OPSDESK_TERMINAL_STATUSES: Comma-separated terminal saga statuses
        - OPSDESK_PAGE_SIZE / OPSDESK_MAX_PAGE_SIZE: Paging limits
        - OPSDESK_LOG_LEVEL: Log level
        """
        import os

        kwargs = {}

        if "OPSDESK_API_HOST" in os.environ:
            kwargs["api_host"] = os.environ["OPSDESK_API_HOST"]
        if "OPSDESK_API_PORT" in os.environ:
            kwargs["api_port"] = int(os.environ["OPSDESK_API_PORT"])

        # Volumes
        if "OPSDESK_DEFAULT_DRIVER" in os.environ:
            kwargs["default_driver"] = os.environ["OPSDESK_DEFAULT_DRIVER"]
        if "OPSDESK_DATASET_ROOT" in os.environ:
            kwargs["dataset_root"] = os.environ["OPSDESK_DATASET_ROOT"]
        if "OPSDESK_SOFT_DELETE" in os.environ:
            kwargs["soft_delete_volumes"] = os.environ["OPSDESK_SOFT_DELETE"].lower() == "true"
        if "OPSDESK_ALLOW_RECORD_EDITS" in os.environ:
            kwargs["allow_record_payload_edits"] = os.environ["OPSDESK_ALLOW_RECORD_EDITS"].lower() == "true"

        # Saga
        if "OPSDESK_TERMINAL_STATUSES" in os.environ:
            statuses = os.environ["OPSDESK_TERMINAL_STATUSES"]
            kwargs["terminal_saga_statuses"] = [item.strip() for item in statuses.split(",") if item.strip()]

        # Paging
        if "OPSDESK_PAGE_SIZE" in os.environ:
            kwargs["default_page_size"] = int(os.environ["OPSDESK_PAGE_SIZE"])
        if "OPSDESK_MAX_PAGE_SIZE" in os.environ:
            kwargs["max_page_size"] = int(os.environ["OPSDESK_MAX_PAGE_SIZE"])

        if "OPSDESK_LOG_LEVEL" in os.environ:
            kwargs["log_level"] = os.environ["OPSDESK_LOG_LEVEL"].upper()

        return cls(**kwargs)

    @classmethod
    def from_file(cls, config_path: str) -> "OpsDeskConfig":
        """
        Load configuration from a YAML or JSON file.

        Supported formats: .yaml, .yml, .json
        """
        import yaml

        with open(config_path, "r") as f:
            if config_path.endswith((".yaml", ".yml")):
                data = yaml.safe_load(f)
            elif config_path.endswith(".json"):
                import json
                data = json.load(f)
            else:
                raise ValueError(f"Unsupported config format: {config_path}")

        return cls(**(data or {}))
