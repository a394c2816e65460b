"""
opsdesk utilities

Logging, paging and identifier helpers.
"""

from opsdesk.utils.logger import (
    configure_logging,
    DEFAULT_FORMAT,
)
from opsdesk.utils.paging import (
    contains_ci,
    paginate,
    split_ids,
)
from opsdesk.utils.names import (
    validate_volume_name,
    validate_dataset_path,
)

__all__ = [
    "configure_logging",
    "DEFAULT_FORMAT",
    "contains_ci",
    "paginate",
    "split_ids",
    "validate_volume_name",
    "validate_dataset_path",
]
