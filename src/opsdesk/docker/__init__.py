"""
Docker volume module for opsdesk

Live volume registry and the recovery ledger of soft-deleted volumes.
"""

from .records import (
    VolumeRecordLedger,
    serialize_blob,
)
from .volumes import VolumeRegistry

__all__ = [
    "VolumeRecordLedger",
    "VolumeRegistry",
    "serialize_blob",
]
