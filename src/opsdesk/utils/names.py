"""
Name validation utilities for opsdesk.

Volume names become Docker volume names and the last component of a
ZFS dataset path, so they are checked before anything is stored.
"""

import re

from opsdesk.errors import ValidationError

# Docker volume name rule
VOLUME_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_.-]*$")

# ZFS dataset components: alphanumerics plus _ - . : and no empty segments
DATASET_COMPONENT_PATTERN = re.compile(r"^[a-zA-Z0-9_.:-]+$")

MAX_VOLUME_NAME_LENGTH = 255


def validate_volume_name(value: str, field_name: str = "name") -> None:
    """
    Validate a volume name.

    Rules:
    - Must not be empty
    - Must start with an alphanumeric character
    - May contain only alphanumerics, '_', '.', '-'
    - Must not be '.' or '..' style traversal

    Raises:
        ValidationError: If the name is unusable.
    """
    if not value or not value.strip():
        raise ValidationError(
            field=field_name,
            value=value,
            reason=f"{field_name} cannot be empty",
        )

    if len(value) > MAX_VOLUME_NAME_LENGTH:
        raise ValidationError(
            field=field_name,
            value=value,
            reason=f"{field_name} is longer than {MAX_VOLUME_NAME_LENGTH} characters",
        )

    if not VOLUME_NAME_PATTERN.match(value):
        raise ValidationError(
            field=field_name,
            value=value,
            reason="Only [a-zA-Z0-9][a-zA-Z0-9_.-] are allowed",
        )


def validate_dataset_path(value: str, field_name: str = "zfsDataset") -> None:
    """
    Validate a ZFS dataset path such as ``tank/docker/volumes/data``.

    Raises:
        ValidationError: If the path is empty, absolute or has a bad component.
    """
    if not value or not value.strip():
        raise ValidationError(
            field=field_name,
            value=value,
            reason=f"{field_name} cannot be empty",
        )

    if value.startswith("/"):
        raise ValidationError(
            field=field_name,
            value=value,
            reason="Dataset paths are relative to their pool",
        )

    for component in value.split("/"):
        if component in ("", ".", "..") or not DATASET_COMPONENT_PATTERN.match(component):
            raise ValidationError(
                field=field_name,
                value=value,
                reason=f"Invalid dataset component '{component}'",
            )
