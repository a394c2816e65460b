"""
Search helpers shared by the volume, volume record and operate log stores.
"""

import logging
from typing import Iterable, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel

from opsdesk.types import CommonSearchParams, PageResult

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def contains_ci(value: Optional[str], needle: Optional[str]) -> bool:
    """
    Case-insensitive substring filter.

    An empty or missing needle matches everything.
    """
    if not needle:
        return True
    if value is None:
        return False
    return needle.lower() in value.lower()


def split_ids(ids: Iterable[str]) -> List[str]:
    """
    Normalize batch identifiers.

    Accepts a comma-joined string or a sequence of identifiers, drops
    blanks and keeps the first occurrence of duplicates.
    """
    if isinstance(ids, str):
        ids = ids.split(",")

    seen = set()
    result = []
    for raw in ids:
        identifier = str(raw).strip()
        if identifier and identifier not in seen:
            seen.add(identifier)
            result.append(identifier)
    return result


def _resolve_sort_field(model_cls: type, column: str) -> Optional[str]:
    for field_name, info in model_cls.model_fields.items():
        if column in (field_name, info.alias):
            return field_name
    return None


def paginate(
    items: Sequence[M],
    params: CommonSearchParams,
    max_size: Optional[int] = None,
    result_type: Type[PageResult] = PageResult,
) -> PageResult:
    """
    Sort and slice already filtered items into a PageResult.

    Items keep insertion order unless params.order_by_column names a
    field of the item model. Unknown columns are ignored.

    Args:
        items: Filtered entities
        params: Paging and sort parameters
        max_size: Upper bound for the page size
        result_type: Parametrized page type, e.g. PageResult[Volume]

    Returns:
        PageResult holding the requested page
    """
    records = list(items)

    if params.order_by_column and records:
        field_name = _resolve_sort_field(type(records[0]), params.order_by_column)
        if field_name is None:
            logger.debug(f"Ignoring unknown sort column: {params.order_by_column}")
        else:
            def sort_key(item):
                value = getattr(item, field_name)
                return (value is None, value if value is not None else "")

            try:
                records.sort(key=sort_key, reverse=params.is_asc is False)
            except TypeError:
                # nested models (labels, quotaRule) have no ordering
                logger.debug(f"Column is not sortable: {params.order_by_column}")

    size = params.size
    if max_size is not None:
        size = min(size, max_size)

    start = (params.current - 1) * size
    return result_type(
        records=records[start:start + size],
        current=params.current,
        size=size,
        total=len(records),
    )
