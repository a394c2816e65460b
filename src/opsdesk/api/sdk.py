"""
opsdesk Python SDK

Async client for the opsdesk API. One method per admin request wrapper:
list/detail/create/update/batch delete for volumes, volume records and
saga operate logs.

Errors returned by the server are raised as the matching opsdesk
exception. The client never retries; callers decide on retry and backoff.

Example usage:
    import asyncio
    from opsdesk import OpsDeskSDK

    async def main():
        async with OpsDeskSDK(api_endpoint="http://localhost:8000") as sdk:
            page = await sdk.list_volumes(username="alice")
            for volume in page.records:
                print(volume.name, volume.labels.alias)

    asyncio.run(main())
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar, Union
from urllib.parse import quote

import aiohttp
from pydantic import BaseModel, Field

from opsdesk.errors import OpsDeskError, error_from_payload
from opsdesk.types import (
    BatchDeleteResult,
    OperateLog,
    OperateLogOperateParams,
    OperateLogSearchParams,
    PageResult,
    Volume,
    VolumeOperateParams,
    VolumeRecord,
    VolumeRecordOperateParams,
    VolumeRecordSearchParams,
    VolumeSearchParams,
)

logger = logging.getLogger(__name__)

__all__ = ["OpsDeskSDK", "SDKConfig"]

IdType = Union[str, int]
P = TypeVar("P", bound=BaseModel)


class SDKConfig(BaseModel):
    """SDK configuration options"""
    api_endpoint: str = Field(default="http://localhost:8000", description="API endpoint URL")
    api_key: Optional[str] = Field(default=None, description="API key for authentication")
    timeout: int = Field(default=30, description="Request timeout in seconds")


def _to_query(params: Optional[BaseModel]) -> Dict[str, str]:
    """
    Query string values; aiohttp only accepts str and numbers.

    Only fields the caller set are sent, so the server applies its own
    paging defaults.
    """
    if params is None:
        return {}
    query = {}
    dumped = params.model_dump(by_alias=True, exclude_none=True, exclude_unset=True)
    for key, value in dumped.items():
        if isinstance(value, bool):
            value = "true" if value else "false"
        query[key] = str(value)
    return query


def _to_body(data: Union[BaseModel, Dict[str, Any]], model: Type[P]) -> Dict[str, Any]:
    if not isinstance(data, BaseModel):
        data = model.model_validate(data)
    return data.model_dump(by_alias=True, exclude_none=True)


def _join_ids(ids: Sequence[IdType]) -> str:
    return ",".join(quote(str(i), safe="") for i in ids)


class OpsDeskSDK:
    """
    opsdesk Python SDK

    Attributes:
        endpoint: The API endpoint URL
        api_key: API key for authentication (optional)
        timeout: Request timeout in seconds

    Example:
        >>> sdk = OpsDeskSDK(api_endpoint="http://localhost:8000")
        >>> volume = await sdk.get_volume("vol_alice_data")
        >>> result = await sdk.batch_delete_volumes(["a", "b"])
    """

    def __init__(
        self,
        api_endpoint: str = "http://localhost:8000",
        api_key: Optional[str] = None,
        timeout: int = 30,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize the SDK.

        Args:
            api_endpoint: The API endpoint URL (default: http://localhost:8000)
            api_key: API key for authentication (optional)
            timeout: Request timeout in seconds (default: 30)
            session: Optional aiohttp session to reuse
        """
        self.endpoint = api_endpoint.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._session = session
        self._own_session = session is None

        logger.info(f"OpsDeskSDK initialized with endpoint: {self.endpoint}")

    @classmethod
    def from_config(cls, config: SDKConfig) -> "OpsDeskSDK":
        return cls(
            api_endpoint=config.api_endpoint,
            api_key=config.api_key,
            timeout=config.timeout,
        )

    @property
    def _default_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers=self._default_headers,
            )
        return self._session

    async def close(self) -> None:
        """Close the underlying aiohttp session"""
        if self._own_session and self._session and not self._session.closed:
            await self._session.close()
            self._session = None
            logger.info("OpsDeskSDK session closed")

    async def __aenter__(self) -> "OpsDeskSDK":
        await self._get_session()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def _build_url(self, path: str) -> str:
        return f"{self.endpoint}{path}"

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """
        Make a single HTTP request.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            path: API path (e.g., "/docker/volume/list")
            **kwargs: Additional arguments for aiohttp

        Returns:
            Decoded JSON response

        Raises:
            OpsDeskError: On API errors or transport failure
        """
        url = self._build_url(path)
        session = await self._get_session()

        try:
            logger.debug(f"{method} {url}")
            async with session.request(method, url, **kwargs) as response:
                await self._check_response(response)
                return await response.json()
        except aiohttp.ClientError as e:
            raise OpsDeskError(
                message=f"{method} {path} failed: {e}",
                error_code="REQUEST_FAILED",
            ) from e

    async def _check_response(self, response: aiohttp.ClientResponse) -> None:
        """
        Raise the server's error, if any.

        Raises:
            OpsDeskError: The subclass matching the response errorCode
        """
        if response.status < 400:
            return

        try:
            error_data = await response.json()
        except (ValueError, aiohttp.ClientError):
            raise OpsDeskError(
                message=f"HTTP {response.status}: {response.reason}",
                error_code=f"HTTP_{response.status}",
            )

        raise error_from_payload(
            error_data.get("errorCode", f"HTTP_{response.status}"),
            error_data.get("message", response.reason or ""),
            error_data.get("details") or {},
        )

    # =========================================================================
    # Docker volumes
    # =========================================================================

    async def list_volumes(
        self,
        params: Optional[VolumeSearchParams] = None,
        **filters: Any,
    ) -> PageResult[Volume]:
        """
        Search live volumes.

        Args:
            params: Search parameters; keyword filters (name, alias,
                username, current, size, ...) are used when omitted

        Returns:
            PageResult of Volume
        """
        params = params or VolumeSearchParams(**filters)
        data = await self._request("GET", "/docker/volume/list", params=_to_query(params))
        return PageResult[Volume].model_validate(data)

    async def get_volume(self, volume_name: str) -> Volume:
        """
        Get one volume.

        Raises:
            VolumeNotFoundError: If no live volume has that name
        """
        data = await self._request("GET", f"/docker/volume/{quote(volume_name, safe='')}")
        return Volume.model_validate(data)

    async def create_volume(self, data: Union[VolumeOperateParams, Dict[str, Any]]) -> bool:
        logger.info("Creating volume")
        return await self._request(
            "POST", "/docker/volume", json=_to_body(data, VolumeOperateParams)
        )

    async def update_volume(self, data: Union[VolumeOperateParams, Dict[str, Any]]) -> bool:
        return await self._request(
            "PUT", "/docker/volume", json=_to_body(data, VolumeOperateParams)
        )

    async def batch_delete_volumes(self, ids: List[IdType]) -> BatchDeleteResult:
        """
        Delete volumes by name.

        Returns:
            BatchDeleteResult listing deleted names and per-name failures
        """
        logger.info(f"Deleting volumes: {ids}")
        data = await self._request("DELETE", f"/docker/volume/{_join_ids(ids)}")
        return BatchDeleteResult.model_validate(data)

    # =========================================================================
    # Volume recovery records
    # =========================================================================

    async def list_volume_records(
        self,
        params: Optional[VolumeRecordSearchParams] = None,
        **filters: Any,
    ) -> PageResult[VolumeRecord]:
        params = params or VolumeRecordSearchParams(**filters)
        data = await self._request("GET", "/docker/volumeRecord/list", params=_to_query(params))
        return PageResult[VolumeRecord].model_validate(data)

    async def get_volume_record(self, record_id: IdType) -> VolumeRecord:
        data = await self._request("GET", f"/docker/volumeRecord/{quote(str(record_id), safe='')}")
        return VolumeRecord.model_validate(data)

    async def create_volume_record(
        self, data: Union[VolumeRecordOperateParams, Dict[str, Any]]
    ) -> bool:
        return await self._request(
            "POST", "/docker/volumeRecord", json=_to_body(data, VolumeRecordOperateParams)
        )

    async def update_volume_record(
        self, data: Union[VolumeRecordOperateParams, Dict[str, Any]]
    ) -> bool:
        return await self._request(
            "PUT", "/docker/volumeRecord", json=_to_body(data, VolumeRecordOperateParams)
        )

    async def batch_delete_volume_records(self, ids: List[IdType]) -> BatchDeleteResult:
        """Permanently purge recovery records."""
        logger.info(f"Purging volume records: {ids}")
        data = await self._request("DELETE", f"/docker/volumeRecord/{_join_ids(ids)}")
        return BatchDeleteResult.model_validate(data)

    # =========================================================================
    # Saga operate logs
    # =========================================================================

    async def list_operate_logs(
        self,
        params: Optional[OperateLogSearchParams] = None,
        **filters: Any,
    ) -> PageResult[OperateLog]:
        params = params or OperateLogSearchParams(**filters)
        data = await self._request("GET", "/saga/operateLog/list", params=_to_query(params))
        return PageResult[OperateLog].model_validate(data)

    async def get_operate_log(self, saga_operate_id: IdType) -> OperateLog:
        data = await self._request("GET", f"/saga/operateLog/{quote(str(saga_operate_id), safe='')}")
        return OperateLog.model_validate(data)

    async def create_operate_log(
        self, data: Union[OperateLogOperateParams, Dict[str, Any]]
    ) -> bool:
        return await self._request(
            "POST", "/saga/operateLog", json=_to_body(data, OperateLogOperateParams)
        )

    async def update_operate_log(
        self, data: Union[OperateLogOperateParams, Dict[str, Any]]
    ) -> bool:
        return await self._request(
            "PUT", "/saga/operateLog", json=_to_body(data, OperateLogOperateParams)
        )

    async def batch_delete_operate_logs(self, saga_operate_ids: List[IdType]) -> BatchDeleteResult:
        """
        Prune saga operate logs.

        Logs whose saga has not finished come back as PROTECTED_RESOURCE
        failures in the result.
        """
        logger.info(f"Pruning saga operate logs: {saga_operate_ids}")
        data = await self._request("DELETE", f"/saga/operateLog/{_join_ids(saga_operate_ids)}")
        return BatchDeleteResult.model_validate(data)
