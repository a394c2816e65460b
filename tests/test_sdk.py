"""
Unit tests for the opsdesk SDK.

Tests request construction, response parsing and error mapping with
the HTTP layer mocked out.
"""

import aiohttp
import pytest
from unittest.mock import AsyncMock, MagicMock

from opsdesk.api.sdk import OpsDeskSDK, SDKConfig, _join_ids, _to_query
from opsdesk.errors import (
    OpsDeskError,
    ProtectedResourceError,
    ValidationError,
    VolumeNotFoundError,
)
from opsdesk.types import (
    BatchDeleteResult,
    OperateLogSearchParams,
    VolumeOperateParams,
    VolumeSearchParams,
)

VOLUME_JSON = {
    "name": "alice-data",
    "driver": "local",
    "createTime": "2024-05-01T10:00:00+00:00",
    "mountpoint": None,
    "options": {},
    "quotaRule": None,
    "labels": {
        "volumeTypeEnum": "USER",
        "userId": "1001",
        "username": "alice",
        "zfsDataset": "tank/docker/volumes/alice-data",
        "isBuiltIn": False,
        "alias": "Alice data",
    },
}


@pytest.fixture
def sdk():
    client = OpsDeskSDK(api_endpoint="http://opsdesk.local/")
    client._request = AsyncMock()
    return client


def make_response(status, payload=None, reason="", json_error=None):
    response = MagicMock()
    response.status = status
    response.reason = reason
    if json_error is not None:
        response.json = AsyncMock(side_effect=json_error)
    else:
        response.json = AsyncMock(return_value=payload)
    return response


class TestSDKInit:
    """Tests for SDK construction."""

    def test_endpoint_trailing_slash(self):
        sdk = OpsDeskSDK(api_endpoint="http://opsdesk.local/")

        assert sdk.endpoint == "http://opsdesk.local"
        assert sdk._build_url("/health") == "http://opsdesk.local/health"

    def test_from_config(self):
        sdk = OpsDeskSDK.from_config(SDKConfig(api_endpoint="http://x", api_key="k", timeout=5))

        assert sdk.endpoint == "http://x"
        assert sdk.timeout == 5
        assert sdk._default_headers["Authorization"] == "Bearer k"

    def test_no_auth_header_without_key(self):
        assert "Authorization" not in OpsDeskSDK()._default_headers


class TestHelpers:
    """Tests for query and path helpers."""

    def test_query_drops_none_and_stringifies(self):
        query = _to_query(OperateLogSearchParams(saga_status="failed", is_asc=False))

        assert query == {"isAsc": "false", "sagaStatus": "failed"}

    def test_query_sends_explicit_page_size(self):
        assert _to_query(VolumeSearchParams(size=25, name="a")) == {"size": "25", "name": "a"}

    def test_join_ids_quotes(self):
        assert _join_ids(["a b", 7, "c/d"]) == "a%20b,7,c%2Fd"


class TestVolumeMethods:
    """Tests for volume calls."""

    @pytest.mark.asyncio
    async def test_list_volumes(self, sdk):
        sdk._request.return_value = {"records": [VOLUME_JSON], "current": 1, "size": 10, "total": 1}

        page = await sdk.list_volumes(username="alice")

        sdk._request.assert_awaited_once_with(
            "GET",
            "/docker/volume/list",
            params={"username": "alice"},
        )
        assert page.total == 1
        assert page.records[0].labels.alias == "Alice data"

    @pytest.mark.asyncio
    async def test_get_volume(self, sdk):
        sdk._request.return_value = VOLUME_JSON

        volume = await sdk.get_volume("alice-data")

        sdk._request.assert_awaited_once_with("GET", "/docker/volume/alice-data")
        assert volume.labels.zfs_dataset == "tank/docker/volumes/alice-data"

    @pytest.mark.asyncio
    async def test_create_volume_from_dict(self, sdk):
        sdk._request.return_value = True

        result = await sdk.create_volume({"alias": "a", "userId": "1", "volumeType": "USER", "isBuiltin": False})

        assert result is True
        sdk._request.assert_awaited_once_with(
            "POST",
            "/docker/volume",
            json={"alias": "a", "userId": "1", "volumeType": "USER", "isBuiltin": False},
        )

    @pytest.mark.asyncio
    async def test_update_volume_sends_only_set_fields(self, sdk):
        sdk._request.return_value = True

        await sdk.update_volume(VolumeOperateParams(name="alice-data", alias="New"))

        sdk._request.assert_awaited_once_with(
            "PUT", "/docker/volume", json={"name": "alice-data", "alias": "New"}
        )

    @pytest.mark.asyncio
    async def test_batch_delete_volumes(self, sdk):
        sdk._request.return_value = {
            "success": False,
            "deleted": ["a"],
            "failed": [{"id": "sys", "errorCode": "PROTECTED_RESOURCE", "message": "protected"}],
        }

        result = await sdk.batch_delete_volumes(["a", "sys"])

        sdk._request.assert_awaited_once_with("DELETE", "/docker/volume/a,sys")
        assert isinstance(result, BatchDeleteResult)
        assert result.failed_ids("PROTECTED_RESOURCE") == ["sys"]


class TestRecordAndLogMethods:
    """Tests for volume record and operate log calls."""

    @pytest.mark.asyncio
    async def test_list_volume_records(self, sdk):
        sdk._request.return_value = {"records": [], "current": 1, "size": 10, "total": 0}

        await sdk.list_volume_records(volume_name="alice")

        sdk._request.assert_awaited_once_with(
            "GET",
            "/docker/volumeRecord/list",
            params={"volumeName": "alice"},
        )

    @pytest.mark.asyncio
    async def test_update_volume_record(self, sdk):
        sdk._request.return_value = True

        await sdk.update_volume_record({"id": "r1", "remark": "note"})

        sdk._request.assert_awaited_once_with(
            "PUT", "/docker/volumeRecord", json={"id": "r1", "remark": "note"}
        )

    @pytest.mark.asyncio
    async def test_get_operate_log(self, sdk):
        sdk._request.return_value = {
            "sagaOperateId": "op-1",
            "sagaName": "s",
            "sagaStatus": "running",
            "createTime": "2024-05-01T10:00:00+00:00",
        }

        log = await sdk.get_operate_log("op-1")

        sdk._request.assert_awaited_once_with("GET", "/saga/operateLog/op-1")
        assert log.saga_status == "running"

    @pytest.mark.asyncio
    async def test_batch_delete_operate_logs(self, sdk):
        sdk._request.return_value = {"success": True, "deleted": ["1", "2"], "failed": []}

        result = await sdk.batch_delete_operate_logs([1, 2])

        sdk._request.assert_awaited_once_with("DELETE", "/saga/operateLog/1,2")
        assert result.deleted == ["1", "2"]


class TestErrorHandling:
    """Tests for server and transport errors."""

    @pytest.mark.asyncio
    async def test_success_passes(self):
        await OpsDeskSDK()._check_response(make_response(200, True))

    @pytest.mark.asyncio
    async def test_typed_not_found(self):
        response = make_response(404, {
            "errorCode": "VOLUME_NOT_FOUND",
            "message": "Volume 'x' not found",
            "details": {"id": "x"},
        })

        with pytest.raises(VolumeNotFoundError) as exc_info:
            await OpsDeskSDK()._check_response(response)

        assert exc_info.value.identifier == "x"

    @pytest.mark.asyncio
    async def test_typed_validation_error(self):
        response = make_response(400, {
            "errorCode": "VALIDATION_ERROR",
            "message": "Invalid field 'alias': alias is required",
            "details": {"field": "alias", "reason": "alias is required"},
        })

        with pytest.raises(ValidationError) as exc_info:
            await OpsDeskSDK()._check_response(response)

        assert exc_info.value.field == "alias"

    @pytest.mark.asyncio
    async def test_non_json_error(self):
        response = make_response(502, reason="Bad Gateway", json_error=ValueError("no json"))

        with pytest.raises(OpsDeskError) as exc_info:
            await OpsDeskSDK()._check_response(response)

        assert exc_info.value.error_code == "HTTP_502"

    @pytest.mark.asyncio
    async def test_request_raises_server_error(self):
        response = make_response(403, {
            "errorCode": "PROTECTED_RESOURCE",
            "message": "'sys' is protected",
            "details": {"id": "sys", "reason": "built in"},
        })
        session = MagicMock()
        session.closed = False
        session.request.return_value.__aenter__ = AsyncMock(return_value=response)
        session.request.return_value.__aexit__ = AsyncMock(return_value=False)
        sdk = OpsDeskSDK(session=session)

        with pytest.raises(ProtectedResourceError):
            await sdk._request("GET", "/docker/volume/sys")

        session.request.assert_called_once_with("GET", "http://localhost:8000/docker/volume/sys")

    @pytest.mark.asyncio
    async def test_transport_error_not_retried(self):
        session = MagicMock()
        session.closed = False
        session.request.side_effect = aiohttp.ClientConnectionError("refused")
        sdk = OpsDeskSDK(session=session)

        with pytest.raises(OpsDeskError) as exc_info:
            await sdk._request("GET", "/health")

        assert exc_info.value.error_code == "REQUEST_FAILED"
        assert session.request.call_count == 1

    @pytest.mark.asyncio
    async def test_external_session_not_closed(self):
        session = MagicMock()
        session.closed = False
        session.close = AsyncMock()

        async with OpsDeskSDK(session=session):
            pass

        session.close.assert_not_called()
