"""
FastAPI REST API Server for opsdesk

Docker volume, volume recovery record and saga operate log endpoints.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import Field

from opsdesk.config import OpsDeskConfig
from opsdesk.manager import OpsDeskManager
from opsdesk.types import (
    BatchDeleteResult,
    CamelModel,
    CommonSearchParams,
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
from opsdesk.errors import (
    OpsDeskError,
    ValidationError,
    NotFoundError,
    ImmutableFieldError,
    ConflictError,
    ProtectedResourceError,
)

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

# =============================================================================
# Response Models
# =============================================================================

class HealthStatus(CamelModel):
    """Health check response"""
    status: str = Field(..., description="Overall health status")
    version: str = Field(..., description="API version")
    stores: Dict[str, Any] = Field(
        default_factory=dict,
        description="Store status information"
    )
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="Response timestamp"
    )


class ErrorResponse(CamelModel):
    """Uniform error body"""
    error_code: str = Field(..., description="Error code, e.g. VOLUME_NOT_FOUND")
    message: str = Field(..., description="Human readable description")
    details: Dict[str, Any] = Field(
        default_factory=dict,
        description="Extra error details"
    )
    request_id: str = Field(..., description="Request trace ID")
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="Error time (ISO 8601)"
    )


# =============================================================================
# Error Code Mapping
# =============================================================================

ERROR_CODE_MAP = {
    ValidationError: 400,
    NotFoundError: 404,
    ImmutableFieldError: 422,
    ConflictError: 409,
    ProtectedResourceError: 403,
}


def status_for(exc: OpsDeskError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_CODE_MAP:
            return ERROR_CODE_MAP[cls]
    return 500


# =============================================================================
# FastAPI Application
# =============================================================================

def create_app(
    config: Optional[OpsDeskConfig] = None,
    manager: Optional[OpsDeskManager] = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        config: Optional configuration, read from the environment when omitted
        manager: Optional pre-built manager (shares its stores with the caller)

    Returns:
        Configured FastAPI application
    """
    if manager is not None:
        config = manager.config
    elif config is None:
        config = OpsDeskConfig.from_env()

    app = FastAPI(
        title="opsdesk API",
        version=API_VERSION,
        description="Docker volume and saga operate log administration",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.state.config = config
    app.state.manager = manager or OpsDeskManager(config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    register_routes(app)

    logger.info(f"FastAPI application created with config: {config}")
    return app


def _error_response(request: Request, status_code: int, error_code: str,
                    message: str, details: Dict[str, Any]) -> JSONResponse:
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))
    body = ErrorResponse(
        error_code=error_code,
        message=message,
        details=details,
        request_id=request_id,
    )
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body.model_dump(by_alias=True)),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers"""

    @app.exception_handler(OpsDeskError)
    async def opsdesk_error_handler(request: Request, exc: OpsDeskError):
        status_code = status_for(exc)
        logger.error(
            f"OpsDeskError: {exc.error_code} - {exc.message}",
            extra={"request_id": getattr(request.state, "request_id", None)}
        )
        return _error_response(request, status_code, exc.error_code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.error(f"Request validation failed: {exc.errors()}")
        return _error_response(
            request,
            400,
            "VALIDATION_ERROR",
            "Malformed request",
            {"errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def general_error_handler(request: Request, exc: Exception):
        logger.error(f"Unexpected error: {exc}", exc_info=True)
        return _error_response(
            request,
            500,
            "INTERNAL_ERROR",
            str(exc) or "An unexpected error occurred",
            {},
        )


def register_routes(app: FastAPI) -> None:
    """Register all API routes"""

    def get_manager() -> OpsDeskManager:
        return app.state.manager

    def common_search_params(
        current: int = Query(1, ge=1),
        size: Optional[int] = Query(None, ge=1),
        order_by_column: Optional[str] = Query(None, alias="orderByColumn"),
        is_asc: Optional[bool] = Query(None, alias="isAsc"),
    ) -> CommonSearchParams:
        return CommonSearchParams(
            current=current,
            size=size or app.state.config.default_page_size,
            order_by_column=order_by_column,
            is_asc=is_asc,
        )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request.state.request_id = str(uuid.uuid4())
        response = await call_next(request)
        response.headers["X-Request-ID"] = request.state.request_id
        return response

    # =========================================================================
    # Health & Metrics
    # =========================================================================

    @app.get("/health", response_model=HealthStatus, tags=["System"])
    async def health_check(manager: OpsDeskManager = Depends(get_manager)):
        return HealthStatus(
            status="healthy",
            version=API_VERSION,
            stores=await manager.health_check(),
        )

    @app.get("/metrics", tags=["System"])
    async def get_metrics(manager: OpsDeskManager = Depends(get_manager)):
        return manager.get_metrics()

    # =========================================================================
    # Docker volumes
    # =========================================================================

    @app.get("/docker/volume/list", response_model=PageResult[Volume], tags=["Volumes"])
    async def list_volumes(
        name: Optional[str] = None,
        alias: Optional[str] = None,
        username: Optional[str] = None,
        page: CommonSearchParams = Depends(common_search_params),
        manager: OpsDeskManager = Depends(get_manager),
    ):
        """Search live volumes by name, alias and owner."""
        params = VolumeSearchParams(
            **page.model_dump(), name=name, alias=alias, username=username
        )
        logger.debug(f"Listing volumes: {params}")
        return await manager.volumes.search(params)

    @app.get("/docker/volume/{name}", response_model=Volume, tags=["Volumes"])
    async def get_volume(name: str, manager: OpsDeskManager = Depends(get_manager)):
        return await manager.volumes.get_detail(name)

    @app.post("/docker/volume", response_model=bool, tags=["Volumes"])
    async def create_volume(
        params: VolumeOperateParams,
        manager: OpsDeskManager = Depends(get_manager),
    ):
        logger.info(f"Creating volume: alias={params.alias}, user={params.user_id}")
        await manager.volumes.create(params)
        return True

    @app.put("/docker/volume", response_model=bool, tags=["Volumes"])
    async def update_volume(
        params: VolumeOperateParams,
        manager: OpsDeskManager = Depends(get_manager),
    ):
        logger.info(f"Updating volume: {params.id or params.name}")
        await manager.volumes.update(params)
        return True

    @app.delete("/docker/volume/{ids}", response_model=BatchDeleteResult, tags=["Volumes"])
    async def batch_delete_volumes(ids: str, manager: OpsDeskManager = Depends(get_manager)):
        """
        Delete volumes

        ids is a comma-separated list of volume names. Each one is deleted
        independently; failures are listed in the response.
        """
        logger.info(f"Deleting volumes: {ids}")
        return await manager.volumes.batch_delete(ids)

    # =========================================================================
    # Volume recovery records
    # =========================================================================

    @app.get(
        "/docker/volumeRecord/list",
        response_model=PageResult[VolumeRecord],
        tags=["Volume records"]
    )
    async def list_volume_records(
        volume_name: Optional[str] = Query(None, alias="volumeName"),
        page: CommonSearchParams = Depends(common_search_params),
        manager: OpsDeskManager = Depends(get_manager),
    ):
        params = VolumeRecordSearchParams(**page.model_dump(), volume_name=volume_name)
        return await manager.volume_records.search(params)

    @app.get("/docker/volumeRecord/{record_id}", response_model=VolumeRecord, tags=["Volume records"])
    async def get_volume_record(record_id: str, manager: OpsDeskManager = Depends(get_manager)):
        return await manager.volume_records.get_detail(record_id)

    @app.post("/docker/volumeRecord", response_model=bool, tags=["Volume records"])
    async def create_volume_record(
        params: VolumeRecordOperateParams,
        manager: OpsDeskManager = Depends(get_manager),
    ):
        logger.info(f"Creating volume record for: {params.volume_name}")
        await manager.volume_records.create(params)
        return True

    @app.put("/docker/volumeRecord", response_model=bool, tags=["Volume records"])
    async def update_volume_record(
        params: VolumeRecordOperateParams,
        manager: OpsDeskManager = Depends(get_manager),
    ):
        logger.info(f"Updating volume record: {params.id}")
        await manager.volume_records.update(params)
        return True

    @app.delete(
        "/docker/volumeRecord/{ids}",
        response_model=BatchDeleteResult,
        tags=["Volume records"]
    )
    async def batch_delete_volume_records(ids: str, manager: OpsDeskManager = Depends(get_manager)):
        logger.info(f"Purging volume records: {ids}")
        return await manager.volume_records.batch_delete(ids)

    # =========================================================================
    # Saga operate logs
    # =========================================================================

    @app.get(
        "/saga/operateLog/list",
        response_model=PageResult[OperateLog],
        tags=["Saga"]
    )
    async def list_operate_logs(
        saga_name: Optional[str] = Query(None, alias="sagaName"),
        saga_status: Optional[str] = Query(None, alias="sagaStatus"),
        page: CommonSearchParams = Depends(common_search_params),
        manager: OpsDeskManager = Depends(get_manager),
    ):
        params = OperateLogSearchParams(
            **page.model_dump(), saga_name=saga_name, saga_status=saga_status
        )
        return await manager.operate_logs.search(params)

    @app.get("/saga/operateLog/{saga_operate_id}", response_model=OperateLog, tags=["Saga"])
    async def get_operate_log(saga_operate_id: str, manager: OpsDeskManager = Depends(get_manager)):
        return await manager.operate_logs.get_detail(saga_operate_id)

    @app.post("/saga/operateLog", response_model=bool, tags=["Saga"])
    async def create_operate_log(
        params: OperateLogOperateParams,
        manager: OpsDeskManager = Depends(get_manager),
    ):
        logger.info(f"Creating saga operate log: {params.saga_name}")
        await manager.operate_logs.create(params)
        return True

    @app.put("/saga/operateLog", response_model=bool, tags=["Saga"])
    async def update_operate_log(
        params: OperateLogOperateParams,
        manager: OpsDeskManager = Depends(get_manager),
    ):
        logger.info(f"Correcting saga operate log: {params.saga_operate_id}")
        await manager.operate_logs.update(params)
        return True

    @app.delete("/saga/operateLog/{ids}", response_model=BatchDeleteResult, tags=["Saga"])
    async def batch_delete_operate_logs(ids: str, manager: OpsDeskManager = Depends(get_manager)):
        """Prune finished saga logs; logs of running sagas are refused."""
        logger.info(f"Pruning saga operate logs: {ids}")
        return await manager.operate_logs.batch_delete(ids)

    # =========================================================================
    # Root Endpoint
    # =========================================================================

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "name": "opsdesk API",
            "version": API_VERSION,
            "docs": "/docs",
            "health": "/health",
        }


# =============================================================================
# Application Instance
# =============================================================================

app = create_app()


# =============================================================================
# Entry Point
# =============================================================================

def main():
    """CLI entry point for the opsdesk-api command."""
    import argparse
    import uvicorn

    from opsdesk.utils.logger import configure_logging

    parser = argparse.ArgumentParser(
        description="opsdesk API server",
        prog="opsdesk-api"
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Host to bind to (default: from OPSDESK_API_HOST env or 0.0.0.0)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind to (default: from OPSDESK_API_PORT env or 8000)"
    )
    parser.add_argument(
        "--config",
        default=None,
        help="YAML or JSON configuration file"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["debug", "info", "warning", "error"],
        help="Logging level (default: from OPSDESK_LOG_LEVEL env or info)"
    )

    args = parser.parse_args()

    config = OpsDeskConfig.from_file(args.config) if args.config else OpsDeskConfig.from_env()
    log_level = args.log_level or config.log_level.lower()
    configure_logging(log_level)

    uvicorn.run(
        create_app(config),
        host=args.host or config.api_host,
        port=args.port or config.api_port,
        log_level=log_level,
    )


if __name__ == "__main__":
    main()
