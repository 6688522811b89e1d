"""FastAPI application exposing tier price reconciliation."""

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from tierprice.auth import verify_api_key
from tierprice.config import get_config
from tierprice.dependencies import (
    AppResources,
    build_default_resources,
    get_tier_price_storage,
)
from tierprice.exceptions import ContractError
from tierprice.models import (
    PriceBatchRequest,
    PriceBatchResponse,
    PriceRecord,
    RejectedRecord,
    SkuListRequest,
)
from tierprice.storage import TierPriceStorage

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


def get_allowed_origins() -> list[str]:
    """Get allowed CORS origins from environment."""
    origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:5173")
    return [origin.strip() for origin in origins.split(",") if origin.strip()]


def _rate_limit() -> str:
    return get_config().rate_limit


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["120/minute"],
    swallow_errors=True,
)

router = APIRouter()

WRITE_RESPONSES: Dict[int | str, Dict[str, Any]] = {
    401: {"description": "Invalid or missing API key"},
    409: {"description": "Accepted price references a SKU with no product"},
    429: {"description": "Rate limit exceeded"},
    503: {"description": "Persistence, lookup or indexer failure"},
}


def _batch_response(rejected: List[RejectedRecord]) -> PriceBatchResponse:
    return PriceBatchResponse(rejected=rejected, rejected_count=len(rejected))


@router.get("/health")
@limiter.exempt
async def health_check() -> Dict[str, Any]:
    """Health check endpoint for container orchestration."""
    return {
        "status": "healthy",
        "service": "tier-price-reconciliation",
        "version": API_VERSION,
    }


@router.post(
    "/tier-prices/information",
    response_model=List[PriceRecord],
    status_code=status.HTTP_200_OK,
    responses={
        400: {"description": "Invalid SKU list"},
        404: {"description": "Requested products don't exist"},
        **WRITE_RESPONSES,
    },
)
@limiter.limit(_rate_limit)
async def get_tier_prices(
    request: Request,
    payload: SkuListRequest,
    _key: str = Depends(verify_api_key),
    storage: TierPriceStorage = Depends(get_tier_price_storage),
) -> List[PriceRecord]:
    """Return persisted tier prices for the requested SKUs."""
    return await run_in_threadpool(storage.fetch, payload.skus)


@router.post(
    "/tier-prices",
    response_model=PriceBatchResponse,
    responses=WRITE_RESPONSES,
)
@limiter.limit(_rate_limit)
async def update_tier_prices(
    request: Request,
    payload: PriceBatchRequest,
    _key: str = Depends(verify_api_key),
    storage: TierPriceStorage = Depends(get_tier_price_storage),
) -> PriceBatchResponse:
    """Update existing tier prices."""
    return _batch_response(await run_in_threadpool(storage.update, payload.prices))


@router.put(
    "/tier-prices",
    response_model=PriceBatchResponse,
    responses=WRITE_RESPONSES,
)
@limiter.limit(_rate_limit)
async def replace_tier_prices(
    request: Request,
    payload: PriceBatchRequest,
    _key: str = Depends(verify_api_key),
    storage: TierPriceStorage = Depends(get_tier_price_storage),
) -> PriceBatchResponse:
    """Replace all tier prices of the affected products."""
    return _batch_response(await run_in_threadpool(storage.replace, payload.prices))


@router.post(
    "/tier-prices/delete",
    response_model=PriceBatchResponse,
    responses=WRITE_RESPONSES,
)
@limiter.limit(_rate_limit)
async def delete_tier_prices(
    request: Request,
    payload: PriceBatchRequest,
    _key: str = Depends(verify_api_key),
    storage: TierPriceStorage = Depends(get_tier_price_storage),
) -> PriceBatchResponse:
    """Delete tier prices matching the given records."""
    return _batch_response(await run_in_threadpool(storage.delete, payload.prices))


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """Rate limit exceeded handler."""
    return JSONResponse(
        status_code=429,
        content={"detail": "Rate limit exceeded. Please try again later."},
    )


async def contract_error_handler(request: Request, exc: ContractError) -> JSONResponse:
    """Map domain contract errors to stable API error payload."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.code,
                "message": exc.message,
                "details": exc.details,
            }
        },
    )


def create_app(resources: Optional[AppResources] = None) -> FastAPI:
    """Create the API app; ``resources`` defaults to in-memory collaborators."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.tierprice_resources = resources or build_default_resources(get_config())
        logger.info("Tier price resources initialized")
        yield

    app = FastAPI(
        title="Tier Price Reconciliation Service",
        description="Validate, persist and reindex tier prices by SKU",
        version=API_VERSION,
        lifespan=lifespan,
    )
    app.state.limiter = limiter
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(ContractError, contract_error_handler)
    app.include_router(router)
    return app


app = create_app()


def main() -> None:
    """Run API server."""
    import uvicorn

    config = get_config()
    uvicorn.run(
        "tierprice.api:app",
        host=config.api_host,
        port=config.api_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
