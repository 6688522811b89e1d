"""Shared FastAPI app resource container and provider dependencies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import cast

from fastapi import Depends, HTTPException, Request, status

from tierprice.config import TierPriceConfig
from tierprice.repositories.base import PriceIndexer, ProductIdLocator, TierPriceRepository
from tierprice.repositories.memory import (
    CatalogSnapshot,
    RecordingPriceIndexer,
    build_in_memory_catalog,
)
from tierprice.storage import TierPriceStorage
from tierprice.validator import TierPriceValidator


@dataclass
class AppResources:
    """App-scoped collaborators initialized during FastAPI lifespan."""

    config: TierPriceConfig
    repository: TierPriceRepository
    locator: ProductIdLocator
    indexer: PriceIndexer


def build_default_resources(config: TierPriceConfig) -> AppResources:
    """Wire in-memory collaborators, seeded from the configured snapshot."""
    if config.snapshot_path is not None:
        snapshot = CatalogSnapshot.load(config.snapshot_path)
        locator, repository = build_in_memory_catalog(snapshot)
    else:
        locator, repository = build_in_memory_catalog(
            CatalogSnapshot(link_field=config.link_field)
        )
    return AppResources(
        config=config,
        repository=repository,
        locator=locator,
        indexer=RecordingPriceIndexer(),
    )


def get_app_resources(request: Request) -> AppResources:
    """Return initialized app resources from state."""
    resources = getattr(request.app.state, "tierprice_resources", None)
    if resources is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Application resources are not initialized",
        )
    return cast(AppResources, resources)


def get_app_config(resources: AppResources = Depends(get_app_resources)) -> TierPriceConfig:
    """Get app-scoped config instance."""
    return resources.config


def get_tier_price_storage(
    resources: AppResources = Depends(get_app_resources),
) -> TierPriceStorage:
    """Build a per-request storage over the app-scoped collaborators."""
    validator = TierPriceValidator(resources.config)
    return TierPriceStorage(
        repository=resources.repository,
        validator=validator,
        locator=resources.locator,
        indexer=resources.indexer,
    )

