"""Top-level API router: mounts all domain routers under /api/v1."""

from fastapi import APIRouter

from aurum.api.routes import accuracy, analysis, consensus, market, snapshots, system

api_router = APIRouter()
api_router.include_router(snapshots.router, prefix="/snapshots", tags=["snapshots"])
api_router.include_router(analysis.router, prefix="/analysis", tags=["analysis"])
api_router.include_router(consensus.router, prefix="/consensus", tags=["consensus"])
api_router.include_router(accuracy.router, prefix="/accuracy", tags=["accuracy"])
api_router.include_router(market.router, prefix="/market", tags=["market"])
api_router.include_router(system.router, prefix="/system", tags=["system"])
