from fastapi import APIRouter

from app.core.config.discovery import get_discovery_config

router = APIRouter()


@router.get("/health", summary="Health Check", description="Check the health status of the application.")
async def health_check():
    config = get_discovery_config()
    return {"status": "healthy", "supported_roles": len(config.supported_roles)}
