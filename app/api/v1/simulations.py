from fastapi import APIRouter, Depends

from app.api.v1.discover import get_catalog_loader
from app.schemas.catalog import SimulationEntry
from app.services.discovery_service import CatalogLoader

router = APIRouter()


@router.get("/simulations", response_model=list[SimulationEntry])
def simulations(catalog_loader: CatalogLoader = Depends(get_catalog_loader)):
    return list(catalog_loader())
