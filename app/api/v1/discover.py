from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.ai.factory import get_ai_client
from app.ai.types import AIClient
from app.catalog.store import list_simulations
from app.core.rate_limit import rate_limit
from app.schemas.catalog import RoleRequestCreate, RoleRequestResponse
from app.schemas.discover import (
    DiscoverNextRequest,
    DiscoverNextResponse,
    QuizRequest,
    QuizResult,
)
from app.services.discovery_service import (
    CatalogLoader,
    DiscoveryController,
    DiscoveryError,
    InvalidInput,
    LLMNextActionGenerator,
    run_discovery_turn,
)
from app.services.quiz_service import recommend_from_quiz
from app.services.waitlist_service import submit_role_request

router = APIRouter()


def get_discovery_controller() -> DiscoveryController:
    try:
        client = get_ai_client()
    except (RuntimeError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Career discovery is not configured.",
        ) from exc
    return DiscoveryController(LLMNextActionGenerator(client))


def get_optional_ai_client() -> AIClient | None:
    try:
        return get_ai_client()
    except (RuntimeError, ValueError):
        return None


def get_catalog_loader() -> CatalogLoader:
    return list_simulations


@router.post("/discover/next", response_model=DiscoverNextResponse)
@rate_limit()
async def discover_next(
    request: Request,
    payload: DiscoverNextRequest,
    controller: DiscoveryController = Depends(get_discovery_controller),
    catalog_loader: CatalogLoader = Depends(get_catalog_loader),
):
    _ = request
    try:
        return await run_discovery_turn(payload.qas, controller=controller, catalog_loader=catalog_loader)
    except InvalidInput as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    except DiscoveryError as exc:
        raise HTTPException(
            status_code=exc.status_code,
            detail="Something went wrong while picking your next question. Please try again.",
        ) from exc


@router.post("/discover", response_model=QuizResult)
@rate_limit()
async def discover_quiz(
    request: Request,
    payload: QuizRequest,
    client: AIClient | None = Depends(get_optional_ai_client),
):
    _ = request
    return await recommend_from_quiz(payload.answers, client=client)


@router.post("/discover/waitlist", response_model=RoleRequestResponse)
@rate_limit("10/minute")
def discover_waitlist(request: Request, payload: RoleRequestCreate):
    _ = request
    return submit_role_request(payload)
