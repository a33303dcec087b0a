import asyncio
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from auth import get_current_user
from config import Settings, find_service, get_settings, load_services
from models.services import ServiceDefinition
from models.v2 import ActionRequest, ActionResponse, ServiceListResponse, ServiceView
from services.action_context import ACTIONS, is_valid_action
from services.desired_state import DesiredStateStore
from services.dispatch import ActionDispatcher
from services.errors import ConfigurationError
from services.service_status import get_services

router = APIRouter(
    prefix="/api/v2",
    tags=["v2"],
    responses={404: {"description": "Not found"}},
)


def get_store(request: Request) -> DesiredStateStore:
    return request.app.state.desired_states


def get_docker(request: Request):
    # None -> the shared client from services.docker_inventory
    return getattr(request.app.state, "docker_client", None)


def _load(settings: Settings) -> List[ServiceDefinition]:
    try:
        return load_services(settings.services_config_path)
    except ConfigurationError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Unable to load services", "detail": str(e)},
        )


@router.get("/services", response_model=ServiceListResponse, response_model_by_alias=False)
async def list_services(
    ids: Optional[List[str]] = Query(default=None),
    user: str = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    store: DesiredStateStore = Depends(get_store),
    client=Depends(get_docker),
):
    """
    Live status of every configured service (or only `ids`).
    Docker is queried on every call; nothing is cached.
    """
    services = _load(settings)
    views = await asyncio.to_thread(get_services, services, settings, store, ids, client)
    return {"services": views}


@router.get("/services/{service_id}", response_model=ServiceView, response_model_by_alias=False)
async def get_service(
    service_id: str,
    user: str = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    store: DesiredStateStore = Depends(get_store),
    client=Depends(get_docker),
):
    services = _load(settings)
    if find_service(services, service_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Service '{service_id}' not found",
        )
    views = await asyncio.to_thread(get_services, services, settings, store, [service_id], client)
    return views[0]


@router.post(
    "/services/{service_id}/actions",
    response_model=ActionResponse,
    response_model_by_alias=False,
    status_code=status.HTTP_202_ACCEPTED,
)
async def request_action(
    service_id: str,
    body: ActionRequest,
    user: str = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    store: DesiredStateStore = Depends(get_store),
):
    """
    Records the requested action and forwards it to the webhook (n8n).
    Nothing is executed here; 202 means "received", not "done".
    """
    if not is_valid_action(body.action):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Action must be one of: {', '.join(sorted(ACTIONS))}",
        )

    service = find_service(_load(settings), service_id)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Service '{service_id}' not found",
        )

    dispatcher = ActionDispatcher(store, settings.webhook)
    result = await asyncio.to_thread(dispatcher.dispatch, service, body.action, body.reason)
    return {
        "message": "Action received",
        "desired_state": result.desired,
        "webhook": result.webhook,
        "payload": result.payload,
    }
