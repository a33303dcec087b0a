from pydantic import BaseModel
from typing import Dict, List, Optional

from models.actions import ActionCommand, ComposeContext, DesiredState, WebhookOutcome
from models.services import PublicServiceDefinition
from models.status import ServiceStatus, StackStatus


class ServiceView(BaseModel):
    service: PublicServiceDefinition
    status: ServiceStatus
    desired: Optional[DesiredState] = None
    actions: Dict[str, ActionCommand]     # { "up": {...}, "down": {...}, ... }
    compose: Optional[ComposeContext] = None
    stack: Optional[StackStatus] = None


class ServiceListResponse(BaseModel):
    services: List[ServiceView]


class ActionRequest(BaseModel):
    action: Optional[str] = None          # "up" | "build" | "down" | "restart"
    reason: Optional[str] = None


class ActionResponse(BaseModel):
    message: str
    desired_state: DesiredState
    webhook: Optional[WebhookOutcome] = None
    payload: Dict
