from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class ComposeContext(BaseModel):
    project: Optional[str] = None
    file: Optional[str] = None
    services: List[str] = []


class ActionCommand(BaseModel):
    argv: List[str]
    command: str          # shell-quoted argv, for display only
    description: str


class ActionContext(BaseModel):
    compose: Optional[ComposeContext] = None
    commands: Dict[str, ActionCommand] = {}


class WebhookOutcome(BaseModel):
    status: Optional[int] = None
    data: Any = None
    headers: Optional[Dict[str, str]] = None
    error: Optional[str] = None


class DesiredState(BaseModel):
    state: str
    updated_at: datetime
    meta: Dict[str, Any] = {}
