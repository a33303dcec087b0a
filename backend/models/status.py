from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel


class ServiceState(str, Enum):
    UP = "up"
    DOWN = "down"
    DEGRADED = "degraded"
    UNKNOWN = "unknown"


class ContainerRecord(BaseModel):
    id: str
    name: str
    image: Optional[str] = None
    running: bool = False
    status: str = "unknown"           # "running" | "exited" | "Up 2 hours" ...
    health: Optional[str] = None      # "healthy" | "unhealthy" | "starting"
    exit_code: Optional[int] = None
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    inspect_error: Optional[str] = None


class ServiceStatus(BaseModel):
    state: ServiceState
    detail: str
    container: Optional[str] = None   # representative container name
    containers: List[ContainerRecord] = []


class ComposeServiceStatus(BaseModel):
    name: str
    status: ServiceStatus


class ComposeResolution(BaseModel):
    path: Optional[str] = None
    services: List[str] = []
    project: Optional[str] = None
    error: Optional[str] = None


class StackStatus(BaseModel):
    services: List[ComposeServiceStatus] = []
    counts: Dict[ServiceState, int] = {}
    aggregate: Optional[ServiceStatus] = None
    file: Optional[str] = None
    project: Optional[str] = None
    primary: Optional[str] = None
    error: Optional[str] = None
