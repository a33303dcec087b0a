import logging
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Tuple

import docker
import requests
from docker.errors import DockerException

from config import get_settings
from models.services import ServiceDefinition
from models.status import ContainerRecord
from services.errors import InspectError, RuntimeQueryError

log = logging.getLogger(__name__)

COMPOSE_PROJECT_LABEL = "com.docker.compose.project"
COMPOSE_SERVICE_LABEL = "com.docker.compose.service"

_MAX_WORKERS = 8  # max parallel inspect calls per service

# Docker API calls in flight at once, across every fan-out level. Matches the
# client connection pool so threads wait here instead of on urllib3.
DOCKER_MAX_CONNECTIONS = 10
_api_slots = threading.BoundedSemaphore(DOCKER_MAX_CONNECTIONS)

# Docker reports this for containers that never started / never finished
_ZERO_TIME = "0001-01-01T00:00:00Z"

# "Up 3 hours (unhealthy)" / "Up 5 seconds (health: starting)"
_HEALTH_IN_STATUS = re.compile(r"\((?:health: )?(healthy|unhealthy|starting)\)", re.IGNORECASE)

# --------------------------------------------------------------------------------------
# Global Docker client (created lazily, the daemon may be down at import time)
# --------------------------------------------------------------------------------------

_client: Optional[docker.DockerClient] = None
_client_lock = threading.Lock()


def get_docker_client() -> docker.DockerClient:
    global _client
    with _client_lock:
        if _client is None:
            settings = get_settings()
            try:
                if settings.docker_socket_path:
                    _client = docker.DockerClient(
                        base_url=f"unix://{settings.docker_socket_path}",
                        timeout=settings.docker_timeout,
                        max_pool_size=DOCKER_MAX_CONNECTIONS,
                    )
                else:
                    _client = docker.from_env(
                        timeout=settings.docker_timeout,
                        max_pool_size=DOCKER_MAX_CONNECTIONS,
                    )
            except DockerException as e:
                raise RuntimeQueryError(f"Unable to connect to Docker engine: {e}") from e
        return _client


def _engine_location(client) -> str:
    api = getattr(client, "api", None)
    return getattr(api, "base_url", None) or "socket"


# --------------------------------------------------------------------------------------
# Filters
# --------------------------------------------------------------------------------------

def build_label_filters(service: ServiceDefinition) -> List[str]:
    labels: List[str] = []
    if service.project:
        labels.append(f"{COMPOSE_PROJECT_LABEL}={service.project}")
    if service.service:
        labels.append(f"{COMPOSE_SERVICE_LABEL}={service.service}")
    for label in service.labels:
        if label and label.strip():
            labels.append(label.strip())
    return labels


def build_name_filters(service: ServiceDefinition) -> List[str]:
    names: List[str] = []
    if service.container_name:
        names.append(service.container_name)
    names.extend(n for n in service.container_names if n)
    return names


# --------------------------------------------------------------------------------------
# Listing + inspect
# --------------------------------------------------------------------------------------

def _list(client, filters: Dict[str, List[str]]) -> List[Dict]:
    try:
        with _api_slots:
            return client.api.containers(all=True, filters=filters)
    except (DockerException, requests.RequestException) as e:
        raise RuntimeQueryError(
            f"Unable to query Docker engine via {_engine_location(client)}: {e}"
        ) from e


def _inspect(client, container_id: str) -> Dict:
    try:
        with _api_slots:
            return client.api.inspect_container(container_id)
    except (DockerException, requests.RequestException) as e:
        raise InspectError(str(e)) from e


def _inspect_entry(client, summary: Dict) -> Tuple[Dict, Optional[Dict], Optional[str]]:
    try:
        return summary, _inspect(client, summary["Id"]), None
    except InspectError as e:
        log.warning("inspect failed for container %s: %s", summary.get("Id", "")[:12], e)
        return summary, None, str(e)


def list_containers_for_service(service: ServiceDefinition, client=None) -> List[Tuple[Dict, Optional[Dict], Optional[str]]]:
    """
    (summary, inspect, inspect_error) for every container of the service.
    1. label filters (compose project / compose service / explicit labels)
    2. nothing found -> retry by container name(s)
    3. inspect each match in parallel, keeping the summary if inspect fails
    Raises RuntimeQueryError if the engine cannot be listed.
    """
    if client is None:
        client = get_docker_client()

    containers: List[Dict] = []
    labels = build_label_filters(service)
    if labels:
        containers = _list(client, {"label": labels})

    if not containers:
        names = build_name_filters(service)
        if names:
            containers = _list(client, {"name": names})

    log.debug("service %s matched %d containers", service.id, len(containers))
    if not containers:
        return []

    workers = min(_MAX_WORKERS, len(containers))
    with ThreadPoolExecutor(max_workers=workers) as ex:
        return list(ex.map(lambda summary: _inspect_entry(client, summary), containers))


# --------------------------------------------------------------------------------------
# Normalization
# --------------------------------------------------------------------------------------

def _strip_slash(name: Optional[str]) -> Optional[str]:
    if not name:
        return None
    return name[1:] if name.startswith("/") else name


def _timestamp(value: Optional[str]) -> Optional[str]:
    if not value or value == _ZERO_TIME:
        return None
    return value


def _health_from_summary(summary: Dict) -> Optional[str]:
    m = _HEALTH_IN_STATUS.search(summary.get("Status") or "")
    return m.group(1).lower() if m else None


def describe_container(summary: Dict, inspect: Optional[Dict] = None, inspect_error: Optional[str] = None) -> ContainerRecord:
    container_id = summary.get("Id") or (inspect or {}).get("Id") or ""
    names = summary.get("Names") or []

    name = (
        _strip_slash(names[0] if names else None)
        or _strip_slash((inspect or {}).get("Name"))
        or container_id[:12]
    )

    if inspect is not None:
        state = inspect.get("State") or {}
        running = bool(state.get("Running"))
        health = (state.get("Health") or {}).get("Status") or None
        exit_code = state.get("ExitCode")
        status_text = (
            state.get("Status")
            or summary.get("State")
            or summary.get("Status")
            or ("running" if running else "unknown")
        )
        image = summary.get("Image") or (inspect.get("Config") or {}).get("Image")
        return ContainerRecord(
            id=container_id,
            name=name,
            image=image,
            running=running,
            status=status_text,
            health=health,
            exit_code=exit_code if isinstance(exit_code, int) and not isinstance(exit_code, bool) else None,
            started_at=_timestamp(state.get("StartedAt")),
            finished_at=_timestamp(state.get("FinishedAt")),
            inspect_error=inspect_error,
        )

    running = summary.get("State") == "running"
    return ContainerRecord(
        id=container_id,
        name=name,
        image=summary.get("Image"),
        running=running,
        status=summary.get("State") or summary.get("Status") or "unknown",
        health=_health_from_summary(summary),
        inspect_error=inspect_error,
    )


def collect_containers(service: ServiceDefinition, client=None) -> List[ContainerRecord]:
    return [
        describe_container(summary, inspect, error)
        for summary, inspect, error in list_containers_for_service(service, client)
    ]
