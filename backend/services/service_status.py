import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from config import Settings
from models.services import ServiceDefinition
from models.status import ComposeServiceStatus, ServiceState, ServiceStatus, StackStatus
from models.v2 import ServiceView
from services.action_context import build_action_context
from services.compose_files import compose_search_roots, resolve_compose_services
from services.desired_state import DesiredStateStore
from services.docker_inventory import collect_containers
from services.errors import RuntimeQueryError
from services.status_summary import aggregate_stack, count_states, summarise_containers

log = logging.getLogger(__name__)

_MAX_WORKERS = 8  # max services / compose services evaluated in parallel


def _unknown(detail: str) -> ServiceStatus:
    return ServiceStatus(state=ServiceState.UNKNOWN, detail=detail, container=None, containers=[])


# --------------------------------------------------------------------------------------
# Single service (or single compose service)
# --------------------------------------------------------------------------------------

def collect_service_status(service: ServiceDefinition, client=None) -> ServiceStatus:
    """
    Never raises for runtime problems: an unreachable engine becomes an
    "unknown" status carrying the error message.
    """
    try:
        containers = collect_containers(service, client)
    except RuntimeQueryError as e:
        log.warning("status for %s unavailable: %s", service.id, e)
        return _unknown(str(e))
    return summarise_containers(containers)


def _safe_status(service: ServiceDefinition, client) -> ServiceStatus:
    try:
        return collect_service_status(service, client)
    except Exception as e:
        # one broken compose service must not take the whole stack down
        log.exception("unexpected error collecting status for %s", service.id)
        return _unknown(str(e))


# --------------------------------------------------------------------------------------
# Stack (compose file)
# --------------------------------------------------------------------------------------

def compose_service_definition(service: ServiceDefinition, name: str, project: str) -> ServiceDefinition:
    return service.model_copy(update={
        "service": name,
        "project": project,
        "container_name": None,
        "container_names": [],
        "compose_services": [],
    })


def collect_stack_status(service: ServiceDefinition, roots: Sequence[Path], client=None) -> StackStatus:
    resolution = resolve_compose_services(service, roots)
    project = service.project or resolution.project
    names = resolution.services
    if service.compose_services:
        wanted = set(service.compose_services)
        names = [n for n in names if n in wanted]

    error = resolution.error
    if not error and not names:
        error = "no compose services selected"
    if not error and not project:
        # a compose service label alone would match same-named services of other projects
        error = "unable to determine compose project name"

    if error:
        return StackStatus(
            counts=count_states([]),
            file=resolution.path,
            project=project,
            error=error,
        )

    definitions = [compose_service_definition(service, n, project) for n in names]
    with ThreadPoolExecutor(max_workers=min(_MAX_WORKERS, len(definitions))) as ex:
        statuses = list(ex.map(lambda d: _safe_status(d, client), definitions))

    entries = [ComposeServiceStatus(name=n, status=s) for n, s in zip(names, statuses)]
    primary = service.service if service.service in names else names[0]

    return StackStatus(
        services=entries,
        counts=count_states(entries),
        aggregate=aggregate_stack(entries),
        file=resolution.path,
        project=project,
        primary=primary,
    )


def compute_status(service: ServiceDefinition, settings: Settings, client=None) -> Tuple[ServiceStatus, Optional[StackStatus]]:
    """
    The stack aggregate is the service status whenever a compose file resolved
    to at least one compose service. Otherwise the service's own filters are
    used.
    """
    stack: Optional[StackStatus] = None
    if service.compose_file:
        stack = collect_stack_status(service, compose_search_roots(service, settings), client)
        if stack.aggregate is not None:
            return stack.aggregate, stack

    status = collect_service_status(service, client)
    if stack is not None and stack.error and status.state is ServiceState.UNKNOWN and not status.containers:
        status = status.model_copy(update={"detail": stack.error})
    return status, stack


# --------------------------------------------------------------------------------------
# Views (status query surface)
# --------------------------------------------------------------------------------------

def build_service_view(service: ServiceDefinition, settings: Settings, store: DesiredStateStore, client=None) -> ServiceView:
    try:
        status, stack = compute_status(service, settings, client)
    except Exception as e:
        log.exception("unexpected error computing status for %s", service.id)
        status, stack = _unknown(str(e)), None

    context = build_action_context(service)
    return ServiceView(
        service=service.public(),
        status=status,
        desired=store.get(service.id),
        actions=context.commands,
        compose=context.compose,
        stack=stack,
    )


def get_services(
    services: Sequence[ServiceDefinition],
    settings: Settings,
    store: DesiredStateStore,
    ids: Optional[Iterable[str]] = None,
    client=None,
) -> List[ServiceView]:
    """
    One view per service, in config order. ids=None means all services.
    """
    selected = list(services)
    if ids is not None:
        wanted = set(ids)
        selected = [s for s in selected if s.id in wanted]
    if not selected:
        return []

    with ThreadPoolExecutor(max_workers=min(_MAX_WORKERS, len(selected))) as ex:
        return list(ex.map(lambda s: build_service_view(s, settings, store, client), selected))
