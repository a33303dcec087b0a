"""
Pure status classification.

summarise_containers: container records -> service status
aggregate_stack:      compose service statuses -> stack status

Both are total and deterministic: the same input list always gives the same
state and detail, and no I/O happens here.
"""
from typing import Dict, List, Sequence

from models.status import ComposeServiceStatus, ContainerRecord, ServiceState, ServiceStatus


def _is_unhealthy(container: ContainerRecord) -> bool:
    # no health check configured -> never unhealthy
    return bool(container.health) and container.health.lower() != "healthy"


def summarise_containers(containers: Sequence[ContainerRecord]) -> ServiceStatus:
    containers = list(containers)
    if not containers:
        return ServiceStatus(
            state=ServiceState.UNKNOWN,
            detail="no matching containers found",
            container=None,
            containers=[],
        )

    total = len(containers)
    running = [c for c in containers if c.running]
    stopped = [c for c in containers if not c.running]
    unhealthy = [c for c in containers if _is_unhealthy(c)]
    representative = containers[0].name

    if len(running) == total and not unhealthy:
        detail = "container running" if total == 1 else f"all {total} containers running"
        return ServiceStatus(state=ServiceState.UP, detail=detail, container=representative, containers=containers)

    if not running:
        detail = "container stopped" if total == 1 else "all containers stopped"
        return ServiceStatus(state=ServiceState.DOWN, detail=detail, container=representative, containers=containers)

    notes: List[str] = []
    stopped_names = [c.name for c in stopped if c.name]
    unhealthy_names = [c.name for c in unhealthy if c.name]
    if stopped_names:
        notes.append(f"{len(stopped_names)} stopped: {', '.join(stopped_names)}")
    if unhealthy_names:
        notes.append(f"{len(unhealthy_names)} unhealthy: {', '.join(unhealthy_names)}")
    detail = "; ".join(notes) if notes else f"{len(running)} of {total} containers running"

    return ServiceStatus(state=ServiceState.DEGRADED, detail=detail, container=representative, containers=containers)


def count_states(statuses: Sequence[ComposeServiceStatus]) -> Dict[ServiceState, int]:
    counts = {state: 0 for state in ServiceState}
    for entry in statuses:
        counts[entry.status.state] += 1
    return counts


def aggregate_stack(statuses: Sequence[ComposeServiceStatus]) -> ServiceStatus:
    """
    Stack state, first matching rule wins:
    1. any down                -> down
    2. any degraded            -> degraded
    3. any unknown and none up -> unknown
    4. any unknown             -> degraded
    5. otherwise               -> up
    """
    statuses = list(statuses)
    total = len(statuses)
    if not total:
        return ServiceStatus(state=ServiceState.UNKNOWN, detail="no services declared")

    def names_in(state: ServiceState) -> List[str]:
        return [entry.name for entry in statuses if entry.status.state is state]

    down = names_in(ServiceState.DOWN)
    degraded = names_in(ServiceState.DEGRADED)
    unknown = names_in(ServiceState.UNKNOWN)
    up = names_in(ServiceState.UP)

    if down:
        state = ServiceState.DOWN
        if len(down) == total:
            detail = "all services are currently down"
        else:
            detail = f"services down: {', '.join(down)}"
    elif degraded:
        state = ServiceState.DEGRADED
        detail = f"services degraded: {', '.join(degraded)}"
    elif unknown and not up:
        state = ServiceState.UNKNOWN
        detail = "all services are reporting an unknown status"
    elif unknown:
        state = ServiceState.DEGRADED
        detail = f"services with unknown status: {', '.join(unknown)}"
    else:
        state = ServiceState.UP
        detail = f"all {total} services running"

    if total == 1:
        representative = statuses[0].status.container
    else:
        representative = f"stack ({total} services)"

    containers: List[ContainerRecord] = []
    for entry in statuses:
        containers.extend(entry.status.containers)

    return ServiceStatus(state=state, detail=detail, container=representative, containers=containers)
