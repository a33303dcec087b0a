import shlex
from typing import Dict, List, Optional

from models.actions import ActionCommand, ActionContext, ComposeContext
from models.services import ServiceDefinition

# action -> compose sub-command. "down" maps to `stop` so the compose project
# (networks, volumes) is left in place.
ACTION_ARGS: Dict[str, List[str]] = {
    "up": ["up", "-d"],
    "build": ["up", "-d", "--build"],
    "down": ["stop"],
    "restart": ["restart"],
}

ACTION_DESCRIPTIONS: Dict[str, str] = {
    "up": "Start",
    "build": "Rebuild and start",
    "down": "Stop",
    "restart": "Restart",
}

ACTIONS = frozenset(ACTION_ARGS)


def is_valid_action(action: Optional[str]) -> bool:
    return action in ACTIONS


def compose_targets(service: ServiceDefinition) -> List[str]:
    targets = [s.strip() for s in service.compose_services if s and s.strip()]
    if targets:
        return targets
    if service.service and service.service.strip():
        return [service.service.strip()]
    return []


def has_compose_context(service: ServiceDefinition) -> bool:
    return bool(service.compose_file or service.project or compose_targets(service))


def _base_args(service: ServiceDefinition) -> List[str]:
    args = ["docker", "compose"]
    if service.compose_file:
        args += ["-f", service.compose_file]
    if service.project:
        args += ["-p", service.project]
    return args


def command_for_action(service: ServiceDefinition, action: str) -> ActionCommand:
    argv = _base_args(service) + ACTION_ARGS[action] + compose_targets(service)
    return ActionCommand(
        argv=argv,
        command=shlex.join(argv),
        description=f"{ACTION_DESCRIPTIONS[action]} {service.display_name}",
    )


def build_action_context(service: ServiceDefinition) -> ActionContext:
    """
    Describe (never run) the compose command behind every action.
    Services without any compose hint get no commands.
    """
    if not has_compose_context(service):
        return ActionContext()

    return ActionContext(
        compose=ComposeContext(
            project=service.project,
            file=service.compose_file,
            services=compose_targets(service),
        ),
        commands={action: command_for_action(service, action) for action in ACTION_ARGS},
    )
