import logging
import re
from pathlib import Path
from typing import List, Optional, Sequence

import yaml

from config import Settings
from models.services import ServiceDefinition
from models.status import ComposeResolution
from services.errors import DefinitionFileError

log = logging.getLogger(__name__)

_PROJECT_NAME_STRIP = re.compile(r"[^a-z0-9_-]")


def compose_search_roots(service: ServiceDefinition, settings: Settings) -> List[Path]:
    """
    Directories a relative composeFile is looked up in, most specific first:
    1. composeRoot / composeRoots of the service
    2. COMPOSE_ROOTS, then COMPOSE_ROOT
    3. the directory holding services.config.json
    4. the working directory
    Relative roots are taken relative to the services config directory.
    """
    config_dir = Path(settings.services_config_path).resolve().parent

    hints: List[str] = []
    if service.compose_root:
        hints.append(service.compose_root)
    hints.extend(service.compose_roots)
    hints.extend(settings.compose_roots)
    if settings.compose_root:
        hints.append(settings.compose_root)

    roots: List[Path] = []
    for hint in hints:
        root = Path(hint).expanduser()
        if not root.is_absolute():
            root = config_dir / root
        roots.append(root)
    roots.append(config_dir)
    roots.append(Path.cwd())
    return _dedupe(root.resolve() for root in roots)


def _dedupe(paths) -> List[Path]:
    seen = set()
    out: List[Path] = []
    for p in paths:
        if p not in seen:
            seen.add(p)
            out.append(p)
    return out


def _candidate_paths(reference: str, roots: Sequence[Path]) -> List[Path]:
    ref = Path(reference).expanduser()
    if ref.is_absolute():
        return [ref]
    return _dedupe((root / ref).resolve() for root in roots)


def default_project_name(compose_path: Path) -> str:
    """
    Same rule docker compose applies when no project name is given:
    "/srv/My.App/docker-compose.yml" -> "myapp"
    """
    return _PROJECT_NAME_STRIP.sub("", compose_path.parent.name.lower())


def _read_compose_document(path: Path) -> dict:
    try:
        with path.open("r", encoding="utf-8") as fh:
            document = yaml.safe_load(fh)
    except OSError as e:
        raise DefinitionFileError(f"Unable to read compose file: {e}") from e
    except yaml.YAMLError as e:
        raise DefinitionFileError(f"Unable to parse compose file: {e}") from e

    if not isinstance(document, dict):
        raise DefinitionFileError("Compose file does not define any services")
    services = document.get("services")
    if not isinstance(services, dict) or not services:
        raise DefinitionFileError("Compose file does not define any services")
    return document


def resolve_compose_services(
    service: ServiceDefinition,
    roots: Sequence[Path],
) -> ComposeResolution:
    """
    Locate service.compose_file and list the compose services it declares.
    Never raises: problems come back in ComposeResolution.error.
    """
    if not service.compose_file:
        return ComposeResolution()

    candidates = _candidate_paths(service.compose_file, roots)
    resolved: Optional[Path] = None
    for candidate in candidates:
        try:
            found = candidate.is_file()
        except OSError as e:
            # EACCES / ENAMETOOLONG on one root must not hide the others
            log.debug("skipping compose candidate %s: %s", candidate, e)
            continue
        if found:
            resolved = candidate
            break

    if resolved is None:
        last = candidates[-1] if candidates else Path(service.compose_file)
        log.warning("compose file for %s not found (tried %d paths)", service.id, len(candidates))
        return ComposeResolution(path=str(last), error="definition file not found")

    try:
        document = _read_compose_document(resolved)
    except DefinitionFileError as e:
        log.warning("compose file %s for %s: %s", resolved, service.id, e)
        return ComposeResolution(path=str(resolved), error=str(e))

    name = document.get("name")
    project = name.strip() if isinstance(name, str) and name.strip() else default_project_name(resolved)

    return ComposeResolution(
        path=str(resolved),
        services=sorted(str(key) for key in document["services"]),
        project=project or None,
    )
