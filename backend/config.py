import json
import logging
import os
import sys
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError

from models.services import ServiceDefinition, WebhookConfig
from services.errors import ConfigurationError

# Load environment variables (SECRET_KEY, N8N_WEBHOOK_URL, etc.)
load_dotenv()

log = logging.getLogger(__name__)

DEFAULT_SERVICES_CONFIG_PATH = Path(__file__).resolve().parent / "services.config.json"

_LOG_FORMAT = "%(asctime)s %(levelname)-5s %(name)s: %(message)s"
_NOISY_LOGGERS = ("urllib3", "docker")


# --------------------------------------------------------------------------------------
# Settings
# --------------------------------------------------------------------------------------

class Settings(BaseModel):
    services_config_path: Path = DEFAULT_SERVICES_CONFIG_PATH

    docker_socket_path: Optional[str] = None
    docker_timeout: float = 10.0            # seconds

    compose_root: Optional[str] = None
    compose_roots: List[str] = []

    webhook: WebhookConfig = WebhookConfig(method="POST", timeout=5000)

    secret_key: Optional[str] = None
    admin_user: Optional[str] = None
    admin_password: Optional[str] = None
    access_token_expire_minutes: int = 30

    log_level: str = "INFO"


def _parse_headers(raw: str) -> Dict[str, str]:
    """
    N8N_WEBHOOK_HEADERS='{"X-Token": "abc"}' -> {"X-Token": "abc"}
    Anything that is not a JSON object is ignored with a warning.
    """
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError:
        parsed = None
    if isinstance(parsed, dict):
        return {str(k): str(v) for k, v in parsed.items()}
    log.warning("Failed to parse N8N_WEBHOOK_HEADERS. Expected valid JSON object.")
    return {}


def _split_roots(raw: str) -> List[str]:
    return [part.strip() for part in raw.split(os.pathsep) if part.strip()]


def settings_from_env() -> Settings:
    config_path = os.getenv("SERVICES_CONFIG_PATH")
    try:
        return Settings(
            services_config_path=Path(config_path).resolve() if config_path else DEFAULT_SERVICES_CONFIG_PATH,
            docker_socket_path=os.getenv("DOCKER_SOCKET_PATH") or None,
            docker_timeout=float(os.getenv("DOCKER_TIMEOUT", "10")),
            compose_root=os.getenv("COMPOSE_ROOT") or None,
            compose_roots=_split_roots(os.getenv("COMPOSE_ROOTS", "")),
            webhook=WebhookConfig(
                url=os.getenv("N8N_WEBHOOK_URL") or None,
                method=(os.getenv("N8N_WEBHOOK_METHOD") or "POST").upper(),
                timeout=int(os.getenv("N8N_WEBHOOK_TIMEOUT", "5000")),
                headers=_parse_headers(os.getenv("N8N_WEBHOOK_HEADERS", "")),
            ),
            secret_key=os.getenv("SECRET_KEY"),
            admin_user=os.getenv("ADMIN_USER"),
            admin_password=os.getenv("ADMIN_PASSWORD"),
            access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
    except ValueError as e:
        raise ConfigurationError(f"Invalid environment configuration: {e}") from e


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return settings_from_env()


def setup_logging(level: str = "INFO") -> None:
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    if numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


# --------------------------------------------------------------------------------------
# services.config.json
# --------------------------------------------------------------------------------------

def load_services(path: Path) -> List[ServiceDefinition]:
    """
    Read the services config (a JSON array of service definitions).
    Read on every request, so edits show up without a restart.
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Unable to read {path}: {e}") from e

    try:
        entries = json.loads(raw)
    except ValueError as e:
        raise ConfigurationError(f"{path} is not valid JSON: {e}") from e

    if not isinstance(entries, list):
        raise ConfigurationError(f"{Path(path).name} must contain an array")

    services: List[ServiceDefinition] = []
    seen = set()
    for index, entry in enumerate(entries):
        try:
            service = ServiceDefinition.model_validate(entry)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid service definition at index {index}: {e}") from e
        if service.id in seen:
            raise ConfigurationError(f"Duplicate service id '{service.id}'")
        seen.add(service.id)
        services.append(service)

    log.debug("loaded %d service definitions from %s", len(services), path)
    return services


def find_service(services: Sequence[ServiceDefinition], service_id: str) -> Optional[ServiceDefinition]:
    for service in services:
        if service.id == service_id:
            return service
    return None
