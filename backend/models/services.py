from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, PositiveInt
from pydantic.alias_generators import to_camel


class _ConfigModel(BaseModel):
    # services.config.json uses camelCase keys, extra keys are ignored
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class WebhookConfig(_ConfigModel):
    url: Optional[str] = None
    method: Optional[str] = None
    timeout: Optional[PositiveInt] = None      # milliseconds
    headers: Dict[str, str] = {}
    payload: Optional[Dict[str, Any]] = None


class PublicServiceDefinition(_ConfigModel):
    """
    Service definition as it can be shown to clients or sent to the webhook.
    Only the fields declared here are copied over, so the webhook override
    never leaves the process.
    """
    id: str
    name: Optional[str] = None
    project: Optional[str] = None
    service: Optional[str] = None
    labels: List[str] = []
    container_name: Optional[str] = None
    container_names: List[str] = []
    compose_file: Optional[str] = None
    compose_services: List[str] = []
    compose_root: Optional[str] = None
    compose_roots: List[str] = []


class ServiceDefinition(PublicServiceDefinition):
    webhook: Optional[WebhookConfig] = None

    @property
    def display_name(self) -> str:
        return self.name or self.id

    def public(self) -> PublicServiceDefinition:
        return PublicServiceDefinition(
            **{field: getattr(self, field) for field in PublicServiceDefinition.model_fields}
        )
