import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests
from pydantic import BaseModel

from models.actions import DesiredState, WebhookOutcome
from models.services import ServiceDefinition, WebhookConfig
from services.action_context import build_action_context
from services.desired_state import DesiredStateStore
from services.errors import NotificationDispatchError

log = logging.getLogger(__name__)

DEFAULT_WEBHOOK_METHOD = "POST"
DEFAULT_WEBHOOK_TIMEOUT_MS = 5000


class DispatchResult(BaseModel):
    desired: DesiredState
    webhook: Optional[WebhookOutcome] = None
    payload: Dict[str, Any]


def resolve_webhook_config(service: ServiceDefinition, default: WebhookConfig) -> Optional[WebhookConfig]:
    """
    Per-service webhook settings win field by field over the global ones,
    headers are merged key by key. None if no url is configured anywhere.
    """
    override = service.webhook or WebhookConfig()
    url = override.url or default.url
    if not url:
        return None
    return WebhookConfig(
        url=url,
        method=(override.method or default.method or DEFAULT_WEBHOOK_METHOD).upper(),
        timeout=override.timeout or default.timeout or DEFAULT_WEBHOOK_TIMEOUT_MS,
        headers={**default.headers, **override.headers},
        payload=override.payload,
    )


def _response_data(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


def send_webhook(config: WebhookConfig, payload: Dict[str, Any]) -> WebhookOutcome:
    """
    Raises NotificationDispatchError on network errors, timeouts and non-2xx answers.
    """
    try:
        response = requests.request(
            method=config.method,
            url=config.url,
            json=payload,
            headers=config.headers,
            timeout=config.timeout / 1000.0,
        )
        response.raise_for_status()
    except requests.RequestException as e:
        failed = e.response
        if failed is not None:
            raise NotificationDispatchError(str(e), status_code=failed.status_code, data=_response_data(failed)) from e
        raise NotificationDispatchError(str(e)) from e
    except ValueError as e:
        # bad timeout / url values rejected by requests before any I/O
        raise NotificationDispatchError(str(e)) from e

    return WebhookOutcome(
        status=response.status_code,
        data=_response_data(response),
        headers=dict(response.headers),
    )


class ActionDispatcher:
    """
    Action request pipeline:
    action context -> webhook (if configured) -> desired state.
    The desired state is written exactly once per request, whatever the
    webhook did: it records what was requested, not what happened.
    """

    def __init__(self, store: DesiredStateStore, default_webhook: WebhookConfig):
        self.store = store
        self.default_webhook = default_webhook

    def build_payload(self, service: ServiceDefinition, action: str, reason: Optional[str], requested_at: str) -> Dict[str, Any]:
        context = build_action_context(service)
        return {
            "service_id": service.id,
            "action": action,
            "reason": reason,
            "requested_at": requested_at,
            "service": service.public().model_dump(mode="json"),
            "compose": context.compose.model_dump(mode="json") if context.compose else None,
            "commands": {name: cmd.model_dump(mode="json") for name, cmd in context.commands.items()},
        }

    def dispatch(self, service: ServiceDefinition, action: str, reason: Optional[str] = None) -> DispatchResult:
        requested_at = datetime.now(timezone.utc).isoformat()
        payload = self.build_payload(service, action, reason or None, requested_at)

        webhook = resolve_webhook_config(service, self.default_webhook)
        if webhook is not None and webhook.payload:
            payload["config"] = webhook.payload

        outcome: Optional[WebhookOutcome] = None
        if webhook is not None:
            try:
                outcome = send_webhook(webhook, payload)
                log.info("webhook %s %s -> %s for %s/%s", webhook.method, webhook.url, outcome.status, service.id, action)
            except NotificationDispatchError as e:
                log.warning("webhook %s %s failed for %s/%s: %s", webhook.method, webhook.url, service.id, action, e)
                outcome = WebhookOutcome(status=e.status_code, data=e.data, error=str(e))
        else:
            log.info("no webhook configured, recording %s for %s only", action, service.id)

        desired = self.store.set(
            service.id,
            action,
            {
                "reason": reason or None,
                "webhook": outcome.model_dump(mode="json") if outcome else None,
                "requested_at": requested_at,
            },
        )
        return DispatchResult(desired=desired, webhook=outcome, payload=payload)
