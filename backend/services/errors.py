from typing import Any


class PanelError(Exception):
    """
    Base class for every error raised below the request boundary.
    """


class ConfigurationError(PanelError):
    """
    services config missing, unreadable or malformed.
    """


class DefinitionFileError(PanelError):
    """
    compose file missing, unreadable or without services.
    """


class RuntimeQueryError(PanelError):
    """
    Docker engine unreachable or rejected the list query.
    """


class InspectError(PanelError):
    """
    Inspect call failed for a single container.
    """


class NotificationDispatchError(PanelError):
    """
    Webhook call failed: network, timeout or non-2xx answer.
    Carries the best-effort status code and response body.
    """

    def __init__(self, message: str, status_code: int = 500, data: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.data = data
