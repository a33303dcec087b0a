"""
Shared fixtures: a fake Docker low-level API and settings pointing at tmp_path.
"""

import json
from pathlib import Path

import docker
import pytest

from config import Settings
from models.services import WebhookConfig
from models.status import ContainerRecord


def make_container(
    cid,
    name,
    running=True,
    health=None,
    labels=None,
    exit_code=0,
    image="nginx:1.25",
):
    """(summary, inspect) pair shaped like the Docker engine API answers."""
    state = {
        "Status": "running" if running else "exited",
        "Running": running,
        "ExitCode": 0 if running else exit_code,
        "StartedAt": "2024-05-01T10:00:00.123456789Z",
        "FinishedAt": "0001-01-01T00:00:00Z" if running else "2024-05-01T11:00:00Z",
    }
    if health:
        state["Health"] = {"Status": health}
    status_text = "Up 2 hours" if running else f"Exited ({exit_code}) 5 minutes ago"
    if health and running:
        status_text += f" ({health})"
    summary = {
        "Id": cid,
        "Names": [f"/{name}"],
        "Image": image,
        "State": "running" if running else "exited",
        "Status": status_text,
        "Labels": dict(labels or {}),
    }
    inspect = {"Id": cid, "Name": f"/{name}", "State": state, "Config": {"Image": image}}
    return summary, inspect


def compose_labels(project, service):
    return {
        "com.docker.compose.project": project,
        "com.docker.compose.service": service,
    }


class FakeDockerAPI:
    """Implements the two low-level calls the collector uses."""

    base_url = "http+docker://localhost"

    def __init__(self, containers=(), list_error=None, inspect_errors=(), failing_labels=()):
        self.summaries = [s for s, _ in containers]
        self.inspects = {s["Id"]: i for s, i in containers}
        self.list_error = list_error
        self.inspect_errors = set(inspect_errors)
        self.failing_labels = set(failing_labels)
        self.calls = []

    def containers(self, all=False, filters=None):
        filters = filters or {}
        self.calls.append(filters)
        if self.list_error is not None:
            raise self.list_error
        labels = filters.get("label", [])
        if self.failing_labels.intersection(labels):
            raise docker.errors.APIError("engine rejected the query")

        matched = []
        for summary in self.summaries:
            if not all and summary["State"] != "running":
                continue
            if labels and not all_labels_match(summary["Labels"], labels):
                continue
            names = filters.get("name")
            if names and not any(n in summary["Names"][0] for n in names):
                continue
            matched.append(dict(summary))
        return matched

    def inspect_container(self, container_id):
        if container_id in self.inspect_errors:
            raise docker.errors.NotFound("No such container")
        return self.inspects[container_id]


def all_labels_match(container_labels, selectors):
    for selector in selectors:
        key, _, value = selector.partition("=")
        if container_labels.get(key) != value:
            return False
    return True


class FakeDockerClient:
    def __init__(self, api):
        self.api = api


@pytest.fixture
def fake_docker():
    def _build(*containers, **kwargs):
        return FakeDockerClient(FakeDockerAPI(containers, **kwargs))
    return _build


@pytest.fixture
def record():
    def _record(name, running=True, health=None):
        return ContainerRecord(id=f"id-{name}", name=name, running=running, health=health)
    return _record


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        services_config_path=tmp_path / "services.config.json",
        webhook=WebhookConfig(method="POST", timeout=5000),
        secret_key="test-secret",
        admin_user="admin",
        admin_password="hunter2",
    )


@pytest.fixture
def write_services(settings):
    def _write(entries):
        Path(settings.services_config_path).write_text(json.dumps(entries))
        return settings.services_config_path
    return _write
