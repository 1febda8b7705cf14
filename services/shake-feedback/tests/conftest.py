from typing import Any, Dict, List, Optional
import pytest
from PIL import Image

from shake_feedback.config import JiraConfig


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = ""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeSession:
    """Stands in for requests.Session: records every call, answers from routes."""

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self._routes: List[Any] = []

    def route(self, method: str, path_suffix: str, response: FakeResponse) -> "FakeSession":
        self._routes.append((method, path_suffix, response))
        return self

    def request(self, method, url, headers=None, timeout=None, params=None, json=None, files=None):
        self.calls.append({
            "method": method,
            "url": url,
            "headers": dict(headers or {}),
            "timeout": timeout,
            "params": params,
            "json": json,
            "files": files,
        })
        for route_method, suffix, response in self._routes:
            if route_method == method and url.endswith(suffix):
                return response
        return FakeResponse(404, text="no route")

    def paths(self) -> List[str]:
        return [f"{c['method']} {c['url']}" for c in self.calls]


@pytest.fixture
def jira_config() -> JiraConfig:
    return JiraConfig(
        domain="acme.atlassian.net",
        email="bot@acme.io",
        api_token="secret",
        project_key="PROJ",
    )


@pytest.fixture
def pinned_config(jira_config) -> JiraConfig:
    return jira_config.model_copy(update={"issue_type_id": "10004"})


@pytest.fixture
def fake_http() -> FakeSession:
    return FakeSession()


@pytest.fixture
def screenshot() -> Image.Image:
    return Image.new("RGB", (400, 200), (30, 60, 90))


def ok_jira(session: FakeSession, key: str = "PROJ-42") -> FakeSession:
    return (session
            .route("POST", "/rest/api/3/issue", FakeResponse(201, {"id": "1", "key": key}))
            .route("POST", f"/rest/api/3/issue/{key}/attachments", FakeResponse(200, [{"id": "9"}])))


def count_calls(session: FakeSession, method: str, suffix: str, calls: Optional[list] = None) -> int:
    return sum(1 for c in (calls or session.calls) if c["method"] == method and c["url"].endswith(suffix))
