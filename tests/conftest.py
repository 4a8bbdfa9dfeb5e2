import copy
import json
import os
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs

import pytest
import requests

from pocket_python_api import PocketAPI

POCKET_ENV_VARS = (
    "POCKET_PYTHON_API_CONSUMER_KEY",
    "POCKET_PYTHON_API_ACCESS_TOKEN",
    "POCKET_PYTHON_API_CREDENTIALS",
    "POCKET_PYTHON_API_ENDPOINT",
    "POCKET_PYTHON_API_VERBOSE",
)

PLACEHOLDER = "<placeholder>"

DEFAULT_ENVELOPE: Dict[str, Any] = {
    "status": 1,
    "complete": 1,
    "error": None,
    "search_meta": {"search_type": "normal"},
    "since": 0,
    "list": {},
}


def make_envelope(items: Optional[Dict[str, Any]] = None, **overrides) -> Dict[str, Any]:
    """Build a successful retrieve payload holding the given items."""
    envelope = copy.deepcopy(DEFAULT_ENVELOPE)
    if items is not None:
        envelope["list"] = items
    envelope.update(overrides)
    return envelope


class FakeResponse:
    """Just enough of requests.Response for the client."""

    def __init__(
        self,
        payload: Any = None,
        status_code: int = 200,
        headers: Optional[Dict[str, str]] = None,
        text: Optional[str] = None,
    ):
        self.status_code = status_code
        self.headers = headers or {}
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self) -> Any:
        return json.loads(self.text)

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(
                f"{self.status_code} Error", response=self
            )


class PostRecorder:
    """Stands in for requests.post, answering with a canned response or error."""

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self.response: Any = FakeResponse(make_envelope())
        self.error: Optional[BaseException] = None
        self.queued: List[Any] = []

    def __call__(self, url, data=None, headers=None, **kwargs):
        self.calls.append({"url": url, "data": data, "headers": headers, **kwargs})
        if self.error is not None:
            raise self.error
        if self.queued:
            return self.queued.pop(0)
        return self.response

    def respond_with(self, payload: Any, **kwargs) -> None:
        self.response = FakeResponse(payload, **kwargs)

    def respond_in_sequence(self, *payloads: Any) -> None:
        """Answer the next calls with these payloads, one per call, in order."""
        self.queued = [FakeResponse(payload) for payload in payloads]

    @property
    def last_form(self) -> Dict[str, str]:
        """The URL-encoded body of the last call, decoded."""
        parsed = parse_qs(self.calls[-1]["data"], keep_blank_values=True)
        return {k: v[0] for k, v in parsed.items()}


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every POCKET_PYTHON_API_* variable for the duration of a test."""
    for name in POCKET_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mock_post(monkeypatch) -> PostRecorder:
    """Replace requests.post with a recorder. No network access happens."""
    recorder = PostRecorder()
    monkeypatch.setattr(requests, "post", recorder)
    return recorder


@pytest.fixture
def pocket_client(clean_env) -> PocketAPI:
    """A client with placeholder credentials, meant to be used with mock_post."""
    return PocketAPI(
        consumer_key=PLACEHOLDER,
        access_token=PLACEHOLDER,
        verbose=True,  # Enable verbose logging for tests
    )


@pytest.fixture
def live_client() -> PocketAPI:
    """
    Fixture that provides a client talking to the real Pocket API.

    Requires the following environment variables:
    - POCKET_PYTHON_API_CONSUMER_KEY
    - POCKET_PYTHON_API_ACCESS_TOKEN
    """
    consumer_key = os.environ.get("POCKET_PYTHON_API_CONSUMER_KEY")
    access_token = os.environ.get("POCKET_PYTHON_API_ACCESS_TOKEN")

    if not consumer_key or not access_token:
        missing = []
        if not consumer_key:
            missing.append("POCKET_PYTHON_API_CONSUMER_KEY")
        if not access_token:
            missing.append("POCKET_PYTHON_API_ACCESS_TOKEN")
        pytest.skip(
            f"Missing required environment variables for Pocket API tests: {', '.join(missing)}. Set these to run integration tests."
        )

    return PocketAPI(
        consumer_key=consumer_key,
        access_token=access_token,
        verbose=True,
    )
