"""Integration tests against a real Uvicorn server.

Exercises rate limiting over real sockets, where the client identifier
comes from proxy headers exactly as it would behind a load balancer.
"""

import threading
import time
from typing import Generator

import httpx
import pytest
import uvicorn

from app.core.app_factory import create_app
from app.core.rate_limit import RATE_LIMITS

HOST = "127.0.0.1"
PORT = 8011


@pytest.fixture(scope="module")
def server() -> Generator[str, None, None]:
    """Run the app in a background thread for the duration of the module."""
    config = uvicorn.Config(
        create_app(),
        host=HOST,
        port=PORT,
        log_level="error",
        access_log=False,
    )
    uv_server = uvicorn.Server(config)
    thread = threading.Thread(target=uv_server.run, daemon=True)
    thread.start()

    base_url = f"http://{HOST}:{PORT}"
    for _ in range(50):
        try:
            if httpx.get(f"{base_url}/health", timeout=1.0).status_code == 200:
                break
        except (httpx.ConnectError, httpx.ReadTimeout):
            time.sleep(0.1)
    else:
        uv_server.should_exit = True
        pytest.fail("Server failed to start")

    yield base_url

    uv_server.should_exit = True
    thread.join(timeout=5)


def test_api_budget_is_enforced_per_forwarded_client(server: str) -> None:
    limit = RATE_LIMITS["api"].max_requests
    body = {"questionnaire_completed": True, "risk_tolerance": "moderado"}

    with httpx.Client(base_url=server, headers={"X-Forwarded-For": "198.51.100.23"}) as http:
        statuses = [http.post("/v1/profile/investor-type", json=body).status_code for _ in range(limit)]
        assert statuses == [200] * limit

        blocked = http.post("/v1/profile/investor-type", json=body)
        assert blocked.status_code == 429
        assert int(blocked.headers["Retry-After"]) > 0
        assert blocked.json()["error"]["message"].startswith("Demasiados intentos")

        status = http.get("/v1/rate-limit/api").json()
        assert status["active"] is True
        assert status["remaining"] == 0

    other = httpx.post(
        f"{server}/v1/profile/investor-type",
        json=body,
        headers={"X-Forwarded-For": "198.51.100.24"},
    )
    assert other.status_code == 200
