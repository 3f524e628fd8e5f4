import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from blogify.app import create_app
from blogify.config import Settings
from blogify.infra.store import DocumentStore


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        data_dir=tmp_path / "data",
        secret_key="test-secret",
        log_level="WARNING",
        page_size=3,
        store_timeout=0.5,
    )


@pytest.fixture()
def store(tmp_path: Path):
    s = DocumentStore(tmp_path / "store", timeout=0.5).open()
    yield s
    s.close()


@pytest.fixture()
def client(settings: Settings):
    """TestClient with the lifespan running (store opened/closed around the test)."""
    with TestClient(create_app(settings)) as c:
        yield c


def _signup_and_signin(client: TestClient, email: str = "ada@example.com", password: str = "secret1",
                       full_name: str = "Ada Lovelace"):
    r = client.post("/user/signup", data={"fullName": full_name, "email": email, "password": password},
                    follow_redirects=False)
    assert r.status_code == 303, r.text
    r = client.post("/user/signin", data={"email": email, "password": password}, follow_redirects=False)
    assert r.status_code == 303, r.text
    return client.app.state.store.find_user_by_email(email)


@pytest.fixture()
def login(client: TestClient):
    """Sign up and sign in through the HTTP surface; returns the stored user document."""
    def _login(email: str = "ada@example.com", password: str = "secret1", full_name: str = "Ada Lovelace"):
        return _signup_and_signin(client, email=email, password=password, full_name=full_name)

    return _login
