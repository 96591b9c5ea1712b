from app.core.config import settings
from app.core.errors import ProviderUnavailableError
from app.main import create_app
from tests.conftest import (
    CONTROL_HOST,
    ITSM_HOST,
    OTHER_TENANT_HOST,
    ROOT_HOST,
    SELF_HOST,
    USERS,
    cookie_token,
    login,
)


def session_cookie(token):
    return {"Cookie": f"session={token}"}


def test_login_sets_shared_cookie(client):
    response = client.post("/login", json={"email": "a@b.com", "password": "correct"})

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    header = response.headers["set-cookie"]
    assert header.startswith("session=")
    for attribute in ("Path=/", "Domain=.hi5tech.co.uk", "HttpOnly", "Secure", "SameSite=Lax"):
        assert attribute in header


def test_login_failure_is_generic(client):
    wrong_password = client.post("/login", json={"email": "a@b.com", "password": "nope"})
    unknown_email = client.post("/login", json={"email": "who@b.com", "password": "nope"})

    for response in (wrong_password, unknown_email):
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid credentials"}
        assert "set-cookie" not in response.headers


def test_login_requires_both_fields(client):
    assert client.post("/login", json={"email": "a@b.com"}).status_code == 422


def test_session_shared_across_module_hosts(make_client):
    token = login(make_client(ITSM_HOST))

    for host in (SELF_HOST, CONTROL_HOST, ITSM_HOST):
        response = make_client(host).get("/session", headers=session_cookie(token))
        assert response.status_code == 200
        assert response.json()["user"]["email"] == "a@b.com"


def test_session_payload(make_client):
    token = login(make_client(SELF_HOST), "requester")
    user = make_client(SELF_HOST).get("/session", headers=session_cookie(token)).json()["user"]

    assert user["role"] == "Requester"
    assert user["tenant_id"] == "demoitsm"
    assert user["permissions"] == ["raise_request", "view_own"]
    assert user["modules"] == ["self_service"]


def test_session_without_cookie_is_401_with_empty_body(client):
    response = client.get("/session")
    assert response.status_code == 401
    assert response.content == b""


def test_session_ignores_bearer_header(client):
    token = login(client)
    client.cookies.clear()
    response = client.get("/session", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_session_from_another_tenant_is_rejected(make_client):
    token = login(make_client(OTHER_TENANT_HOST), "acme")
    response = make_client(ITSM_HOST).get("/session", headers=session_cookie(token))
    assert response.status_code == 401


def test_logout_revokes_and_clears(make_client):
    token = login(make_client(ITSM_HOST))

    response = make_client(CONTROL_HOST).post("/logout", headers=session_cookie(token))
    assert response.status_code == 200
    cleared = response.headers["set-cookie"]
    assert cleared.startswith("session=")
    assert cookie_token(response) in ("", '""')
    for attribute in ("Max-Age=0", "Path=/", "Domain=.hi5tech.co.uk", "HttpOnly", "Secure", "SameSite=Lax"):
        assert attribute in cleared

    again = make_client(SELF_HOST).get("/session", headers=session_cookie(token))
    assert again.status_code == 401


def test_logout_without_session(client):
    response = client.post("/logout")
    assert response.status_code == 200
    assert "Max-Age=0" in response.headers["set-cookie"]


def test_unknown_role_gets_nothing(make_client):
    token = login(make_client(ITSM_HOST), "ghost")
    client = make_client(ITSM_HOST)

    user = client.get("/session", headers=session_cookie(token)).json()["user"]
    assert user["permissions"] == []
    assert user["modules"] == []
    assert client.get("/permissions", headers=session_cookie(token)).status_code == 403


def test_permissions_endpoint_requires_configure_settings(make_client):
    client = make_client(ITSM_HOST)
    admin = login(client, "admin")
    agent = login(client, "agent")

    response = client.get("/permissions", headers=session_cookie(admin))
    assert response.status_code == 200
    assert response.json()["roles"]["Requester"] == ["raise_request", "view_own"]

    assert client.get("/permissions", headers=session_cookie(agent)).status_code == 403
    client.cookies.clear()
    assert client.get("/permissions").status_code == 401


def test_modules_lists_urls_for_the_tenant(make_client):
    token = login(make_client(ITSM_HOST), "agent")
    response = make_client(ITSM_HOST).get("/modules", headers=session_cookie(token))

    assert response.status_code == 200
    assert response.json() == {
        "tenant": "demoitsm",
        "modules": [
            {"module": "itsm", "url": "https://demoitsm-itsm.hi5tech.co.uk/"},
            {"module": "self_service", "url": "https://demoitsm-self.hi5tech.co.uk/"},
        ],
    }


def test_login_on_localhost_has_no_cookie_domain(make_client):
    client = make_client("localhost")
    response = client.post("/login", json={"email": "a@b.com", "password": "correct"})

    assert response.status_code == 200
    assert "Domain=" not in response.headers["set-cookie"]
    token = cookie_token(response)
    assert client.get("/session", headers=session_cookie(token)).status_code == 200


class DownProvider:

    def verify_password(self, email, password):
        raise ProviderUnavailableError("down")

    def verify_token(self, token):
        raise ProviderUnavailableError("down")

    def invalidate(self, token):
        raise ProviderUnavailableError("down")


def test_provider_outage_is_503(permission_table):
    from fastapi.testclient import TestClient

    client = TestClient(
        create_app(provider=DownProvider(), permission_table=permission_table),
        base_url=f"https://{ITSM_HOST}",
    )
    email, password, _, _ = USERS["admin"]

    response = client.post("/login", json={"email": email, "password": password})
    assert response.status_code == 503
    assert "set-cookie" not in response.headers

    assert client.get("/session", headers=session_cookie("tok")).status_code == 503
    assert client.get("/modules", headers=session_cookie("tok")).status_code == 503

    logout = client.post("/logout", headers=session_cookie("tok"))
    assert logout.status_code == 503
    assert "Max-Age=0" in logout.headers["set-cookie"]


def test_module_access_follows_role(make_client):
    token = login(make_client(SELF_HOST), "requester")

    allowed = make_client(SELF_HOST).get("/module-access", headers=session_cookie(token))
    assert allowed.status_code == 200
    assert allowed.json() == {"tenant": "demoitsm", "module": "self_service", "allowed": True}

    denied = make_client(CONTROL_HOST).get("/module-access", headers=session_cookie(token))
    assert denied.status_code == 403


def test_module_access_on_tenant_root(make_client):
    token = login(make_client(ITSM_HOST), "requester")
    response = make_client("demoitsm.hi5tech.co.uk").get("/module-access", headers=session_cookie(token))
    assert response.status_code == 200
    assert response.json()["module"] is None


def test_login_on_the_root_host(make_client):
    client = make_client(ROOT_HOST)
    response = client.post("/login", json={"email": "a@b.com", "password": "correct"})

    assert response.status_code == 200
    assert "Domain=.hi5tech.co.uk" in response.headers["set-cookie"]
    token = cookie_token(response)
    assert client.get("/session", headers=session_cookie(token)).status_code == 200


def test_root_host_without_configured_root(make_client, monkeypatch):
    monkeypatch.setattr(settings, "ROOT_DOMAIN", None)
    client = make_client(ROOT_HOST)
    response = client.post("/login", json={"email": "a@b.com", "password": "correct"})

    assert response.status_code == 200
    assert "Domain=" not in response.headers["set-cookie"]
    token = cookie_token(response)
    assert client.get("/session", headers=session_cookie(token)).status_code == 200


def test_modules_on_the_root_host_point_at_the_users_tenant(make_client):
    token = login(make_client(ROOT_HOST), "agent")
    response = make_client(ROOT_HOST).get("/modules", headers=session_cookie(token))

    assert response.status_code == 200
    assert response.json()["modules"] == [
        {"module": "itsm", "url": "https://demoitsm-itsm.hi5tech.co.uk/"},
        {"module": "self_service", "url": "https://demoitsm-self.hi5tech.co.uk/"},
    ]


def test_modules_without_a_known_root_have_no_urls(make_client, monkeypatch):
    monkeypatch.setattr(settings, "ROOT_DOMAIN", None)
    token = login(make_client("localhost"), "agent")
    response = make_client("localhost").get("/modules", headers=session_cookie(token))

    assert response.status_code == 200
    assert response.json()["modules"] == [
        {"module": "itsm", "url": None},
        {"module": "self_service", "url": None},
    ]


def test_user_module_overrides_apply_everywhere(make_client, provider, module_overrides):
    user = provider.create_user("override@b.com", "override-pw", role="Requester", tenant_id="demoitsm")
    module_overrides.add(user.id, "demoitsm", "itsm", effect="allow")
    module_overrides.add(user.id, "demoitsm", "self", allowed=False)

    client = make_client(ITSM_HOST)
    response = client.post("/login", json={"email": "override@b.com", "password": "override-pw"})
    token = cookie_token(response)

    session = client.get("/session", headers=session_cookie(token)).json()["user"]
    assert session["modules"] == ["itsm"]

    listed = client.get("/modules", headers=session_cookie(token)).json()["modules"]
    assert listed == [{"module": "itsm", "url": "https://demoitsm-itsm.hi5tech.co.uk/"}]

    assert client.get("/module-access", headers=session_cookie(token)).status_code == 200
    denied = make_client(SELF_HOST).get("/module-access", headers=session_cookie(token))
    assert denied.status_code == 403


def test_create_app_sets_up_logging(monkeypatch, provider, permission_table):
    calls = []
    monkeypatch.setattr("app.main.configure_logging", lambda: calls.append("configured"))
    create_app(provider=provider, permission_table=permission_table)
    assert calls == ["configured"]
