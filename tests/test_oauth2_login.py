import threading
from urllib.parse import parse_qs, urlsplit

from sqlalchemy.exc import OperationalError

from models import storage
from models.refresh_token import RefreshToken
from models.user import User

CALLBACK = "/login/oauth2/code/google"


def _start_login(client):
    response = client.get("/oauth2/authorization/google")
    assert response.status_code == 302
    query = {k: v[0] for k, v in parse_qs(urlsplit(response.headers["Location"]).query).items()}
    return response, query


def _token_from_location(location):
    parts = urlsplit(location)
    return parts.path, parse_qs(parts.query)["token"][0]


def _cookie_headers(response, name):
    return [h for h in response.headers.getlist("Set-Cookie") if h.startswith(f"{name}=")]


def test_authorization_redirect_carries_flow_parameters(client):
    response, query = _start_login(client)

    assert response.headers["Location"].startswith("https://idp.example.com/authorize?")
    assert query["response_type"] == "code"
    assert query["client_id"] == "test-client"
    assert query["redirect_uri"] == "http://localhost/login/oauth2/code/google"
    assert query["scope"] == "openid email profile"
    assert query["state"]
    assert query["nonce"]
    [flow_cookie] = _cookie_headers(response, "oauth2_auth_request")
    assert "HttpOnly" in flow_cookie
    assert "Max-Age=18000" in flow_cookie


def test_successful_login_issues_tokens_and_redirects(app, client, auth, codec, provider):
    _, query = _start_login(client)

    response = client.get(CALLBACK, query_string={"code": "auth-code", "state": query["state"]})

    assert response.status_code == 302
    path, access_token = _token_from_location(response.headers["Location"])
    assert path == "/articles"

    user = auth["users"].find_by_email("a@example.com")
    assert user is not None
    assert user.nickname == "Alice"
    assert codec.get_user_id(access_token) == user.id
    claims = codec.decode_claims(access_token)
    assert claims.expires_at - claims.issued_at == app.config["ACCESS_TOKEN_EXPIRES"]

    stored = auth["refresh_tokens"].find_by_user_id(user.id)
    assert client.get_cookie("refresh_token").value == stored.refresh_token
    assert codec.get_user_id(stored.refresh_token) == user.id
    assert client.get_cookie("oauth2_auth_request") is None

    refresh_headers = _cookie_headers(response, "refresh_token")
    assert "Max-Age=0" in refresh_headers[0]
    assert "Max-Age=1209600" in refresh_headers[-1]
    assert "Path=/" in refresh_headers[-1]
    [flow_cookie] = _cookie_headers(response, "oauth2_auth_request")
    assert "Max-Age=0" in flow_cookie

    token_request = provider.requests[0]
    form = parse_qs(token_request.content.decode())
    assert form["code"] == ["auth-code"]
    assert form["client_secret"] == ["test-client-secret"]
    assert form["redirect_uri"] == ["http://localhost/login/oauth2/code/google"]
    assert provider.requests[1].headers["Authorization"] == "Bearer provider-access-token"


def test_access_token_from_login_opens_protected_routes(client):
    _, query = _start_login(client)
    response = client.get(CALLBACK, query_string={"code": "auth-code", "state": query["state"]})
    _, access_token = _token_from_location(response.headers["Location"])

    me = client.get("/api/me", headers={"Authorization": f"Bearer {access_token}"})

    assert me.status_code == 200
    assert me.get_json()["principal"]["email"] == "a@example.com"


def test_refresh_cookie_from_login_can_be_exchanged(client):
    _, query = _start_login(client)
    client.get(CALLBACK, query_string={"code": "auth-code", "state": query["state"]})

    response = client.post("/api/token", json={"refreshToken": client.get_cookie("refresh_token").value})

    assert response.status_code == 201


def test_repeat_login_updates_name_and_keeps_one_row(client, auth, provider):
    _, query = _start_login(client)
    client.get(CALLBACK, query_string={"code": "auth-code", "state": query["state"]})

    provider.userinfo = {"sub": "1234", "email": "A@example.com", "name": "Alice Renamed"}
    _, query = _start_login(client)
    client.get(CALLBACK, query_string={"code": "auth-code", "state": query["state"]})

    assert storage.count(User) == 1
    assert storage.count(RefreshToken) == 1
    assert auth["users"].find_by_email("a@example.com").nickname == "Alice Renamed"


def test_callback_without_flow_cookie_redirects_to_login(client):
    response = client.get(CALLBACK, query_string={"code": "auth-code", "state": "whatever"})

    assert response.status_code == 302
    assert response.headers["Location"] == "/login?error=FlowStateAbsent"
    assert storage.count(User) == 0


def test_callback_with_wrong_state_redirects_and_clears_flow(client, provider):
    _start_login(client)

    response = client.get(CALLBACK, query_string={"code": "auth-code", "state": "forged"})

    assert response.headers["Location"] == "/login?error=invalid_state"
    assert client.get_cookie("oauth2_auth_request") is None
    assert provider.requests == []


def test_callback_for_other_registration_is_rejected(client):
    _, query = _start_login(client)

    response = client.get("/login/oauth2/code/github", query_string={"code": "c", "state": query["state"]})

    assert response.headers["Location"] == "/login?error=invalid_state"


def test_callback_without_code_is_rejected(client):
    _, query = _start_login(client)

    response = client.get(CALLBACK, query_string={"state": query["state"]})

    assert response.headers["Location"] == "/login?error=missing_code"


def test_provider_denial_is_reported(client):
    _start_login(client)

    response = client.get(CALLBACK, query_string={"error": "access_denied"})

    assert response.headers["Location"] == "/login?error=access_denied"


def test_token_endpoint_failure_creates_nothing(client, provider):
    provider.token_status = 400
    _, query = _start_login(client)

    response = client.get(CALLBACK, query_string={"code": "bad-code", "state": query["state"]})

    assert response.headers["Location"] == "/login?error=provider_error"
    assert storage.count(User) == 0
    assert storage.count(RefreshToken) == 0
    assert client.get_cookie("refresh_token") is None


def test_identity_without_email_is_rejected(client, provider):
    provider.userinfo = {"sub": "1234", "name": "No Mail"}
    _, query = _start_login(client)

    response = client.get(CALLBACK, query_string={"code": "auth-code", "state": query["state"]})

    assert response.headers["Location"] == "/login?error=missing_email"
    assert storage.count(User) == 0


def test_store_failure_during_callback_redirects_to_login(client, auth, monkeypatch):
    def locked(email, name):
        raise OperationalError("INSERT INTO users", {}, Exception("database is locked"))

    monkeypatch.setattr(auth["users"], "upsert", locked)
    _, query = _start_login(client)

    response = client.get(CALLBACK, query_string={"code": "auth-code", "state": query["state"]})

    assert response.status_code == 302
    assert response.headers["Location"] == "/login?error=login_failed"
    assert client.get_cookie("oauth2_auth_request") is None
    assert client.get_cookie("refresh_token") is None
    assert storage.count(RefreshToken) == 0


def test_unknown_provider_redirects_to_login(client):
    response = client.get("/oauth2/authorization/github")

    assert response.status_code == 302
    assert response.headers["Location"] == "/login?error=unknown_provider"


def test_concurrent_first_logins_for_same_email(auth, codec):
    handler = auth["login_handler"]
    barrier = threading.Barrier(2)
    errors = []
    responses = []

    def worker():
        try:
            barrier.wait()
            responses.append(handler.on_authentication_success({"email": "new@example.com", "name": "New"}))
        except Exception as exc:  # collected and asserted below
            errors.append(exc)
        finally:
            storage.close()

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert storage.count(User) == 1
    assert storage.count(RefreshToken) == 1
    user = auth["users"].find_by_email("new@example.com")
    for response in responses:
        assert response.status_code == 302
        _, access_token = _token_from_location(response.headers["Location"])
        assert codec.get_user_id(access_token) == user.id
