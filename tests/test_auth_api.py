"""HTTP tests for /api/auth and the bearer-token middleware."""


def test_register_returns_user_and_token(client):
    res = client.post("/api/auth/register",
                      json={"name": "Alice", "email": "a@x.com", "password": "secret1"})
    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    assert body["message"] == "User registered successfully"
    assert body["data"]["user"]["email"] == "a@x.com"
    assert "password" not in str(body["data"]["user"]).lower()
    assert body["data"]["token"].count(".") == 2


def test_register_validation(client):
    cases = [
        ({"email": "a@x.com", "password": "secret1"}, "Please provide name, email, and password"),
        ({"name": "Alice", "password": "secret1"}, "Please provide name, email, and password"),
        ({"name": "Alice", "email": "", "password": "secret1"}, "Please provide name, email, and password"),
        ({"name": "Alice", "email": "a@x.com", "password": "12345"}, "Password must be at least 6 characters"),
    ]
    for payload, message in cases:
        res = client.post("/api/auth/register", json=payload)
        assert res.status_code == 400
        assert res.json() == {"success": False, "message": message}


def test_register_malformed_email_is_bad_request(client):
    res = client.post("/api/auth/register",
                      json={"name": "Alice", "email": "not-an-email", "password": "secret1"})
    assert res.status_code == 400
    assert res.json()["success"] is False


def test_register_duplicate_email_is_bad_request(client, alice):
    res = client.post("/api/auth/register",
                      json={"name": "Again", "email": "Alice@Example.com", "password": "secret1"})
    assert res.status_code == 400
    assert res.json()["message"] == "User already exists with this email"


def test_login_scenario(client):
    res = client.post("/api/auth/register",
                      json={"name": "Alice", "email": "a@x.com", "password": "secret1"})
    assert res.status_code == 201

    res = client.post("/api/auth/login", json={"email": "a@x.com", "password": "wrong"})
    assert res.status_code == 401
    assert res.json() == {"success": False, "message": "Invalid email or password"}

    res = client.post("/api/auth/login", json={"email": "a@x.com", "password": "secret1"})
    assert res.status_code == 200
    token = res.json()["data"]["token"]

    res = client.get("/api/notes", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 200
    assert res.json() == {"success": True, "count": 0, "data": []}


def test_login_unknown_email_same_as_wrong_password(client, alice):
    res = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "secret1"})
    assert res.status_code == 401
    assert res.json()["message"] == "Invalid email or password"


def test_login_missing_fields(client):
    res = client.post("/api/auth/login", json={"email": "a@x.com"})
    assert res.status_code == 400
    assert res.json()["message"] == "Please provide email and password"


def test_me_returns_identity(client, alice):
    user, headers = alice
    res = client.get("/api/auth/me", headers=headers)
    assert res.status_code == 200
    assert res.json()["data"]["id"] == user["id"]
    assert res.json()["data"]["name"] == "Alice"


def test_unauthenticated_requests_get_uniform_401(client, alice):
    _, headers = alice
    token = headers["Authorization"].split()[1]
    tampered = token[:-2] + ("AA" if not token.endswith("AA") else "BB")
    for auth in [None, "", "Basic abc", "Bearer", f"Token {token}", f"Bearer {tampered}", "Bearer a.b.c"]:
        res = client.get("/api/auth/me", headers={"Authorization": auth} if auth is not None else {})
        assert res.status_code == 401, auth
        assert res.json() == {"success": False, "message": "Not authorized to access this route"}


def test_token_for_missing_identity_rejected(client, services):
    token = services.tokens.issue("usr_gone")
    res = client.get("/api/notes", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401
    assert res.json()["message"] == "Not authorized to access this route"


def test_scheme_is_case_insensitive(client, register):
    _, headers = register()
    token = headers["Authorization"].split()[1]
    res = client.get("/api/auth/me", headers={"Authorization": f"bearer {token}"})
    assert res.status_code == 200


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"
