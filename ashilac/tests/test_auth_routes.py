import jwt
import psycopg2.errors
from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError

AUTH_ROUTES = "ashilac.auth_service.routes"


def test_register_success(client, mock_db, mocker):
    mock_conn, mock_cursor = mock_db(AUTH_ROUTES)

    # No existing user, then RETURNING row of the insert
    mock_cursor.fetchone.side_effect = [
        None,
        {"user_id": 1, "name": "Awa", "email": "awa@example.com", "role": "member"},
    ]

    mock_ph = mocker.patch(f"{AUTH_ROUTES}.ph")
    mock_ph.hash.return_value = "hashed_secret"

    payload = {"name": "Awa", "email": " Awa@Example.com ", "password": "password123"}
    response = client.post("/api/auth/register", json=payload)

    assert response.status_code == 200
    data = response.get_json()
    assert data["user"] == {"id": 1, "name": "Awa", "email": "awa@example.com"}

    claims = jwt.decode(data["token"], "test_secret", algorithms=["HS256"])
    assert claims["userId"] == 1

    # Email normalized and only the hash reaches the database
    args, _ = mock_cursor.execute.call_args
    assert args[1] == ("Awa", "awa@example.com", "hashed_secret")


def test_register_stores_salted_hash_not_password(client, mock_db):
    mock_conn, mock_cursor = mock_db(AUTH_ROUTES)
    mock_cursor.fetchone.side_effect = [
        None,
        {"user_id": 2, "name": "Moussa", "email": "moussa@example.com", "role": "member"},
    ]

    response = client.post("/api/auth/register", json={
        "name": "Moussa", "email": "moussa@example.com", "password": "s3cret!"
    })

    assert response.status_code == 200
    stored_hash = mock_cursor.execute.call_args[0][1][2]
    assert stored_hash != "s3cret!"
    assert stored_hash.startswith("$argon2")
    assert PasswordHasher().verify(stored_hash, "s3cret!")


def test_register_missing_fields(client):
    response = client.post("/api/auth/register", json={})
    assert response.status_code == 400
    assert "required" in response.get_json()["error"]


def test_register_missing_password(client):
    response = client.post("/api/auth/register", json={"name": "Awa", "email": "awa@example.com"})
    assert response.status_code == 400
    assert response.get_json()["error"] == "Email and password required"


def test_register_duplicate_email(client, mock_db):
    mock_conn, mock_cursor = mock_db(AUTH_ROUTES)
    mock_cursor.fetchone.return_value = {"?column?": 1}

    response = client.post("/api/auth/register", json={
        "name": "Awa", "email": "awa@example.com", "password": "password123"
    })

    assert response.status_code == 400
    assert response.get_json()["error"] == "Email already exists"
    # Only the lookup ran, nothing was inserted
    assert mock_cursor.execute.call_count == 1


def test_register_duplicate_email_race(client, mock_db):
    mock_conn, mock_cursor = mock_db(AUTH_ROUTES)
    mock_cursor.fetchone.return_value = None
    mock_cursor.execute.side_effect = [None, psycopg2.errors.UniqueViolation("duplicate key")]

    response = client.post("/api/auth/register", json={
        "name": "Awa", "email": "awa@example.com", "password": "password123"
    })

    assert response.status_code == 400
    assert response.get_json()["error"] == "Email already exists"


def test_register_store_failure_surfaces_message(client, mocker):
    mocker.patch(
        f"{AUTH_ROUTES}.get_db",
        side_effect=psycopg2.OperationalError("could not connect to server"),
    )

    response = client.post("/api/auth/register", json={
        "name": "Awa", "email": "awa@example.com", "password": "password123"
    })

    assert response.status_code == 500
    assert "could not connect to server" in response.get_json()["error"]


def test_login_success(client, mock_db):
    mock_conn, mock_cursor = mock_db(AUTH_ROUTES)
    mock_cursor.fetchone.return_value = {
        "user_id": 1,
        "name": "Awa",
        "email": "awa@example.com",
        "role": "member",
        "password_hash": PasswordHasher().hash("password123"),
    }

    response = client.post("/api/auth/login", json={
        "email": "awa@example.com", "password": "password123"
    })

    assert response.status_code == 200
    data = response.get_json()
    assert data["user"] == {"id": 1, "name": "Awa", "email": "awa@example.com"}
    assert "password_hash" not in data["user"]
    assert "token" in data


def test_login_invalid_password(client, mock_db, mocker):
    mock_conn, mock_cursor = mock_db(AUTH_ROUTES)
    mock_cursor.fetchone.return_value = {
        "user_id": 1,
        "name": "Awa",
        "email": "awa@example.com",
        "role": "member",
        "password_hash": "hashed_secret",
    }

    mock_ph = mocker.patch(f"{AUTH_ROUTES}.ph")
    mock_ph.verify.side_effect = VerifyMismatchError()

    response = client.post("/api/auth/login", json={
        "email": "awa@example.com", "password": "wrongpassword"
    })

    assert response.status_code == 401
    assert response.get_json()["error"] == "Invalid credentials"


def test_login_does_not_disclose_unknown_email(client, mock_db):
    mock_conn, mock_cursor = mock_db(AUTH_ROUTES)
    known = {
        "user_id": 1,
        "name": "Awa",
        "email": "awa@example.com",
        "role": "member",
        "password_hash": PasswordHasher().hash("password123"),
    }

    mock_cursor.fetchone.return_value = known
    wrong_password = client.post("/api/auth/login", json={
        "email": "awa@example.com", "password": "nope"
    })

    mock_cursor.fetchone.return_value = None
    unknown_email = client.post("/api/auth/login", json={
        "email": "ghost@example.com", "password": "nope"
    })

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.get_json() == unknown_email.get_json()


def test_login_unknown_email_still_checks_a_hash(client, mock_db, mocker):
    mock_conn, mock_cursor = mock_db(AUTH_ROUTES)
    mock_cursor.fetchone.return_value = None

    mock_ph = mocker.patch(f"{AUTH_ROUTES}.ph")
    mock_ph.verify.side_effect = VerifyMismatchError()

    response = client.post("/api/auth/login", json={
        "email": "ghost@example.com", "password": "nope"
    })

    assert response.status_code == 401
    assert response.get_json()["error"] == "Invalid credentials"
    mock_ph.verify.assert_called_once()
    assert mock_ph.verify.call_args[0][1] == "nope"


def test_login_unknown_email_rejected_even_if_dummy_hash_matches(client, mock_db, mocker):
    mock_conn, mock_cursor = mock_db(AUTH_ROUTES)
    mock_cursor.fetchone.return_value = None

    mock_ph = mocker.patch(f"{AUTH_ROUTES}.ph")
    mock_ph.verify.return_value = True

    response = client.post("/api/auth/login", json={
        "email": "ghost@example.com", "password": "anything"
    })

    assert response.status_code == 401


def test_login_missing_credentials(client):
    response = client.post("/api/auth/login", json={"email": "awa@example.com"})
    assert response.status_code == 400


def test_register_then_login_with_same_credentials(client, mock_db):
    mock_conn, mock_cursor = mock_db(AUTH_ROUTES)
    row = {"user_id": 7, "name": "Fanta", "email": "fanta@example.com", "role": "member"}
    mock_cursor.fetchone.side_effect = [None, row]

    registered = client.post("/api/auth/register", json={
        "name": "Fanta", "email": "fanta@example.com", "password": "password123"
    })
    assert registered.status_code == 200
    stored_hash = mock_cursor.execute.call_args[0][1][2]

    # Registering the same email again is rejected
    mock_cursor.fetchone.side_effect = None
    mock_cursor.fetchone.return_value = {"?column?": 1}
    again = client.post("/api/auth/register", json={
        "name": "Fanta", "email": "fanta@example.com", "password": "other"
    })
    assert again.status_code == 400

    # Logging in with the original password still works
    mock_cursor.fetchone.return_value = {**row, "password_hash": stored_hash}
    logged_in = client.post("/api/auth/login", json={
        "email": "fanta@example.com", "password": "password123"
    })
    assert logged_in.status_code == 200
    assert logged_in.get_json()["user"]["id"] == 7
