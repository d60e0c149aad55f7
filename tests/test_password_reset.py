from datetime import timedelta

from cinetime.models.user import User
from cinetime.services import password_reset_service
from cinetime.utils.security import ensure_aware, hash_token, utcnow, verify_password
from conftest import create_user

GENERIC_MESSAGE = "If an account exists with this email, you will receive a password reset link"


def request_token(client, mailer, email):
    response = client.post("/api/v1/password/request", json={"email": email})
    assert response.status_code == 200
    return mailer.reset_links[-1][1].rstrip("/").split("/")[-1]


def test_request_reset_stores_hashed_token_and_sends_email(client, db_session, mailer, monkeypatch):
    user = create_user(db_session)
    monkeypatch.setattr(password_reset_service, "FRONTEND_URL", "http://frontend")

    response = client.post("/api/v1/password/request", json={"email": user.email})

    assert response.status_code == 200
    assert response.json() == {"message": GENERIC_MESSAGE}
    recipient, link = mailer.reset_links[0]
    assert recipient == user.email
    assert link.startswith("http://frontend/reset-password/")

    raw_token = link.split("/")[-1]
    db_session.expire_all()
    stored = db_session.get(User, user.id)
    assert stored.reset_password_token == hash_token(raw_token)
    assert stored.reset_password_expires is not None


def test_request_reset_unknown_email_looks_the_same(client, db_session, mailer):
    response = client.post("/api/v1/password/request", json={"email": "ghost@example.com"})

    assert response.status_code == 200
    assert response.json() == {"message": GENERIC_MESSAGE}
    assert mailer.reset_links == []


def test_request_reset_echoes_token_in_development(client, db_session, mailer, monkeypatch):
    user = create_user(db_session)
    monkeypatch.setenv("ENVIRONMENT", "development")

    response = client.post("/api/v1/password/request", json={"email": user.email})

    assert response.json()["token"] == mailer.reset_links[0][1].split("/")[-1]


def test_verify_token_reports_email(client, db_session, mailer):
    user = create_user(db_session)
    raw_token = request_token(client, mailer, user.email)

    response = client.get(f"/api/v1/password/verify/{raw_token}")

    assert response.status_code == 200
    assert response.json()["email"] == user.email


def test_full_reset_flow_updates_password_and_consumes_token(client, db_session, mailer):
    user = create_user(db_session, password="OldPass123!")
    raw_token = request_token(client, mailer, user.email)

    reset_response = client.post(f"/api/v1/password/reset/{raw_token}", json={"password": "NewPass123!"})
    assert reset_response.status_code == 200

    db_session.expire_all()
    updated_user = db_session.get(User, user.id)
    assert verify_password("NewPass123!", updated_user.password_hash)
    assert updated_user.reset_password_token is None

    # Single use
    again = client.post(f"/api/v1/password/reset/{raw_token}", json={"password": "Another123!"})
    assert again.status_code == 400
    assert again.json()["detail"] == "Invalid or expired token"


def test_expired_token_is_rejected(client, db_session, mailer):
    user = create_user(db_session)
    raw_token = request_token(client, mailer, user.email)

    db_session.expire_all()
    stored = db_session.get(User, user.id)
    stored.reset_password_expires = utcnow() - timedelta(minutes=1)
    db_session.commit()

    assert client.get(f"/api/v1/password/verify/{raw_token}").status_code == 400


def test_reset_password_with_invalid_token_fails(client, db_session):
    user = create_user(db_session, password="KeepPass123!")

    response = client.post(f"/api/v1/password/reset/{'x' * 64}", json={"password": "AnotherPass123!"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid or expired token"

    db_session.expire_all()
    fresh_user = db_session.get(User, user.id)
    assert verify_password("KeepPass123!", fresh_user.password_hash)


def test_reset_password_too_short(client, db_session, mailer):
    user = create_user(db_session)
    raw_token = request_token(client, mailer, user.email)

    response = client.post(f"/api/v1/password/reset/{raw_token}", json={"password": "123"})

    assert response.status_code == 400


def test_reset_email_uses_configured_ttl(client, db_session, mailer, monkeypatch):
    user = create_user(db_session)
    monkeypatch.setattr(password_reset_service, "RESET_TOKEN_TTL_MINUTES", 15)

    request_token(client, mailer, user.email)

    assert mailer.reset_ttls == [15]
    db_session.expire_all()
    stored = db_session.get(User, user.id)
    remaining = ensure_aware(stored.reset_password_expires) - utcnow()
    assert timedelta(minutes=14) < remaining <= timedelta(minutes=15)
