"""Tests for registration and account activation."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.exceptions import EmailDispatchFailure, InvalidTokenFailure, ValidationFailure
from app.models.user import User
from app.security import matches
from app.services.registration import RegistrationService

VALID_USER = {"username": "user1", "email": "user1@mail.com", "password": "P4ssword"}


class TestRegistrationService:
    """Tests for the registration coordinator."""

    def test_register_persists_one_inactive_user(self, db_session: Session, mailer):
        """Successful dispatch commits exactly one inactive user with an activation secret."""
        RegistrationService().register(db_session, mailer, "user1", "user1@mail.com", "P4ssword")

        users = db_session.query(User).all()
        assert len(users) == 1
        assert users[0].inactive is True
        assert users[0].activation_token
        assert len(users[0].activation_token) == 16

    def test_register_mails_activation_token(self, db_session: Session, mailer):
        """The activation mail goes to the new address and carries the secret."""
        user = RegistrationService().register(db_session, mailer, "user1", "user1@mail.com", "P4ssword")

        assert mailer.last["to"] == "user1@mail.com"
        assert mailer.last["subject"] == "Account Activation"
        assert user.activation_token in mailer.last["body"]

    def test_register_hashes_password(self, db_session: Session, mailer):
        """Stored password is a hash of the plaintext."""
        RegistrationService().register(db_session, mailer, "user1", "user1@mail.com", "P4ssword")

        user = db_session.query(User).first()
        assert user.password_hash != "P4ssword"
        assert matches("P4ssword", user.password_hash)

    def test_register_rolls_back_on_mail_failure(self, db_session: Session, mailer):
        """Failing dispatch leaves zero users and raises EmailDispatchFailure."""
        mailer.fail = True

        with pytest.raises(EmailDispatchFailure):
            RegistrationService().register(db_session, mailer, "user1", "user1@mail.com", "P4ssword")

        assert db_session.query(User).count() == 0

    def test_register_wraps_transport_errors(self, db_session: Session):
        """Unexpected mailer errors surface as EmailDispatchFailure after rollback."""

        class BrokenMailer:
            def send_activation(self, email, token):
                raise ConnectionRefusedError("smtp down")

        with pytest.raises(EmailDispatchFailure):
            RegistrationService().register(db_session, BrokenMailer(), "user1", "user1@mail.com", "P4ssword")

        assert db_session.query(User).count() == 0

    def test_rollback_keeps_existing_users(self, db_session: Session, mailer, make_user):
        """Compensation discards only the staged user."""
        make_user(username="existing", email="existing@mail.com")
        mailer.fail = True

        with pytest.raises(EmailDispatchFailure):
            RegistrationService().register(db_session, mailer, "user1", "user1@mail.com", "P4ssword")

        emails = [u.email for u in db_session.query(User).all()]
        assert emails == ["existing@mail.com"]

    def test_activate(self, db_session: Session, mailer):
        """Known activation secret activates and clears the secret."""
        service = RegistrationService()
        user = service.register(db_session, mailer, "user1", "user1@mail.com", "P4ssword")
        token = user.activation_token

        service.activate(db_session, token)

        db_session.refresh(user)
        assert user.inactive is False
        assert user.activation_token is None

    def test_activate_twice_fails(self, db_session: Session, mailer):
        """Activation secrets are single use."""
        service = RegistrationService()
        user = service.register(db_session, mailer, "user1", "user1@mail.com", "P4ssword")
        token = user.activation_token
        service.activate(db_session, token)

        with pytest.raises(InvalidTokenFailure):
            service.activate(db_session, token)

    def test_activate_unknown_token_changes_nothing(self, db_session: Session, mailer):
        """Unknown secret fails and leaves the user untouched."""
        service = RegistrationService()
        user = service.register(db_session, mailer, "user1", "user1@mail.com", "P4ssword")
        token = user.activation_token

        with pytest.raises(InvalidTokenFailure):
            service.activate(db_session, "this-token-does-not-exist")

        db_session.refresh(user)
        assert user.inactive is True
        assert user.activation_token == token

    def test_register_duplicate_email_is_validation_failure(self, db_session: Session, mailer, make_user):
        """A duplicate that slips past the in-use check is reported as e-mail in use, not a database error."""
        make_user(username="existing", email="user1@mail.com")

        with pytest.raises(ValidationFailure) as exc_info:
            RegistrationService().register(db_session, mailer, "user1", "user1@mail.com", "P4ssword")

        assert exc_info.value.errors == {"email": "E-mail in use"}
        assert mailer.sent == []
        assert [u.username for u in db_session.query(User).all()] == ["existing"]


class TestRegistrationApi:
    """Tests for POST /api/1.0/users."""

    def test_register_success(self, client: TestClient, db_session: Session, mailer):
        """Valid signup returns 200 with a message."""
        response = client.post("/api/1.0/users", json=VALID_USER)
        assert response.status_code == 200
        assert response.json()["message"] == "User created"
        assert db_session.query(User).count() == 1
        assert len(mailer.sent) == 1

    def test_register_ignores_inactive_flag(self, client: TestClient, db_session: Session):
        """Clients cannot create an active user."""
        client.post("/api/1.0/users", json={**VALID_USER, "inactive": False})
        assert db_session.query(User).first().inactive is True

    def test_register_mail_failure(self, client: TestClient, db_session: Session, mailer):
        """Mail failure returns 502 and stores nothing."""
        mailer.fail = True
        response = client.post("/api/1.0/users", json=VALID_USER)
        assert response.status_code == 502
        assert response.json()["message"] == "E-mail failure"
        assert db_session.query(User).count() == 0

    @pytest.mark.parametrize(
        "field,value,expected",
        [
            ("username", None, "Username cannot be null"),
            ("username", "usr", "Must have min 4 and max 32 characters"),
            ("username", "a" * 33, "Must have min 4 and max 32 characters"),
            ("email", None, "E-mail cannot be null"),
            ("email", "mail.com", "E-mail is not valid"),
            ("email", "user1@mail..com", "E-mail is not valid"),
            ("email", "user1@-mail-.com", "E-mail is not valid"),
            ("email", "user1@mail", "E-mail is not valid"),
            ("email", "User One <user1@mail.com>", "E-mail is not valid"),
            ("password", None, "Password cannot be null"),
            ("password", "P4ssw", "Password must be at least 6 characters"),
            ("password", "alllowercase", "Password must have at least 1 uppercase, 1 lowercase letter and 1 number"),
            ("password", "lower4nd5667", "Password must have at least 1 uppercase, 1 lowercase letter and 1 number"),
        ],
    )
    def test_register_validation(self, client: TestClient, field: str, value, expected: str):
        """Each invalid field is reported under validationErrors."""
        response = client.post("/api/1.0/users", json={**VALID_USER, field: value})
        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Validation failure"
        assert body["validationErrors"][field] == expected

    def test_register_email_in_use(self, client: TestClient, make_user):
        """Duplicate email is a validation error."""
        make_user(email="user1@mail.com")
        response = client.post("/api/1.0/users", json=VALID_USER)
        assert response.status_code == 400
        assert response.json()["validationErrors"]["email"] == "E-mail in use"

    def test_register_reports_all_errors(self, client: TestClient, make_user):
        """Null username and an in-use email are reported together."""
        make_user(email="user1@mail.com")
        response = client.post("/api/1.0/users", json={**VALID_USER, "username": None})
        assert list(response.json()["validationErrors"].keys()) == ["username", "email"]

    def test_error_body_shape(self, client: TestClient):
        """Validation errors carry path, timestamp, message and validationErrors."""
        response = client.post("/api/1.0/users", json={})
        body = response.json()
        assert list(body.keys()) == ["path", "timestamp", "message", "validationErrors"]
        assert body["path"] == "/api/1.0/users"


class TestActivationApi:
    """Tests for POST /api/1.0/users/token/{token}."""

    def test_activate_success(self, client: TestClient, db_session: Session):
        """Correct token activates the account."""
        client.post("/api/1.0/users", json=VALID_USER)
        token = db_session.query(User).first().activation_token

        response = client.post(f"/api/1.0/users/token/{token}")
        assert response.status_code == 200
        assert response.json()["message"] == "Account is activated"

        user = db_session.query(User).first()
        db_session.refresh(user)
        assert user.inactive is False
        assert user.activation_token is None

    def test_activate_wrong_token(self, client: TestClient, db_session: Session):
        """Wrong token returns 400 and leaves the user inactive."""
        client.post("/api/1.0/users", json=VALID_USER)

        response = client.post("/api/1.0/users/token/this-token-does-not-exist")
        assert response.status_code == 400
        body = response.json()
        assert list(body.keys()) == ["path", "timestamp", "message"]
        assert body["path"] == "/api/1.0/users/token/this-token-does-not-exist"
        assert db_session.query(User).first().inactive is True

    def test_activate_twice(self, client: TestClient, db_session: Session):
        """Second activation with the same token fails."""
        client.post("/api/1.0/users", json=VALID_USER)
        token = db_session.query(User).first().activation_token

        assert client.post(f"/api/1.0/users/token/{token}").status_code == 200
        assert client.post(f"/api/1.0/users/token/{token}").status_code == 400
