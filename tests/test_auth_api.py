"""HTTP tests for the role-parameterized auth routers."""
from fastapi.testclient import TestClient

from rollcall.main import create_app
from rollcall.models.account import School, User
from rollcall.models.pending_verification import PendingVerification
from rollcall.models.token_record import TokenRecord
from rollcall.services.security import verify_password
from tests.factories import (
    PASSWORD,
    school_signup_payload,
    token_from_reset_link,
    user_signup_payload,
)

AUTH = "/api/auth"
SCHOOL_AUTH = "/api/schools/auth"


def _login(client, user_key="ada@example.com", password=PASSWORD, remember=False, prefix=AUTH):
    return client.post(
        f"{prefix}/login",
        json={"user_key": user_key, "password": password, "remember_user": remember},
    )


class TestServiceEndpoints:
    def test_root_and_health(self, client):
        assert client.get("/").json()["status"] == "ok"
        assert client.get("/health").json() == {"status": "healthy"}


class TestSignUp:
    def test_sign_up_returns_tokens_and_sets_cookie(self, client, app_db):
        r = client.post(f"{AUTH}/sign-up", json=user_signup_payload())
        assert r.status_code == 201
        body = r.json()
        assert body["message"] == "User registered successfully!"
        data = body["data"]
        assert data["userType"] == "user"
        assert data["accessToken"] and data["refreshToken"] and data["expiresAt"]
        assert r.cookies.get("refreshToken") == data["refreshToken"]
        cookie = r.headers["set-cookie"].lower()
        assert "httponly" in cookie
        assert "path=/" in cookie
        assert "samesite=lax" in cookie
        assert "; secure" not in cookie
        assert "max-age" not in cookie
        assert app_db.query(User).count() == 1

    def test_secure_cookie_is_cross_site(self, settings, notifier, clock):
        app = create_app(settings.model_copy(update={"cookie_secure": True}), notifier=notifier, clock=clock)
        with TestClient(app) as client:
            r = client.post(f"{AUTH}/sign-up", json=user_signup_payload())
            cookie = r.headers["set-cookie"].lower()
            assert "httponly" in cookie
            assert "samesite=none" in cookie
            assert "; secure" in cookie
            assert "max-age" not in cookie

            token = r.json()["data"]["refreshToken"]
            client.cookies.clear()
            r = client.post(f"{AUTH}/refresh-token", headers={"Cookie": f"refreshToken={token}"})
            assert r.status_code == 200
            cookie = r.headers["set-cookie"].lower()
            assert "samesite=none" in cookie
            assert "; secure" in cookie
            assert "max-age=2592000" in cookie

    def test_signup_alias(self, client):
        r = client.post(f"{AUTH}/signup", json=user_signup_payload())
        assert r.status_code == 201

    def test_password_mismatch(self, client):
        r = client.post(f"{AUTH}/sign-up", json=user_signup_payload(confirm_password="nope"))
        assert r.status_code == 400
        assert r.json() == {"message": "Passwords do not match.", "data": None}

    def test_missing_fields(self, client):
        r = client.post(f"{AUTH}/sign-up", json=user_signup_payload(first_name=""))
        assert r.status_code == 400
        assert r.json()["message"] == "Please fill all fields."

    def test_already_registered(self, client):
        client.post(f"{AUTH}/sign-up", json=user_signup_payload())
        r = client.post(f"{AUTH}/sign-up", json=user_signup_payload(phone_number="5550001111"))
        assert r.status_code == 400
        assert r.json()["message"] == "User already registered. Please log in."

    def test_malformed_email_is_400(self, client):
        r = client.post(f"{AUTH}/sign-up", json=user_signup_payload(email="not-an-email"))
        assert r.status_code == 400
        assert r.json()["data"] is None

    def test_school_router(self, client, app_db):
        r = client.post(f"{SCHOOL_AUTH}/sign-up", json=school_signup_payload())
        assert r.status_code == 201
        assert r.json()["data"]["userType"] == "school"
        assert app_db.query(School).count() == 1

    def test_welcome_email_enqueued(self, client, notifier):
        client.post(f"{AUTH}/sign-up", json=user_signup_payload())
        assert [m.to for m in notifier.messages] == ["ada@example.com"]


class TestVerificationCodeEndpoints:
    def test_send_then_compare(self, client, app_db, notifier):
        r = client.post(f"{AUTH}/send-ver-code", json=user_signup_payload())
        assert r.status_code == 200
        assert r.json()["message"] == "Verification code sent successfully to your email or spam."

        code = app_db.query(PendingVerification).one().code
        r = client.post(f"{AUTH}/compare-ver-code", json={"email": "ada@example.com", "code": code})
        assert r.status_code == 200
        assert r.json()["message"] == "Verification successful. User registered and welcome email sent."
        assert r.json()["data"]["code"].startswith("U")

        r = client.post(f"{AUTH}/compare-ver-code", json={"email": "ada@example.com", "code": code})
        assert r.status_code == 400
        assert r.json()["message"] == "Invalid or expired code"

    def test_code_sent_as_json_number(self, client, app_db):
        client.post(f"{AUTH}/send-ver-code", json=user_signup_payload())
        pending = app_db.query(PendingVerification).one()
        pending.code = "0318"
        app_db.commit()

        r = client.post(f"{AUTH}/compare-ver-code", json={"email": "ada.com", "code": 318})
        assert r.status_code == 200
        assert app_db.query(User).count() == 1

    def test_resend_cooldown_is_429_with_retry_after(self, client, clock):
        client.post(f"{AUTH}/send-ver-code", json=user_signup_payload())
        clock.advance(seconds=45)
        r = client.post(f"{AUTH}/send-ver-code", json=user_signup_payload())
        assert r.status_code == 429
        assert r.json()["message"] == "Please wait 2 more minute(s) before requesting a new code."
        assert r.headers["retry-after"] == "120"

    def test_resend_after_cooldown(self, client, clock):
        client.post(f"{AUTH}/send-ver-code", json=user_signup_payload())
        clock.advance(minutes=3)
        r = client.post(f"{AUTH}/send-ver-code", json=user_signup_payload())
        assert r.status_code == 200
        assert r.json()["message"] == "A new verification code has been sent to your email."


class TestLogin:
    def test_login_success(self, client, app_db):
        client.post(f"{AUTH}/sign-up", json=user_signup_payload())
        client.cookies.clear()

        r = _login(client)
        assert r.status_code == 200
        body = r.json()
        assert body["message"] == "User Login Successful"
        assert body["data"]["accessToken"]
        assert r.cookies.get("refreshToken") == body["data"]["refreshToken"]

        records = app_db.query(TokenRecord).filter(TokenRecord.purpose == "user login").all()
        assert len(records) == 1
        assert records[0].token == body["data"]["refreshToken"]

    def test_remember_user_makes_cookie_persistent(self, client):
        client.post(f"{AUTH}/sign-up", json=user_signup_payload())
        session_cookie = _login(client).headers["set-cookie"].lower()
        persistent = _login(client, remember=True).headers["set-cookie"].lower()
        assert "max-age" not in session_cookie
        assert "samesite=lax" in session_cookie
        assert "max-age=2592000" in persistent

    def test_wrong_password(self, client):
        client.post(f"{AUTH}/sign-up", json=user_signup_payload())
        r = _login(client, password="wrong")
        assert r.status_code == 400
        assert r.json() == {"message": "Invalid login credentials.", "data": None}

    def test_not_registered(self, client):
        r = _login(client, user_key="ghost@example.com")
        assert r.status_code == 400
        assert r.json()["message"] == "User not registered. Please sign up."

    def test_empty_user_key(self, client):
        r = _login(client, user_key="")
        assert r.status_code == 400
        assert r.json()["message"] == "Please provide either email or phone number"


class TestCreatePassword:
    def test_admin_created_user_sets_password_then_logs_in(self, client):
        r = client.post(
            "/api/users",
            json={"first_name": "Lin", "last_name": "Chen", "email": "lin@example.com", "phone_number": "5557770000"},
        )
        user_id = r.json()["data"]["id"]

        r = client.post(
            f"{AUTH}/create-password",
            json={"user_id": user_id, "password": "Fresh-pass-1", "confirm_password": "Fresh-pass-1"},
        )
        assert r.status_code == 200
        assert r.json()["message"] == "Password Creation Successful"
        assert _login(client, user_key="lin@example.com", password="Fresh-pass-1").status_code == 200

    def test_unknown_user(self, client):
        r = client.post(f"{AUTH}/create-password", json={"user_id": 42, "password": "x", "confirm_password": "x"})
        assert r.status_code == 400
        assert r.json()["message"] == "User not registered"


class TestRefreshToken:
    def test_rotation_and_old_token_rejected(self, client, app_db):
        old = client.post(f"{AUTH}/sign-up", json=user_signup_payload()).json()["data"]["refreshToken"]

        r = client.post(f"{AUTH}/refresh-token")
        assert r.status_code == 200
        assert r.json()["accessToken"]
        new = r.cookies.get("refreshToken")
        assert new and new != old
        assert "max-age=2592000" in r.headers["set-cookie"].lower()
        assert "samesite=lax" in r.headers["set-cookie"].lower()

        records = app_db.query(TokenRecord).all()
        assert [(rec.token, rec.purpose) for rec in records] == [(new, "renew")]

        client.cookies.clear()
        r = client.post(f"{AUTH}/refresh-token", headers={"Cookie": f"refreshToken={old}"})
        assert r.status_code == 401
        assert r.json()["message"] == "Refresh token not recognized"

    def test_no_cookie(self, client):
        r = client.post(f"{AUTH}/refresh-token")
        assert r.status_code == 401
        assert r.json()["message"] == "No refresh token"

    def test_garbage_cookie(self, client):
        r = client.post(f"{AUTH}/refresh-token", headers={"Cookie": "refreshToken=garbage"})
        assert r.status_code == 401
        assert r.json()["message"] == "Invalid token"


class TestForgotAndResetPassword:
    def test_full_reset(self, client, app_db, notifier):
        client.post(f"{AUTH}/sign-up", json=user_signup_payload())
        r = client.post(f"{AUTH}/forgot-password", json={"user_type": "users", "email": "ada@example.com"})
        assert r.status_code == 200
        assert r.json()["message"] == "Password reset link sent."
        token = token_from_reset_link(notifier.messages[-1])

        r = client.post(f"{AUTH}/reset-password", json={"token": token, "password": "Reset-pass-9"})
        assert r.status_code == 200
        assert r.json()["message"] == "Password reset successful!"
        assert _login(client, password="Reset-pass-9").status_code == 200

        r = client.post(f"{AUTH}/reset-password", json={"token": token, "password": "Again-1"})
        assert r.status_code == 400
        assert r.json()["message"] == "Token not found or already used"

    def test_user_type_defaults_to_router(self, client, app_db):
        client.post(f"{SCHOOL_AUTH}/sign-up", json=school_signup_payload())
        r = client.post(f"{SCHOOL_AUTH}/forgot-password", json={"email": "office@hilltop.edu"})
        assert r.status_code == 200
        record = app_db.query(TokenRecord).filter(TokenRecord.purpose == "forgot password").one()
        assert record.account_type.value == "school"

    def test_unknown_email_creates_no_record(self, client, app_db):
        r = client.post(f"{AUTH}/forgot-password", json={"user_type": "user", "email": "ghost@example.com"})
        assert r.status_code == 400
        assert r.json()["message"] == "Email not found"
        assert app_db.query(TokenRecord).count() == 0

    def test_expired_reset_token(self, client, app_db, notifier, clock):
        client.post(f"{AUTH}/sign-up", json=user_signup_payload())
        client.post(f"{AUTH}/forgot-password", json={"user_type": "user", "email": "ada@example.com"})
        token = token_from_reset_link(notifier.messages[-1])

        clock.advance(minutes=16)
        r = client.post(f"{AUTH}/reset-password", json={"token": token, "password": "Reset-pass-9"})
        assert r.status_code == 401
        assert r.json()["message"] == "Token has expired"
        assert verify_password(PASSWORD, app_db.query(User).one().hashed_password)

    def test_confirm_password_mismatch(self, client):
        r = client.post(
            f"{AUTH}/reset-password",
            json={"token": "whatever", "password": "a", "confirm_password": "b"},
        )
        assert r.status_code == 400
        assert r.json()["message"] == "Passwords do not match."


class TestMe:
    def test_me_with_access_token(self, client):
        access = client.post(f"{AUTH}/sign-up", json=user_signup_payload()).json()["data"]["accessToken"]
        r = client.get(f"{AUTH}/me", headers={"Authorization": f"Bearer {access}"})
        assert r.status_code == 200
        body = r.json()
        assert body["email"] == "ada@example.com"
        assert body["role"] == "user"
        assert body["name"] == "Ada Lovelace"

    def test_no_token(self, client):
        r = client.get(f"{AUTH}/me")
        assert r.status_code == 401
        assert r.json()["message"] == "Not authorized, no token provided"

    def test_invalid_token(self, client):
        r = client.get(f"{AUTH}/me", headers={"Authorization": "Bearer nonsense"})
        assert r.status_code == 403
        assert r.json()["message"] == "Not authorized, invalid token"

    def test_expired_token(self, client, clock, settings):
        access = client.post(f"{AUTH}/sign-up", json=user_signup_payload()).json()["data"]["accessToken"]
        clock.advance(days=settings.access_token_expire_days + 1)
        r = client.get(f"{AUTH}/me", headers={"Authorization": f"Bearer {access}"})
        assert r.status_code == 401
        assert r.json()["message"] == "Token expired"

    def test_wrong_account_type(self, client):
        access = client.post(f"{AUTH}/sign-up", json=user_signup_payload()).json()["data"]["accessToken"]
        r = client.get(f"{SCHOOL_AUTH}/me", headers={"Authorization": f"Bearer {access}"})
        assert r.status_code == 403
        assert r.json()["message"] == "Forbidden: insufficient permissions"
