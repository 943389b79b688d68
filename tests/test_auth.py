import asyncio
import json

import httpx
import pytest

from dtos.auth_dtos import AdminSignupRequest
from services.auth_svc import (
    AuthError,
    IdentityToolkitClient,
    create_admin,
    sign_in,
    validate_signup,
)
from conftest import FakeStore, FIXED_NOW, FIXED_NOW_ISO


def signup_form(**overrides):
    data = {
        "firstName": " Thabo ",
        "lastName": "Nkosi",
        "email": "thabo@school.example",
        "password": "secret1",
        "confirmPassword": "secret1",
        "phone": "0820000000",
        "role": "admissions_officer",
        "department": "admissions",
    }
    data.update(overrides)
    return AdminSignupRequest(**data)


def identity_for(handler):
    return IdentityToolkitClient(api_key="test-key", transport=httpx.MockTransport(handler))


def firebase_error(code):
    return httpx.Response(400, json={"error": {"code": 400, "message": code, "errors": []}})


# ==================== validate_signup ====================

@pytest.mark.parametrize("overrides,expected", [
    ({"firstName": "  "}, "First name is required"),
    ({"lastName": ""}, "Last name is required"),
    ({"email": ""}, "Email is required"),
    ({"password": "", "confirmPassword": ""}, "Password is required"),
    ({"password": "abc", "confirmPassword": "abc"}, "Password must be at least 6 characters"),
    ({"confirmPassword": "different"}, "Passwords do not match"),
    ({"phone": " "}, "Phone number is required"),
])
def test_validate_signup_rules(overrides, expected):
    assert validate_signup(signup_form(**overrides)) == expected


def test_validate_signup_first_failure_wins():
    form = signup_form(firstName="", lastName="", password="x")
    assert validate_signup(form) == "First name is required"


def test_validate_signup_accepts_complete_form():
    assert validate_signup(signup_form()) is None


# ==================== create_admin ====================

def test_create_admin_seeds_admin_record():
    store = FakeStore()
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"localId": "uid-42", "email": "thabo@school.example", "idToken": "t"})

    record = asyncio.run(create_admin(identity_for(handler), store, signup_form(), clock=lambda: FIXED_NOW))

    assert requests[0].url.path == "/v1/accounts:signUp"
    assert requests[0].url.params["key"] == "test-key"
    assert json.loads(requests[0].content)["email"] == "thabo@school.example"

    saved = store.get("admins/uid-42")
    assert saved == record.model_dump()
    assert saved["firstName"] == "Thabo"
    assert saved["role"] == "admissions_officer"
    assert saved["createdAt"] == FIXED_NOW_ISO
    assert saved["createdBy"] == "system"
    assert saved["status"] == "active"


def test_create_admin_records_acting_admin():
    store = FakeStore()

    def handler(request):
        return httpx.Response(200, json={"localId": "uid-43"})

    record = asyncio.run(create_admin(identity_for(handler), store, signup_form(), created_by="admin-1"))
    assert record.createdBy == "admin-1"


def test_create_admin_validation_blocks_submission():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"localId": "never"})

    with pytest.raises(AuthError) as exc:
        asyncio.run(create_admin(identity_for(handler), FakeStore(), signup_form(confirmPassword="nope")))

    assert exc.value.message == "Passwords do not match"
    assert calls == []


@pytest.mark.parametrize("code,expected", [
    ("EMAIL_EXISTS", "This email is already registered. Please use a different email."),
    ("INVALID_EMAIL", "Invalid email address format."),
    ("WEAK_PASSWORD : Password should be at least 6 characters", "Password is too weak. Please use a stronger password."),
    ("OPERATION_NOT_ALLOWED", "Email/password accounts are not enabled. Please contact support."),
    ("TOO_MANY_ATTEMPTS_TRY_LATER", "Failed to create admin account: TOO_MANY_ATTEMPTS_TRY_LATER"),
])
def test_create_admin_maps_auth_error_codes(code, expected):
    store = FakeStore()

    def handler(request):
        return firebase_error(code)

    with pytest.raises(AuthError) as exc:
        asyncio.run(create_admin(identity_for(handler), store, signup_form()))

    assert exc.value.message == expected
    assert store.get("admins") is None


# ==================== sign_in ====================

def test_sign_in_builds_admin_context():
    store = FakeStore({"admins": {"uid-1": {"firstName": "Lerato", "role": "admin"}}})

    def handler(request):
        return httpx.Response(200, json={
            "localId": "uid-1",
            "email": "lerato@school.example",
            "idToken": "id-token",
            "refreshToken": "refresh-token",
            "expiresIn": "3600",
        })

    session = asyncio.run(sign_in(identity_for(handler), store, "lerato@school.example", "pw123456"))
    context = session["context"]

    assert context.uid == "uid-1"
    assert context.is_admin
    assert context.admin["role"] == "admin"
    assert context.id_token == "id-token"
    assert session["expires_in"] == 3600


def test_sign_in_non_admin_user():
    def handler(request):
        return httpx.Response(200, json={"localId": "uid-2", "idToken": "t"})

    session = asyncio.run(sign_in(identity_for(handler), FakeStore(), "x@school.example", "pw123456"))
    assert session["context"].is_admin is False


def test_sign_in_failure_uses_generic_message():
    def handler(request):
        return firebase_error("INVALID_LOGIN_CREDENTIALS")

    with pytest.raises(AuthError) as exc:
        asyncio.run(sign_in(identity_for(handler), FakeStore(), "x@school.example", "wrong"))
    assert exc.value.message == "Invalid email or password"
