import pytest

from blogify.core.models import ROLE_ADMIN, ROLE_USER
from blogify.errors import (
    AuthenticationError,
    DuplicateEmailError,
    NotFoundError,
    PasswordHashingError,
    ValidationError,
)
from blogify.services import user_service


def _ada(store, email="Ada@Example.com", password="secret1"):
    return user_service.signup(store, full_name="Ada Lovelace", email=email, password=password)


def test_signup_never_stores_plaintext_and_signin_succeeds(store):
    user = _ada(store)
    doc = store.get("users", user.id)
    assert doc["email"] == "ada@example.com"
    assert doc["password_hash"] != "secret1"
    assert "secret1" not in str(doc)
    assert doc["role"] == ROLE_USER

    signed_in = user_service.authenticate(store, "ADA@example.com", "secret1")
    assert signed_in.id == user.id


@pytest.mark.parametrize("email", ["Ada@Example.com", "ada@example.com", " ADA@EXAMPLE.COM "])
def test_duplicate_email_rejected_in_any_case(store, email):
    _ada(store)
    with pytest.raises(DuplicateEmailError) as exc:
        _ada(store, email=email)
    assert "already exists" in exc.value.message
    assert len(store.find("users", lambda d: d["email"] == "ada@example.com")) == 1


@pytest.mark.parametrize(
    "full_name,email,password",
    [
        ("", "ada@example.com", "secret1"),
        ("Ada", "not-an-email", "secret1"),
        ("Ada", "ada@example", "secret1"),
        ("Ada", "ada@example.com", "short"),
    ],
)
def test_signup_validates_shape(store, full_name, email, password):
    with pytest.raises(ValidationError):
        user_service.signup(store, full_name=full_name, email=email, password=password)
    assert store.count("users") == 0


def test_hashing_failure_aborts_signup(store, monkeypatch):
    def _fail(_plain):
        raise PasswordHashingError()

    monkeypatch.setattr(user_service, "hash_password", _fail)
    with pytest.raises(PasswordHashingError):
        _ada(store)
    assert store.count("users") == 0


def test_unknown_email_and_wrong_password_look_the_same(store):
    _ada(store)
    with pytest.raises(AuthenticationError) as unknown:
        user_service.authenticate(store, "nobody@example.com", "secret1")
    with pytest.raises(AuthenticationError) as wrong:
        user_service.authenticate(store, "ada@example.com", "secret2")
    assert unknown.value.message == wrong.value.message == "Invalid email or password"


def test_admin_role_can_be_assigned(store):
    admin = user_service.signup(store, full_name="Root", email="root@example.com", password="secret1", role=ROLE_ADMIN)
    assert user_service.get_user(store, admin.id).is_admin
    with pytest.raises(ValidationError):
        user_service.signup(store, full_name="X", email="x@example.com", password="secret1", role="OWNER")


def test_follow_toggle_updates_both_sides(store):
    ada = _ada(store)
    bob = user_service.signup(store, full_name="Bob", email="bob@example.com", password="secret1")

    assert user_service.toggle_follow(store, ada.id, bob.id) is True
    assert user_service.get_user(store, ada.id).following == [bob.id]
    assert user_service.get_user(store, bob.id).followers == [ada.id]

    assert user_service.toggle_follow(store, ada.id, bob.id) is False
    assert user_service.get_user(store, ada.id).following == []
    assert user_service.get_user(store, bob.id).followers == []


def test_follow_rejects_self_and_unknown_users(store):
    ada = _ada(store)
    with pytest.raises(ValidationError):
        user_service.toggle_follow(store, ada.id, ada.id)
    with pytest.raises(NotFoundError):
        user_service.toggle_follow(store, ada.id, "missing")


def test_update_profile(store):
    ada = _ada(store)
    updated = user_service.update_profile(store, ada.id, full_name="  Augusta Ada King ", bio="Analyst")
    assert updated.full_name == "Augusta Ada King"
    assert user_service.get_user(store, ada.id).bio == "Analyst"

    with pytest.raises(ValidationError):
        user_service.update_profile(store, ada.id, full_name="Ada", bio="x" * 501)
    with pytest.raises(ValidationError):
        user_service.update_profile(store, ada.id, full_name=" ", bio="")


class _CountingHasher:
    def __init__(self, inner):
        self.inner = inner
        self.verify_calls = 0

    def verify(self, hash_value, plain):
        self.verify_calls += 1
        return self.inner.verify(hash_value, plain)

    def __getattr__(self, name):
        return getattr(self.inner, name)


@pytest.mark.parametrize("email", ["ada@example.com", "nobody@example.com"])
def test_empty_password_costs_the_same_for_known_and_unknown_emails(store, monkeypatch, email):
    from blogify.auth import passwords

    _ada(store)
    counter = _CountingHasher(passwords._PH)
    monkeypatch.setattr(passwords, "_PH", counter)
    with pytest.raises(AuthenticationError) as exc:
        user_service.authenticate(store, email, "")
    assert exc.value.message == "Invalid email or password"
    assert counter.verify_calls == 0


def test_known_and_unknown_emails_each_run_one_verification(store, monkeypatch):
    from blogify.auth import passwords

    _ada(store)
    counter = _CountingHasher(passwords._PH)
    monkeypatch.setattr(passwords, "_PH", counter)
    for email in ("ada@example.com", "nobody@example.com"):
        with pytest.raises(AuthenticationError):
            user_service.authenticate(store, email, "wrong-pass")
    assert counter.verify_calls == 2
