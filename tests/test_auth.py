from __future__ import annotations

import json

import pytest

from taskboard.auth import (
    FALLBACK_CREDENTIAL, INVALID_LOGIN, AuthGate, AuthState,
    hash_passcode, hash_passcode_bcrypt, load_credentials, verify_passcode,
)


def write_credentials(path, *users):
    path.write_text(json.dumps({"users": [{"username": u, "passcode": p} for u, p in users]}), encoding="utf-8")
    return path


@pytest.fixture()
def gate(tmp_path, context):
    path = write_credentials(tmp_path / "credentials.json", ("test", hash_passcode("1234")))
    g = AuthGate(context, path)
    g.load()
    return g


def test_login_success(gate, context):
    seen = []
    assert gate.login("test", "1234", on_success=seen.append) is True
    assert gate.state is AuthState.LOGGED_IN
    assert context.username == "test"
    assert gate.error is None
    assert seen == ["test"]


def test_login_wrong_passcode(gate, context):
    seen = []
    assert gate.login("test", "12345", on_success=seen.append) is False
    assert gate.state is AuthState.LOGGED_OUT
    assert gate.error == INVALID_LOGIN
    assert context.username == ""
    assert seen == []


def test_login_unknown_user_gives_same_message(gate):
    gate.login("nobody", "1234")
    assert gate.error == INVALID_LOGIN


def test_logout(gate, context):
    gate.login("test", "1234")
    gate.logout()
    assert gate.state is AuthState.LOGGED_OUT
    assert context.username == ""


def test_fallback_when_file_missing(tmp_path, context):
    gate = AuthGate(context, tmp_path / "missing.json")
    assert gate.login("test", "1234") is True
    assert gate.credentials == [FALLBACK_CREDENTIAL]


@pytest.mark.parametrize("content", ["", "{}", '{"users": []}', "[1, 2]", "{broken"])
def test_fallback_when_file_empty_or_bad(tmp_path, content):
    path = tmp_path / "credentials.json"
    path.write_text(content, encoding="utf-8")
    assert load_credentials(path) == [FALLBACK_CREDENTIAL]


def test_fallback_digest_is_sha256_of_1234():
    assert FALLBACK_CREDENTIAL.passcode == hash_passcode("1234")


def test_file_credentials_replace_fallback(tmp_path, context):
    path = write_credentials(tmp_path / "credentials.json", ("alice", hash_passcode("s3cret")))
    gate = AuthGate(context, path)
    gate.load()
    assert gate.login("test", "1234") is False
    assert gate.login("alice", "s3cret") is True


def test_bcrypt_credential(tmp_path, context):
    path = write_credentials(tmp_path / "credentials.json", ("bob", hash_passcode_bcrypt("pw", rounds=4)))
    gate = AuthGate(context, path)
    gate.load()
    assert gate.login("bob", "nope") is False
    assert gate.login("bob", "pw") is True


def test_verify_passcode_accepts_uppercase_hex():
    assert verify_passcode("1234", hash_passcode("1234").upper())


def test_gate_from_settings_reads_credentials_file(settings, context):
    write_credentials(settings.credentials_file, ("carol", hash_passcode("pw")))
    gate = AuthGate.from_settings(context, settings)
    assert gate.login("carol", "pw") is True
    assert context.username == "carol"
