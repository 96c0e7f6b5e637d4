import json

import pytest

from pvestore.user import ConfigUser, UserError, set_user, validate_user_password

PASSWORD = "password"


class FakeClient:
    def __init__(self, exists=False, fail=False, raw=None):
        self.exists = exists
        self.fail = fail
        self.raw = raw or {}
        self.calls = []

    def check_user_existence(self, userid):
        self.calls.append(("check", userid))
        return self.exists

    def create_user(self, params):
        self.calls.append(("create", params))
        if self.fail:
            raise RuntimeError("boom")

    def update_user(self, userid, params):
        self.calls.append(("update", userid, params))
        if self.fail:
            raise RuntimeError("boom")

    def update_user_password(self, userid, password):
        self.calls.append(("password", userid, password))

    def get_user_config(self, userid):
        return self.raw


def sample_user():
    return ConfigUser(
        userid="alice@pve",
        comment="hello",
        email="alice@example.com",
        enable=True,
        expire=0,
        firstname="Alice",
        groups=["admins", "ops"],
        lastname="Smith",
    )


def test_password_rules():
    validate_user_password("")
    validate_user_password(PASSWORD)
    with pytest.raises(UserError, match="minimum password length is 5"):
        validate_user_password(PASSWORD[:4])


def test_map_user_values():
    params = sample_user().map_user_values()
    assert params == {
        "comment": "hello",
        "email": "alice@example.com",
        "enable": True,
        "expire": 0,
        "firstname": "Alice",
        "groups": "admins,ops",
        "keys": "",
        "lastname": "Smith",
    }


def test_create_user_sends_userid_and_password():
    client = FakeClient()
    password = PASSWORD
    sample_user().create_user(password, client)
    kind, params = client.calls[0]
    assert kind == "create"
    assert params["userid"] == "alice@pve"
    assert params["password"] == password


def test_create_user_wraps_errors():
    with pytest.raises(UserError, match="error creating User: boom"):
        sample_user().create_user(PASSWORD, FakeClient(fail=True))


def test_update_user_wraps_errors():
    with pytest.raises(UserError, match="error updating User: boom"):
        sample_user().update_user(FakeClient(fail=True))


def test_set_user_existing_updates_and_sets_password():
    client = FakeClient(exists=True)
    config = sample_user()
    set_user(config, "bob@pve", PASSWORD, client)
    kinds = [call[0] for call in client.calls]
    assert kinds == ["check", "update", "password"]
    assert client.calls[1][1] == "bob@pve"
    assert config.userid == "bob@pve"


def test_set_user_existing_without_password_skips_it():
    client = FakeClient(exists=True)
    set_user(sample_user(), "alice@pve", "", client)
    assert [call[0] for call in client.calls] == ["check", "update"]


def test_set_user_new_creates():
    client = FakeClient(exists=False)
    set_user(sample_user(), "alice@pve", PASSWORD, client)
    assert [call[0] for call in client.calls] == ["check", "create"]


def test_set_user_short_password_touches_nothing():
    client = FakeClient()
    with pytest.raises(UserError):
        set_user(sample_user(), "alice@pve", PASSWORD[:4], client)
    assert client.calls == []


def test_from_api():
    raw = {"enable": 1.0, "expire": 0.0, "email": "alice@example.com", "groups": ["ops"]}
    config = ConfigUser.from_api("alice@pve", FakeClient(raw=raw))
    assert config == ConfigUser(
        userid="alice@pve", enable=True, email="alice@example.com", groups=["ops"]
    )


def test_from_api_disabled():
    config = ConfigUser.from_api("alice@pve", FakeClient(raw={"enable": 0.0}))
    assert config.enable is False


def test_from_json_empty_is_none():
    assert ConfigUser.from_json(b"") is None


def test_from_json_round_trip():
    user = sample_user()
    data = json.dumps(
        {"userid": user.userid, **user.map_user_values(), "groups": user.groups}
    )
    assert ConfigUser.from_json(data) == user


def test_from_json_invalid():
    with pytest.raises(UserError):
        ConfigUser.from_json("{not json")