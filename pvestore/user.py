"""Proxmox user configuration."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Protocol

from pvestore.util import array_to_csv, array_to_string_type, itob


class UserError(Exception):
    """A user could not be validated, created or updated."""


class _UserClient(Protocol):
    def check_user_existence(self, userid: str) -> bool: ...

    def create_user(self, params: dict[str, Any]) -> None: ...

    def update_user(self, userid: str, params: dict[str, Any]) -> None: ...

    def update_user_password(self, userid: str, password: str) -> None: ...

    def get_user_config(self, userid: str) -> dict[str, Any]: ...


def _dump(params: dict[str, Any]) -> str:
    return json.dumps(params, sort_keys=True, separators=(",", ":"))


def validate_user_password(password: str) -> None:
    """Require a password of at least 5 characters, or none at all."""
    if password and len(password) < 5:
        raise UserError("error updating User: the minimum password length is 5")


@dataclass(kw_only=True)
class ConfigUser:
    """A user account as configured through the API."""

    userid: str = ""
    comment: str = ""
    email: str = ""
    enable: bool = False
    expire: int = 0
    firstname: str = ""
    groups: list[str] = field(default_factory=list)
    keys: str = ""
    lastname: str = ""

    def map_user_values(self) -> dict[str, Any]:
        """Return the parameters the API takes for this user."""
        return {
            "comment": self.comment,
            "email": self.email,
            "enable": self.enable,
            "expire": self.expire,
            "firstname": self.firstname,
            "groups": array_to_csv(self.groups),
            "keys": self.keys,
            "lastname": self.lastname,
        }

    def create_user(self, password: str, client: _UserClient) -> None:
        """Create this user with the given password."""
        params = self.map_user_values()
        params["userid"] = self.userid
        params["password"] = password
        try:
            client.create_user(params)
        except Exception as err:
            raise UserError(f"error creating User: {err}, (params: {_dump(params)})") from err

    def update_user(self, client: _UserClient) -> None:
        """Push this configuration to an existing user."""
        params = self.map_user_values()
        try:
            client.update_user(self.userid, params)
        except Exception as err:
            raise UserError(f"error updating User: {err}, (params: {_dump(params)})") from err

    @classmethod
    def from_api(cls, userid: str, client: _UserClient) -> ConfigUser:
        """Read a user's configuration from the API."""
        raw = client.get_user_config(userid)
        config = cls(userid=userid)
        for name in ("comment", "email", "firstname", "keys", "lastname"):
            if name in raw:
                setattr(config, name, raw[name])
        if "enable" in raw:
            config.enable = itob(int(raw["enable"]))
        if "expire" in raw:
            config.expire = int(raw["expire"])
        if "groups" in raw:
            config.groups = array_to_string_type(raw["groups"])
        return config

    @classmethod
    def from_json(cls, data: str | bytes) -> ConfigUser | None:
        """Build a configuration from JSON; empty input gives ``None``."""
        if len(data) == 0:
            return None
        try:
            raw = json.loads(data)
        except ValueError as err:
            raise UserError(f"invalid user JSON: {err}") from err
        if not isinstance(raw, dict):
            raise UserError("invalid user JSON: expected an object")
        config = cls()
        for name in ("userid", "comment", "email", "enable", "expire", "firstname", "keys", "lastname"):
            if name in raw:
                setattr(config, name, raw[name])
        if raw.get("groups") is not None:
            config.groups = array_to_string_type(raw["groups"])
        return config


def set_user(
    config: ConfigUser | None, userid: str, password: str, client: _UserClient
) -> None:
    """Create the user or update it, along with its password when one is given."""
    validate_user_password(password)
    if config is not None:
        config.userid = userid
    if client.check_user_existence(userid):
        if config is not None:
            config.update_user(client)
        if password:
            client.update_user_password(userid, password)
        return
    if config is None:
        raise UserError(f"error creating User: no configuration given for ( {userid} )")
    config.create_user(password, client)