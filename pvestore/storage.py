"""The storage configuration as a whole, with its JSON form."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import MISSING, dataclass, field, fields, is_dataclass
from typing import Any

from pvestore.storage_types import (
    ConfigStorageBackupRetention,
    ConfigStorageCephFS,
    ConfigStorageContent,
    ConfigStorageDirectory,
    ConfigStorageGlusterFS,
    ConfigStorageISCSI,
    ConfigStorageLVM,
    ConfigStorageLVMThin,
    ConfigStorageNFS,
    ConfigStoragePBS,
    ConfigStorageRBD,
    ConfigStorageSMB,
    ConfigStorageZFS,
    ConfigStorageZFSoverISCSI,
    ZFSoverISCSIComstar,
    ZFSoverISCSIIstgt,
    ZFSoverISCSILIO,
)
from pvestore.util import array_to_string_type
from pvestore.validate import ValidationError

_TYPE_TO_API = {
    "directory": "dir",
    "lvm-thin": "lvmthin",
    "smb": "cifs",
    "zfs-over-iscsi": "zfs",
    "zfs": "zfspool",
}
_TYPE_FROM_API = {
    "dir": "directory",
    "lvmthin": "lvm-thin",
    "cifs": "smb",
    "zfs": "zfs-over-iscsi",
    "zfspool": "zfs",
}


def _key(name: str, *, omitempty: bool = False, **kwargs: Any) -> Any:
    return field(metadata={"json": name, "omitempty": omitempty}, **kwargs)


@dataclass(kw_only=True)
class ConfigStorage:
    """A storage backend as configured through the API."""

    id: str = _key("id", default="")
    enable: bool = _key("enable", default=False)
    nodes: list[str] = _key("nodes", omitempty=True, default_factory=list)
    type: str = _key("type", default="")
    directory: ConfigStorageDirectory | None = _key("directory", omitempty=True, default=None)
    lvm: ConfigStorageLVM | None = _key("lvm", omitempty=True, default=None)
    lvm_thin: ConfigStorageLVMThin | None = _key("lvm-thin", omitempty=True, default=None)
    nfs: ConfigStorageNFS | None = _key("nfs", omitempty=True, default=None)
    smb: ConfigStorageSMB | None = _key("smb", omitempty=True, default=None)
    glusterfs: ConfigStorageGlusterFS | None = _key("glusterfs", omitempty=True, default=None)
    iscsi: ConfigStorageISCSI | None = _key("iscsi", omitempty=True, default=None)
    cephfs: ConfigStorageCephFS | None = _key("cephfs", omitempty=True, default=None)
    rbd: ConfigStorageRBD | None = _key("rbd", omitempty=True, default=None)
    zfs_over_iscsi: ConfigStorageZFSoverISCSI | None = _key(
        "zfs-over-iscsi", omitempty=True, default=None
    )
    zfs: ConfigStorageZFS | None = _key("zfs", omitempty=True, default=None)
    pbs: ConfigStoragePBS | None = _key("pbs", omitempty=True, default=None)
    content: ConfigStorageContent | None = _key("content", omitempty=True, default=None)
    backup_retention: ConfigStorageBackupRetention | None = _key(
        "backupretention", omitempty=True, default=None
    )

    def set_defaults(self) -> None:
        """Fill in the defaults of every backend section that is present."""
        for section in (
            self.directory,
            self.nfs,
            self.smb,
            self.glusterfs,
            self.zfs_over_iscsi,
            self.zfs,
            self.pbs,
        ):
            if section is not None:
                section.set_defaults()

    def remap_to_api(self) -> None:
        """Rename the storage type to the name the API uses."""
        self.type = _TYPE_TO_API.get(self.type, self.type)

    def remap_from_api(self) -> None:
        """Rename the storage type from the name the API uses."""
        self.type = _TYPE_FROM_API.get(self.type, self.type)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form of this configuration."""
        return _dump(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ConfigStorage:
        """Build a configuration from its JSON-ready form."""
        return _load(cls, data)

    @classmethod
    def from_json(cls, data: str | bytes) -> ConfigStorage:
        """Parse a JSON document and fill in the defaults."""
        try:
            raw = json.loads(data)
        except ValueError as err:
            raise ValidationError(f"invalid storage JSON: {err}") from err
        config = cls.from_dict(raw)
        config.set_defaults()
        return config


_NESTED: dict[type, dict[str, type]] = {
    ConfigStorage: {
        "directory": ConfigStorageDirectory,
        "lvm": ConfigStorageLVM,
        "lvm_thin": ConfigStorageLVMThin,
        "nfs": ConfigStorageNFS,
        "smb": ConfigStorageSMB,
        "glusterfs": ConfigStorageGlusterFS,
        "iscsi": ConfigStorageISCSI,
        "cephfs": ConfigStorageCephFS,
        "rbd": ConfigStorageRBD,
        "zfs_over_iscsi": ConfigStorageZFSoverISCSI,
        "zfs": ConfigStorageZFS,
        "pbs": ConfigStoragePBS,
        "content": ConfigStorageContent,
        "backup_retention": ConfigStorageBackupRetention,
    },
    ConfigStorageZFSoverISCSI: {
        "comstar": ZFSoverISCSIComstar,
        "istgt": ZFSoverISCSIIstgt,
        "lio": ZFSoverISCSILIO,
    },
}


def _is_empty(value: Any, pointer: bool) -> bool:
    if pointer:
        return value is None
    return value is None or value == "" or value is False or value == 0 or value == []


def _dump(obj: Any) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        pointer = f.default is None
        if f.metadata.get("omitempty") and _is_empty(value, pointer):
            continue
        if is_dataclass(value):
            value = _dump(value)
        elif isinstance(value, list):
            value = list(value)
        result[f.metadata["json"]] = value
    return result


def _check(f: Any, value: Any, key: str) -> Any:
    if isinstance(f.default, bool):
        if not isinstance(value, bool):
            raise ValidationError(f"invalid storage JSON: key ({key}) must be a boolean")
    elif isinstance(f.default, str):
        if not isinstance(value, str):
            raise ValidationError(f"invalid storage JSON: key ({key}) must be a string")
    elif f.default is MISSING:
        if not isinstance(value, list):
            raise ValidationError(f"invalid storage JSON: key ({key}) must be a list")
        try:
            return array_to_string_type(value)
        except TypeError as err:
            raise ValidationError(f"invalid storage JSON: key ({key}): {err}") from err
    return value


def _load(cls: type, data: Any) -> Any:
    if not isinstance(data, Mapping):
        raise ValidationError(f"invalid storage JSON: expected an object for {cls.__name__}")
    nested = _NESTED.get(cls, {})
    values: dict[str, Any] = {}
    for f in fields(cls):
        key = f.metadata["json"]
        if key not in data or data[key] is None:
            continue
        raw = data[key]
        if f.name in nested:
            values[f.name] = _load(nested[f.name], raw)
        else:
            values[f.name] = _check(f, raw, key)
    return cls(**values)