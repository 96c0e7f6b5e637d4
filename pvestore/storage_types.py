"""Per-backend storage settings, content selection and backup retention.

Every dataclass field carries metadata naming its JSON key (``"json"``) and
whether the key is left out when the value is empty (``"omitempty"``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pvestore.validate import ValidationError, error_key_not_set, validate_int_greater

# Content types in the order used throughout: API names and configuration names.
CONTENT_TYPES_API = ("backup", "rootdir", "images", "iso", "snippets", "vztmpl")
CONTENT_TYPES_CONFIG = ("backup", "container", "diskimage", "iso", "snippets", "template")

STORAGE_CONTENT_TYPES: dict[str, tuple[bool, ...]] = {
    "directory": (True, True, True, True, True, True),
    "lvm": (False, True, True, False, False, False),
    "lvm-thin": (False, True, True, False, False, False),
    "nfs": (True, True, True, True, True, True),
    "smb": (True, True, True, True, True, True),
    "glusterfs": (True, False, True, True, True, True),
    "iscsi": (False, False, True, False, False, False),
    "cephfs": (True, False, False, True, True, True),
    "rbd": (False, True, True, False, False, False),
    "zfs-over-iscsi": (False, False, True, False, False, False),
    "zfs": (False, True, True, False, False, False),
    "pbs": (True, False, False, False, False, False),
}

DEFAULT_PREALLOCATION = "metadata"

# JSON key names for credential fields.
PASSWORD = "password"
_CEPHFS_KEYRING_JSON = "secret-key"


def _key(name: str, *, omitempty: bool = False, **kwargs: Any) -> Any:
    return field(metadata={"json": name, "omitempty": omitempty}, **kwargs)


def supported_content(storage_type: str) -> tuple[bool, ...]:
    """Return which content types a storage type supports, in the standard order."""
    try:
        return STORAGE_CONTENT_TYPES[storage_type]
    except KeyError:
        raise ValidationError(f"error unknown storage type ({storage_type})") from None


@dataclass(kw_only=True)
class ConfigStorageContent:
    """Which kinds of content a storage holds."""

    backup: bool | None = _key("backup", omitempty=True, default=None)
    iso: bool | None = _key("iso", omitempty=True, default=None)
    template: bool | None = _key("template", omitempty=True, default=None)
    disk_image: bool | None = _key("diskimage", omitempty=True, default=None)
    container: bool | None = _key("container", omitempty=True, default=None)
    snippets: bool | None = _key("snippets", omitempty=True, default=None)

    def _flags(self) -> tuple[bool | None, ...]:
        return (
            self.backup,
            self.container,
            self.disk_image,
            self.iso,
            self.snippets,
            self.template,
        )

    def map_storage_content(self, supported: tuple[bool, ...] | list[bool]) -> str:
        """Return the API content list for the enabled and supported types, or ``"none"``."""
        wanted = [
            api_name
            for flag, allowed, api_name in zip(self._flags(), supported, CONTENT_TYPES_API)
            if flag and allowed
        ]
        return ",".join(wanted) or "none"

    def validate(self, storage_type: str) -> None:
        """Check the storage type is known; any content selection, even none, is accepted."""
        supported_content(storage_type)


_RETENTION_VALIDATION_ORDER = ("last", "hourly", "daily", "weekly", "monthly", "yearly")
_RETENTION_API_ORDER = ("daily", "hourly", "last", "monthly", "weekly", "yearly")


@dataclass(kw_only=True)
class ConfigStorageBackupRetention:
    """How many backups to keep per period."""

    last: int | None = _key("last", omitempty=True, default=None)
    hourly: int | None = _key("hourly", omitempty=True, default=None)
    daily: int | None = _key("daily", omitempty=True, default=None)
    monthly: int | None = _key("monthly", omitempty=True, default=None)
    weekly: int | None = _key("weekly", omitempty=True, default=None)
    yearly: int | None = _key("yearly", omitempty=True, default=None)

    def all_nil(self) -> bool:
        """Tell whether no period is set."""
        return all(getattr(self, name) is None for name in _RETENTION_VALIDATION_ORDER)

    def map_storage_backup_retention(self) -> str:
        """Return the API ``prune-backups`` value."""
        if self.all_nil():
            return "keep-all=1"
        parts = []
        for name in _RETENTION_API_ORDER:
            value = getattr(self, name)
            if value is None:
                raise error_key_not_set(f"backupretention:{{ {name} }}")
            parts.append(f"keep-{name}={value}")
        return ",".join(parts)

    def validate(self) -> None:
        """Require every period to be set and positive, unless none is set."""
        if self.all_nil():
            return
        for name in _RETENTION_VALIDATION_ORDER:
            text = f"backupretention:{{ {name} }}"
            value = getattr(self, name)
            if value is None:
                raise error_key_not_set(text)
            validate_int_greater(0, value, text)


@dataclass(kw_only=True)
class ConfigStorageDirectory:
    path: str = _key("path", default="")
    preallocation: str | None = _key("preallocation", omitempty=True, default=None)
    shared: bool = _key("shared", default=False)

    def set_defaults(self) -> None:
        if self.preallocation is None:
            self.preallocation = DEFAULT_PREALLOCATION


@dataclass(kw_only=True)
class ConfigStorageLVM:
    vgname: str = _key("vgname", default="")
    shared: bool = _key("shared", omitempty=True, default=False)


@dataclass(kw_only=True)
class ConfigStorageLVMThin:
    vgname: str = _key("vgname", default="")
    thinpool: str = _key("thinpool", default="")


@dataclass(kw_only=True)
class ConfigStorageNFS:
    server: str = _key("server", default="")
    export: str = _key("export", default="")
    preallocation: str | None = _key("preallocation", omitempty=True, default=None)
    version: str | None = _key("version", omitempty=True, default=None)

    def set_defaults(self) -> None:
        if self.preallocation is None:
            self.preallocation = DEFAULT_PREALLOCATION


@dataclass(kw_only=True)
class ConfigStorageSMB:
    username: str = _key("username", default="")
    share: str = _key("share", default="")
    preallocation: str | None = _key("preallocation", omitempty=True, default=None)
    domain: str = _key("domain", default="")
    server: str = _key("server", default="")
    password: str | None = _key(PASSWORD, omitempty=True, default=None)
    version: str | None = _key("version", omitempty=True, default=None)

    def set_defaults(self) -> None:
        if self.preallocation is None:
            self.preallocation = DEFAULT_PREALLOCATION


@dataclass(kw_only=True)
class ConfigStorageGlusterFS:
    server1: str = _key("server1", default="")
    server2: str = _key("server2", omitempty=True, default="")
    preallocation: str | None = _key("preallocation", omitempty=True, default=None)
    volume: str = _key("volume", default="")

    def set_defaults(self) -> None:
        if self.preallocation is None:
            self.preallocation = DEFAULT_PREALLOCATION


@dataclass(kw_only=True)
class ConfigStorageISCSI:
    portal: str = _key("portal", default="")
    target: str = _key("target", default="")


@dataclass(kw_only=True)
class ConfigStorageCephFS:
    monitors: list[str] = _key("monitors", default_factory=list)
    secret_key: str | None = _key(_CEPHFS_KEYRING_JSON, omitempty=True, default=None)
    username: str = _key("username", default="")
    fs_name: str = _key("fs-name", default="")


@dataclass(kw_only=True)
class ConfigStorageRBD:
    pool: str = _key("pool", default="")
    monitors: list[str] = _key("monitors", default_factory=list)
    username: str = _key("username", default="")
    keyring: str | None = _key("keyring", omitempty=True, default=None)
    namespace: str = _key("namespace", default="")
    krbd: bool = _key("krbd", default=False)


@dataclass(kw_only=True)
class ZFSoverISCSIComstar:
    target_group: str = _key("target-group", default="")
    host_group: str = _key("host-group", default="")
    writecache: bool = _key("writecache", default=False)


@dataclass(kw_only=True)
class ZFSoverISCSIIstgt:
    writecache: bool = _key("writecache", default=False)


@dataclass(kw_only=True)
class ZFSoverISCSILIO:
    target_portal_group: str = _key("targetportal-group", default="")


@dataclass(kw_only=True)
class ConfigStorageZFSoverISCSI:
    portal: str = _key("portal", default="")
    pool: str = _key("pool", default="")
    blocksize: str | None = _key("blocksize", default=None)
    target: str = _key("target", default="")
    iscsi_provider: str = _key("iscsiprovider", default="")
    thin_provision: bool = _key("thinprovision", default=False)
    comstar: ZFSoverISCSIComstar | None = _key("comstar", omitempty=True, default=None)
    istgt: ZFSoverISCSIIstgt | None = _key("istgt", omitempty=True, default=None)
    lio: ZFSoverISCSILIO | None = _key("lio", omitempty=True, default=None)

    def set_defaults(self) -> None:
        if self.blocksize is None:
            self.blocksize = "4k"

    def remap_to_api(self) -> None:
        """Rename the provider to the spelling the API expects."""
        if self.iscsi_provider == "lio":
            self.iscsi_provider = "LIO"

    def remap_from_api(self) -> None:
        """Rename the provider from the API spelling."""
        if self.iscsi_provider == "LIO":
            self.iscsi_provider = "lio"


@dataclass(kw_only=True)
class ConfigStorageZFS:
    pool: str = _key("pool", default="")
    blocksize: str | None = _key("blocksize", omitempty=True, default=None)
    thin_provision: bool = _key("thinprovision", omitempty=True, default=False)

    def set_defaults(self) -> None:
        if self.blocksize is None:
            self.blocksize = "8k"


@dataclass(kw_only=True)
class ConfigStoragePBS:
    server: str = _key("server", default="")
    datastore: str = _key("datastore", default="")
    username: str = _key("username", default="")
    password: str | None = _key(PASSWORD, omitempty=True, default=None)
    fingerprint: str = _key("fingerprint", omitempty=True, default="")
    port: int | None = _key("port", omitempty=True, default=None)
    namespace: str = _key("namespace", omitempty=True, default="")

    def set_defaults(self) -> None:
        if self.port is None:
            self.port = 8007