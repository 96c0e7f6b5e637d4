"""Checking a storage configuration against the API before creating or updating it."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from pvestore.storage import ConfigStorage
from pvestore.storage_fetch import storage_from_api
from pvestore.storage_params import create_storage, update_storage
from pvestore.validate import (
    error_item_exists,
    error_item_not_exists,
    error_key_empty,
    error_key_not_set,
    validate_array_not_empty,
    validate_file_path,
    validate_int_in_range,
    validate_string_in_array,
    validate_string_not_empty,
    validate_strings_equal,
)

STORAGE_TYPES = (
    "directory",
    "lvm",
    "lvm-thin",
    "nfs",
    "smb",
    "glusterfs",
    "iscsi",
    "cephfs",
    "rbd",
    "zfs-over-iscsi",
    "zfs",
    "pbs",
)
NFS_VERSIONS = ("3", "4", "4.1", "4.2")
SMB_VERSIONS = ("2.0", "2.1", "3", "3.0", "3.11")
ISCSI_PROVIDERS = ("comstar", "istgt", "lio", "iet")
# These backends have a fixed content type, set when the parameters are built.
_FIXED_CONTENT = ("pbs", "zfs-over-iscsi")


class _ValidatingClient(Protocol):
    def check_storage_existence(self, storage_id: str) -> bool: ...

    def get_storage_config(self, storage_id: str) -> Mapping[str, Any]: ...

    def create_storage(self, storage_id: str, params: dict[str, Any]) -> None: ...

    def update_storage(self, storage_id: str, params: dict[str, Any]) -> None: ...

    def enable_storage(self, storage_id: str) -> None: ...


def _directory(new: ConfigStorage, current: ConfigStorage | None) -> None:
    section = new.directory
    if current is not None:
        if section is not None and current.directory is not None:
            validate_strings_equal(section.path, current.directory.path, "path")
    elif section is None:
        raise error_key_empty("directory")
    else:
        validate_file_path(section.path, "path")


def _lvm(new: ConfigStorage, current: ConfigStorage | None) -> None:
    section = new.lvm
    if current is not None:
        if section is not None and current.lvm is not None:
            validate_strings_equal(section.vgname, current.lvm.vgname, "lvm:{ vgname }")
    elif section is None:
        raise error_key_empty("lvm")
    elif section.vgname == "":
        raise error_key_empty("lvm:{ vgname }")


def _lvm_thin(new: ConfigStorage, current: ConfigStorage | None) -> None:
    section = new.lvm_thin
    if current is not None:
        if section is not None and current.lvm_thin is not None:
            validate_strings_equal(
                section.vgname, current.lvm_thin.vgname, "lvm-thin:{ vgname }"
            )
            validate_strings_equal(
                section.thinpool, current.lvm_thin.thinpool, "lvm-thin:{ thinpool }"
            )
    elif section is None:
        raise error_key_empty("lvm-thin")
    else:
        if section.vgname == "":
            raise error_key_empty("lvm-thin:{ vgname }")
        if section.thinpool == "":
            raise error_key_empty("lvm-thin:{ thinpool }")


def _nfs(new: ConfigStorage, current: ConfigStorage | None) -> None:
    section = new.nfs
    if current is not None:
        if section is not None and current.nfs is not None:
            validate_strings_equal(section.export, current.nfs.export, "nfs:{ export }")
            validate_strings_equal(section.server, current.nfs.server, "nfs:{ server }")
    elif section is None:
        raise error_key_empty("nfs")
    else:
        validate_string_not_empty(section.server, "nfs:{ server }")
        validate_file_path(section.export, "nfs:{ export }")
    if section is not None:
        if section.version is not None:
            validate_string_in_array(NFS_VERSIONS, section.version, "nfs:{ version }")
        if section.preallocation is not None:
            validate_string_not_empty(section.preallocation, "nfs:{ preallocation }")


def _smb(new: ConfigStorage, current: ConfigStorage | None) -> None:
    section = new.smb
    if current is not None:
        if section is not None and current.smb is not None:
            validate_strings_equal(section.server, current.smb.server, "smb:{ server }")
            validate_strings_equal(section.share, current.smb.share, "smb:{ share }")
    elif section is None:
        raise error_key_empty("smb")
    else:
        validate_string_not_empty(section.server, "smb:{ server }")
        validate_string_not_empty(section.share, "smb:{ share }")
    if section is not None:
        if section.version is not None:
            validate_string_in_array(SMB_VERSIONS, section.version, "smb:{ version }")
        if section.preallocation is not None:
            validate_string_not_empty(section.preallocation, "smb:{ preallocation }")


def _glusterfs(new: ConfigStorage, current: ConfigStorage | None) -> None:
    section = new.glusterfs
    if current is not None:
        if section is not None and current.glusterfs is not None:
            validate_strings_equal(
                section.volume, current.glusterfs.volume, "glusterfs:{ volume }"
            )
    elif section is None:
        raise error_key_empty("glusterfs")
    else:
        validate_string_not_empty(section.server1, "glusterfs:{ server1 }")
        validate_string_not_empty(section.volume, "glusterfs:{ volume }")
    if section is not None:
        validate_string_not_empty(section.server1, "glusterfs:{ server1 }")
        if section.preallocation is not None:
            validate_string_not_empty(section.preallocation, "glusterfs:{ preallocation }")


def _iscsi(new: ConfigStorage, current: ConfigStorage | None) -> None:
    section = new.iscsi
    if current is not None:
        if section is not None and current.iscsi is not None:
            validate_strings_equal(section.portal, current.iscsi.portal, "iscsi:{ portal }")
            validate_strings_equal(section.target, current.iscsi.target, "iscsi:{ target }")
    elif section is None:
        raise error_key_empty("iscsi")
    else:
        validate_string_not_empty(section.portal, "iscsi:{ portal }")
        validate_string_not_empty(section.target, "iscsi:{ target }")


def _cephfs(new: ConfigStorage, current: ConfigStorage | None) -> None:
    if current is None and new.cephfs is None:
        raise error_key_empty("cephfs")
    if new.cephfs is not None:
        validate_array_not_empty(new.cephfs.monitors, "cephfs:{ monitors }")


def _rbd(new: ConfigStorage, current: ConfigStorage | None) -> None:
    if current is None and new.rbd is None:
        raise error_key_empty("rbd")
    if new.rbd is not None:
        validate_array_not_empty(new.rbd.monitors, "rbd:{ monitors }")


def _zfs_over_iscsi(new: ConfigStorage, current: ConfigStorage | None) -> None:
    section = new.zfs_over_iscsi
    prefix = "zfs-over-iscsi"
    if current is not None:
        old = current.zfs_over_iscsi
        if section is not None and old is not None:
            validate_strings_equal(
                section.iscsi_provider, old.iscsi_provider, f"{prefix}:{{ iscsiprovider }}"
            )
            validate_strings_equal(section.portal, old.portal, f"{prefix}:{{ portal }}")
            validate_strings_equal(section.target, old.target, f"{prefix}:{{ target }}")
            validate_strings_equal(section.pool, old.pool, f"{prefix}:{{ pool }}")
    elif section is None:
        raise error_key_empty(prefix)
    else:
        validate_string_in_array(
            ISCSI_PROVIDERS, section.iscsi_provider, f"{prefix}:{{ iscsiprovider }}"
        )
        validate_string_not_empty(section.portal, f"{prefix}:{{ portal }}")
        validate_string_not_empty(section.pool, f"{prefix}:{{ pool }}")
        validate_string_not_empty(section.target, f"{prefix}:{{ target }}")
    if section is None:
        return

    provider = section.iscsi_provider
    if provider == "comstar":
        if current is not None:
            old = current.zfs_over_iscsi
            if section.comstar is not None and old is not None and old.comstar is not None:
                validate_strings_equal(
                    section.comstar.host_group,
                    old.comstar.host_group,
                    f"{prefix}:{{ comstar:{{ host-group }} }}",
                )
                validate_strings_equal(
                    section.comstar.target_group,
                    old.comstar.target_group,
                    f"{prefix}:{{ comstar:{{ target-group }} }}",
                )
        elif section.comstar is None:
            raise error_key_empty(f"{prefix}:{{ comstar }}")
    elif provider == "istgt":
        if current is None and section.istgt is None:
            raise error_key_empty(f"{prefix}:{{ istgt }}")
    elif provider == "lio":
        if current is None and section.lio is None:
            raise error_key_empty(f"{prefix}:{{ lio }}")
        if section.lio is not None:
            validate_string_not_empty(
                section.lio.target_portal_group,
                f"{prefix}:{{ lio:{{ targetportal-group }} }}",
            )


def _zfs(new: ConfigStorage, current: ConfigStorage | None) -> None:
    section = new.zfs
    if current is not None:
        if section is not None and current.zfs is not None:
            validate_strings_equal(section.pool, current.zfs.pool, "zfs:{ pool }")
    elif section is None:
        raise error_key_empty("zfs")
    else:
        validate_string_not_empty(section.pool, "zfs:{ pool }")
    if section is not None and section.blocksize is not None:
        validate_string_not_empty(section.blocksize, "zfs:{ blocksize }")


def _pbs(new: ConfigStorage, current: ConfigStorage | None) -> None:
    section = new.pbs
    if current is not None:
        if section is not None and current.pbs is not None:
            validate_strings_equal(section.server, current.pbs.server, "pbs:{ server }")
            validate_strings_equal(
                section.datastore, current.pbs.datastore, "pbs:{ datastore }"
            )
    elif section is None:
        raise error_key_empty("pbs")
    else:
        validate_string_not_empty(section.server, "pbs:{ server }")
        validate_string_not_empty(section.datastore, "pbs:{ datastore }")
        if section.password is None:
            raise error_key_not_set("pbs:{ password }")
    if section is not None:
        if section.port is not None:
            validate_int_in_range(1, 65536, section.port, "pbs:{ port }")
        validate_string_not_empty(section.username, "pbs:{ username }")


_BACKEND_CHECKS = {
    "directory": _directory,
    "lvm": _lvm,
    "lvm-thin": _lvm_thin,
    "nfs": _nfs,
    "smb": _smb,
    "glusterfs": _glusterfs,
    "iscsi": _iscsi,
    "cephfs": _cephfs,
    "rbd": _rbd,
    "zfs-over-iscsi": _zfs_over_iscsi,
    "zfs": _zfs,
    "pbs": _pbs,
}


def validate_storage(
    config: ConfigStorage, storage_id: str, create: bool, client: _ValidatingClient
) -> None:
    """Check ``config`` for creating (``create``) or updating the storage ``storage_id``.

    Raises :class:`~pvestore.validate.ValidationError` on the first problem found.
    """
    exists = client.check_storage_existence(storage_id)
    if exists and create:
        raise error_item_exists(storage_id, "storage")
    if not exists and not create:
        raise error_item_not_exists(storage_id, "storage")

    validate_string_in_array(STORAGE_TYPES, config.type, "type")

    current: ConfigStorage | None = None
    if exists:
        current = storage_from_api(storage_id, client)
        validate_strings_equal(config.type, current.type, "type")

    _BACKEND_CHECKS[config.type](config, current)

    if config.type not in _FIXED_CONTENT:
        if config.content is not None:
            config.content.validate(config.type)
        elif not exists:
            raise error_key_empty("content")

    if config.backup_retention is not None:
        config.backup_retention.validate()


def create_with_validate(
    config: ConfigStorage, storage_id: str, client: _ValidatingClient
) -> None:
    """Validate ``config`` for a new storage, then create it."""
    validate_storage(config, storage_id, True, client)
    create_storage(config, storage_id, True, client)


def update_with_validate(
    config: ConfigStorage, storage_id: str, client: _ValidatingClient
) -> None:
    """Validate ``config`` against the existing storage, then update it."""
    validate_storage(config, storage_id, False, client)
    update_storage(config, storage_id, client)