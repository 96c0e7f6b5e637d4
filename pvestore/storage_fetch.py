"""Reading a storage configuration back from the API."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from pvestore.storage import ConfigStorage
from pvestore.storage_types import (
    CONTENT_TYPES_API,
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
    supported_content,
)
from pvestore.util import bool_invert, csv_to_array, itob
from pvestore.validate import ValidationError, error_key_not_set


class _StorageConfigClient(Protocol):
    def get_storage_config(self, storage_id: str) -> Mapping[str, Any]: ...


def _text(raw: Mapping[str, Any], key: str) -> str:
    if key not in raw:
        raise error_key_not_set(key)
    value = raw[key]
    if not isinstance(value, str):
        raise ValidationError(f"error the value of key ({key}) must be a string")
    return value


def _number(raw: Mapping[str, Any], key: str) -> int:
    if key not in raw:
        raise error_key_not_set(key)
    try:
        return int(raw[key])
    except (TypeError, ValueError):
        raise ValidationError(f"error the value of key ({key}) must be a number") from None


def _flag(raw: Mapping[str, Any], key: str) -> bool:
    return itob(_number(raw, key))


def _optional_text(raw: Mapping[str, Any], key: str) -> str | None:
    return _text(raw, key) if key in raw else None


def _zfs_over_iscsi(raw: Mapping[str, Any]) -> ConfigStorageZFSoverISCSI:
    zfs = ConfigStorageZFSoverISCSI(
        blocksize=_text(raw, "blocksize"),
        iscsi_provider=_text(raw, "iscsiprovider"),
    )
    zfs.remap_from_api()
    if zfs.iscsi_provider == "comstar":
        comstar = ZFSoverISCSIComstar(writecache=True)
        if "comstar_hg" in raw:
            comstar.writecache = bool_invert(_flag(raw, "nowritecache"))
            comstar.host_group = _text(raw, "comstar_hg")
        if "comstar_tg" in raw:
            comstar.target_group = _text(raw, "comstar_tg")
        zfs.comstar = comstar
    elif zfs.iscsi_provider == "istgt":
        zfs.istgt = ZFSoverISCSIIstgt(writecache=bool_invert(_flag(raw, "nowritecache")))
    elif zfs.iscsi_provider == "lio":
        zfs.lio = ZFSoverISCSILIO(target_portal_group=_text(raw, "lio_tpg"))
    zfs.pool = _text(raw, "pool")
    zfs.portal = _text(raw, "portal")
    zfs.target = _text(raw, "target")
    zfs.thin_provision = _flag(raw, "sparse")
    return zfs


def _fill_backend(config: ConfigStorage, raw: Mapping[str, Any]) -> None:
    kind = config.type
    if kind == "directory":
        config.directory = ConfigStorageDirectory(
            path=_text(raw, "path"),
            shared=_flag(raw, "shared"),
            preallocation=_optional_text(raw, "preallocation"),
        )
    elif kind == "lvm":
        config.lvm = ConfigStorageLVM(vgname=_text(raw, "vgname"), shared=_flag(raw, "shared"))
    elif kind == "lvm-thin":
        config.lvm_thin = ConfigStorageLVMThin(
            thinpool=_text(raw, "thinpool"), vgname=_text(raw, "vgname")
        )
    elif kind == "nfs":
        nfs = ConfigStorageNFS(server=_text(raw, "server"), export=_text(raw, "export"))
        if "options" in raw:
            _, _, version = _text(raw, "options").partition("=")
            nfs.version = version
        nfs.preallocation = _optional_text(raw, "preallocation")
        config.nfs = nfs
    elif kind == "smb":
        smb = ConfigStorageSMB(server=_text(raw, "server"), share=_text(raw, "share"))
        if "smbversion" in raw:
            version = _text(raw, "smbversion")
            smb.version = None if version == "default" else version
        if "domain" in raw:
            smb.domain = _text(raw, "domain")
        if "username" in raw:
            smb.username = _text(raw, "username")
        smb.preallocation = _optional_text(raw, "preallocation")
        config.smb = smb
    elif kind == "glusterfs":
        gluster = ConfigStorageGlusterFS(
            server1=_text(raw, "server"), volume=_text(raw, "volume")
        )
        if "server2" in raw:
            gluster.server2 = _text(raw, "server2")
        gluster.preallocation = _optional_text(raw, "preallocation")
        config.glusterfs = gluster
    elif kind == "iscsi":
        config.iscsi = ConfigStorageISCSI(portal=_text(raw, "portal"), target=_text(raw, "target"))
    elif kind == "cephfs":
        ceph = ConfigStorageCephFS(monitors=csv_to_array(_text(raw, "monhost")))
        if "fs-name" in raw:
            ceph.fs_name = _text(raw, "fs-name")
        if "username" in raw:
            ceph.username = _text(raw, "username")
        config.cephfs = ceph
    elif kind == "rbd":
        rbd = ConfigStorageRBD(
            krbd=_flag(raw, "krbd"),
            monitors=csv_to_array(_text(raw, "monhost")),
            pool=_text(raw, "pool"),
        )
        if "namespace" in raw:
            rbd.namespace = _text(raw, "namespace")
        if "username" in raw:
            rbd.username = _text(raw, "username")
        config.rbd = rbd
    elif kind == "zfs-over-iscsi":
        config.zfs_over_iscsi = _zfs_over_iscsi(raw)
    elif kind == "zfs":
        config.zfs = ConfigStorageZFS(
            pool=_text(raw, "pool"),
            thin_provision=_flag(raw, "sparse"),
            blocksize=_optional_text(raw, "blocksize"),
        )
    elif kind == "pbs":
        pbs = ConfigStoragePBS(
            datastore=_text(raw, "datastore"),
            server=_text(raw, "server"),
            username=_text(raw, "username"),
        )
        if "port" in raw:
            pbs.port = _number(raw, "port")
        if "fingerprint" in raw:
            pbs.fingerprint = _text(raw, "fingerprint")
        if "namespace" in raw:
            pbs.namespace = _text(raw, "namespace")
        config.pbs = pbs


def _content(kind: str, text: str) -> ConfigStorageContent | None:
    if text == "none":
        # iscsi is the one type whose content may legitimately be empty.
        if kind == "iscsi":
            return ConfigStorageContent(disk_image=False)
        return None
    listed = set(csv_to_array(text))
    flags = {
        name: (api_name in listed) if allowed else None
        for name, api_name, allowed in zip(
            ("backup", "container", "disk_image", "iso", "snippets", "template"),
            CONTENT_TYPES_API,
            supported_content(kind),
        )
    }
    return ConfigStorageContent(**flags)


def _to_int(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


def _retention(text: str) -> ConfigStorageBackupRetention | None:
    prune = csv_to_array(text)
    if "keep-all=1" in prune:
        return None
    settings: dict[str, int] = {}
    for entry in prune:
        key, _, value = entry.partition("=")
        settings[key] = _to_int(value)
    return ConfigStorageBackupRetention(
        daily=settings.get("keep-daily", 0),
        hourly=settings.get("keep-hourly", 0),
        last=settings.get("keep-last", 0),
        monthly=settings.get("keep-monthly", 0),
        weekly=settings.get("keep-weekly", 0),
        yearly=settings.get("keep-yearly", 0),
    )


def storage_from_raw(storage_id: str, raw_config: Mapping[str, Any]) -> ConfigStorage:
    """Build a configuration from the raw settings the API reports for a storage."""
    config = ConfigStorage(id=storage_id, type=_text(raw_config, "type"))
    if "nodes" in raw_config:
        config.nodes = csv_to_array(_text(raw_config, "nodes"))
    config.remap_from_api()
    if "disable" in raw_config:
        config.enable = bool_invert(_flag(raw_config, "disable"))
    else:
        config.enable = True

    _fill_backend(config, raw_config)
    config.set_defaults()

    if "content" in raw_config:
        content = _content(config.type, _text(raw_config, "content"))
        if content is not None:
            config.content = content
    if "prune-backups" in raw_config:
        config.backup_retention = _retention(_text(raw_config, "prune-backups"))
    return config


def storage_from_api(storage_id: str, client: _StorageConfigClient) -> ConfigStorage:
    """Fetch a storage's configuration through ``client``."""
    return storage_from_raw(storage_id, client.get_storage_config(storage_id))