"""Turning a storage configuration into API parameters, and sending it."""

from __future__ import annotations

import json
from typing import Any, Protocol

from pvestore.storage import ConfigStorage
from pvestore.storage_types import ConfigStorageContent, supported_content
from pvestore.util import array_to_csv, bool_invert
from pvestore.validate import error_key_empty


class StorageError(Exception):
    """A storage backend could not be created or updated."""


class _StorageClient(Protocol):
    def create_storage(self, storage_id: str, params: dict[str, Any]) -> None: ...

    def update_storage(self, storage_id: str, params: dict[str, Any]) -> None: ...

    def enable_storage(self, storage_id: str) -> None: ...


def _dump(params: dict[str, Any]) -> str:
    return json.dumps(params, sort_keys=True, separators=(",", ":"))


def map_to_api_values(config: ConfigStorage, create: bool) -> dict[str, Any]:
    """Return the API parameters for ``config``.

    Defaults are filled into ``config``; backends with a fixed content type get
    it set, and on creation the storage type is renamed to its API spelling.
    """
    deletions: list[str] = []
    params: dict[str, Any] = {
        "storage": config.id,
        "disable": bool_invert(config.enable),
        "nodes": array_to_csv(config.nodes),
    }
    kind = config.type

    if kind == "directory" and (d := config.directory) is not None:
        d.set_defaults()
        params["shared"] = d.shared
        params["preallocation"] = d.preallocation
        if create:
            params["path"] = d.path
    elif kind == "lvm" and (lvm := config.lvm) is not None:
        params["shared"] = lvm.shared
        if create:
            params["vgname"] = lvm.vgname
    elif kind == "lvm-thin" and (thin := config.lvm_thin) is not None:
        if create:
            params["thinpool"] = thin.thinpool
            params["vgname"] = thin.vgname
    elif kind == "nfs" and (nfs := config.nfs) is not None:
        nfs.set_defaults()
        if nfs.version is not None:
            params["options"] = "vers=" + nfs.version
        else:
            deletions.append("options")
        if create:
            params["server"] = nfs.server
            params["export"] = nfs.export
        params["preallocation"] = nfs.preallocation
    elif kind == "smb" and (smb := config.smb) is not None:
        smb.set_defaults()
        params["domain"] = smb.domain
        params["username"] = smb.username
        if create:
            params["share"] = smb.share
            params["server"] = smb.server
        if smb.password is not None:
            params["password"] = smb.password
        if smb.version is not None:
            params["smbversion"] = smb.version
        else:
            deletions.append("smbversion")
        params["preallocation"] = smb.preallocation
    elif kind == "glusterfs" and (gluster := config.glusterfs) is not None:
        gluster.set_defaults()
        params["server"] = gluster.server1
        if gluster.server2:
            params["server2"] = gluster.server2
        elif not create:
            deletions.append("server2")
        if create:
            params["volume"] = gluster.volume
        params["preallocation"] = gluster.preallocation
    elif kind == "iscsi":
        if create:
            if config.iscsi is None:
                raise error_key_empty("iscsi")
            params["portal"] = config.iscsi.portal
            params["target"] = config.iscsi.target
    elif kind == "cephfs" and (ceph := config.cephfs) is not None:
        params["monhost"] = array_to_csv(ceph.monitors)
        params["fs-name"] = ceph.fs_name
        params["username"] = ceph.username
        if ceph.secret_key is not None:
            params["keyring"] = ceph.secret_key
    elif kind == "rbd" and (rbd := config.rbd) is not None:
        params["krbd"] = rbd.krbd
        params["monhost"] = array_to_csv(rbd.monitors)
        params["pool"] = rbd.pool
        params["namespace"] = rbd.namespace
        params["username"] = rbd.username
        if rbd.keyring is not None:
            params["keyring"] = rbd.keyring
    elif kind == "zfs-over-iscsi":
        _map_zfs_over_iscsi(config, create, params)
        config.content = ConfigStorageContent(disk_image=True)
    elif kind == "zfs" and (zfs := config.zfs) is not None:
        zfs.set_defaults()
        params["sparse"] = zfs.thin_provision
        params["blocksize"] = zfs.blocksize
        if create:
            params["pool"] = zfs.pool
    elif kind == "pbs":
        if (pbs := config.pbs) is not None:
            pbs.set_defaults()
            params["username"] = pbs.username
            if pbs.fingerprint:
                params["fingerprint"] = pbs.fingerprint
            else:
                deletions.append("fingerprint")
            if pbs.port is not None:
                params["port"] = pbs.port
            if create:
                params["server"] = pbs.server
                params["datastore"] = pbs.datastore
            if pbs.password is not None:
                params["password"] = pbs.password
            if pbs.namespace:
                params["namespace"] = pbs.namespace.lstrip("/")
        config.content = ConfigStorageContent(backup=True)

    supported = supported_content(kind)
    content = config.content if config.content is not None else ConfigStorageContent()
    params["content"] = content.map_storage_content(supported)

    if config.backup_retention is not None and supported[0]:
        params["prune-backups"] = config.backup_retention.map_storage_backup_retention()

    if create:
        config.remap_to_api()
        params["type"] = config.type
    elif deletions:
        params["delete"] = ",".join(deletions)
    return params


def _map_zfs_over_iscsi(config: ConfigStorage, create: bool, params: dict[str, Any]) -> None:
    zfs = config.zfs_over_iscsi
    if zfs is None:
        return
    zfs.set_defaults()
    params["sparse"] = zfs.thin_provision
    provider = zfs.iscsi_provider
    if provider == "comstar" and zfs.comstar is not None:
        params["nowritecache"] = bool_invert(zfs.comstar.writecache)
        if create:
            params["comstar_hg"] = zfs.comstar.host_group
            params["comstar_tg"] = zfs.comstar.target_group
    elif provider == "istgt" and zfs.istgt is not None:
        params["nowritecache"] = bool_invert(zfs.istgt.writecache)
    elif provider == "lio" and zfs.lio is not None:
        params["lio_tpg"] = zfs.lio.target_portal_group
    zfs.remap_to_api()
    if create:
        params["iscsiprovider"] = zfs.iscsi_provider
        params["portal"] = zfs.portal
        params["target"] = zfs.target
        params["pool"] = zfs.pool
        params["blocksize"] = zfs.blocksize


def create_storage(
    config: ConfigStorage,
    storage_id: str,
    error_suppression: bool,
    client: _StorageClient,
) -> None:
    """Create the storage backend.

    With ``error_suppression`` an enabled storage is created disabled and
    enabled afterwards, so that an unreachable backend does not fail creation.
    """
    enable_afterwards = False
    if error_suppression and config.enable:
        config.enable = False
        enable_afterwards = True
    config.id = storage_id
    params = map_to_api_values(config, True)
    try:
        client.create_storage(storage_id, params)
    except Exception as err:
        raise StorageError(
            f"error creating Storage Backend: {err}, (params: {_dump(params)})"
        ) from err
    if enable_afterwards:
        client.enable_storage(storage_id)


def update_storage(config: ConfigStorage, storage_id: str, client: _StorageClient) -> None:
    """Push the configuration to an existing storage backend."""
    config.id = storage_id
    params = map_to_api_values(config, False)
    try:
        client.update_storage(storage_id, params)
    except Exception as err:
        raise StorageError(
            f"error creating Storage Backend: {err}, (params: {_dump(params)})"
        ) from err