from __future__ import annotations

from typing import Any

import pytest

from pvestore.storage import ConfigStorage
from pvestore.storage_types import (
    ConfigStorageBackupRetention,
    ConfigStorageCephFS,
    ConfigStorageContent,
    ConfigStorageDirectory,
    ConfigStorageLVM,
    ConfigStorageNFS,
    ConfigStoragePBS,
    ConfigStorageSMB,
    ConfigStorageZFSoverISCSI,
    ZFSoverISCSILIO,
)
from pvestore.storage_validation import (
    create_with_validate,
    update_with_validate,
    validate_storage,
)
from pvestore.validate import ValidationError


class FakeClient:
    def __init__(self, storages: dict[str, dict[str, Any]] | None = None) -> None:
        self.storages = storages or {}
        self.created: list[tuple[str, dict[str, Any]]] = []
        self.updated: list[tuple[str, dict[str, Any]]] = []
        self.enabled: list[str] = []

    def check_storage_existence(self, storage_id: str) -> bool:
        return storage_id in self.storages

    def get_storage_config(self, storage_id: str) -> dict[str, Any]:
        return self.storages[storage_id]

    def create_storage(self, storage_id: str, params: dict[str, Any]) -> None:
        self.created.append((storage_id, params))

    def update_storage(self, storage_id: str, params: dict[str, Any]) -> None:
        self.updated.append((storage_id, params))

    def enable_storage(self, storage_id: str) -> None:
        self.enabled.append(storage_id)


EXISTING_DIRECTORY = {"type": "dir", "path": "/test", "shared": 0, "content": "iso"}


def directory_full() -> ConfigStorage:
    return ConfigStorage(
        enable=True,
        nodes=["pve"],
        type="directory",
        directory=ConfigStorageDirectory(path="/test", preallocation="full", shared=True),
        content=ConfigStorageContent(
            backup=True, container=True, disk_image=True, iso=True, snippets=True, template=True
        ),
        backup_retention=ConfigStorageBackupRetention(
            last=6, hourly=5, daily=4, monthly=3, weekly=2, yearly=1
        ),
    )


def test_create_existing_storage_fails():
    client = FakeClient({"directory-test-0": EXISTING_DIRECTORY})
    with pytest.raises(ValidationError, match="already exists"):
        validate_storage(directory_full(), "directory-test-0", True, client)


def test_update_missing_storage_fails():
    with pytest.raises(ValidationError, match="does not exist"):
        validate_storage(directory_full(), "directory-test-0", False, FakeClient())


def test_unknown_type_fails():
    config = ConfigStorage(type="floppy")
    with pytest.raises(ValidationError, match=r"\(type\)"):
        validate_storage(config, "x", True, FakeClient())


def test_type_may_not_change_on_update():
    client = FakeClient({"s": {"type": "nfs", "server": "10.20.1.1", "export": "/exports"}})
    with pytest.raises(ValidationError, match=r"\(type\) may not be changed"):
        validate_storage(directory_full(), "s", False, client)


def test_directory_section_required_on_create():
    config = ConfigStorage(type="directory", content=ConfigStorageContent(iso=True))
    with pytest.raises(ValidationError, match=r"\(directory\) may not be empty"):
        validate_storage(config, "d", True, FakeClient())


def test_directory_path_must_be_absolute():
    config = directory_full()
    config.directory.path = "relative/dir"
    with pytest.raises(ValidationError, match=r"\(path\) is not a valid file absolute path"):
        validate_storage(config, "d", True, FakeClient())


def test_directory_path_may_not_change_on_update():
    client = FakeClient({"d": EXISTING_DIRECTORY})
    config = directory_full()
    config.directory.path = "/other"
    with pytest.raises(ValidationError, match=r"\(path\) may not be changed"):
        validate_storage(config, "d", False, client)


def test_content_required_on_create():
    config = directory_full()
    config.content = None
    with pytest.raises(ValidationError, match=r"\(content\) may not be empty"):
        validate_storage(config, "d", True, FakeClient())


def test_content_optional_on_update():
    client = FakeClient({"d": EXISTING_DIRECTORY})
    config = ConfigStorage(type="directory", directory=ConfigStorageDirectory(path="/test"))
    update_with_validate(config, "d", client)
    assert [storage_id for storage_id, _ in client.updated] == ["d"]


def test_lvm_vgname_required():
    config = ConfigStorage(
        type="lvm", lvm=ConfigStorageLVM(), content=ConfigStorageContent(disk_image=True)
    )
    with pytest.raises(ValidationError, match=r"\(lvm:\{ vgname \}\)"):
        validate_storage(config, "l", True, FakeClient())


def test_nfs_version_must_be_known():
    config = ConfigStorage(
        type="nfs",
        nfs=ConfigStorageNFS(server="10.20.1.1", export="/exports", version="5"),
        content=ConfigStorageContent(disk_image=True),
    )
    with pytest.raises(ValidationError, match=r"\(nfs:\{ version \}\) must be one of"):
        validate_storage(config, "n", True, FakeClient())


def test_smb_version_must_be_known():
    config = ConfigStorage(
        type="smb",
        smb=ConfigStorageSMB(server="10.20.1.1", share="NetworkShare", version="1"),
        content=ConfigStorageContent(snippets=True),
    )
    with pytest.raises(ValidationError, match=r"\(smb:\{ version \}\)"):
        validate_storage(config, "s", True, FakeClient())


def test_cephfs_monitors_required():
    config = ConfigStorage(
        type="cephfs",
        cephfs=ConfigStorageCephFS(monitors=[]),
        content=ConfigStorageContent(iso=True),
    )
    with pytest.raises(ValidationError, match=r"\(cephfs:\{ monitors \}\) may not be empty"):
        validate_storage(config, "c", True, FakeClient())


def test_pbs_password_required_on_create():
    config = ConfigStorage(
        type="pbs",
        pbs=ConfigStoragePBS(server="10.20.1.1", datastore="proxmox", username="root@pam"),
    )
    with pytest.raises(ValidationError, match=r"\(pbs:\{ password \}\) must be set"):
        validate_storage(config, "p", True, FakeClient())


def test_pbs_port_range():
    password = "password"
    config = ConfigStorage(
        type="pbs",
        pbs=ConfigStoragePBS(
            server="10.20.1.1",
            datastore="proxmox",
            username="root@pam",
            password=password,
            port=65537,
        ),
    )
    with pytest.raises(ValidationError, match=r"\(pbs:\{ port \}\) must be between 1 and 65536"):
        validate_storage(config, "p", True, FakeClient())


def test_pbs_valid_create_needs_no_content():
    password = "password"
    config = ConfigStorage(
        type="pbs",
        pbs=ConfigStoragePBS(
            server="10.20.1.1", datastore="proxmox", username="root@pam", password=password
        ),
    )
    client = FakeClient()
    create_with_validate(config, "p", client)
    _, params = client.created[0]
    assert params["content"] == "backup"
    assert params["port"] == 8007


def test_zfs_over_iscsi_provider_must_be_known():
    config = ConfigStorage(
        type="zfs-over-iscsi",
        zfs_over_iscsi=ConfigStorageZFSoverISCSI(
            portal="test-portal", pool="test-pool", target="test-target", iscsi_provider="x"
        ),
    )
    with pytest.raises(ValidationError, match=r"\(zfs-over-iscsi:\{ iscsiprovider \}\)"):
        validate_storage(config, "z", True, FakeClient())


def test_zfs_over_iscsi_comstar_section_required():
    config = ConfigStorage(
        type="zfs-over-iscsi",
        zfs_over_iscsi=ConfigStorageZFSoverISCSI(
            portal="test-portal", pool="test-pool", target="test-target", iscsi_provider="comstar"
        ),
    )
    with pytest.raises(ValidationError, match=r"\(zfs-over-iscsi:\{ comstar \}\)"):
        validate_storage(config, "z", True, FakeClient())


def test_zfs_over_iscsi_lio_portal_group_required():
    config = ConfigStorage(
        type="zfs-over-iscsi",
        zfs_over_iscsi=ConfigStorageZFSoverISCSI(
            portal="test-portal",
            pool="test-pool",
            target="test-target",
            iscsi_provider="lio",
            lio=ZFSoverISCSILIO(),
        ),
    )
    with pytest.raises(ValidationError, match=r"targetportal-group"):
        validate_storage(config, "z", True, FakeClient())


def test_partial_backup_retention_fails():
    config = directory_full()
    config.backup_retention = ConfigStorageBackupRetention(last=6)
    with pytest.raises(ValidationError, match=r"\(backupretention:\{ hourly \}\) must be set"):
        validate_storage(config, "d", True, FakeClient())


def test_create_with_validate_creates_disabled_then_enables():
    client = FakeClient()
    create_with_validate(directory_full(), "directory-test-0", client)
    storage_id, params = client.created[0]
    assert storage_id == "directory-test-0"
    assert params["type"] == "dir"
    assert params["path"] == "/test"
    assert params["disable"] is True
    assert client.enabled == ["directory-test-0"]


def test_invalid_config_is_not_created():
    client = FakeClient()
    config = directory_full()
    config.directory = None
    with pytest.raises(ValidationError):
        create_with_validate(config, "d", client)
    assert client.created == []


def test_update_with_validate_sends_no_type():
    client = FakeClient({"d": EXISTING_DIRECTORY})
    update_with_validate(directory_full(), "d", client)
    _, params = client.updated[0]
    assert "type" not in params
    assert "path" not in params
    assert params["storage"] == "d"