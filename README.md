# pvestore

`pvestore` models Proxmox VE storage back ends and user accounts as plain
Python objects. It checks them before they are sent to the API, turns them
into the form parameters that the API expects, and reads the API's answers
back into the same objects.

## Installation

```
pip install pvestore
```

It has no runtime dependencies. The test suite needs `pytest`, which the
`test` extra installs:

```
pip install "pvestore[test]"
```

## What it covers

- **Storage types**: directory, LVM, LVM-thin, NFS, SMB/CIFS, GlusterFS,
  iSCSI, CephFS, RBD, ZFS over iSCSI (comstar, istgt, LIO, IET), ZFS and
  Proxmox Backup Server. Each type has its own dataclass in
  `pvestore.storage_types`, such as `ConfigStorageNFS` or `ConfigStoragePBS`.
  Types that have defaults fill them in with `set_defaults()`: preallocation
  `metadata` for directory, NFS, SMB and GlusterFS, block size `4k` for ZFS
  over iSCSI and `8k` for ZFS, port `8007` for PBS.
  `supported_content(storage_type)` tells which content kinds a type accepts.
- **Content and retention**: `ConfigStorageContent` says which kinds of
  content a storage holds; `map_storage_content()` gives the API list, or
  `"none"`. `ConfigStorageBackupRetention` holds the `keep-*` prune settings;
  `validate()` requires either none of them or all of them, each greater
  than 0.
- **The storage object**: `pvestore.storage.ConfigStorage` ties one storage
  together. Build it with `ConfigStorage.from_json(...)` (which also fills in
  defaults) or `ConfigStorage.from_dict(...)`, and serialise it with
  `to_dict()`. `remap_to_api()` and `remap_from_api()` translate the type
  names (`directory` ↔ `dir`, `smb` ↔ `cifs`, `zfs` ↔ `zfspool`, and so on).
- **API parameters**: `pvestore.storage_params.map_to_api_values(config, create)`
  builds the parameter dictionary for a create or update call. On update,
  settings that were cleared are listed under `delete`.
  `create_storage(config, storage_id, error_suppression, client)` and
  `update_storage(config, storage_id, client)` send that dictionary through a
  client object that you supply. With `error_suppression`, an enabled storage
  is created disabled and enabled afterwards.
- **Reading back**: `pvestore.storage_fetch.storage_from_raw(storage_id, raw)`
  turns a raw API storage configuration into a `ConfigStorage`.
  `storage_from_api(storage_id, client)` does the same after fetching the
  configuration through the client.
- **Validation**: `pvestore.storage_validation.validate_storage(config,
  storage_id, create, client)` checks a storage configuration against what
  already exists on the server: required keys on creation, keys that may not
  change on update, allowed NFS and SMB versions, iSCSI providers and port
  ranges. `create_with_validate` and `update_with_validate` validate and then
  apply the change. Problems are raised as `pvestore.validate.ValidationError`,
  a subclass of `ValueError`.
- **Users**: `pvestore.user.ConfigUser` with `from_api`, `from_json`,
  `create_user` and `update_user`; `set_user(config, userid, password, client)`
  creates the user or updates it and its password. `validate_user_password`
  requires at least 5 characters or an empty password. Problems are raised
  as `UserError`.
- **Helpers**: `pvestore.util` has the CSV and `key=value` configuration
  parsing helpers (`parse_pm_conf`, `csv_to_array`, `array_to_csv`, ...) and
  `disk_size_gb`. `pvestore.sizeunit` has the `SizeUnit` enum (K, M, G) with
  `format_to_short_string`, `format_to_long_string` and `convert_to`.

## Example

```python
from pvestore.storage import ConfigStorage
from pvestore.storage_params import map_to_api_values

config = ConfigStorage.from_json("""
{
  "type": "nfs",
  "enable": true,
  "nodes": ["pve"],
  "nfs": {"server": "10.20.1.1", "export": "/exports", "version": "4"},
  "content": {"diskimage": true, "iso": true}
}
""")
config.id = "nfs-store"

params = map_to_api_values(config, create=True)
# {'storage': 'nfs-store', 'disable': False, 'nodes': 'pve',
#  'options': 'vers=4', 'server': '10.20.1.1', 'export': '/exports',
#  'preallocation': 'metadata', 'content': 'images,iso', 'type': 'nfs'}
```

## Talking to a server

The package has no HTTP client, no login or session handling, and no
command-line tool. The functions that need a server take a `client`
argument: any object that provides the methods they call.

- `check_storage_existence(storage_id)`
- `get_storage_config(storage_id)`
- `create_storage(storage_id, params)`
- `update_storage(storage_id, params)`
- `enable_storage(storage_id)`
- `check_user_existence(userid)`
- `get_user_config(userid)`
- `create_user(params)`
- `update_user(userid, params)`
- `update_user_password(userid, password)`

Errors that the client raises while creating or updating come back wrapped
in `StorageError` or `UserError`. The message includes the parameters that
were sent.

## Running the tests

```
pytest
```