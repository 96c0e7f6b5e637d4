"""Proxmox VE storage and user configuration: models, validation and API parameter mapping."""

__version__ = "0.1.0"