[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pvestore"
version = "0.1.0"
description = "Storage and user configuration models, validation and API parameter mapping for Proxmox VE"
requires-python = ">=3.10"
dependencies = []
keywords = ["proxmox", "pve", "storage", "configuration", "validation", "virtualization"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["pvestore"]

[tool.pytest.ini_options]
addopts = "-ra"
