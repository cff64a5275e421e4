"""Stage configuration for the RDC workstation stack.

Each stage reads ``infrastructure/config/<stage>.json``. Values in the file
are merged over ``DEFAULT_CONFIG`` so a stage file only needs the keys it
overrides, and a missing file still yields a deployable configuration.
"""
import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from aws_cdk import aws_ec2 as ec2

logger = logging.getLogger(__name__)
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))

CONFIG_DIR = Path(__file__).parent.parent / "config"

MAX_AZS = 2

# Maps replace the default wholesale instead of being merged key by key
REPLACED_KEYS = ("amiIds",)

DEFAULT_CONFIG: Dict[str, Any] = {
    "projectName": "rdc",
    "region": "ap-northeast-1",
    "vpc": {
        "maxAzs": 2,
        "cidr": "10.0.0.0/16",
    },
    "keyPair": {
        "name": "rdc-key-pair",
    },
    "instance": {
        "instanceClass": "T2",
        "instanceSize": "SMALL",
        "sshUser": "ubuntu",
        # Ubuntu 24.04 LTS
        "amiIds": {
            "ap-northeast-1": "ami-0cab37bd176bb80d3",
        },
    },
    "tags": {},
}


class ConfigError(ValueError):
    """Raised when a stage configuration cannot produce a valid stack."""


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if key not in REPLACED_KEYS and isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config(stage: str, config_dir: Optional[Path] = None) -> dict:
    """Load configuration for the given stage."""
    config_file = Path(config_dir or CONFIG_DIR) / f"{stage}.json"
    try:
        with open(config_file, "r") as f:
            overrides = json.load(f)
    except FileNotFoundError:
        logger.warning(f"No config file at {config_file}, using defaults for stage {stage}")
        overrides = {}

    config = _merge(DEFAULT_CONFIG, overrides)
    config.setdefault("environment", stage)
    config.setdefault("stackNamePrefix", f"Rdc-{stage.title()}")

    validate_config(config)
    return config


def validate_config(config: dict) -> None:
    """Check the values the stack cannot recover from at synthesis time."""
    max_azs = config["vpc"].get("maxAzs")
    if isinstance(max_azs, bool) or not isinstance(max_azs, int) or not 1 <= max_azs <= MAX_AZS:
        raise ConfigError(f"vpc.maxAzs must be between 1 and {MAX_AZS}, got {max_azs!r}")

    if not config["instance"].get("amiIds"):
        raise ConfigError("instance.amiIds must map at least one region to an AMI id")

    if not config["keyPair"].get("name"):
        raise ConfigError("keyPair.name must not be empty")

    resolve_instance_type(config)


def resolve_instance_type(config: dict) -> ec2.InstanceType:
    """Build the instance type from ``instance.instanceClass`` and ``instance.instanceSize``."""
    instance_config = config["instance"]
    try:
        instance_class = getattr(ec2.InstanceClass, str(instance_config["instanceClass"]).upper())
        instance_size = getattr(ec2.InstanceSize, str(instance_config["instanceSize"]).upper())
    except AttributeError as e:
        raise ConfigError(
            f"Unknown instance type {instance_config['instanceClass']}.{instance_config['instanceSize']}"
        ) from e
    return ec2.InstanceType.of(instance_class, instance_size)


def resolve_ami(config: dict, region: Optional[str]) -> str:
    """Return the pinned AMI id for ``region``.

    The AMI ids are region specific, so deploying into a region without an
    entry in ``instance.amiIds`` is a configuration error rather than a
    failed deployment.
    """
    ami_ids = config["instance"]["amiIds"]
    if not region:
        raise ConfigError(
            f"A region is required to pick a pinned AMI (known regions: {', '.join(sorted(ami_ids))})"
        )
    try:
        return ami_ids[region]
    except KeyError:
        raise ConfigError(
            f"No AMI configured for region {region} (known regions: {', '.join(sorted(ami_ids))})"
        ) from None
