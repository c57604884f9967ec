"""Loading of device-to-room assignments from YAML provisioning files.

Expected layout::

    rooms:
      living:
        devices: ["aa:bb:cc:dd:ee:01"]
      bedroom:
        devices: ["aa:bb:cc:dd:ee:02", "aa:bb:cc:dd:ee:03"]
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from ..domain.exceptions import ConfigurationException
from ..domain.models import RoomAssignment

logger = logging.getLogger(__name__)


def _load_yaml(config_path: Path) -> Dict[str, Any]:
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationException(
            f"Device configuration file not found: {config_path}",
            "DEVICE_CONFIG_NOT_FOUND",
            {"path": str(config_path)}
        )
    except yaml.YAMLError as e:
        raise ConfigurationException(
            f"Invalid YAML in device configuration: {e}",
            "DEVICE_CONFIG_INVALID",
            {"path": str(config_path)}
        )

    if not isinstance(config, dict) or not isinstance(config.get('rooms'), dict):
        raise ConfigurationException(
            "Missing 'rooms' section in device configuration",
            "DEVICE_CONFIG_INVALID",
            {"path": str(config_path)}
        )
    return config


def load_device_assignments(config_path: Union[str, Path]) -> List[RoomAssignment]:
    """Read every device assignment from a provisioning file.

    Raises:
        ConfigurationException: If the file is missing, malformed, or
            assigns one device to two rooms
    """
    config = _load_yaml(Path(config_path))

    assignments: Dict[str, RoomAssignment] = {}
    for room, room_config in config['rooms'].items():
        devices = (room_config or {}).get('devices') or []
        if not devices:
            logger.warning(f"No devices configured for room '{room}'")
            continue

        for device_id in devices:
            device_id = str(device_id)
            existing = assignments.get(device_id)
            if existing and existing.room != room:
                raise ConfigurationException(
                    f"Device {device_id} assigned to both {existing.room} and {room}",
                    "DEVICE_CONFIG_CONFLICT",
                    {"device_id": device_id, "rooms": [existing.room, room]}
                )
            assignments[device_id] = RoomAssignment(device_id=device_id, room=str(room))

    return list(assignments.values())
