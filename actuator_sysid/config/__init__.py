"""
Configuration loading.

Example usage:
    from actuator_sysid.config import load_json, load_settings

    document = load_json("arm_data.json")
    settings = load_settings("configs/arm.yaml")
"""

from .settings_loader import (
    load_yaml,
    load_json,
    load_config,
    save_yaml,
    save_json,
    save_config,
    dict_to_dataclass,
    load_preset,
    settings_from_dict,
    settings_to_dict,
    load_settings,
    save_settings,
)

__all__ = [
    # Files
    "load_yaml",
    "load_json",
    "load_config",
    "save_yaml",
    "save_json",
    "save_config",
    # Settings
    "dict_to_dataclass",
    "load_preset",
    "settings_from_dict",
    "settings_to_dict",
    "load_settings",
    "save_settings",
]
