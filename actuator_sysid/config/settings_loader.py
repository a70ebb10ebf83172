# actuator_sysid/config/settings_loader.py
"""
Document and settings loader.

Load sysid documents from JSON and analysis settings from YAML or JSON files.

Example:
    settings = load_settings("configs/arm.yaml")
    manager = AnalysisManager(load_json("arm_data.json"), settings)
"""
from __future__ import annotations

import json
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Type, TypeVar, Union

import yaml

from ..analysis.feedback import PRESETS, FeedbackControllerPreset, LQRParameters
from ..analysis.settings import Settings


T = TypeVar("T")


# =============================================================================
# File Loading
# =============================================================================

JSON_SUFFIXES = (".json",)


def _is_json(path: Union[str, Path]) -> bool:
    # Sysid documents are JSON; settings files of any other suffix are YAML,
    # which reads JSON settings as well.
    return Path(path).suffix.lower() in JSON_SUFFIXES


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a YAML mapping; an empty file is an empty mapping."""
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def load_json(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a JSON file, such as a sysid document."""
    with open(path, "r") as f:
        return json.load(f)


def load_config(path: Union[str, Path]) -> Dict[str, Any]:
    """Read settings from a JSON or YAML file, chosen by suffix."""
    return load_json(path) if _is_json(path) else load_yaml(path)


def save_yaml(data: Dict[str, Any], path: Union[str, Path]) -> None:
    with open(path, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def save_json(data: Dict[str, Any], path: Union[str, Path], indent: int = 2) -> None:
    with open(path, "w") as f:
        json.dump(data, f, indent=indent)


def save_config(data: Dict[str, Any], path: Union[str, Path]) -> None:
    """Write settings as JSON or YAML, chosen by suffix like load_config()."""
    if _is_json(path):
        save_json(data, path)
    else:
        save_yaml(data, path)


# =============================================================================
# Dataclass Helpers
# =============================================================================

def dict_to_dataclass(cls: Type[T], data: Dict[str, Any]) -> T:
    """
    Convert a dictionary to a dataclass, ignoring unknown keys.
    """
    if data is None:
        return cls()

    names = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in names})


# =============================================================================
# Settings
# =============================================================================

def load_preset(data: Union[str, Dict[str, Any], None]) -> FeedbackControllerPreset:
    """Preset from a preset name or a mapping of preset fields."""
    if data is None:
        return PRESETS["Default"]
    if isinstance(data, str):
        if data not in PRESETS:
            raise ValueError(f"Unknown feedback preset {data!r}; expected one of {sorted(PRESETS)}")
        return PRESETS[data]
    return dict_to_dataclass(FeedbackControllerPreset, data)


def settings_from_dict(data: Dict[str, Any]) -> Settings:
    """
    Build Settings from a configuration dictionary.

    Expected structure (every key optional):
        motion_threshold: 0.2
        window_size: 9
        step_test_duration: 0.0
        dataset: Combined
        loop_type: position        # or velocity
        policy: lqr                # or closed_form
        preset: Default            # or a mapping of preset fields
        lqr: {qp: 1.0, qv: 1.5, r: 7.0}
        convert_gains_to_enc_ticks: false
        gearing: 1.0
        cpr: 1
    """
    data = dict(data or {})
    preset = load_preset(data.pop("preset", None))
    lqr = dict_to_dataclass(LQRParameters, data.pop("lqr", None))
    settings = dict_to_dataclass(Settings, data)
    return settings.replace(preset=preset, lqr=lqr)


def settings_to_dict(settings: Settings) -> Dict[str, Any]:
    """Export settings as a plain dictionary, naming the preset when possible."""
    data = settings.to_dict()
    for name, preset in PRESETS.items():
        if preset == settings.preset:
            data["preset"] = name
            break
    return data


def load_settings(path: Union[str, Path]) -> Settings:
    """Load analysis settings from a YAML or JSON file."""
    return settings_from_dict(load_config(path))


def save_settings(settings: Settings, path: Union[str, Path]) -> None:
    """Save analysis settings to a YAML or JSON file."""
    save_config(settings_to_dict(settings), path)
