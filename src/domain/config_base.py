"""Shared TOML config-loading utilities."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, TypeVar
import tomllib


@dataclass(frozen=True)
class BaseConfig:
    """Minimal metadata shared by every file-backed config."""

    name: str
    description: str | None
    file_path: Path

    def as_config_json(self) -> dict[str, Any]:
        raise NotImplementedError


T = TypeVar("T", bound=BaseConfig)


def read_toml(file_path: Path) -> dict[str, Any]:
    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {file_path}")
    with file_path.open("rb") as file:
        return tomllib.load(file)


def load_config_file(file_path: Path, parser: Callable[[dict[str, Any], Path], T]) -> T:
    """Parse a single TOML config file."""
    return parser(read_toml(file_path), file_path)


def load_configs(
    config_dir: Path,
    parser: Callable[[dict[str, Any], Path], T],
    *,
    duplicate_name_label: str = "config",
    key: Callable[[T], str] = lambda config: config.name,
) -> list[T]:
    """Load all TOML files in a directory, rejecting duplicate keys (names by default)."""
    if not config_dir.exists():
        raise FileNotFoundError(f"Config directory not found: {config_dir}")
    if not config_dir.is_dir():
        raise NotADirectoryError(f"Config path is not a directory: {config_dir}")

    config_files = sorted(config_dir.glob("*.toml"))
    if not config_files:
        raise ValueError(f"No .toml config files found in: {config_dir}")

    configs = [load_config_file(file_path, parser) for file_path in config_files]

    names = [key(config) for config in configs]
    if len(names) != len(set(names)):
        raise ValueError(f"Duplicate {duplicate_name_label} names found in {config_dir}: {names}")

    return configs


def required_str(section: dict[str, Any], key: str, *, file_path: Path, section_name: str) -> str:
    value = str(section.get(key, "")).strip()
    if not value:
        raise ValueError(f"{file_path}: [{section_name}].{key} is required")
    return value


def optional_str(section: dict[str, Any], key: str) -> str | None:
    value = section.get(key)
    return None if value is None else str(value)


__all__ = [
    "BaseConfig",
    "load_config_file",
    "load_configs",
    "optional_str",
    "read_toml",
    "required_str",
]
