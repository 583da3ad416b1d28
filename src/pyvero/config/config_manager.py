# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Any, TypeVar

T = TypeVar("T")

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "settings" / "system.json"

# Sections read by SystemConfigSettings; each must be a JSON object when present
CONFIG_SECTIONS: tuple[str, ...] = ("Appliance", "Timeouts", "Generator", "Capture", "ActiveRate", "logging")


class ConfigManager:
    """
    JSON-backed settings for the pyvero demos.

    Defaults to ``src/pyvero/settings/system.json``, seeded from
    ``system.json.template`` on first use. A missing section, or one that is
    not an object, is reported in ``missing_sections`` and left out, so
    lookups into it fall back to the caller's default.
    """

    def __init__(self, config_path: str | Path | None = None) -> None:
        self._config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self._config_data: dict[str, Any] = {}
        self.missing_sections: list[str] = []
        self.logger = logging.getLogger(self.__class__.__name__)
        self._load()

    def get_config_path(self) -> str:
        return str(self._config_path)

    def _seed_from_template(self) -> None:
        template = self._config_path.with_name(f"{self._config_path.name}.template")
        if not template.is_file():
            raise FileNotFoundError(f"Config file not found: {self._config_path}")
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy(template, self._config_path)
        self.logger.info("Seeded %s from %s", self._config_path, template.name)

    def _load(self) -> None:
        if not self._config_path.is_file():
            self._seed_from_template()

        data = json.loads(self._config_path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Config root must be a JSON object: {self._config_path}")
        self._config_data = self._check_sections(data)

    def _check_sections(self, data: dict[str, Any]) -> dict[str, Any]:
        self.missing_sections = []
        for section in CONFIG_SECTIONS:
            value = data.get(section)
            if isinstance(value, dict):
                continue
            if value is not None:
                self.logger.error("Config section '%s' is not an object; ignoring it", section)
                data.pop(section)
            self.missing_sections.append(section)

        if self.missing_sections:
            self.logger.warning("Config %s lacks sections %s; defaults apply",
                                self._config_path, ", ".join(self.missing_sections))
        return data

    def get(self, *keys: str, fallback: T | None = None) -> T | None:
        """
        Walk nested keys, e.g. ``get("Timeouts", "start_generator_ms")``.

        Returns ``fallback`` as soon as a key is missing or a level is not an object.
        """
        data: Any = self._config_data
        for key in keys:
            if not isinstance(data, dict) or key not in data:
                return fallback
            data = data[key]
        return data

    def reload(self) -> None:
        self._load()

    def as_dict(self) -> dict[str, Any]:
        """Shallow copy of the whole configuration."""
        return self._config_data.copy()

    def save(self, new_config: dict[str, Any]) -> None:
        """Replace the configuration and write it to disk."""
        self._config_path.write_text(json.dumps(new_config, indent=4), encoding="utf-8")
        self._config_data = self._check_sections(new_config)
