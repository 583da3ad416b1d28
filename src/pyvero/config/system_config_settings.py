# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, cast

from pyvero.config.config_manager import ConfigManager
from pyvero.lib.secret.crypto_manager import SecretCryptoError, SecretCryptoManager
from pyvero.lib.types import BitRate, FileNameStr, SfpName, TimeoutMs


class SystemConfigSettings:
    """Provides dynamically reloaded system configuration via class properties."""
    _cfg        = ConfigManager()
    _logger     = logging.getLogger("SystemConfigSettings")

    _DEFAULT_USERNAME: str                  = "user"
    _DEFAULT_PASSWORD: str                  = "user"
    _DEFAULT_HTTP_TIMEOUT: int              = 30

    _DEFAULT_SET_GENLOCK_MS: int            = 5000
    _DEFAULT_START_GENERATOR_MS: int        = 2000
    _DEFAULT_SFP_STATUS_MS: int             = 5000
    _DEFAULT_ACTIVE_RATE_MS: int            = 4000
    _DEFAULT_CAPTURE_COMPLETION_MS: int     = 55000

    _DEFAULT_GENERATOR_CHANNEL: str         = "channel1"
    _DEFAULT_GENLOCK_FAMILY: str            = "genlock30M"

    _DEFAULT_CAPTURE_NAME: str              = "Capture test script"
    _DEFAULT_CAPTURE_DURATION: int          = 200
    _DEFAULT_CONNECTOR_KIND: str            = "video"
    _DEFAULT_CONNECTOR_INDEX: int           = 0
    _DEFAULT_CONNECTOR_SOURCE_ID: str       = "74c3ca30-0688-11ec-a847-11c4d6988837"

    _DEFAULT_RATE_KIND: str                 = "moreThan"
    _DEFAULT_RATES: dict[str, int]          = {"SFP A": 0, "SFP B": 700_000_000}

    _DEFAULT_LOG_LEVEL: str                 = "INFO"
    _DEFAULT_LOG_DIR: str                   = "logs"
    _DEFAULT_LOG_FILENAME: str              = "pyvero.log"

    @classmethod
    def _config_path(cls, *path: str) -> str:
        """Return dotted path for logging."""
        return ".".join(path)

    @classmethod
    def _get_str(cls, default: str, *path: str) -> str:
        value = cls._cfg.get(*path)
        if value is None:
            cls._logger.error(
                "Missing configuration value for '%s'; using default '%s'",
                cls._config_path(*path),
                default,
            )
            return default
        if not isinstance(value, str):
            coerced = str(value)
            cls._logger.error(
                "Non-string configuration value for '%s': %r; using coerced '%s'",
                cls._config_path(*path),
                value,
                coerced,
            )
            return coerced
        if value == "":
            cls._logger.error(
                "Empty configuration value for '%s'; using default '%s'",
                cls._config_path(*path),
                default,
            )
            return default
        return value

    @classmethod
    def _get_int(cls, default: int, *path: str) -> int:
        value = cls._cfg.get(*path)
        if value is None:
            cls._logger.error(
                "Missing configuration value for '%s'; using default %d",
                cls._config_path(*path),
                default,
            )
            return default
        try:
            return int(value)
        except (TypeError, ValueError):
            cls._logger.error(
                "Invalid integer configuration value for '%s': %r; using default %d",
                cls._config_path(*path),
                value,
                default,
            )
            return default

    @classmethod
    def _get_timeout_ms(cls, default: int, *path: str) -> TimeoutMs:
        value = cls._get_int(default, *path)
        if value < 0:
            cls._logger.error(
                "Negative timeout for '%s': %d; using default %d",
                cls._config_path(*path),
                value,
                default,
            )
            return TimeoutMs(default)
        return TimeoutMs(value)

    @classmethod
    def _get_bool(cls, default: bool, *path: str) -> bool:
        value = cls._cfg.get(*path)
        if isinstance(value, bool):
            return value
        if value is None:
            cls._logger.error(
                "Missing configuration value for '%s'; using default %s",
                cls._config_path(*path),
                default,
            )
            return default

        text = str(value).strip().lower()
        if text in ("1", "true", "yes", "on"):
            return True
        if text in ("0", "false", "no", "off"):
            return False

        cls._logger.error(
            "Invalid boolean configuration value for '%s': %r; using default %s",
            cls._config_path(*path),
            value,
            default,
        )
        return default

    @classmethod
    def get_config_path(cls) -> str:
        return cls._cfg.get_config_path()

    # Appliance session
    @classmethod
    def appliance_username(cls) -> str:
        return cls._get_str(cls._DEFAULT_USERNAME, "Appliance", "username")

    @classmethod
    def appliance_password(cls) -> str:
        """
        Return the login password, preferring an encrypted ``password_enc``.

        A token that cannot be decrypted is logged and the clear-text
        ``password`` (or the default) is used instead.
        """
        token = cls._cfg.get("Appliance", "password_enc")
        if isinstance(token, str) and token.strip() != "":
            try:
                return SecretCryptoManager.decrypt_password(token)
            except SecretCryptoError as exc:
                cls._logger.error(
                    "Failed to decrypt configuration value for '%s': %s",
                    cls._config_path("Appliance", "password_enc"),
                    exc,
                )
        return cls._get_str(cls._DEFAULT_PASSWORD, "Appliance", "password")

    @classmethod
    def http_timeout(cls) -> int:
        return cls._get_int(cls._DEFAULT_HTTP_TIMEOUT, "Appliance", "http_timeout")

    @classmethod
    def verify_ssl(cls) -> bool:
        return cls._get_bool(False, "Appliance", "verify_ssl")

    # Timeouts
    @classmethod
    def set_genlock_timeout_ms(cls) -> TimeoutMs:
        return cls._get_timeout_ms(cls._DEFAULT_SET_GENLOCK_MS, "Timeouts", "set_genlock_ms")

    @classmethod
    def start_generator_timeout_ms(cls) -> TimeoutMs:
        return cls._get_timeout_ms(cls._DEFAULT_START_GENERATOR_MS, "Timeouts", "start_generator_ms")

    @classmethod
    def sfp_status_timeout_ms(cls) -> TimeoutMs:
        return cls._get_timeout_ms(cls._DEFAULT_SFP_STATUS_MS, "Timeouts", "sfp_status_ms")

    @classmethod
    def active_rate_timeout_ms(cls) -> TimeoutMs:
        return cls._get_timeout_ms(cls._DEFAULT_ACTIVE_RATE_MS, "Timeouts", "active_rate_ms")

    @classmethod
    def capture_completion_timeout_ms(cls) -> TimeoutMs:
        return cls._get_timeout_ms(cls._DEFAULT_CAPTURE_COMPLETION_MS, "Timeouts", "capture_completion_ms")

    # Generator
    @classmethod
    def generator_channel(cls) -> str:
        return cls._get_str(cls._DEFAULT_GENERATOR_CHANNEL, "Generator", "channel")

    @classmethod
    def genlock_family(cls) -> str:
        return cls._get_str(cls._DEFAULT_GENLOCK_FAMILY, "Generator", "genlock_family")

    @classmethod
    def force_redundancy(cls) -> bool:
        return cls._get_bool(True, "Generator", "force_redundancy")

    # Capture
    @classmethod
    def capture_name(cls) -> str:
        return cls._get_str(cls._DEFAULT_CAPTURE_NAME, "Capture", "name")

    @classmethod
    def capture_duration(cls) -> int:
        return cls._get_int(cls._DEFAULT_CAPTURE_DURATION, "Capture", "duration")

    @classmethod
    def capture_sfp_a_enabled(cls) -> bool:
        return cls._get_bool(True, "Capture", "sfp_a_enabled")

    @classmethod
    def capture_sfp_b_enabled(cls) -> bool:
        return cls._get_bool(True, "Capture", "sfp_b_enabled")

    @classmethod
    def capture_list_analysis(cls) -> bool:
        return cls._get_bool(True, "Capture", "enable_list_analysis")

    @classmethod
    def connector_kind(cls) -> str:
        return cls._get_str(cls._DEFAULT_CONNECTOR_KIND, "Capture", "connector_kind")

    @classmethod
    def connector_index(cls) -> int:
        return cls._get_int(cls._DEFAULT_CONNECTOR_INDEX, "Capture", "connector_index")

    @classmethod
    def connector_source_id(cls) -> str:
        """Appliance id of the capture source the generator output is wired to."""
        return cls._get_str(cls._DEFAULT_CONNECTOR_SOURCE_ID, "Capture", "connector_source_id")

    # Minimum link rate
    @classmethod
    def active_rate_kind(cls) -> str:
        return cls._get_str(cls._DEFAULT_RATE_KIND, "ActiveRate", "kind")

    @staticmethod
    def _as_rate(rate: Any) -> BitRate:
        if isinstance(rate, (int, float)) and not isinstance(rate, bool):
            return rate
        return float(rate)

    @classmethod
    def active_rates(cls) -> dict[SfpName, BitRate]:
        value: Any = cls._cfg.get("ActiveRate", "rates")
        if not isinstance(value, dict) or not value:
            cls._logger.error(
                "Missing configuration value for '%s'; using default %s",
                cls._config_path("ActiveRate", "rates"),
                cls._DEFAULT_RATES,
            )
            value = cls._DEFAULT_RATES
        try:
            return {SfpName(str(name)): cls._as_rate(rate) for name, rate in value.items()}
        except (TypeError, ValueError):
            cls._logger.error(
                "Invalid rate configuration value for '%s': %r; using default %s",
                cls._config_path("ActiveRate", "rates"),
                value,
                cls._DEFAULT_RATES,
            )
            return {SfpName(name): rate for name, rate in cls._DEFAULT_RATES.items()}

    # Logging
    @classmethod
    def log_level(cls) -> str:
        return cls._get_str(cls._DEFAULT_LOG_LEVEL, "logging", "log_level")

    @classmethod
    def log_dir(cls) -> str:
        return cls._get_str(cls._DEFAULT_LOG_DIR, "logging", "log_dir")

    @classmethod
    def log_filename(cls) -> FileNameStr:
        return cast(FileNameStr, cls._get_str(cls._DEFAULT_LOG_FILENAME, "logging", "log_filename"))

    @classmethod
    def initialize_directories(cls) -> None:
        """
        Create necessary directories if they do not exist.
        """
        Path(cls.log_dir()).mkdir(parents=True, exist_ok=True)

    @classmethod
    def reload(cls) -> None:
        """
        Reload the configuration from disk.
        """
        cls._cfg.reload()
        cls._logger.debug("Configuration reloaded from %s", cls.get_config_path())
