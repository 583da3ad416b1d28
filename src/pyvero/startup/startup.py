# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

from pyvero.config.log_config import LoggerConfigurator
from pyvero.config.system_config_settings import SystemConfigSettings


class StartUp:
    """
    Class to handle the startup process of the pyvero demos.
    It prepares the log directory and configures the root logger.
    """

    @classmethod
    def initialize(cls, log_level: str | None = None, to_console: bool = True) -> LoggerConfigurator:
        """
        Initialize the system configuration settings and set up logging.
        This method should be called once, before the first appliance call.
        """
        SystemConfigSettings.initialize_directories()

        return LoggerConfigurator(SystemConfigSettings.log_dir(),
                                  SystemConfigSettings.log_filename(),
                                  log_level or SystemConfigSettings.log_level(),
                                  to_console=to_console)
