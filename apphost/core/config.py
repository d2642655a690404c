"""
Configuration management for AppHost.
Loads settings from config.json and provides access to configuration values.
"""

import copy
import json
import os
import logging
from typing import Dict, Any


DEFAULT_CONFIG: Dict[str, Any] = {
    "programs_file": "programs.json",
    "logs_path": "logs/",
    "log_level": "INFO",
    "embedding": {
        "poll_interval_ms": 100,
        "window_timeout_ms": 5000,
        "input_idle_ms": 0,
        "exit_poll_interval_ms": 250,
        "kill_grace_s": 2.0
    }
}


class Config:
    """
    Configuration manager for AppHost.
    Loads settings from config.json and provides typed access.
    """

    def __init__(self, config_path: str = "config.json"):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to configuration JSON file
        """
        self.logger = logging.getLogger("apphost.Config")
        self.config_path = config_path
        self.config: Dict[str, Any] = {}
        self.load()

    def load(self) -> bool:
        """
        Load configuration from JSON file.
        Creates default config if file doesn't exist.

        Returns:
            True if loaded successfully, False otherwise
        """
        try:
            if os.path.exists(self.config_path):
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    self.config = json.load(f)
                if not isinstance(self.config, dict):
                    raise ValueError("configuration root must be a JSON object")
                self.logger.info(f"Configuration loaded from {self.config_path}")
                return True
            else:
                self.logger.warning(f"Config file not found: {self.config_path}, using defaults")
                self._create_default_config()
                return False
        except Exception as e:
            self.logger.error(f"Error loading configuration: {e}", exc_info=True)
            self.config = copy.deepcopy(DEFAULT_CONFIG)
            return False

    def _create_default_config(self):
        """Create default configuration."""
        self.config = copy.deepcopy(DEFAULT_CONFIG)
        self.save()
        self.logger.info("Created default configuration file")

    def save(self) -> bool:
        """
        Save current configuration to file.

        Returns:
            True if saved successfully, False otherwise
        """
        try:
            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(self.config, f, indent=2, ensure_ascii=False)
            self.logger.info(f"Configuration saved to {self.config_path}")
            return True
        except Exception as e:
            self.logger.error(f"Error saving configuration: {e}", exc_info=True)
            return False

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation (e.g., "embedding.window_timeout_ms").

        Args:
            key: Configuration key (supports dot notation for nested keys)
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> bool:
        """
        Set configuration value using dot notation.

        Args:
            key: Configuration key (supports dot notation for nested keys)
            value: Value to set

        Returns:
            True if set successfully, False otherwise
        """
        try:
            keys = key.split('.')
            config = self.config

            # Navigate to parent dict
            for k in keys[:-1]:
                if k not in config:
                    config[k] = {}
                config = config[k]

            # Set value
            config[keys[-1]] = value
            return True
        except Exception as e:
            self.logger.error(f"Error setting configuration: {e}", exc_info=True)
            return False

    # Convenience properties
    @property
    def programs_file(self) -> str:
        """Get program list path."""
        return self.get("programs_file", "programs.json")

    @property
    def logs_path(self) -> str:
        """Get logs path."""
        return self.get("logs_path", "logs/")

    @property
    def log_level(self) -> str:
        """Get log level name."""
        return str(self.get("log_level", "INFO"))

    @property
    def poll_interval_ms(self) -> int:
        """Get window polling interval."""
        return int(self.get("embedding.poll_interval_ms", 100))

    @property
    def window_timeout_ms(self) -> int:
        """Get how long to wait for a window before giving up."""
        return int(self.get("embedding.window_timeout_ms", 5000))

    @property
    def input_idle_ms(self) -> int:
        """Get input-idle grace period (0 disables it)."""
        return int(self.get("embedding.input_idle_ms", 0))

    @property
    def exit_poll_interval_ms(self) -> int:
        """Get interval of the process-exit watchdog."""
        return int(self.get("embedding.exit_poll_interval_ms", 250))

    @property
    def kill_grace_s(self) -> float:
        """Get grace period before force-killing at shutdown."""
        return float(self.get("embedding.kill_grace_s", 2.0))
