from pathlib import Path
from typing import Dict, Any, Optional, List, Callable
from config.types import InterpreterSettings
import logging
import os


class EnvironmentManager:
    """
    Environment manager holding workflow interpreter settings loaded from
    a .env file and the process environment.
    """

    _instance = None

    # Default settings with their types
    DEFAULT_SETTINGS = {
        # Sampling settings
        "sampling_enabled": (True, bool),
        "sampling_max_tokens": (1000, int),
        "sampling_system_prompt": (None, str),
        "sampling_model": (None, str),
        # State store settings
        "state_ttl_seconds": (None, int),
        # Logging
        "log_level": ("INFO", str),
    }

    # Each setting can be set via its uppercase env var, prefixed with WORKFLOW_
    ENV_MAPPING = {f"WORKFLOW_{setting.upper()}": setting for setting in DEFAULT_SETTINGS}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        """Initialize environment with default values"""
        self.env_variables: Dict[str, str] = {}
        self._providers: List[Callable[[], Dict[str, Any]]] = []
        self.settings: Dict[str, Any] = {}
        self.logger = logging.getLogger(__name__)

        for key, (default_value, _) in self.DEFAULT_SETTINGS.items():
            self.settings[key] = default_value

    def _convert_value(self, value: str, target_type: type) -> Any:
        """Convert string value to target type"""
        if target_type == bool:
            return value.lower() == "true"
        return target_type(value)

    def _apply_variable(self, key: str, value: str):
        """Apply a single environment variable to the mapped setting, if any"""
        if key not in self.ENV_MAPPING:
            return

        setting_name = self.ENV_MAPPING[key]
        _, target_type = self.DEFAULT_SETTINGS[setting_name]
        try:
            self.settings[setting_name] = self._convert_value(value, target_type)
        except ValueError as e:
            self.logger.warning(f"Ignoring invalid value for {key}: {e}")

    def _env_file_paths(self) -> List[Path]:
        env_file_paths = [Path.cwd() / ".env"]

        try:
            env_file_paths.append(Path.home() / ".env")
        except (RuntimeError, OSError):
            # Skip home directory if it can't be determined
            pass

        return env_file_paths

    def _load_from_env_file(self):
        """Find and load variables from the first .env file found"""
        for env_path in self._env_file_paths():
            if env_path.exists() and env_path.is_file():
                self.logger.info(f"Loading environment from: {env_path}")
                self._parse_env_file(env_path)
                return

        self.logger.debug("No .env file found, using default workflow settings")

    def _parse_env_file(self, env_file_path: Path):
        """Parse a .env file and load variables into settings"""
        try:
            with open(env_file_path, "r") as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith("#") and "=" in line:
                        key, value = line.split("=", 1)
                        key = key.strip()
                        value = value.strip()

                        # Remove quotes if present
                        if (value.startswith('"') and value.endswith('"')) or (
                            value.startswith("'") and value.endswith("'")
                        ):
                            value = value[1:-1]

                        self.env_variables[key] = value
                        self._apply_variable(key, value)

        except OSError as e:
            self.logger.error(f"Error parsing .env file {env_file_path}: {e}")

    def register_provider(self, provider: Callable[[], Dict[str, Any]]):
        """Register a provider function that returns additional settings"""
        self._providers.append(provider)
        return self

    def load(self):
        """Load all environment information: .env file, OS environment, then providers"""
        self._load_from_env_file()

        for key, value in os.environ.items():
            if key in self.ENV_MAPPING:
                self.env_variables[key] = value
                self._apply_variable(key, value)

        for provider in self._providers:
            try:
                self.update_configuration(provider() or {})
            except Exception as e:
                self.logger.error(f"Error loading from provider: {e}")

        return self

    def get_setting(self, name: str, default: Any = None) -> Any:
        """Get a setting value by name"""
        return self.settings.get(name, default)

    def get_interpreter_settings(self) -> InterpreterSettings:
        """Build validated interpreter settings from the current values"""
        return InterpreterSettings(
            **{key: value for key, value in self.settings.items() if value is not None}
        )

    def get_all_configuration(self) -> Dict[str, Any]:
        """Get every setting with its default and current value"""
        return {
            name: {
                "value": self.settings.get(name),
                "default": default,
                "type": target_type.__name__,
                "env_var": f"WORKFLOW_{name.upper()}",
            }
            for name, (default, target_type) in self.DEFAULT_SETTINGS.items()
        }

    def update_configuration(self, updates: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update settings in memory.

        Returns:
            Dictionary with the updated and rejected setting names
        """
        updated = []
        errors = []

        for name, value in updates.items():
            if name not in self.DEFAULT_SETTINGS:
                errors.append(f"Unknown setting: {name}")
                continue

            _, target_type = self.DEFAULT_SETTINGS[name]
            try:
                if value is not None and isinstance(value, str):
                    value = self._convert_value(value, target_type)
                self.settings[name] = value
                updated.append(name)
            except ValueError as e:
                errors.append(f"Invalid value for {name}: {e}")

        return {"success": not errors, "updated": updated, "errors": errors}

    def reset_setting(self, setting_name: str) -> Dict[str, Any]:
        """Reset a setting to its default value"""
        if setting_name not in self.DEFAULT_SETTINGS:
            return {"success": False, "error": f"Unknown setting: {setting_name}"}

        self.settings[setting_name] = self.DEFAULT_SETTINGS[setting_name][0]
        return {"success": True, "value": self.settings[setting_name]}


# Create singleton instance
env_manager = EnvironmentManager()
