"""
Configuration management for gcrec
"""

import json
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from platformdirs import user_config_dir

from gcrecordings.exceptions import ConfigError

# Check YAML availability at module level
try:
    from importlib.util import find_spec

    YAML_AVAILABLE = find_spec("yaml") is not None
except ImportError:
    YAML_AVAILABLE = False


class Config:
    """Configuration loader and validator with multi-source support"""

    REQUIRED_FIELDS = ["genesys_client_id", "genesys_client_secret"]
    OPTIONAL_FIELDS: dict[str, Any] = {
        "genesys_region": None,
        "output_dir": "Recordings",
        "log_level": "INFO",
        "transcode_command": None,
        "poll_max_attempts": 60,
        "poll_interval_seconds": 10.0,
    }

    def __init__(self, env_file: str | None = None):
        # Configuration priority:
        # 1. Explicit config file (JSON/YAML/.env)
        # 2. Environment variables
        # 3. Default config file in the user config directory
        # 4. Defaults

        self.config_dir = Path(user_config_dir("gcrec"))
        config_data: dict[str, Any] = {}

        if env_file is not None:
            config_data = self._load_config_file(env_file)
        else:
            default_config = self._find_default_config()
            if default_config:
                config_data = self._load_config_file(str(default_config))

        prefer_env_over_file = env_file is None

        def _resolve(config_key: str, env_key: str) -> Any:
            config_value = config_data.get(config_key)
            env_value = os.getenv(env_key)
            if prefer_env_over_file:
                return env_value if env_value is not None else config_value
            return config_value if config_value is not None else env_value

        # Store in private variables to prevent accidental exposure in logs/tracebacks
        self._genesys_client_id = _resolve("genesys_client_id", "GENESYS_CLIENT_ID")
        self._genesys_client_secret = _resolve("genesys_client_secret", "GENESYS_CLIENT_SECRET")

        region = _resolve("genesys_region", "GENESYS_REGION")
        self.genesys_region: str | None = (str(region).strip() or None) if region else None

        output_dir_val = _resolve("output_dir", "OUTPUT_DIR") or self.OPTIONAL_FIELDS["output_dir"]
        self.output_dir = Path(str(output_dir_val)).expanduser()
        self.log_level = str(_resolve("log_level", "LOG_LEVEL") or "INFO")

        command = _resolve("transcode_command", "GCREC_TRANSCODE_COMMAND")
        self.transcode_command: str | None = (str(command).strip() or None) if command else None

        self.poll_max_attempts = self._coerce_number(
            _resolve("poll_max_attempts", "GCREC_POLL_ATTEMPTS"),
            "poll_max_attempts",
            int,
            self.OPTIONAL_FIELDS["poll_max_attempts"],
        )
        self.poll_interval_seconds = self._coerce_number(
            _resolve("poll_interval_seconds", "GCREC_POLL_INTERVAL"),
            "poll_interval_seconds",
            float,
            self.OPTIONAL_FIELDS["poll_interval_seconds"],
        )

    @property
    def genesys_client_id(self) -> str | None:
        """OAuth client ID (read-only property)"""
        return self._genesys_client_id

    @property
    def genesys_client_secret(self) -> str | None:
        """OAuth client secret (read-only property)"""
        return self._genesys_client_secret

    def __repr__(self) -> str:
        """
        String representation that excludes credentials

        Prevents accidental credential exposure in logs, tracebacks, and debugging
        """
        configured = bool(self._genesys_client_id and self._genesys_client_secret)
        return (
            f"Config("
            f"genesys_region={self.genesys_region!r}, "
            f"output_dir={self.output_dir!r}, "
            f"log_level={self.log_level!r}, "
            f"credentials={'configured' if configured else 'missing'}"
            f")"
        )

    def clear_credentials(self) -> None:
        """
        Clear sensitive credentials from memory.

        Note: Due to Python's memory management and string immutability,
        this provides best-effort cleanup but cannot guarantee complete
        memory erasure.
        """
        self._genesys_client_id = None
        self._genesys_client_secret = None

    @staticmethod
    def _coerce_number(value: Any, name: str, kind: type, default: Any) -> Any:
        if value is None or value == "":
            return default
        try:
            number = kind(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{name} must be a number, got {value!r}")
        if number <= 0:
            raise ConfigError(f"{name} must be greater than zero, got {value!r}")
        return number

    @staticmethod
    def _is_null_device(path_str: str) -> bool:
        """Return True when the provided path represents the OS null device."""
        normalized = path_str.strip().lower().replace("\\", "/")
        null_candidates = {"/dev/null", "nul", "nul:", os.devnull.lower()}
        return normalized in null_candidates

    def _load_config_file(self, config_path: str) -> dict[str, Any]:
        """
        Load configuration from JSON, YAML or .env file

        Args:
            config_path: Path to config file

        Returns:
            Configuration dictionary (empty for .env files, which populate os.environ)

        Raises:
            ConfigError: If file cannot be loaded or parsed
        """
        if self._is_null_device(config_path):
            return {}

        path = Path(config_path)

        if not path.exists():
            raise ConfigError(
                f"Config file '{config_path}' does not exist. "
                "Provide an existing JSON/YAML/.env file or remove the --config flag."
            )

        if path.suffix.lower() in [".yaml", ".yml"] and not YAML_AVAILABLE:
            raise ConfigError(
                f"Cannot load YAML config file '{path.name}': PyYAML not installed. "
                "Install with: pip install pyyaml"
            )

        try:
            with open(path) as f:
                if path.suffix.lower() == ".json":
                    data = json.load(f)
                elif path.suffix.lower() in [".yaml", ".yml"]:
                    data = self._load_yaml(f)
                else:
                    # Assume .env file
                    load_dotenv(config_path)
                    return {}
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in config file {config_path}: {e}")
        except ConfigError:
            raise
        except Exception as e:
            raise ConfigError(f"Failed to load config file {config_path}: {e}")

        self._validate_schema(data, path)
        return dict(data)

    def _load_yaml(self, file_obj: Any) -> dict[str, Any]:
        import yaml

        try:
            result = yaml.safe_load(file_obj)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}")
        return dict(result) if result else {}

    def _find_default_config(self) -> Path | None:
        """Locate the default config file in the user config directory."""
        for filename in ("config.json", "config.yaml", "config.yml"):
            candidate = self.config_dir / filename
            if candidate.exists():
                return candidate
        return None

    def _validate_schema(self, data: Any, path: Path) -> None:
        """
        Validate configuration schema

        Raises:
            ConfigError: If schema validation fails
        """
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON/YAML object")

        known_keys = set(self.REQUIRED_FIELDS) | set(self.OPTIONAL_FIELDS.keys())
        unknown_keys = set(data.keys()) - known_keys

        if unknown_keys:
            raise ConfigError(
                f"Unknown keys in config file {path}: {', '.join(sorted(unknown_keys))}\n"
                f"Valid keys: {', '.join(sorted(known_keys))}"
            )

        for key in ("genesys_region", "output_dir", "transcode_command"):
            if key in data and not isinstance(data[key], str):
                raise ConfigError(f"{key} must be a string in {path}")

        if "log_level" in data:
            valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
            if str(data["log_level"]).upper() not in valid_levels:
                raise ConfigError(f"log_level must be one of {valid_levels} in {path}")

    def validate(self) -> None:
        """Validate required configuration"""
        missing = []

        if not self.genesys_client_id:
            missing.append("GENESYS_CLIENT_ID")
        if not self.genesys_client_secret:
            missing.append("GENESYS_CLIENT_SECRET")

        if missing:
            raise ConfigError(
                f"Missing required environment variables: {', '.join(missing)}\n"
                "Please set them in .env file or environment"
            )

    def is_valid(self) -> bool:
        """Check if configuration is valid"""
        try:
            self.validate()
            return True
        except ConfigError:
            return False
