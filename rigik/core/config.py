"""Configuration management system"""

from pathlib import Path
from typing import Any, List, Optional
import yaml


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class Config:
    """Centralized configuration manager with dot-notation access."""

    _instance: Optional["Config"] = None
    _config: dict = {}

    def __new__(cls, config_path: Optional[str] = None):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[str] = None):
        if self._initialized and config_path is None:
            return

        if config_path is None:
            config_path = self._find_config()

        self._load(config_path)
        self._initialized = True

    def _find_config(self) -> str:
        """Find config.yaml in the working directory or project root."""
        cwd_config = Path.cwd() / "config.yaml"
        if cwd_config.exists():
            return str(cwd_config)

        current = Path(__file__).parent
        for _ in range(5):
            config_file = current / "config.yaml"
            if config_file.exists():
                return str(config_file)
            current = current.parent

        raise FileNotFoundError("config.yaml not found")

    def _load(self, config_path: str) -> None:
        """Load configuration from YAML file."""
        with open(config_path, "r") as f:
            self._config = yaml.safe_load(f) or {}
        self._config_path = config_path

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load(self._config_path)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get config value using dot notation.

        Example:
            config.get("ik.iterations", 8)
            config.get("ik.priority_weights.high")
        """
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set config value using dot notation (runtime only, not persisted)."""
        keys = key.split(".")
        config = self._config

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    def save(self, path: Optional[str] = None) -> None:
        """Save current configuration to file."""
        save_path = path or self._config_path
        with open(save_path, "w") as f:
            yaml.dump(self._config, f, default_flow_style=False)

    @property
    def app(self) -> dict:
        return self._config.get("app", {})

    @property
    def ik(self) -> dict:
        return self._config.get("ik", {})

    @property
    def animation(self) -> dict:
        return self._config.get("animation", {})

    @property
    def skeleton(self) -> dict:
        return self._config.get("skeleton", {})

    @property
    def constraints(self) -> List[dict]:
        return self._config.get("constraints", []) or []

    def validate_ik(self) -> None:
        """
        Check the values present in the ``ik`` section.

        Raises:
            ValueError: If a value has the wrong type or is out of range
        """
        ik = self._config.get("ik") or {}
        if not isinstance(ik, dict):
            raise ValueError("ik section must be a mapping")

        iterations = ik.get("iterations", 0)
        if isinstance(iterations, bool) or not isinstance(iterations, int) or iterations < 0:
            raise ValueError(f"ik.iterations must be a non-negative integer, got {iterations!r}")

        step_size = ik.get("step_size", 1.0)
        if not _is_number(step_size) or step_size <= 0:
            raise ValueError(f"ik.step_size must be a positive number, got {step_size!r}")

        for key in ("reference_weight", "driven_threshold"):
            value = ik.get(key, 0.0)
            if not _is_number(value) or value < 0:
                raise ValueError(f"ik.{key} must be a non-negative number, got {value!r}")

        weights = ik.get("priority_weights") or {}
        if not isinstance(weights, dict):
            raise ValueError("ik.priority_weights must be a mapping")
        unknown = set(weights) - {"high", "low"}
        if unknown:
            raise ValueError(f"Unknown priorities in ik.priority_weights: {sorted(unknown)}")
        for key, value in weights.items():
            if not _is_number(value) or value < 0:
                raise ValueError(f"ik.priority_weights.{key} must be a non-negative number, got {value!r}")
        if "high" in weights and "low" in weights and weights["high"] <= weights["low"]:
            raise ValueError(
                "ik.priority_weights.high must be greater than ik.priority_weights.low"
            )

    def __repr__(self) -> str:
        return f"Config({self._config_path})"
