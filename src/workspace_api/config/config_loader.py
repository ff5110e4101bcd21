"""
Configuration loader for the workspace API.
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..v1.latency import FixedLatency, LatencyPolicy, UniformLatency


logger = logging.getLogger(__name__)


class WorkspaceConfig:
    """
    Configuration for the mock engine and the capture tool.

    Loads an optional YAML configuration file on top of the defaults, then
    applies environment variable overrides.
    """

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to YAML config file (optional)
        """
        self.config_path = Path(config_path) if config_path else None
        self.config = self._default_config()
        if self.config_path:
            _deep_merge(self.config, self._load_config())
        self._apply_env_overrides()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        logger.info(f"Loading config from: {self.config_path}")

        with open(self.config_path, "r", encoding="utf-8") as f:
            try:
                config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {self.config_path}: {e}") from e

        if config is not None and not isinstance(config, dict):
            raise ValueError(f"Config file must contain a mapping: {self.config_path}")

        return config or {}

    def _default_config(self) -> Dict[str, Any]:
        """Return default configuration."""
        return {
            "mock_client": {
                # Half-open millisecond range; 0..1 means no delay
                "latency": {
                    "kind": "uniform",
                    "min_ms": 0,
                    "max_ms": 1,
                },
                "seed": None,
                "snapshot_path": None,
                "history_size": 256,
            },
            "capture": {
                "embed_content": False,
                "max_embed_bytes": None,
                "symlinks": "skip",
                "compact": False,
            },
        }

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides to loaded config."""
        mock_client = self.config.setdefault("mock_client", {})

        snapshot_path = os.environ.get("WORKSPACE_API_SNAPSHOT_PATH")
        if snapshot_path:
            mock_client["snapshot_path"] = snapshot_path

        latency_ms = os.environ.get("WORKSPACE_API_LATENCY_MS")
        if latency_ms:
            mock_client["latency"] = {"kind": "fixed", "ms": float(latency_ms)}

        seed = os.environ.get("WORKSPACE_API_SEED")
        if seed:
            mock_client["seed"] = int(seed)

    def get_mock_client_config(self) -> Dict[str, Any]:
        """Get mock engine configuration."""
        return self.config.get("mock_client", {})

    def get_capture_config(self) -> Dict[str, Any]:
        """Get capture tool configuration."""
        return self.config.get("capture", {})

    def build_latency_policy(self) -> LatencyPolicy:
        """
        Build the latency policy described by ``mock_client.latency``.

        Raises:
            ValueError: If the latency kind is unknown or the values are invalid
        """
        latency = self.get_mock_client_config().get("latency") or {}
        kind = latency.get("kind", "uniform")

        if kind == "fixed":
            return FixedLatency.from_ms(float(latency.get("ms", 0)))
        if kind == "uniform":
            return UniformLatency(
                min_ms=int(latency.get("min_ms", 0)),
                max_ms=int(latency.get("max_ms", 1)),
            )
        raise ValueError(f"Unknown latency kind: {kind}")

    def build_capture_options(self):
        """Build CaptureOptions from the ``capture`` section."""
        from ..tools.mock_data_generator import CaptureOptions, SymlinkPolicy

        capture = self.get_capture_config()
        return CaptureOptions(
            embed_content=bool(capture.get("embed_content", False)),
            max_embed_bytes=capture.get("max_embed_bytes"),
            symlink_policy=SymlinkPolicy(capture.get("symlinks", "skip")),
        )

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dotted key."""
        keys = key.split(".")
        value = self.config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

        return value if value is not None else default


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = copy.deepcopy(value)
