"""
Configuration service for MosaicShot.

This module handles loading, saving, and managing editing defaults
(colours, stroke thickness, font, mosaic block size, starting tool).
Configuration is stored as JSON in ~/.config/mosaicshot/config.json following
the XDG Base Directory Specification.
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, Optional

from PySide6.QtGui import QColor

from mosaicshot.editor.mosaic import DEFAULT_BLOCK_SIZE, clamp_block_size
from mosaicshot.services.logging_service import get_logger

# Default configuration directory following XDG Base Directory Specification
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "mosaicshot"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"

# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    # Rectangle / ellipse outline
    "stroke_color": "#ff0000",
    "stroke_thickness": 2,
    # Text annotations
    "text_color": "#ff0000",
    "font_family": "Arial",
    "font_size": 12,
    # Mosaic block edge in pixels, always within [10, 50]
    "mosaic_block_size": DEFAULT_BLOCK_SIZE,
    # Tool active when an editing session starts: none/rectangle/ellipse/text/mosaic
    "default_tool": "none",
    "log_level": "info",
}


class ConfigService:
    """
    Service for managing application configuration.

    Handles loading, saving, and accessing configuration values.
    Provides sensible defaults when config file is missing or corrupted.
    """

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """
        Initialize the ConfigService.

        Args:
            config_path: Optional path to config file. Defaults to
                        ~/.config/mosaicshot/config.json
        """
        self._logger = get_logger(__name__)
        self._config_path = config_path or DEFAULT_CONFIG_FILE
        self._config: Dict[str, Any] = {}

        self._load()

    @property
    def path(self) -> Path:
        return self._config_path

    def _load(self) -> None:
        """Load configuration from file, using defaults if needed."""
        self._config = copy.deepcopy(DEFAULT_CONFIG)

        if not self._config_path.exists():
            self._logger.info(
                f"Config file not found at {self._config_path}. Using defaults."
            )
            self._save_to_file()
            return

        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                loaded_config = json.load(f)

            if not isinstance(loaded_config, dict):
                raise ValueError("Config file does not contain a valid JSON object")

            # Loaded values override defaults; re-save so new keys are persisted
            self._config.update(loaded_config)
            self._logger.info(f"Configuration loaded from {self._config_path}")
            self._save_to_file()

        except (json.JSONDecodeError, ValueError) as e:
            self._logger.warning(
                f"Config file corrupted or invalid: {e}. Recreating with defaults."
            )
            self._config = copy.deepcopy(DEFAULT_CONFIG)
            self._save_to_file()

        except (OSError, PermissionError) as e:
            self._logger.warning(
                f"Could not read config file: {e}. Using defaults."
            )

    def _save_to_file(self) -> None:
        """Save current configuration to file."""
        try:
            self._config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self._config_path, "w", encoding="utf-8") as f:
                json.dump(self._config, f, indent=2)

            self._logger.debug(f"Configuration saved to {self._config_path}")

        except (OSError, PermissionError) as e:
            self._logger.error(f"Could not save config file: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: The configuration key to retrieve.
            default: Default value if key doesn't exist.

        Returns:
            The configuration value, or default if not found.
        """
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value (in memory only).

        Call save() to persist changes to disk.
        """
        if key == "mosaic_block_size":
            value = clamp_block_size(value)
        self._config[key] = value
        self._logger.debug(f"Config key '{key}' set to '{value}'")

    def save(self) -> None:
        """Persist current configuration to disk."""
        self._save_to_file()

    def _color(self, key: str) -> QColor:
        color = QColor(str(self.get(key, DEFAULT_CONFIG[key])))
        if not color.isValid():
            self._logger.warning(f"Invalid colour for '{key}', using default")
            color = QColor(DEFAULT_CONFIG[key])
        return color

    # ─── Shape Settings ───────────────────────────────────────────────────

    @property
    def stroke_color(self) -> QColor:
        return self._color("stroke_color")

    @property
    def stroke_thickness(self) -> int:
        return max(1, int(self.get("stroke_thickness", 2)))

    # ─── Text Settings ────────────────────────────────────────────────────

    @property
    def text_color(self) -> QColor:
        return self._color("text_color")

    @property
    def font_family(self) -> str:
        return str(self.get("font_family", "Arial"))

    @property
    def font_size(self) -> int:
        return max(1, int(self.get("font_size", 12)))

    # ─── Mosaic Settings ──────────────────────────────────────────────────

    @property
    def mosaic_block_size(self) -> int:
        """Mosaic block size, clamped into the supported range."""
        raw = self.get("mosaic_block_size", DEFAULT_BLOCK_SIZE)
        try:
            size = int(raw)
        except (TypeError, ValueError):
            self._logger.warning(f"Invalid mosaic_block_size {raw!r}, using default")
            return DEFAULT_BLOCK_SIZE

        clamped = clamp_block_size(size)
        if clamped != size:
            self._logger.warning(
                f"mosaic_block_size {size} out of range, clamped to {clamped}"
            )
        return clamped

    # ─── General Settings ─────────────────────────────────────────────────

    @property
    def default_tool(self) -> str:
        return str(self.get("default_tool", "none")).lower()

    @property
    def log_level(self) -> str:
        return str(self.get("log_level", "info"))
