"""Configuration management for pitchstream components."""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional
import json
import os
from pathlib import Path

from ..logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Thresholds:
    """Acceptance gates applied to every analysis window."""

    power_threshold: float = 1.0  # Minimum window energy (sum of squares)
    clarity_threshold: float = 0.3  # Minimum NSDF peak height

    def __post_init__(self):
        if self.power_threshold < 0:
            raise ValueError("power_threshold must be non-negative")
        if not 0.0 <= self.clarity_threshold <= 1.0:
            raise ValueError("clarity_threshold must be within [0, 1]")


@dataclass(frozen=True)
class PitchConfig:
    """Tunables for the estimation pipeline, fixed once the stream starts."""

    window_size: int = 512
    thresholds: Thresholds = field(default_factory=Thresholds)
    key_maximum_fraction: float = 0.9
    hop_size: Optional[int] = None  # None: advance a full window (no overlap)
    reference_a4: float = 440.0
    emit_silence: bool = False

    def __post_init__(self):
        if self.window_size < 4 or self.window_size % 2:
            raise ValueError(
                f"window_size must be an even number >= 4, got {self.window_size}"
            )
        if self.hop_size is not None and not 1 <= self.hop_size <= self.window_size:
            raise ValueError(
                f"hop_size must be within [1, {self.window_size}], got {self.hop_size}"
            )
        if not 0.0 < self.key_maximum_fraction <= 1.0:
            raise ValueError("key_maximum_fraction must be within (0, 1]")
        if self.reference_a4 <= 0:
            raise ValueError("reference_a4 must be positive")

    @property
    def padding_size(self) -> int:
        return self.window_size // 2

    @property
    def effective_hop_size(self) -> int:
        return self.hop_size or self.window_size

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "PitchConfig":
        """Build a config from a flat dictionary (as stored on disk)."""
        return cls(
            window_size=int(values.get("window_size", 512)),
            thresholds=Thresholds(
                power_threshold=float(values.get("power_threshold", 1.0)),
                clarity_threshold=float(values.get("clarity_threshold", 0.3)),
            ),
            key_maximum_fraction=float(values.get("key_maximum_fraction", 0.9)),
            hop_size=(
                int(values["hop_size"]) if values.get("hop_size") is not None else None
            ),
            reference_a4=float(values.get("reference_a4", 440.0)),
            emit_silence=bool(values.get("emit_silence", False)),
        )


class ConfigManager:
    """Configuration manager for pitchstream components."""

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize the configuration manager.

        Args:
            config_dir: Directory to store configuration files, or None to use default
        """
        if config_dir is None:
            # Use ~/.config/pitchstream by default
            home = os.path.expanduser("~")
            config_dir = os.path.join(home, ".config", "pitchstream")

        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        # Default configurations
        self.default_configs = {
            "pitch_estimator": {
                "window_size": 512,
                "power_threshold": 1.0,
                "clarity_threshold": 0.3,
                "key_maximum_fraction": 0.9,
                "hop_size": None,
                "reference_a4": 440.0,
                "emit_silence": False,
            },
            "audio_input": {
                "device_id": None,
                "sample_rate": 44100,
                "frames_per_buffer": 512,
                "channels": 1,
                "channel": None,
                "sample_format": "float32",
            },
        }

        # Load existing configurations or create default ones
        self.configs = {}
        for config_name, default_config in self.default_configs.items():
            self.configs[config_name] = self.load_config(config_name, default_config)

    def load_config(self, name: str, default_config: Dict[str, Any]) -> Dict[str, Any]:
        """Load configuration from file or create default.

        Args:
            name: Configuration name
            default_config: Default configuration to use if file doesn't exist

        Returns:
            Configuration dictionary
        """
        config_file = self.config_dir / f"{name}.json"

        if config_file.exists():
            try:
                with open(config_file, "r") as f:
                    config = json.load(f)
                logger.info(f"Loaded configuration from {config_file}")
            except (OSError, json.JSONDecodeError) as e:
                logger.error(f"Error loading configuration from {config_file}: {e}")
                return default_config.copy()

            # Ensure all default keys are present
            for key, value in default_config.items():
                if key not in config:
                    config[key] = value
            return config

        # Create default configuration
        config = default_config.copy()
        self.save_config(name, config)
        return config

    def save_config(self, name: str, config: Dict[str, Any]) -> bool:
        """Save configuration to file.

        Args:
            name: Configuration name
            config: Configuration dictionary

        Returns:
            True if saved successfully, False otherwise
        """
        config_file = self.config_dir / f"{name}.json"

        try:
            with open(config_file, "w") as f:
                json.dump(config, f, indent=2)
            logger.debug(f"Saved configuration to {config_file}")
            return True
        except OSError as e:
            logger.error(f"Error saving configuration to {config_file}: {e}")
            return False

    def get_config(self, name: str) -> Dict[str, Any]:
        """Get configuration by name.

        Args:
            name: Configuration name

        Returns:
            Configuration dictionary
        """
        return self.configs.get(name, {}).copy()

    def pitch_config(self, **overrides) -> PitchConfig:
        """Build the frozen estimator configuration.

        Args:
            **overrides: Values taking precedence over the stored file; None values are ignored

        Returns:
            PitchConfig for the lifetime of the stream
        """
        values = self.get_config("pitch_estimator")
        values.update({k: v for k, v in overrides.items() if v is not None})
        return PitchConfig.from_dict(values)

    def audio_input_config(self, **overrides) -> Dict[str, Any]:
        """Get the audio input configuration with non-None overrides applied."""
        values = self.get_config("audio_input")
        values.update({k: v for k, v in overrides.items() if v is not None})
        return values
