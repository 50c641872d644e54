"""YAML settings for VoiceTask with built-in defaults."""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    "audio": {
        "sample_rate": 16000,
        "chunk_size": 1024,
        "channels": 1,
    },
    "silence": {
        "energy_threshold": 15,
        "duration_ms": 2000,
        "frame_rate": 60,
    },
    "analysis": {
        "fft_size": 256,
        "smoothing": 0.8,
    },
    "gemini": {
        "api_key": "",
        "model": "gemini-2.5-flash",
        "timeout_seconds": None,
    },
    "storage": {
        "data_directory": "data",
        "keep_clips": False,
    },
    "logging": {
        "level": "INFO",
        "file_path": "data/logs/voicetask.log",
        "console_output": True,
    },
}

# Settings holding filesystem paths, resolved against the config file's directory
PATH_KEYS = ("storage.data_directory", "logging.file_path")


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class VoiceTaskConfig:
    """Recorder, parser, storage and logging settings.

    Values are read with dotted keys such as ``'silence.duration_ms'``.
    Anything the YAML file leaves out keeps its value from DEFAULT_CONFIG.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Args:
            config_path: YAML file to load. None means built-in defaults, with
                relative paths taken from the working directory.

        Raises:
            FileNotFoundError: If ``config_path`` does not exist
            ValueError: If the file is not a non-empty YAML mapping
        """
        self.config_file: Optional[Path] = Path(config_path) if config_path else None

        if self.config_file is None:
            logger.info("No configuration file given, using defaults")
            self.config = copy.deepcopy(DEFAULT_CONFIG)
            return

        if not self.config_file.is_file():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        self.config = _merge(DEFAULT_CONFIG, self._read_file())
        base_dir = self.config_file.parent
        for key in PATH_KEYS:
            value = self.get(key)
            if value and not os.path.isabs(value):
                self.set(key, str(base_dir / value))
        logger.info(f"Configuration loaded from {self.config_file}")

    def _read_file(self) -> Dict[str, Any]:
        try:
            loaded = yaml.safe_load(self.config_file.read_text(encoding='utf-8'))
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {self.config_file}: {e}") from e

        if not loaded:
            raise ValueError(f"Configuration file {self.config_file} is empty")
        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration file {self.config_file} must contain a mapping")
        return loaded

    def get(self, key_path: str, default: Any = None) -> Any:
        """Look up a dotted key, returning ``default`` if any part is missing."""
        node: Any = self.config
        for part in key_path.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key_path: str, value: Any) -> None:
        """Assign a dotted key, creating intermediate sections as needed."""
        *parents, leaf = key_path.split('.')
        section = self.config
        for part in parents:
            section = section.setdefault(part, {})
        section[leaf] = value
        logger.debug(f"Config {key_path} = {value!r}")

    def get_api_key(self) -> str:
        """Gemini API key; the GEMINI_API_KEY environment variable wins."""
        return os.environ.get("GEMINI_API_KEY") or self.get('gemini.api_key') or ""

    def get_data_directory(self) -> str:
        return str(Path(self.get('storage.data_directory', 'data')).absolute())
