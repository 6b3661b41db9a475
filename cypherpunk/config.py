"""
Cypherpunk Configuration Management

Handles loading and validation of configuration from TOML file.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

import toml

from . import WILDCARD, DEFAULT_REDUNDANCY, MAX_CHAIN_LENGTH
from .errors import ConfigError


# Default configuration path
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "cypherpunk" / "config.toml"

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")
BACKEND_TYPES = ("gpg", "sealed")
OUTPUT_FORMATS = ("native", "mailto", "eml")


@dataclass
class ChainConfig:
    """Chain selection configuration."""
    default: List[str] = field(default_factory=lambda: [WILDCARD, WILDCARD])
    redundancy: int = DEFAULT_REDUNDANCY
    max_length: int = MAX_CHAIN_LENGTH  # hops per chain
    min_uptime: float = 0.0  # percent, wildcard pool filter
    max_latency: int = 0  # seconds, 0 = no limit
    latent_time: str = ""  # e.g. "2:00", added to every middle hop


@dataclass
class BackendConfig:
    """Encryption backend configuration."""
    type: str = "gpg"
    gpg_binary: str = "gpg"
    timeout: float = 60.0  # seconds per gpg invocation
    temp_dir: Optional[Path] = None
    quiet: bool = True


@dataclass
class OutputConfig:
    """Output configuration."""
    format: str = "native"
    directory: Optional[Path] = None  # None = stdout


@dataclass
class Config:
    """
    Complete client configuration.
    """
    chain: ChainConfig = field(default_factory=ChainConfig)
    backend: BackendConfig = field(default_factory=BackendConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    # Remailer directory file (TOML or rlist.txt)
    directory: Optional[Path] = None

    # Paths
    config_path: Path = field(default_factory=lambda: DEFAULT_CONFIG_PATH)

    # Logging
    log_level: str = "WARNING"

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> 'Config':
        """
        Load configuration from file.

        A missing file yields the defaults; a file that exists but cannot
        be parsed is an error.

        Args:
            config_path: Path to config file (default: ~/.config/cypherpunk/config.toml)

        Returns:
            Loaded configuration

        Raises:
            ConfigError: If the file is not valid TOML or has bad values
        """
        path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        config = cls()
        config.config_path = path

        if not path.exists():
            return config

        try:
            data = toml.load(path)
        except (toml.TomlDecodeError, OSError) as e:
            raise ConfigError(f"Cannot read configuration {path}: {e}")

        config._apply_dict(data)
        return config

    def _apply_dict(self, data: Dict[str, Any]) -> None:
        """Apply dictionary data to config."""
        try:
            # Top-level settings
            if "log_level" in data:
                self.log_level = str(data["log_level"]).upper()
            if "directory" in data:
                self.directory = Path(data["directory"]).expanduser()

            # Chain config
            if "chain" in data:
                c = data["chain"]
                if "default" in c:
                    self.chain.default = [str(token) for token in c["default"]]
                if "redundancy" in c:
                    self.chain.redundancy = int(c["redundancy"])
                if "max_length" in c:
                    self.chain.max_length = int(c["max_length"])
                if "min_uptime" in c:
                    self.chain.min_uptime = float(c["min_uptime"])
                if "max_latency" in c:
                    self.chain.max_latency = int(c["max_latency"])
                if "latent_time" in c:
                    self.chain.latent_time = str(c["latent_time"])

            # Backend config
            if "backend" in data:
                b = data["backend"]
                if "type" in b:
                    self.backend.type = str(b["type"]).lower()
                if "gpg_binary" in b:
                    self.backend.gpg_binary = str(b["gpg_binary"])
                if "timeout" in b:
                    self.backend.timeout = float(b["timeout"])
                if b.get("temp_dir"):
                    self.backend.temp_dir = Path(b["temp_dir"]).expanduser()
                if "quiet" in b:
                    self.backend.quiet = bool(b["quiet"])

            # Output config
            if "output" in data:
                o = data["output"]
                if "format" in o:
                    self.output.format = str(o["format"]).lower()
                if o.get("directory"):
                    self.output.directory = Path(o["directory"]).expanduser()
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid value in {self.config_path}: {e}")

    def validate(self) -> None:
        """
        Validate configuration.

        Raises:
            ConfigError: If configuration is invalid
        """
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"Invalid log level: {self.log_level}")

        if self.chain.redundancy < 1:
            raise ConfigError(f"Invalid redundancy: {self.chain.redundancy}")

        if self.chain.max_length < 1:
            raise ConfigError(f"Invalid maximum chain length: {self.chain.max_length}")

        if len(self.chain.default) > self.chain.max_length:
            raise ConfigError(
                f"Default chain has {len(self.chain.default)} hops, "
                f"at most {self.chain.max_length} allowed"
            )

        if not 0.0 <= self.chain.min_uptime <= 100.0:
            raise ConfigError(f"Invalid minimum uptime: {self.chain.min_uptime}")

        if self.chain.max_latency < 0:
            raise ConfigError(f"Invalid maximum latency: {self.chain.max_latency}")

        if self.backend.type not in BACKEND_TYPES:
            raise ConfigError(f"Unknown backend type: {self.backend.type}")

        if self.backend.timeout <= 0:
            raise ConfigError(f"Invalid backend timeout: {self.backend.timeout}")

        if self.output.format not in OUTPUT_FORMATS:
            raise ConfigError(f"Unknown output format: {self.output.format}")
