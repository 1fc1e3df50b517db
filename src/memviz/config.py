"""Configuration system for memviz."""

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path

import tomlkit

MIN_INTERVAL = 0.1  # Seconds
LOG_LEVELS = ("debug", "info", "warning", "error")


@dataclass
class SourceConfig:
    """Where accounting counters are read from."""

    procfs_path: str = "/proc"


@dataclass
class ProcessesConfig:
    """Process table panel configuration."""

    interval: float = 1.0  # Seconds between sampling passes
    visible_rows: int = 18  # Rows shown before scrolling


@dataclass
class MemoryConfig:
    """Memory gauge panel configuration."""

    interval: float = 1.0


@dataclass
class RamConfig:
    """RAM history panel configuration."""

    interval: float = 1.0
    history_size: int = 100  # Points kept for the time series


@dataclass
class LoggingConfig:
    """Log file configuration."""

    level: str = "info"
    max_bytes: int = 5 * 1024 * 1024  # Max log file size (5MB)
    backup_count: int = 3  # Number of backup log files to keep


def _dataclass_to_table(obj: object) -> tomlkit.items.Table:
    """Convert a dataclass instance to a tomlkit Table recursively."""
    table = tomlkit.table()
    for f in fields(obj):  # type: ignore[arg-type]
        value = getattr(obj, f.name)
        if is_dataclass(value) and not isinstance(value, type):
            table.add(f.name, _dataclass_to_table(value))
        else:
            table.add(f.name, value)
    return table


def _check_number(
    key: str, value: object, minimum: float, integer: bool = False
) -> int | float:
    """Validate a numeric setting and return it as a plain int or float."""
    kinds = int if integer else (int, float)
    # bool is an int subclass, but `interval = true` is a mistake
    if isinstance(value, bool) or not isinstance(value, kinds):
        expected = "an integer" if integer else "a number"
        raise ValueError(f"{key} must be {expected}, got {value!r}")
    if value < minimum:
        raise ValueError(f"{key} must be >= {minimum}, got {value}")
    return int(value) if integer else float(value)


def _check_interval(section: str, value: object) -> float:
    return _check_number(f"{section}.interval", value, MIN_INTERVAL)


def _section(data: Mapping, name: str) -> Mapping:
    """Return one top-level table, empty if absent."""
    section = data.get(name, {})
    if not isinstance(section, Mapping):
        raise ValueError(f"[{name}] must be a table, got {section!r}")
    return section


@dataclass
class Config:
    """Main configuration container."""

    source: SourceConfig = field(default_factory=SourceConfig)
    processes: ProcessesConfig = field(default_factory=ProcessesConfig)
    memory: MemoryConfig = field(default_factory=MemoryConfig)
    ram: RamConfig = field(default_factory=RamConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def config_dir(self) -> Path:
        """Configuration directory."""
        return Path.home() / ".config" / "memviz"

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.config_dir / "config.toml"

    @property
    def state_dir(self) -> Path:
        """State directory for logs."""
        return Path.home() / ".local" / "state" / "memviz"

    @property
    def log_path(self) -> Path:
        """Log file path."""
        return self.state_dir / "memviz.log"

    def to_toml(self) -> str:
        """Render the whole config as a TOML document."""
        doc = tomlkit.document()
        for name in ("source", "processes", "memory", "ram", "logging"):
            doc.add(name, _dataclass_to_table(getattr(self, name)))
            doc.add(tomlkit.nl())
        return tomlkit.dumps(doc)

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_toml())

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """
        Load config from TOML file, returning defaults for missing values.

        Raises:
            ValueError: The file cannot be parsed or holds an invalid value.
        """
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path) as f:
                data = tomlkit.load(f)
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        source_data = _section(data, "source")
        processes_data = _section(data, "processes")
        memory_data = _section(data, "memory")
        ram_data = _section(data, "ram")
        logging_data = _section(data, "logging")

        return cls(
            source=SourceConfig(
                procfs_path=str(source_data.get("procfs_path", defaults.source.procfs_path)),
            ),
            processes=_load_processes_config(processes_data),
            memory=MemoryConfig(
                interval=_check_interval(
                    "memory", memory_data.get("interval", defaults.memory.interval)
                ),
            ),
            ram=_load_ram_config(ram_data),
            logging=_load_logging_config(logging_data),
        )


def _load_processes_config(data: Mapping) -> ProcessesConfig:
    """Load processes config from TOML data."""
    d = ProcessesConfig()
    return ProcessesConfig(
        interval=_check_interval("processes", data.get("interval", d.interval)),
        visible_rows=_check_number(
            "processes.visible_rows", data.get("visible_rows", d.visible_rows), 1, integer=True
        ),
    )


def _load_ram_config(data: Mapping) -> RamConfig:
    """Load RAM history config from TOML data."""
    d = RamConfig()
    return RamConfig(
        interval=_check_interval("ram", data.get("interval", d.interval)),
        history_size=_check_number(
            "ram.history_size", data.get("history_size", d.history_size), 1, integer=True
        ),
    )


def _load_logging_config(data: Mapping) -> LoggingConfig:
    """Load logging config from TOML data."""
    d = LoggingConfig()
    level = str(data.get("level", d.level)).lower()
    if level not in LOG_LEVELS:
        raise ValueError(f"Invalid logging.level: {level!r}. Must be one of {LOG_LEVELS}")
    return LoggingConfig(
        level=level,
        max_bytes=_check_number(
            "logging.max_bytes", data.get("max_bytes", d.max_bytes), 0, integer=True
        ),
        backup_count=_check_number(
            "logging.backup_count", data.get("backup_count", d.backup_count), 0, integer=True
        ),
    )
