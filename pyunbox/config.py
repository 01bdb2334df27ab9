"""Configuration system for PyUnbox.
Supports TOML configuration files with project-level and user-level settings.
"""
from __future__ import annotations
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any
from pyunbox.core.values import UNBOXABLE_KINDS, AbstractValueKind
from pyunbox.logging import LogLevel, UnboxLogger, configure_logging, get_logger
CONFIG_FILES = [
    "pyunbox.toml",
    ".pyunbox.toml",
    "pyproject.toml",
]
class _Section:
    """A ``[tool.pyunbox.<name>]`` table."""
    name = ""
    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
    def update(self, data: dict[str, Any]) -> None:
        """Apply the keys of a parsed table; unknown or mistyped keys are skipped with a warning."""
        for f in fields(self):
            if f.name not in data:
                continue
            value = data[f.name]
            current = getattr(self, f.name)
            if isinstance(current, list):
                value = list(value) if isinstance(value, (list, tuple)) else None
            elif type(value) is not type(current):
                value = None
            if value is None:
                get_logger().warning(f"Ignoring [{self.name}] {f.name} = {data[f.name]!r}", category="config")
                continue
            setattr(self, f.name, value)
        for key in data.keys() - {f.name for f in fields(self)}:
            get_logger().warning(f"Unknown option [{self.name}] {key}", category="config")
@dataclass
class InterpreterConfig(_Section):
    """Budgets and precision knobs of the abstract interpreter."""
    name = "interpreter"
    max_iterations: int = 100000
    max_stack_depth: int = 1024
    prune_constant_branches: bool = True
    def __post_init__(self) -> None:
        self.validate()
    def validate(self) -> None:
        for key in ("max_iterations", "max_stack_depth"):
            if getattr(self, key) < 1:
                raise ValueError(f"{key} must be positive")
@dataclass
class EscapeConfig(_Section):
    """Which values the escape analysis may keep unboxed."""
    name = "escape"
    enabled: bool = True
    unbox_kinds: list[str] = field(
        default_factory=lambda: sorted(kind.name.lower() for kind in UNBOXABLE_KINDS)
    )
    def kinds(self) -> frozenset[AbstractValueKind]:
        """Kinds allowed to live unboxed.
        Raises:
            ValueError: If a configured kind has no native representation.
        """
        if not self.enabled:
            return frozenset()
        kinds = set()
        for name in self.unbox_kinds:
            kind = AbstractValueKind.__members__.get(name.upper())
            if kind not in UNBOXABLE_KINDS:
                raise ValueError(f"Kind cannot be unboxed: {name}")
            kinds.add(kind)
        return frozenset(kinds)
@dataclass
class OutputConfig(_Section):
    """Logging verbosity and report naming."""
    name = "output"
    log_level: str = "normal"
    color: bool = True
    graph_name: str = "G"
    def level(self) -> LogLevel:
        return LogLevel[self.log_level.upper()]
@dataclass
class UnboxConfig:
    """Main configuration for PyUnbox."""
    interpreter: InterpreterConfig = field(default_factory=InterpreterConfig)
    escape: EscapeConfig = field(default_factory=EscapeConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    project_root: Path | None = None
    config_file: Path | None = None
    def sections(self) -> list[_Section]:
        return [self.interpreter, self.escape, self.output]
    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {section.name: section.to_dict() for section in self.sections()}
    def to_toml(self) -> str:
        """Generate TOML configuration string."""
        lines = ["[tool.pyunbox]"]
        for section in self.sections():
            lines.append("")
            lines.append(f"[tool.pyunbox.{section.name}]")
            for key, value in section.to_dict().items():
                lines.append(f"{key} = {_toml_value(value)}")
        return "\n".join(lines) + "\n"
    def configure_logging(self) -> UnboxLogger:
        """Install a global logger following the ``[output]`` table."""
        return configure_logging(level=self.output.level(), color=self.output.color)
def _toml_value(value: Any) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, list):
        return "[" + ", ".join(_toml_value(v) for v in value) + "]"
    if isinstance(value, str):
        return f'"{value}"'
    return str(value)
def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Find configuration file by walking up directory tree, then in the home directory."""
    current = (start_dir or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        for config_name in CONFIG_FILES:
            config_path = directory / config_name
            if config_path.exists():
                return config_path
    for config_name in (".pyunbox.toml", "pyunbox.toml"):
        config_path = Path.home() / config_name
        if config_path.exists():
            return config_path
    return None
def load_config(
    config_path: Path | None = None,
    start_dir: Path | None = None,
) -> UnboxConfig:
    """Load configuration from file or use defaults.
    Args:
        config_path: Explicit path to config file
        start_dir: Directory to start searching for config
    Returns:
        Loaded configuration; defaults when no file is found or it cannot be parsed
    """
    config = UnboxConfig()
    if config_path is None:
        config_path = find_config_file(start_dir)
    if config_path is None or not config_path.exists():
        return config
    config.config_file = config_path
    config.project_root = config_path.parent
    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        get_logger().warning(f"Failed to parse config file {config_path}: {e}", category="config")
        return config
    if config_path.name == "pyproject.toml":
        unbox_data = data.get("tool", {}).get("pyunbox", {})
    else:
        unbox_data = data.get("tool", {}).get("pyunbox", data)
    for section in config.sections():
        if section.name in unbox_data:
            section.update(unbox_data[section.name])
    config.interpreter.validate()
    return config
def generate_default_config() -> str:
    """Generate default configuration file content."""
    return UnboxConfig().to_toml()
def init_config(directory: Path | None = None) -> Path:
    """Initialize a new configuration file in the given directory.
    Args:
        directory: Directory to create config in (default: current)
    Returns:
        Path to created config file
    Raises:
        FileExistsError: If the directory already has a ``pyunbox.toml``
    """
    config_path = (directory or Path.cwd()) / "pyunbox.toml"
    if config_path.exists():
        raise FileExistsError(f"Config file already exists: {config_path}")
    config_path.write_text(generate_default_config(), encoding="utf-8")
    return config_path
__all__ = [
    "UnboxConfig",
    "InterpreterConfig",
    "EscapeConfig",
    "OutputConfig",
    "load_config",
    "find_config_file",
    "generate_default_config",
    "init_config",
]
