"""Configuration classes for renumbering-invariance studies."""

import json
import logging
import math
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import IO, Any, Callable, Dict, List, Optional, Tuple, Union

import yaml

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class MeshConfig:
    """Configuration of the coarse mesh."""
    dim: int = 2
    left: float = -1.0
    right: float = 1.0
    initial_refinements: int = 1
    colorize: bool = False
    limit_level_difference_at_vertices: bool = True

    def validate(self) -> None:
        """Validate mesh configuration."""
        if self.dim not in (1, 2, 3):
            raise ConfigurationError(f"Unsupported dimension: {self.dim}")

        if self.right <= self.left:
            raise ConfigurationError("Invalid domain bounds")

        if self.initial_refinements < 0:
            raise ConfigurationError("Initial refinements must be non-negative")


@dataclass
class ElementConfig:
    """Configuration of the finite element."""
    degree: int = 1
    n_components: int = 2

    def validate(self) -> None:
        """Validate element configuration."""
        if self.degree < 1:
            raise ConfigurationError("Element degree must be at least 1")

        if self.n_components < 1:
            raise ConfigurationError("Element needs at least one component")


@dataclass
class RefinementConfig:
    """Configuration of the refinement cycles."""
    cycles: int = 6
    radius: float = 0.25 / math.pi

    def validate(self) -> None:
        """Validate refinement configuration."""
        if self.cycles < 1:
            raise ConfigurationError("Need at least one refinement cycle")

        if self.radius <= 0:
            raise ConfigurationError("Refinement radius must be positive")


@dataclass
class BoundaryConfig:
    """Boundary ids constrained to zero."""
    constrained_ids: List[int] = field(default_factory=lambda: [0])
    component_mask: Optional[List[bool]] = None

    def validate(self) -> None:
        """Validate boundary configuration."""
        if any(i < 0 for i in self.constrained_ids):
            raise ConfigurationError("Boundary ids must be non-negative")


@dataclass
class RenumberingConfig:
    """Renumbering applied to the second dof handler."""
    strategy: str = "component_wise"
    component_order: Optional[List[int]] = None
    reverse: bool = False
    seed: int = 0

    def validate(self) -> None:
        """Validate renumbering configuration."""
        valid_strategies = ["natural", "component_wise", "cuthill_mckee", "random"]
        if self.strategy not in valid_strategies:
            raise ConfigurationError(f"Invalid renumbering strategy: {self.strategy}")

    def strategy_options(self) -> Dict[str, Any]:
        """Keyword arguments understood by the selected strategy."""
        if self.strategy == "component_wise":
            return {"component_order": self.component_order}
        if self.strategy == "cuthill_mckee":
            return {"reverse": self.reverse}
        if self.strategy == "random":
            return {"seed": self.seed}
        return {}


@dataclass
class OutputConfig:
    """Configuration of written results."""
    directory: str = "output"
    gnuplot: bool = False
    plots: bool = False

    def validate(self) -> None:
        """Validate output configuration."""
        if not self.directory:
            raise ConfigurationError("Output directory must not be empty")


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_output: Optional[str] = None
    console_output: bool = True

    def validate(self) -> None:
        """Validate logging configuration."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level not in valid_levels:
            raise ConfigurationError(f"Invalid logging level: {self.level}")


_SECTIONS: Tuple[Tuple[str, type], ...] = (
    ("mesh", MeshConfig),
    ("element", ElementConfig),
    ("refinement", RefinementConfig),
    ("boundary", BoundaryConfig),
    ("renumbering", RenumberingConfig),
    ("output", OutputConfig),
    ("logging", LoggingConfig),
)


@dataclass
class StudyConfig:
    """Complete configuration of a renumbering-invariance study."""
    mesh: MeshConfig = None
    element: ElementConfig = None
    refinement: RefinementConfig = None
    boundary: BoundaryConfig = None
    renumbering: RenumberingConfig = None
    output: OutputConfig = None
    logging: LoggingConfig = None

    def __post_init__(self):
        """Initialize default configurations if not provided."""
        for name, section in _SECTIONS:
            if getattr(self, name) is None:
                setattr(self, name, section())

    def validate(self) -> None:
        """Validate all configuration sections."""
        for name, _ in _SECTIONS:
            getattr(self, name).validate()

        # Cross-validation
        if self.renumbering.component_order is not None and \
                len(self.renumbering.component_order) != self.element.n_components:
            raise ConfigurationError(
                f"Component order has {len(self.renumbering.component_order)} entries, "
                f"element has {self.element.n_components} components"
            )

        if self.boundary.component_mask is not None and \
                len(self.boundary.component_mask) != self.element.n_components:
            raise ConfigurationError(
                f"Component mask has {len(self.boundary.component_mask)} entries, "
                f"element has {self.element.n_components} components"
            )

        max_id = 2 * self.mesh.dim if self.mesh.colorize else 1
        unused = [i for i in self.boundary.constrained_ids if i >= max_id]
        if unused:
            logger.warning(f"Boundary ids {unused} do not occur on the mesh and constrain nothing")

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'StudyConfig':
        """Create configuration from dictionary."""
        if not isinstance(config_dict, dict):
            raise ConfigurationError(f"Configuration must be a mapping of sections, "
                                     f"got {type(config_dict).__name__}")

        unknown = set(config_dict) - {name for name, _ in _SECTIONS}
        if unknown:
            raise ConfigurationError(f"Unknown configuration sections: {sorted(unknown)}")

        config = cls()
        for name, section in _SECTIONS:
            values = config_dict.get(name)
            if values is None:
                continue
            if not isinstance(values, dict):
                raise ConfigurationError(f"Section '{name}' must be a mapping")
            try:
                setattr(config, name, section(**values))
            except TypeError as e:
                raise ConfigurationError(f"Invalid '{name}' section: {e}") from e

        return config

    @classmethod
    def _load(cls, path: Union[str, Path], parse: Callable[[IO[str]], Any]) -> 'StudyConfig':
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, 'r') as f:
            try:
                config_dict = parse(f)
            except (yaml.YAMLError, json.JSONDecodeError) as e:
                raise ConfigurationError(f"Cannot parse {path}: {e}") from e

        config = cls.from_dict(config_dict if config_dict is not None else {})
        config.validate()

        logger.info(f"Loaded configuration from {path}")
        return config

    @classmethod
    def from_json(cls, json_path: Union[str, Path]) -> 'StudyConfig':
        """Load configuration from JSON file."""
        return cls._load(json_path, json.load)

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> 'StudyConfig':
        """Load configuration from YAML file; an empty file gives the defaults."""
        return cls._load(yaml_path, yaml.safe_load)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'StudyConfig':
        """Load configuration from a YAML or JSON file, chosen by suffix."""
        path = Path(path)
        if path.suffix.lower() == ".json":
            return cls.from_json(path)
        if path.suffix.lower() in (".yaml", ".yml"):
            return cls.from_yaml(path)
        raise ConfigurationError(f"Unsupported configuration format: {path.suffix}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {name: asdict(getattr(self, name)) for name, _ in _SECTIONS}

    def _save(self, path: Union[str, Path], dump: Callable[[Dict[str, Any], IO[str]], None]) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w') as f:
            dump(self.to_dict(), f)

        logger.info(f"Saved configuration to {path}")

    def to_json(self, json_path: Union[str, Path], indent: int = 2) -> None:
        """Save configuration to JSON file."""
        self._save(json_path, lambda data, f: json.dump(data, f, indent=indent))

    def to_yaml(self, yaml_path: Union[str, Path]) -> None:
        """Save configuration to YAML file."""
        self._save(yaml_path, lambda data, f: yaml.safe_dump(data, f, default_flow_style=False,
                                                             sort_keys=False, indent=2))

    def setup_logging(self) -> None:
        """Setup logging based on configuration."""
        from ..utils.logging_utils import setup_logging

        numeric_level = getattr(logging, self.logging.level.upper(), None)
        if not isinstance(numeric_level, int):
            raise ConfigurationError(f'Invalid log level: {self.logging.level}')

        setup_logging(
            level=numeric_level,
            format_string=self.logging.format,
            log_file=self.logging.file_output,
            console_output=self.logging.console_output,
        )

    def __str__(self) -> str:
        """String representation of configuration."""
        return (f"StudyConfig(dim={self.mesh.dim}, "
                f"element=Q{self.element.degree}^{self.element.n_components}, "
                f"cycles={self.refinement.cycles}, strategy={self.renumbering.strategy})")


DEFAULT_CONFIG_PATH = Path(__file__).parent / "default.yaml"


def create_default_config() -> StudyConfig:
    """Create the default configuration: 2D, vector Q1, six cycles, component-wise."""
    return StudyConfig()


def load_default_config() -> StudyConfig:
    """Load the configuration file shipped with the package."""
    return StudyConfig.from_yaml(DEFAULT_CONFIG_PATH)


def create_quick_config() -> StudyConfig:
    """Create a small configuration for smoke tests."""
    config = StudyConfig()
    config.refinement.cycles = 2
    config.logging.level = "WARNING"
    return config
