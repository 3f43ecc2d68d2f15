"""
Analysis configuration loader.

Every stage parameter lives in a frozen dataclass that is passed by value
into each pipeline invocation. Nothing carries over between analyses.

Usage:
    from phasescope.config import load_analysis_config

    config = load_analysis_config('lorenz.yaml')
    config.lyapunov.radius
    config = config.replace(sampling_period=0.01)
"""

import copy
import dataclasses
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from phasescope.errors import ConfigurationError


DEFAULT_CONFIG_PATH = Path(__file__).parent / 'default.yaml'


def _require(condition: bool, message: str):
    if not condition:
        raise ConfigurationError(message)


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class LagConfig:
    """Delay selection from average mutual information."""
    lag_max: int = 50
    n_bins: Optional[int] = None  # None = Sturges' rule

    def __post_init__(self):
        _require(self.lag_max >= 2, f"lag.lag_max must be >= 2, got {self.lag_max}")
        _require(
            self.n_bins is None or self.n_bins >= 2,
            f"lag.n_bins must be >= 2 or null, got {self.n_bins}",
        )


@dataclass(frozen=True)
class EmbeddingConfig:
    """Delay-coordinate embedding."""
    dim: int = 3

    def __post_init__(self):
        _require(self.dim >= 1, f"embedding.dim must be >= 1, got {self.dim}")


@dataclass(frozen=True)
class LyapunovConfig:
    """Maximal Lyapunov exponent from nearest-neighbour divergence."""
    min_dim: int = 3
    max_dim: int = 5
    radius: float = 0.05
    max_time_steps: int = 20
    theiler_window: int = 10
    window: Tuple[int, int] = (0, 5)
    n_reference_points: Optional[int] = None

    def __post_init__(self):
        # YAML gives lists; keep the frozen value hashable
        object.__setattr__(self, 'window', tuple(int(k) for k in self.window))

        _require(self.min_dim >= 1, f"lyapunov.min_dim must be >= 1, got {self.min_dim}")
        _require(
            self.max_dim >= self.min_dim,
            f"lyapunov.max_dim ({self.max_dim}) must be >= min_dim ({self.min_dim})",
        )
        _require(self.radius > 0, f"lyapunov.radius must be > 0, got {self.radius}")
        _require(
            self.max_time_steps >= 1,
            f"lyapunov.max_time_steps must be >= 1, got {self.max_time_steps}",
        )
        _require(
            self.theiler_window >= 0,
            f"lyapunov.theiler_window must be >= 0, got {self.theiler_window}",
        )
        _require(len(self.window) == 2, f"lyapunov.window must be [k_lo, k_hi], got {self.window}")
        k_lo, k_hi = self.window
        _require(
            0 <= k_lo < k_hi <= self.max_time_steps,
            f"lyapunov.window must satisfy 0 <= k_lo < k_hi <= max_time_steps, got {self.window}",
        )
        _require(
            self.n_reference_points is None or self.n_reference_points >= 1,
            f"lyapunov.n_reference_points must be >= 1 or null, got {self.n_reference_points}",
        )


@dataclass(frozen=True)
class TopologyConfig:
    """Subsampling and Vietoris-Rips persistence."""
    sample_size: int = 300
    seed: int = 0
    max_dimension: int = 1
    max_scale: float = 1.0

    def __post_init__(self):
        _require(self.sample_size >= 1, f"topology.sample_size must be >= 1, got {self.sample_size}")
        _require(
            self.max_dimension in (0, 1, 2),
            f"topology.max_dimension must be 0, 1 or 2, got {self.max_dimension}",
        )
        _require(self.max_scale >= 0, f"topology.max_scale must be >= 0, got {self.max_scale}")


@dataclass(frozen=True)
class AnalysisConfig:
    """Complete configuration for one attractor analysis."""
    sampling_period: float = 1.0
    lag: LagConfig = field(default_factory=LagConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    lyapunov: LyapunovConfig = field(default_factory=LyapunovConfig)
    topology: TopologyConfig = field(default_factory=TopologyConfig)
    n_jobs: int = 1
    fallback_lag: Optional[int] = None

    def __post_init__(self):
        _require(
            self.sampling_period > 0,
            f"sampling_period must be > 0, got {self.sampling_period}",
        )
        _require(self.n_jobs != 0, "n_jobs must be non-zero")
        _require(
            self.fallback_lag is None or 1 <= self.fallback_lag <= self.lag.lag_max,
            f"fallback_lag must be in [1, lag_max] or null, got {self.fallback_lag}",
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AnalysisConfig':
        """Build from a nested dict (as parsed from YAML)."""
        data = dict(data or {})
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")

        sections = {
            'lag': LagConfig,
            'embedding': EmbeddingConfig,
            'lyapunov': LyapunovConfig,
            'topology': TopologyConfig,
        }
        kwargs = {}
        for key, value in data.items():
            if key in sections:
                kwargs[key] = _build_section(sections[key], key, value)
            else:
                kwargs[key] = value
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result['lyapunov']['window'] = list(self.lyapunov.window)
        return result

    def replace(self, **changes) -> 'AnalysisConfig':
        """Return a copy with top-level fields replaced."""
        return dataclasses.replace(self, **changes)


def _build_section(section_cls, name: str, value):
    if isinstance(value, section_cls):
        return value
    if value is None:
        return section_cls()
    if not isinstance(value, dict):
        raise ConfigurationError(f"Section '{name}' must be a mapping, got {type(value).__name__}")

    known = {f.name for f in dataclasses.fields(section_cls)}
    unknown = set(value) - known
    if unknown:
        raise ConfigurationError(f"Unknown keys in '{name}': {sorted(unknown)}")
    try:
        return section_cls(**value)
    except TypeError as e:
        raise ConfigurationError(f"Invalid '{name}' section: {e}") from e


# =============================================================================
# LOADING
# =============================================================================

def _read_yaml(path: Path) -> Dict[str, Any]:
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: top level must be a mapping")
    return data


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursive dict merge, override wins."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def default_config_dict() -> Dict[str, Any]:
    """Packaged defaults as a plain dict."""
    return _read_yaml(DEFAULT_CONFIG_PATH)


def load_analysis_config(
    path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> AnalysisConfig:
    """
    Load configuration from YAML, layered over the packaged defaults.

    Args:
        path: User YAML file (None = defaults only)
        overrides: Extra nested values applied last (e.g. from the CLI)

    Returns:
        AnalysisConfig

    Raises:
        FileNotFoundError: If path does not exist
        ConfigurationError: If a value is invalid or a key is unknown
    """
    data = default_config_dict()

    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config not found: {path}")
        data = _merge(data, _read_yaml(path))

    if overrides:
        data = _merge(data, overrides)

    return AnalysisConfig.from_dict(data)


def dump_config(config: AnalysisConfig) -> str:
    """Serialize to YAML text."""
    return yaml.safe_dump(config.to_dict(), sort_keys=False)
