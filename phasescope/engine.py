"""
PHASESCOPE Attractor Engine

Main orchestration for one-shot attractor analysis of scalar signals:

    signal -> AMI delay -> Takens embedding -> Lyapunov exponent
                                           -> seeded subsample -> Rips persistence

Each signal is analysed independently with the same immutable
AnalysisConfig. In a batch, a signal whose stage fails is recorded as a
failure and the others carry on.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from phasescope.config import AnalysisConfig
from phasescope.errors import InvalidSignal, NoLocalMinimumFound, PhaseScopeError
from phasescope.information import AMICurve, LagEstimate, average_mutual_information, first_local_minimum
from phasescope.dynamics import LyapunovEstimate, PointCloud, max_lyapunov, takens_embedding
from phasescope.topology import (
    PersistenceDiagram,
    SampledCloud,
    compute_rips_persistence,
    persistence_statistics,
    sample_point_cloud,
    topological_complexity,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttractorAnalysis:
    """Everything computed for one signal."""
    signal_id: str
    n_samples: int
    sampling_period: float
    lag: LagEstimate
    lag_fallback: bool
    point_cloud: PointCloud
    lyapunov: LyapunovEstimate
    sample: SampledCloud
    diagram: PersistenceDiagram

    @property
    def tau(self) -> int:
        return self.lag.tau

    def summary(self) -> Dict[str, Any]:
        """Flat row for reporting."""
        row = {
            'signal_id': self.signal_id,
            'n_samples': self.n_samples,
            'sampling_period': self.sampling_period,
            'tau': self.tau,
            'lag_fallback': self.lag_fallback,
            'embedding_dim': self.point_cloud.dim,
            'n_points': len(self.point_cloud),
            'lyapunov_max': self.lyapunov.exponent,
            'lyapunov_r2': self.lyapunov.r_squared,
            'lyapunov_stderr': self.lyapunov.stderr,
            'window_lo': self.lyapunov.window[0],
            'window_hi': self.lyapunov.window[1],
            'sample_size': len(self.sample),
            'degenerate': self.diagram.degenerate,
        }
        for dim in range(self.diagram.max_dimension + 1):
            stats = persistence_statistics(self.diagram, dim)
            row[f'h{dim}_n_features'] = stats['n_features']
            row[f'h{dim}_n_essential'] = stats['n_essential']
            row[f'h{dim}_total_persistence'] = stats['total_persistence']
            row[f'h{dim}_max_persistence'] = stats['max_persistence']
        row['topological_complexity'] = topological_complexity(self.diagram)
        row['error'] = None
        row['failed_stage'] = None
        return row


@dataclass(frozen=True)
class AnalysisFailure:
    """A signal whose analysis stopped at a typed stage error."""
    signal_id: str
    stage: str
    error: PhaseScopeError

    def summary(self) -> Dict[str, Any]:
        return {
            'signal_id': self.signal_id,
            'error': f"{type(self.error).__name__}: {self.error}",
            'failed_stage': self.stage,
        }


@dataclass
class BatchResult:
    """Analyses and failures of a batch run, in input order."""
    analyses: Dict[str, AttractorAnalysis] = field(default_factory=dict)
    failures: List[AnalysisFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def summary(self) -> pd.DataFrame:
        rows = [a.summary() for a in self.analyses.values()]
        rows += [f.summary() for f in self.failures]
        if not rows:
            return pd.DataFrame()
        return pd.DataFrame(rows)

    def diagrams(self) -> pd.DataFrame:
        """All diagrams stacked, with a signal_id column."""
        frames = []
        for signal_id, analysis in self.analyses.items():
            df = analysis.diagram.sorted().to_frame()
            df.insert(0, 'signal_id', signal_id)
            frames.append(df)
        if not frames:
            return pd.DataFrame(columns=['signal_id', 'dimension', 'birth', 'death'])
        return pd.concat(frames, ignore_index=True)

    def to_parquet(self, path: Union[str, Path]):
        """Save the summary table to parquet."""
        self.summary().to_parquet(path, index=False)


def _as_signal(signal) -> np.ndarray:
    x = np.array(signal, dtype=float).flatten()
    if len(x) < 1:
        raise InvalidSignal("Signal must contain at least one sample")
    if not np.all(np.isfinite(x)):
        raise InvalidSignal("Signal contains NaN or infinite values")
    x.setflags(write=False)
    return x


class AttractorEngine:
    """
    Reconstruct and characterise the attractor of scalar time series.

    Parameters
    ----------
    config : AnalysisConfig
        Immutable; shared by every signal the engine analyses

    Examples
    --------
    >>> engine = AttractorEngine(load_analysis_config('lorenz.yaml'))
    >>> analysis = engine.analyze(x, signal_id='lorenz_x')
    >>> analysis.lyapunov.exponent, analysis.diagram.sorted().pairs()
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config if config is not None else AnalysisConfig()

    def estimate_lag(self, x: np.ndarray, cancel=None) -> Tuple[LagEstimate, bool]:
        """First AMI minimum, or the configured fallback if there is none."""
        lag_cfg = self.config.lag
        curve: AMICurve = average_mutual_information(
            x, lag_cfg.lag_max, n_bins=lag_cfg.n_bins, cancel=cancel
        )
        try:
            return LagEstimate(tau=first_local_minimum(curve.ami), curve=curve), False
        except NoLocalMinimumFound:
            if self.config.fallback_lag is None:
                raise
            logger.warning(
                f"No AMI minimum below lag_max={lag_cfg.lag_max}; "
                f"using configured fallback_lag={self.config.fallback_lag}"
            )
            return LagEstimate(tau=self.config.fallback_lag, curve=curve), True

    def analyze(self, signal, signal_id: Optional[str] = None, cancel=None) -> AttractorAnalysis:
        """
        Run the full pipeline on one signal.

        Raises
        ------
        PhaseScopeError
            The first stage error (InvalidSignal, NoLocalMinimumFound, InsufficientSamples,
            InsufficientNeighbors, SampleSizeExceedsPopulation, AnalysisCancelled)
        """
        cfg = self.config
        x = _as_signal(signal)
        signal_id = signal_id if signal_id is not None else 'signal'

        lag, fallback = self.estimate_lag(x, cancel=cancel)
        logger.info(f"{signal_id}: n={len(x)}, tau={lag.tau}")

        cloud = takens_embedding(x, lag.tau, cfg.embedding.dim)

        lyap_cfg = cfg.lyapunov
        lyapunov = max_lyapunov(
            x,
            tau=lag.tau,
            min_dim=lyap_cfg.min_dim,
            max_dim=lyap_cfg.max_dim,
            radius=lyap_cfg.radius,
            max_time_steps=lyap_cfg.max_time_steps,
            theiler_window=lyap_cfg.theiler_window,
            window=lyap_cfg.window,
            sampling_period=cfg.sampling_period,
            n_reference_points=lyap_cfg.n_reference_points,
            cancel=cancel,
        )
        logger.info(f"{signal_id}: lambda_max={lyapunov.exponent:.4f} (r2={lyapunov.r_squared:.3f})")

        topo_cfg = cfg.topology
        sample = sample_point_cloud(cloud, topo_cfg.sample_size, topo_cfg.seed)
        diagram = compute_rips_persistence(
            sample.points,
            max_dimension=topo_cfg.max_dimension,
            max_scale=topo_cfg.max_scale,
            cancel=cancel,
        )
        logger.info(
            f"{signal_id}: persistence on {len(sample)} points, "
            f"{len(diagram)} classes" + (" (degenerate)" if diagram.degenerate else "")
        )

        return AttractorAnalysis(
            signal_id=signal_id,
            n_samples=len(x),
            sampling_period=cfg.sampling_period,
            lag=lag,
            lag_fallback=fallback,
            point_cloud=cloud,
            lyapunov=lyapunov,
            sample=sample,
            diagram=diagram,
        )

    def analyze_many(self, signals: Mapping[str, Any], cancel=None) -> BatchResult:
        """
        Analyse several signals; a stage failure only affects its own signal.

        Runs through joblib when config.n_jobs != 1. A cancel event is
        shared with the workers, so it forces the threading backend.
        """
        items = list(signals.items())
        logger.info(f"Analysing {len(items)} signals (n_jobs={self.config.n_jobs})")

        if self.config.n_jobs == 1 or len(items) <= 1:
            outcomes = [_analyze_one(self.config, sid, x, cancel) for sid, x in items]
        else:
            backend = 'threading' if cancel is not None else None
            outcomes = Parallel(n_jobs=self.config.n_jobs, backend=backend)(
                delayed(_analyze_one)(self.config, sid, x, cancel) for sid, x in items
            )

        result = BatchResult()
        for outcome in outcomes:
            if isinstance(outcome, AnalysisFailure):
                result.failures.append(outcome)
            else:
                result.analyses[outcome.signal_id] = outcome

        if result.failures:
            logger.warning(f"{len(result.failures)}/{len(items)} signals failed")
        return result


def _analyze_one(config: AnalysisConfig, signal_id: str, signal, cancel=None):
    """Worker: analysis on success, AnalysisFailure on a stage error."""
    try:
        return AttractorEngine(config).analyze(signal, signal_id=signal_id, cancel=cancel)
    except PhaseScopeError as e:
        logger.warning(f"{signal_id}: {e.stage} stage failed: {e}")
        return AnalysisFailure(signal_id=str(signal_id), stage=e.stage, error=e)


def analyze_signal(signal, config: Optional[AnalysisConfig] = None, signal_id: Optional[str] = None) -> AttractorAnalysis:
    """Functional shortcut for AttractorEngine(config).analyze(signal)."""
    return AttractorEngine(config).analyze(signal, signal_id=signal_id)
