"""
PHASESCOPE Error Taxonomy
=========================

Every stage fails loudly with a typed error. No silent fallbacks:
the caller decides whether to substitute a default or abort.

    InvalidSignal                input (empty or non-finite samples)
    NoLocalMinimumFound          lag estimation (AMI has no first minimum)
    InsufficientSamples          embedding (signal shorter than the window)
    InsufficientNeighbors        Lyapunov (no reference point qualified)
    SampleSizeExceedsPopulation  point cloud subsampling
    DegenerateFiltration         persistence (warning, not an error)
"""


class PhaseScopeError(Exception):
    """Base class for all analysis errors."""
    stage = None


class ConfigurationError(PhaseScopeError, ValueError):
    """Raised when an analysis parameter violates its invariant."""
    stage = 'config'


class InvalidSignal(PhaseScopeError, ValueError):
    """Raised when a signal is empty or holds NaN/infinite samples."""
    stage = 'input'


class NoLocalMinimumFound(PhaseScopeError):
    """Raised when AMI(tau) has no first local minimum below lag_max."""
    stage = 'lag'

    def __init__(self, lag_max: int):
        self.lag_max = lag_max
        super().__init__(
            f"No local minimum of average mutual information for tau in [1, {lag_max - 1}]"
        )

    def __reduce__(self):
        return (type(self), (self.lag_max,))


class InsufficientSamples(PhaseScopeError, ValueError):
    """Raised when a signal is too short for the requested embedding."""
    stage = 'embedding'

    def __init__(self, n_samples: int, tau: int, dim: int):
        self.n_samples = n_samples
        self.tau = tau
        self.dim = dim
        super().__init__(
            f"Time series too short for tau={tau}, dim={dim}: "
            f"need more than {(dim - 1) * tau} samples, got {n_samples}"
        )

    def __reduce__(self):
        return (type(self), (self.n_samples, self.tau, self.dim))


class InsufficientNeighbors(PhaseScopeError):
    """Raised when no reference point has a neighbour within the radius."""
    stage = 'lyapunov'

    def __init__(self, message: str, radius: float = None):
        self.radius = radius
        super().__init__(message)

    def __reduce__(self):
        return (type(self), (self.args[0], self.radius))


class SampleSizeExceedsPopulation(PhaseScopeError, ValueError):
    """Raised when more points are requested than the cloud holds."""
    stage = 'sampling'

    def __init__(self, sample_size: int, population: int):
        self.sample_size = sample_size
        self.population = population
        super().__init__(
            f"Cannot draw {sample_size} points without replacement from {population}"
        )

    def __reduce__(self):
        return (type(self), (self.sample_size, self.population))


class AnalysisCancelled(PhaseScopeError):
    """Raised when a caller-supplied cancel event is set mid-computation."""
    stage = 'cancelled'


class DegenerateFiltration(UserWarning):
    """
    Issued when no edge enters the Rips filtration below max_scale.

    Non-fatal: the diagram holds only 0-dimensional classes born at 0
    that never die.
    """


def check_cancelled(cancel, where: str):
    """Raise AnalysisCancelled if the optional event has been set."""
    if cancel is not None and cancel.is_set():
        raise AnalysisCancelled(f"Cancelled during {where}")
