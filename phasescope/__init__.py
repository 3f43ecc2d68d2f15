"""
PHASESCOPE - Attractor Reconstruction and Topology
==================================================

One scalar signal in; delay, reconstructed attractor, maximal Lyapunov
exponent and persistence diagram out.

Architecture:
    - information/:  AMI delay selection
    - dynamics/:     Takens embedding, Lyapunov exponent
    - topology/:     seeded subsampling, Rips persistence, features
    - engine.py:     AttractorEngine (full pipeline, batch runs)
    - config/:       immutable analysis configuration (YAML)
    - cli.py:        command line interface

Usage:
    # CLI
    python -m phasescope analyze signals.csv --dt 0.01 --config analysis.yaml

    # Python
    from phasescope.engine import AttractorEngine
    from phasescope.config import load_analysis_config

    engine = AttractorEngine(load_analysis_config('analysis.yaml'))
    analysis = engine.analyze(x)
"""

__version__ = "1.0.0"

# Lazy imports keep `import phasescope` cheap for the CLI
__all__ = ['engine', 'config', 'information', 'dynamics', 'topology', 'errors', '__version__']


def __getattr__(name):
    """Lazy import of submodules."""
    if name in ('engine', 'config', 'information', 'dynamics', 'topology', 'errors'):
        import importlib
        return importlib.import_module(f'{__name__}.{name}')
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
