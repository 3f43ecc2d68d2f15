"""
PHASESCOPE Information Module

Average mutual information between a signal and its delayed copy,
used to pick the delay for phase space reconstruction.
"""

from .mutual_info import (
    AMICurve,
    LagEstimate,
    sturges_bins,
    lagged_mutual_information,
    average_mutual_information,
    first_local_minimum,
    estimate_time_lag,
)

__all__ = [
    'AMICurve',
    'LagEstimate',
    'sturges_bins',
    'lagged_mutual_information',
    'average_mutual_information',
    'first_local_minimum',
    'estimate_time_lag',
]
