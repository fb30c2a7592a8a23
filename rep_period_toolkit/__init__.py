import importlib.metadata

__version__ = importlib.metadata.version("rep-period-toolkit")

from rep_period_toolkit.core.temporal.clustering import find_representative_periods
from rep_period_toolkit.core.temporal.convenience import cluster
from rep_period_toolkit.core.temporal.convenience import dummy_cluster
from rep_period_toolkit.core.temporal.periods import combine_periods
from rep_period_toolkit.core.temporal.periods import find_auxiliary_data
from rep_period_toolkit.core.temporal.periods import split_into_periods
from rep_period_toolkit.core.temporal.settings import ClusteringMethod
from rep_period_toolkit.core.temporal.settings import ClusteringSettings
from rep_period_toolkit.core.temporal.settings import WeightType
from rep_period_toolkit.core.temporal.weight_fitting import fit_rep_period_weights


__all__ = [
    "ClusteringMethod",
    "ClusteringSettings",
    "WeightType",
    "cluster",
    "combine_periods",
    "dummy_cluster",
    "find_auxiliary_data",
    "find_representative_periods",
    "fit_rep_period_weights",
    "split_into_periods",
]
