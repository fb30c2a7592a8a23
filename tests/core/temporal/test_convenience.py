import numpy as np
import pandas as pd
import pytest
from scipy.spatial import distance as scipy_distance

from rep_period_toolkit.core.exceptions import ArgumentError
from rep_period_toolkit.core.temporal.convenience import cluster
from rep_period_toolkit.core.temporal.convenience import dummy_cluster
from rep_period_toolkit.core.temporal.settings import ClusteringSettings


@pytest.fixture
def profiles_df():
    """Two profiles over six time steps, without periods."""
    timesteps = list(range(1, 7))
    return pd.DataFrame(
        {
            "profile_name": ["demand"] * 6 + ["solar"] * 6,
            "timestep": timesteps * 2,
            "value": [1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 0.0, 0.5, 0.0, 0.6, 0.0, 0.4],
        }
    )


class TestCluster:
    def test_cluster_with_overrides(self, profiles_df):
        result = cluster(profiles_df, n_rp=3, period_duration=2, method="convex_hull")

        assert result.auxiliary_data.n_periods == 3
        assert result.auxiliary_data.key_columns == ["timestep", "profile_name"]
        np.testing.assert_allclose(result.weight_matrix.toarray().sum(axis=1), 1.0)
        assert set(result.profiles.columns) == {"rep_period", "timestep", "profile_name", "value"}
        # The input is not modified
        assert "period" not in profiles_df.columns

    def test_cluster_with_settings(self, profiles_df):
        settings = ClusteringSettings(n_rp=2, period_duration=2, method="k_medoids", weight_type="dirac")
        result = cluster(profiles_df, settings, random_state=0)

        weights = result.weight_matrix.toarray()
        assert weights.shape == (3, 2)
        assert ((weights == 1.0).sum(axis=1) == 1).all()
        assert settings.random_state is None

    def test_incomplete_last_period(self, profiles_df):
        result = cluster(profiles_df, n_rp=2, period_duration=4, weight_type=None)

        np.testing.assert_array_equal(result.weight_matrix.toarray(), [[1.0, 0.0], [0.0, 1.0]])
        assert result.rep_periods_data()["num_timesteps"].tolist() == [4, 2]

    def test_custom_distance(self, profiles_df):
        calls = []

        def distance(u, v):
            calls.append(1)
            return scipy_distance.euclidean(u, v)

        cluster(profiles_df, n_rp=2, period_duration=2, method="convex_hull", distance=distance, weight_type=None)
        assert calls

    def test_clustering_kwargs(self, profiles_df):
        result = cluster(
            profiles_df, n_rp=2, period_duration=2, clustering_kwargs={"n_init": 3, "random_state": 1}
        )
        assert result.rp_matrix.shape == (4, 2)

    def test_keeps_existing_periods(self):
        df = pd.DataFrame(
            {
                "period": [1, 1, 2, 2, 3, 3],
                "timestep": [1, 2, 1, 2, 1, 2],
                "value": [1.0, 2.0, 3.0, 4.0, 10.0, 11.0],
            }
        )
        result = cluster(df, n_rp=2, method="convex_hull", weight_type=None)

        assert result.auxiliary_data.n_periods == 3
        assert result.auxiliary_data.period_duration == 2
        weights = result.weight_matrix.toarray()
        assert weights.shape == (3, 2)
        np.testing.assert_array_equal(weights.sum(axis=1), 1.0)
        assert df["period"].tolist() == [1, 1, 2, 2, 3, 3]

    def test_without_periods_and_duration(self, profiles_df):
        result = cluster(profiles_df, n_rp=1, weight_type=None)

        assert result.auxiliary_data.n_periods == 1
        assert result.auxiliary_data.period_duration == 6

    def test_fitting_options(self, profiles_df, log_messages):
        cluster(profiles_df, n_rp=2, period_duration=2, method="conical_hull", weight_type="conical", n_jobs=1)
        assert any("Fitting conical weights" in message for message in log_messages)


def test_dummy_cluster(profiles_df):
    result = dummy_cluster(profiles_df)

    assert result.auxiliary_data.n_periods == 1
    assert result.auxiliary_data.period_duration == 6
    np.testing.assert_array_equal(result.weight_matrix.toarray(), [[1.0]])
    pd.testing.assert_series_equal(
        result.profiles["value"].sort_values(ignore_index=True),
        profiles_df["value"].sort_values(ignore_index=True),
    )


@pytest.mark.parametrize("kwargs", [{"n_rp": 1}, {"period_duration": 3}])
def test_dummy_cluster_rejects_fixed_settings(profiles_df, kwargs):
    with pytest.raises(ArgumentError, match=next(iter(kwargs))):
        dummy_cluster(profiles_df, **kwargs)


def test_dummy_cluster_combines_existing_periods():
    df = pd.DataFrame({"period": [1, 1, 2, 2], "timestep": [1, 2, 1, 2], "value": [1.0, 2.0, 3.0, 4.0]})
    result = dummy_cluster(df, weight_type=None)

    assert result.auxiliary_data.period_duration == 4
    assert result.profiles["timestep"].tolist() == [1, 2, 3, 4]
