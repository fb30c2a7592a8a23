import numpy as np
import pandas as pd
import pytest
import scipy.sparse as sp

from rep_period_toolkit.core.temporal.clustering import find_representative_periods
from rep_period_toolkit.core.temporal.results import append_period_as_rp
from rep_period_toolkit.core.temporal.results import initial_representative_vector
from rep_period_toolkit.core.temporal.results import matrix_and_keys_to_df
from rep_period_toolkit.core.temporal.results import weight_matrix_to_df


def test_matrix_and_keys_to_df():
    keys = pd.DataFrame({"timestep": [1, 1, 2, 2], "technology": ["Solar", "Nuclear", "Solar", "Nuclear"]})
    matrix = np.array([[1.0, 5.0], [2.0, 6.0], [3.0, 7.0], [4.0, 8.0]])

    df = matrix_and_keys_to_df(matrix, keys)

    assert df.columns.tolist() == ["rep_period", "timestep", "technology", "value"]
    assert df["rep_period"].tolist() == [1, 1, 1, 1, 2, 2, 2, 2]
    assert df["timestep"].tolist() == [1, 1, 2, 2] * 2
    assert df["value"].tolist() == [1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0, 8.0]


def test_timestep_comes_first_among_keys():
    keys = pd.DataFrame({"profile": ["a", "b"], "timestep": [1, 1]})
    df = matrix_and_keys_to_df(np.array([[1.0], [2.0]]), keys)
    assert df.columns.tolist() == ["rep_period", "timestep", "profile", "value"]


def test_append_period_as_rp(incomplete_last_period_df):
    profiles = pd.DataFrame({"rep_period": [1, 1], "timestep": [1, 2], "value": [1.0, 2.0]})
    appended = append_period_as_rp(profiles, incomplete_last_period_df, 2, 2, ["timestep"])

    assert appended.to_dict("list") == {"rep_period": [1, 1, 2], "timestep": [1, 2, 1], "value": [1.0, 2.0, 3.0]}
    assert len(profiles) == 2

    alone = append_period_as_rp(None, incomplete_last_period_df, 1, 1, ["timestep"])
    assert alone.to_dict("list") == {"rep_period": [1, 1], "timestep": [1, 2], "value": [1.0, 2.0]}


def test_initial_representative_vector(two_period_df):
    keys = pd.DataFrame({"timestep": [2, 1, 1, 2], "technology": ["Solar", "Solar", "Nuclear", "Nuclear"]})
    vector = initial_representative_vector(two_period_df, 2, keys)
    np.testing.assert_array_equal(vector, [11.0, 9.0, 10.0, 12.0])


@pytest.mark.parametrize("as_sparse", [True, False])
def test_weight_matrix_to_df(as_sparse):
    weights = np.array([[0.0, 1.0], [0.25, 0.75], [0.0, 0.0]])
    df = weight_matrix_to_df(sp.lil_matrix(weights) if as_sparse else weights)

    assert df.to_dict("list") == {"period": [1, 2, 2], "rep_period": [2, 1, 2], "weight": [1.0, 0.25, 0.75]}


class TestClusteringResult:
    def test_kept_incomplete_period(self, incomplete_last_period_df):
        result = find_representative_periods(incomplete_last_period_df, 2)

        assert result.n_rp == 2
        assert result.n_periods == 2
        assert result.rep_periods_data().to_dict("list") == {
            "rep_period": [1, 2],
            "num_timesteps": [2, 1],
            "resolution": [1.0, 1.0],
        }
        assert result.timeframe_data().to_dict("list") == {"period": [1, 2], "num_timesteps": [2, 1]}
        assert result.weight_matrix_to_df().to_dict("list") == {
            "period": [1, 2],
            "rep_period": [1, 2],
            "weight": [1.0, 1.0],
        }

    def test_dropped_incomplete_period(self, droppable_last_period_df):
        result = find_representative_periods(droppable_last_period_df, 1, drop_incomplete_last_period=True)

        assert result.rep_periods_data()["num_timesteps"].tolist() == [2]
        assert result.timeframe_data().to_dict("list") == {"period": [1, 2], "num_timesteps": [2, 2]}
        assert result.weight_matrix_to_df()["weight"].tolist() == [1.25, 1.25]

    def test_fit_weights(self, scalar_periods_df):
        result = find_representative_periods(scalar_periods_df, 2, method="convex_hull")
        weight_matrix = result.fit_weights(weight_type="convex", learning_rate=0.01, niters=1000)

        assert weight_matrix is result.weight_matrix
        weights = weight_matrix.toarray()
        np.testing.assert_allclose(weights.sum(axis=1), 1.0)
        # The hull points are the representatives themselves
        np.testing.assert_allclose(weights[0], [1.0, 0.0])
        np.testing.assert_allclose(weights[3], [0.0, 1.0])
        # Period 2 (value 1) is mostly made of the representative at 0
        assert weights[1, 0] > weights[1, 1]
