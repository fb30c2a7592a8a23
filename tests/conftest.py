import pandas as pd
import pytest
from loguru import logger


def make_periods_df(period_values, key=None):
    """Long-format table with one row per (period, timestep); `period_values[p]` holds the values of period p + 1."""
    rows = [
        {"period": period, "timestep": timestep, "value": float(value)}
        for period, values in enumerate(period_values, start=1)
        for timestep, value in enumerate(values, start=1)
    ]
    df = pd.DataFrame(rows)
    if key is not None:
        df.insert(2, key[0], key[1])
    return df


@pytest.fixture
def two_period_df():
    """Two complete periods of two time steps and two technologies."""
    return pd.DataFrame(
        {
            "period": [1, 1, 1, 1, 2, 2, 2, 2],
            "timestep": [1, 1, 2, 2, 1, 1, 2, 2],
            "technology": ["Solar", "Nuclear"] * 4,
            "value": [5.0, 6.0, 7.0, 8.0, 9.0, 10.0, 11.0, 12.0],
        }
    )


@pytest.fixture
def incomplete_last_period_df():
    """One complete period of two time steps followed by a period with a single time step."""
    return pd.DataFrame({"period": [1, 1, 2], "timestep": [1, 2, 1], "value": [1.0, 2.0, 3.0]})


@pytest.fixture
def droppable_last_period_df():
    """Two complete periods of two time steps followed by a period with a single time step."""
    return pd.DataFrame({"period": [1, 1, 2, 2, 3], "timestep": [1, 2, 1, 2, 1], "value": [1.0, 2.0, 3.0, 4.0, 5.0]})


@pytest.fixture
def scalar_periods_df():
    """Four single-time-step periods with values 0, 1, 10 and 11."""
    return make_periods_df([[0.0], [1.0], [10.0], [11.0]])


@pytest.fixture
def log_messages():
    """Collects the messages logged through loguru during a test."""
    messages = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def periods_df_factory():
    return make_periods_df
