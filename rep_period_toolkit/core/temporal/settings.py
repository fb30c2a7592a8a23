import enum
import pathlib
from typing import Optional
from typing import Union

import pandas as pd
from loguru import logger
from pydantic import Field
from pydantic import field_validator
from scipy.spatial import distance as scipy_distance

from rep_period_toolkit.core.custom_model import CustomModel
from rep_period_toolkit.core.exceptions import ArgumentError

# Distances that can be referenced by name in settings files
NAMED_DISTANCES = {
    "braycurtis": scipy_distance.braycurtis,
    "chebyshev": scipy_distance.chebyshev,
    "cityblock": scipy_distance.cityblock,
    "correlation": scipy_distance.correlation,
    "cosine": scipy_distance.cosine,
    "euclidean": scipy_distance.euclidean,
    "sqeuclidean": scipy_distance.sqeuclidean,
}


class _ParsableEnum(enum.Enum):
    @classmethod
    def parse(cls, value):
        """Converts a name (or a member) to a member, raising `ArgumentError` for unknown names."""
        try:
            return cls(value)
        except ValueError as error:
            options = ", ".join(member.value for member in cls)
            raise ArgumentError(f"{cls.__name__} {value!r} is not supported; choose one of: {options}") from error


@enum.unique
class ClusteringMethod(_ParsableEnum):
    K_MEANS = "k_means"
    K_MEDOIDS = "k_medoids"
    CONVEX_HULL = "convex_hull"
    CONVEX_HULL_WITH_NULL = "convex_hull_with_null"
    CONICAL_HULL = "conical_hull"

    @property
    def is_hull(self) -> bool:
        return self in (
            ClusteringMethod.CONVEX_HULL,
            ClusteringMethod.CONVEX_HULL_WITH_NULL,
            ClusteringMethod.CONICAL_HULL,
        )


@enum.unique
class WeightType(_ParsableEnum):
    CONVEX = "convex"
    CONICAL = "conical"
    CONICAL_BOUNDED = "conical_bounded"


class ClusteringSettings(CustomModel):
    """Settings of a representative period clustering run.

    Settings can be created in code or read from an `attribute,value` CSV with `from_csv`.
    """

    n_rp: int = Field(ge=1, description="Number of representative periods to find.")
    period_duration: Optional[int] = Field(
        default=None,
        ge=1,
        description="Number of time steps per period. `None` keeps the periods already present in the table, or "
        "makes a single period of a table without a `period` column.",
    )
    method: ClusteringMethod = ClusteringMethod.K_MEANS
    distance: str = Field(default="sqeuclidean", description=f"One of: {', '.join(NAMED_DISTANCES)}")
    drop_incomplete_last_period: bool = Field(
        default=False,
        description="Drop an incomplete last period and rescale the weights of the complete periods instead of "
        "keeping it as its own representative period.",
    )
    distance_cache: Optional[bool] = Field(
        default=None, description="Use the hull distance cache. `None` enables it for Euclidean-like distances only."
    )
    random_state: Optional[int] = Field(default=None, description="Seed passed to the k-means/k-medoids backends.")

    # Weight fitting
    weight_type: Optional[WeightType] = Field(
        default=WeightType.CONVEX, description="Type of weights to fit. `None` keeps the one-hot (Dirac) weights."
    )
    tol: float = Field(default=1e-2, gt=0)
    niters: int = Field(default=100, ge=1)
    learning_rate: float = Field(default=0.001, gt=0)
    adaptive_grad: bool = False
    n_jobs: int = Field(default=1, description="Number of joblib workers used to fit the weights of the periods.")

    @field_validator("distance")
    @classmethod
    def validate_distance(cls, distance: str):
        if distance not in NAMED_DISTANCES:
            raise ValueError(f"Unknown distance {distance!r}; choose one of: {', '.join(NAMED_DISTANCES)}")
        return distance

    @field_validator("weight_type", mode="before")
    @classmethod
    def parse_dirac_weight_type(cls, weight_type):
        if isinstance(weight_type, str) and weight_type.lower() in ("dirac", "none", ""):
            return None
        return weight_type

    @property
    def distance_function(self):
        return NAMED_DISTANCES[self.distance]

    @classmethod
    def from_csv(cls, filename: Union[str, pathlib.Path], **overrides) -> "ClusteringSettings":
        """Reads settings from a CSV file with `attribute` and `value` columns.

        Empty values are ignored (the default is used). Keyword arguments override values from the file.
        """
        filename = pathlib.Path(filename)
        settings_df = pd.read_csv(filename, dtype=str, keep_default_na=False)
        if {"attribute", "value"} - set(settings_df.columns):
            raise ValueError(f"{filename.name} must have `attribute` and `value` columns")

        duplicated = settings_df.loc[settings_df["attribute"].duplicated(), "attribute"].tolist()
        if duplicated:
            raise ValueError(f"{filename.name} defines the following attribute(s) more than once: {duplicated}")

        attributes = {
            attribute.strip(): value.strip()
            for attribute, value in zip(settings_df["attribute"], settings_df["value"])
            if value.strip() != ""
        }
        unknown = set(attributes) - set(cls.model_fields)
        if unknown:
            logger.warning(f"Ignoring unknown clustering setting(s) in {filename.name}: {sorted(unknown)}")
            attributes = {attribute: value for attribute, value in attributes.items() if attribute not in unknown}

        logger.debug(f"Read clustering settings from {filename}")
        return cls(**(attributes | overrides))
