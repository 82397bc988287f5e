"""
Configuration for a quantile sweep run.

Section configs with YAML loading and defaults that reproduce the MEPS
expenditure example: ``ltotexp ~ suppins + totchr + age + female + white``
at τ ∈ {0.1, 0.25, 0.5, 0.75, 0.9} with 95 % confidence intervals.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, Field

from qrsweep.datasets._meps import FEATURE_NAMES, MEPS_URL, TARGET_NAME
from qrsweep.fitting._sample import ModelSpec

DEFAULT_QUANTILES = [0.1, 0.25, 0.5, 0.75, 0.9]


# ---------------------------------------------------------------------------
# Section configs
# ---------------------------------------------------------------------------

class DataConfig(BaseModel):
    """Where the dataset comes from and how hard to try fetching it."""

    url: str = Field(default=MEPS_URL)
    data_home: Optional[str] = Field(default=None, description="Cache root (sklearn data home)")
    timeout: float = Field(default=30.0, description="Per-request timeout, seconds")
    max_attempts: int = Field(default=3)
    backoff: float = Field(default=1.0, description="Base of the exponential retry delay, seconds")
    refresh: bool = Field(default=False)


class ModelConfig(BaseModel):
    """The regression formula, the sweep, and the estimator backend."""

    dependent: str = Field(default=TARGET_NAME)
    independents: list[str] = Field(default_factory=lambda: list(FEATURE_NAMES))
    intercept: bool = Field(default=True)
    quantiles: list[float] = Field(default_factory=lambda: list(DEFAULT_QUANTILES))
    backend: str = Field(default="statsmodels")
    backend_options: dict[str, Any] = Field(
        default_factory=dict,
        description="Backend constructor options, e.g. vcov, kernel, max_iter",
    )

    def to_spec(self) -> ModelSpec:
        return ModelSpec(
            dependent=self.dependent,
            independents=tuple(self.independents),
            intercept=self.intercept,
        )


class ReportConfig(BaseModel):
    """Table and plot settings."""

    confidence_level: float = Field(default=0.95)
    digits: int = Field(default=3)
    stars: bool = Field(default=True)
    ncols: int = Field(default=3, description="Plot panels per row")
    table_format: Literal["text", "html", "csv"] = Field(default="text")
    output_dir: Path = Field(default=Path("output"))


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------

class SweepConfig(BaseModel):
    """Root configuration for :func:`qrsweep.run_sweep`."""

    data: DataConfig = Field(default_factory=DataConfig)
    model: ModelConfig = Field(default_factory=ModelConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)

    n_jobs: Optional[int] = Field(default=None, description="Worker threads for the sweep")
    timeout: Optional[float] = Field(default=None, description="Whole-sweep timeout, seconds")
    allow_partial: bool = Field(
        default=False,
        description="Report the quantiles that fitted even if others failed",
    )

    @classmethod
    def from_yaml(cls, path: Path | str) -> "SweepConfig":
        """Load config from a YAML file."""
        with open(Path(path)) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self, path: Path | str) -> None:
        """Write config to a YAML file."""
        with open(Path(path), "w") as f:
            yaml.safe_dump(
                self.model_dump(mode="json"), f,
                default_flow_style=False, sort_keys=False,
            )

    def to_flat_dict(self) -> dict[str, Any]:
        """Return a plain dict snapshot of the config."""
        return self.model_dump(mode="json")


def load_config(path: Path | str | None = None) -> SweepConfig:
    """
    Load config from *path*, else ``qrsweep.yaml`` or
    ``config/qrsweep.yaml`` in the working directory, else defaults.
    """
    if path is not None:
        return SweepConfig.from_yaml(path)
    for candidate in [Path("qrsweep.yaml"), Path("config/qrsweep.yaml")]:
        if candidate.exists():
            return SweepConfig.from_yaml(candidate)
    return SweepConfig()
