"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully validated,
normalized, and contains NO optional fields that processing code depends on.

All .get() calls, fallback defaults, and validation logic are FORBIDDEN in
runtime code - everything is explicit here.
"""

from typing import Literal, Optional
from pydantic import Field, ConfigDict, field_validator, model_validator
from rainseason.schemas.base import RainseasonBaseModel


# =============================================================================
# Nested Configuration Models (Runtime)
# =============================================================================

class InternalInputConfig(RainseasonBaseModel):
    """Runtime input locations.

    precipitation_path is required before pipeline execution; it may be None
    while configs are merged or in unit tests that pass arrays directly.
    """
    precipitation_path: Optional[str]
    start_date: Optional[str]
    landcover_path: Optional[str]
    aridity_path: Optional[str]
    rangeland_fraction_path: Optional[str]
    gpp_path: Optional[str]


class InternalPeriodConfig(RainseasonBaseModel):
    """Runtime analysis window."""
    start_year: int
    end_year: int

    @model_validator(mode="after")
    def check_year_order(self):
        # User overrides are merged after ParamConfig validation
        if self.end_year < self.start_year:
            raise ValueError(
                f"end_year ({self.end_year}) precedes start_year ({self.start_year})"
            )
        return self


class InternalVarNamesConfig(RainseasonBaseModel):
    """Runtime variable name mappings."""
    precipitation: str
    gpp: str


class InternalCoordNamesConfig(RainseasonBaseModel):
    """Runtime coordinate name mappings."""
    time: str
    y: str
    x: str


class InternalGlobalConfig(RainseasonBaseModel):
    """Runtime global settings."""
    var_names: InternalVarNamesConfig
    coord_names: InternalCoordNamesConfig


class InternalClassifierConfig(RainseasonBaseModel):
    """Runtime classifier thresholds."""
    ratio_threshold: float
    min_amplitude: float


class InternalDetectorConfig(RainseasonBaseModel):
    """Runtime detector settings."""
    onset_lag_days: int
    smoothing_half_width: int
    extrema_half_widths: tuple[int, ...]
    double_season_margin_days: int

    @field_validator("extrema_half_widths")
    @classmethod
    def check_widths_descending(cls, v):
        if not v or list(v) != sorted(v, reverse=True):
            raise ValueError("extrema_half_widths must be non-empty and sorted widest first")
        return tuple(v)


class InternalHydroYearConfig(RainseasonBaseModel):
    """Runtime hydrological year settings."""
    lead_days: int


class InternalAnomalyConfig(RainseasonBaseModel):
    """Runtime validity filter settings."""
    tolerance_days: int
    valid_year_quorum: float = Field(ge=0, le=1.0)


class InternalMaskConfig(RainseasonBaseModel):
    """Runtime study-area mask thresholds."""
    landcover_classes: list[int]
    aridity_min: float
    aridity_max: float
    min_rangeland_fraction: float
    zero_productivity_fraction: float

    @model_validator(mode="after")
    def check_aridity_range(self):
        if self.aridity_max <= self.aridity_min:
            raise ValueError("aridity_max must exceed aridity_min")
        return self


class InternalCovariateConfig(RainseasonBaseModel):
    """Runtime covariate settings."""
    rain_day_threshold: float
    dry_day_threshold: float
    pci_blocks: int


class InternalProcessorConfig(RainseasonBaseModel):
    """Runtime processor configuration."""
    tile_rows: int = Field(ge=1)
    n_workers: int = Field(ge=1)
    failure_policy: Literal["fail_fast", "skip_tile"]
    tracker_filename: str = Field(default="stage_cache.db")


class InternalCacheConfig(RainseasonBaseModel):
    """Runtime stage cache settings."""
    enabled: bool
    stage_version: str


class InternalVisualizationConfig(RainseasonBaseModel):
    """Runtime visualization settings."""
    enabled: bool
    dpi: int
    figsize: tuple[float, float]
    output_format: Literal["png", "pdf", "jpeg"]
    cmap: str
    doy_cmap: str
    diagnostic_pixels: list[tuple[int, int]]


class InternalOutputConfig(RainseasonBaseModel):
    """Runtime output configuration."""
    table_format: Literal["csv", "parquet"]
    compression: Literal["snappy", "gzip", "lz4", "none"]
    write_rasters: bool


class InternalLoggingConfig(RainseasonBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


# =============================================================================
# Main InternalConfig
# =============================================================================

class InternalConfig(RainseasonBaseModel):
    """Authoritative runtime configuration.

    This is the ONLY configuration schema that processing code sees.
    It is fully validated, immutable, and contains explicit values for
    all parameters (no None for fields that runtime depends on).

    Usage
    -----
    Runtime modules receive InternalConfig and access fields directly:

        def __init__(self, config: InternalConfig):
            self.ratio_threshold = config.classifier.ratio_threshold  # NOT .get()
            self.tolerance = config.anomaly.tolerance_days

    Rules
    -----
    - NO .get() calls
    - NO fallback defaults
    - NO validation

    All of that happens during config resolution, not in runtime code.
    """

    mode: Literal["full", "climatology"]
    base_dir: Optional[str]
    input: InternalInputConfig
    period: InternalPeriodConfig
    global_: InternalGlobalConfig = Field(alias="global")
    classifier: InternalClassifierConfig
    detector: InternalDetectorConfig
    hydro_year: InternalHydroYearConfig
    anomaly: InternalAnomalyConfig
    mask: InternalMaskConfig
    covariates: InternalCovariateConfig
    processor: InternalProcessorConfig
    cache: InternalCacheConfig
    visualization: InternalVisualizationConfig
    output: InternalOutputConfig
    logging: InternalLoggingConfig

    # Filled in by init_runtime_config()
    output_dirs: Optional[dict[str, str]] = None
    run_id: Optional[str] = None

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
        populate_by_name=True,  # Allow both 'global' and 'global_'
    )
