"""ParamConfig: Expert defaults for the rainseason pipeline.

This module defines the complete default configuration. ALL pipeline
parameters must have defaults here, including the domain thresholds that
decide seasonality routing, plausible anomaly windows and the study-area
mask. No runtime code should define fallback values.

Runtime code NEVER reads from ParamConfig directly - it only receives InternalConfig.
"""

from typing import Literal, Optional
from pydantic import Field, field_validator, model_validator
from rainseason.schemas.base import RainseasonBaseModel


# =============================================================================
# Nested Configuration Models
# =============================================================================

class InputConfig(RainseasonBaseModel):
    """Input raster locations."""
    precipitation_path: Optional[str] = None
    start_date: Optional[str] = Field(
        None, description="First day of a daily GeoTIFF stack (YYYY-MM-DD)"
    )
    landcover_path: Optional[str] = None
    aridity_path: Optional[str] = None
    rangeland_fraction_path: Optional[str] = None
    gpp_path: Optional[str] = None


class PeriodConfig(RainseasonBaseModel):
    """Analysis window in calendar years (inclusive)."""
    start_year: int = Field(2001, ge=1900)
    end_year: int = Field(2019, ge=1900)

    @model_validator(mode="after")
    def check_year_order(self):
        if self.end_year < self.start_year:
            raise ValueError(
                f"end_year ({self.end_year}) precedes start_year ({self.start_year})"
            )
        return self


class VarNamesConfig(RainseasonBaseModel):
    """Variable name mappings."""
    precipitation: str = "precip"
    gpp: str = "gpp"


class CoordNamesConfig(RainseasonBaseModel):
    """Coordinate name mappings."""
    time: str = "time"
    y: str = "y"
    x: str = "x"


class GlobalConfig(RainseasonBaseModel):
    """Global pipeline settings."""
    var_names: VarNamesConfig = Field(default_factory=VarNamesConfig)
    coord_names: CoordNamesConfig = Field(default_factory=CoordNamesConfig)


class ClassifierConfig(RainseasonBaseModel):
    """Harmonic seasonality classifier.

    A pixel is double-season when A2/A1 >= ratio_threshold. Pixels whose
    first-harmonic amplitude falls below min_amplitude get a missing ratio
    and are routed as single-season.
    """
    ratio_threshold: float = Field(1.0, gt=0)
    min_amplitude: float = Field(1e-6, ge=0, description="mm/day")

    @field_validator("ratio_threshold", "min_amplitude", mode="before")
    @classmethod
    def coerce_to_float(cls, v):
        """Allow int or float."""
        return float(v)


class DetectorConfig(RainseasonBaseModel):
    """Cumulative-anomaly onset/cessation detector."""
    onset_lag_days: int = Field(1, ge=0, description="Onset is the day after the trough")
    smoothing_half_width: int = Field(15, ge=0)
    extrema_half_widths: tuple[int, ...] = (45, 30, 15)
    double_season_margin_days: int = Field(45, ge=0)

    @field_validator("extrema_half_widths")
    @classmethod
    def check_widths_descending(cls, v):
        """Widest window is tried first."""
        if not v:
            raise ValueError("extrema_half_widths must not be empty")
        if any(w < 1 for w in v):
            raise ValueError("extrema_half_widths must be positive")
        if list(v) != sorted(v, reverse=True):
            raise ValueError("extrema_half_widths must be sorted widest first")
        return tuple(v)


class HydroYearConfig(RainseasonBaseModel):
    """Hydrological year anchoring."""
    lead_days: int = Field(30, ge=0, le=364, description="Days before mean onset")


class AnomalyConfig(RainseasonBaseModel):
    """Per-year validity filter."""
    tolerance_days: int = Field(60, ge=0, le=365)
    valid_year_quorum: float = Field(0.75, ge=0, le=1.0)


class MaskConfig(RainseasonBaseModel):
    """Study-area mask thresholds.

    Land-cover classes follow the MODIS IGBP scheme (7 open shrublands,
    8 woody savannas, 9 savannas, 10 grasslands). The aridity window is the
    UNEP dryland range. 0.9 is the strict alternative to the 0.75 rangeland
    fraction cutoff.
    """
    landcover_classes: list[int] = Field(default_factory=lambda: [7, 8, 9, 10])
    aridity_min: float = Field(0.05, ge=0)
    aridity_max: float = Field(0.65, gt=0)
    min_rangeland_fraction: float = Field(0.75, ge=0, le=1.0)
    zero_productivity_fraction: float = Field(0.5, gt=0, le=1.0)

    @model_validator(mode="after")
    def check_aridity_range(self):
        if self.aridity_max <= self.aridity_min:
            raise ValueError("aridity_max must exceed aridity_min")
        return self


class CovariateConfig(RainseasonBaseModel):
    """Precipitation concentration and intensity covariates."""
    rain_day_threshold: float = Field(1.0, ge=0, description="mm/day")
    dry_day_threshold: float = Field(1.0, ge=0, description="mm/day")
    pci_blocks: int = Field(12, ge=2, le=365)


class ProcessorConfig(RainseasonBaseModel):
    """Tiling and worker settings."""
    tile_rows: int = Field(64, ge=1)
    n_workers: int = Field(1, ge=1)
    failure_policy: Literal["fail_fast", "skip_tile"] = "fail_fast"


class CacheConfig(RainseasonBaseModel):
    """Stage cache settings."""
    enabled: bool = True
    stage_version: str = "1"


class VisualizationConfig(RainseasonBaseModel):
    """Visualization settings."""
    enabled: bool = True
    dpi: int = Field(200, ge=50)
    figsize: tuple[float, float] = (12.0, 10.0)
    output_format: Literal["png", "pdf", "jpeg"] = "png"
    cmap: str = "viridis"
    doy_cmap: str = "twilight"
    diagnostic_pixels: list[tuple[int, int]] = Field(default_factory=list)


class OutputConfig(RainseasonBaseModel):
    """Output file configuration."""
    table_format: Literal["csv", "parquet"] = "csv"
    compression: Literal["snappy", "gzip", "lz4", "none"] = "snappy"
    write_rasters: bool = True


class LoggingConfig(RainseasonBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(RainseasonBaseModel):
    """Complete expert configuration with all defaults.

    This is the single source of truth for all pipeline parameters.
    Every tunable parameter MUST have a default here.

    Usage
    -----
    This config is NOT used directly by runtime code. It serves as the
    base layer in config resolution:

        internal_cfg = resolve_config(param_cfg, user_cfg, cli_cfg)

    Runtime code only sees InternalConfig.
    """

    mode: Literal["full", "climatology"] = "full"
    base_dir: Optional[str] = None
    input: InputConfig = Field(default_factory=InputConfig)
    period: PeriodConfig = Field(default_factory=PeriodConfig)
    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    detector: DetectorConfig = Field(default_factory=DetectorConfig)
    hydro_year: HydroYearConfig = Field(default_factory=HydroYearConfig)
    anomaly: AnomalyConfig = Field(default_factory=AnomalyConfig)
    mask: MaskConfig = Field(default_factory=MaskConfig)
    covariates: CovariateConfig = Field(default_factory=CovariateConfig)
    processor: ProcessorConfig = Field(default_factory=ProcessorConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    visualization: VisualizationConfig = Field(default_factory=VisualizationConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = RainseasonBaseModel.model_config.copy()
    model_config.update({"populate_by_name": True})  # Allow both 'global' and 'global_'
