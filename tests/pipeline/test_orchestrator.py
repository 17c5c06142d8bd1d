from pathlib import Path

import numpy as np
import pandas as pd
import pytest
import rasterio

from rainseason.io.writer import write_bands
from rainseason.pipeline.orchestrator import PipelineOrchestrator

pytestmark = [pytest.mark.unit, pytest.mark.pipeline]


def test_orchestrator_requires_output_dir(internal_config):
    with pytest.raises(ValueError, match="BASE_DIR"):
        PipelineOrchestrator(internal_config)


def test_orchestrator_creates_directories(pipeline_config, temp_dir):
    orch = PipelineOrchestrator(pipeline_config())

    for name in ("cache", "rasters", "tables", "figures", "logs"):
        assert orch.output_dirs[name] == (temp_dir / "output" / name).resolve()
        assert orch.output_dirs[name].is_dir()


def test_orchestrator_uses_preset_output_dirs(pipeline_config, pipeline_output_dirs):
    config = pipeline_config().model_copy(
        update={"output_dirs": {k: str(v) for k, v in pipeline_output_dirs.items()}})
    orch = PipelineOrchestrator(config)
    assert orch.output_dirs == pipeline_output_dirs


def test_orchestrator_stop_is_idempotent(pipeline_config):
    orch = PipelineOrchestrator(pipeline_config())
    orch.stop()
    orch.stop()  # should not raise


def test_make_tiles(pipeline_config, synthetic_precip):
    orch = PipelineOrchestrator(pipeline_config(TILE_ROWS=1))
    tiles = orch._make_tiles(synthetic_precip)
    assert [index for index, _ in tiles] == [0, 1]
    assert all(tile.sizes["y"] == 1 for _, tile in tiles)


def test_merge_fills_skipped_tiles(pipeline_config, synthetic_precip, season_dataset):
    orch = PipelineOrchestrator(pipeline_config())
    reference = synthetic_precip.isel(time=0, drop=True)

    merged = orch._merge_tiles({0: season_dataset.isel(y=slice(0, 1))}, reference)

    assert merged["onset_1"].dims == ("y", "x")
    assert merged["onset_anomaly"].dims == ("year", "y", "x")
    assert merged["n_seasons"].dtype == np.int8
    assert merged["n_seasons"].values[1].tolist() == [0, 0, 0]
    assert np.isnan(merged["onset_1"].values[1]).all()


def test_merge_without_results(pipeline_config, synthetic_precip):
    orch = PipelineOrchestrator(pipeline_config())
    with pytest.raises(RuntimeError):
        orch._merge_tiles({}, synthetic_precip.isel(time=0, drop=True))


def test_run_full(pipeline_config):
    config = pipeline_config(visualization={"dpi": 50, "figsize": [4, 4],
                                            "diagnostic_pixels": [[0, 1], [5, 5]]})
    orch = PipelineOrchestrator(config)

    outputs = orch.run()

    assert set(outputs) == {"df_multi_annual", "df_annual", "season_variables",
                            "annual_variables", "season_maps", "pixel_0_1_curve"}
    for path in outputs.values():
        assert Path(path).exists()

    df_multi = pd.read_csv(outputs["df_multi_annual"])
    assert len(df_multi) == 4
    assert sorted(df_multi["n_seasons"].tolist()) == [1, 1, 2, 2]
    df_annual = pd.read_csv(outputs["df_annual"])
    assert len(df_annual) == 16

    with rasterio.open(outputs["season_variables"]) as src:
        assert "onset_1" in src.descriptions
        assert src.crs.to_epsg() == 4326

    assert orch.result["onset_1"].shape == (2, 3)
    assert bool(orch.mask.all())
    assert orch.stage_cache is None
    assert list(orch.output_dirs["logs"].glob("pipeline_*.log"))


def test_run_twice_uses_cache(pipeline_config):
    config = pipeline_config(visualization={"enabled": False})
    PipelineOrchestrator(config).run()
    first = pd.read_csv(Path(config.base_dir) / "tables" / "df_multi_annual.csv")

    cache_files = sorted((Path(config.base_dir) / "cache").glob("*.nc"))
    # Two tiles and the study mask
    assert len(cache_files) == 3

    PipelineOrchestrator(config).run()
    second = pd.read_csv(Path(config.base_dir) / "tables" / "df_multi_annual.csv")

    pd.testing.assert_frame_equal(first, second)
    assert sorted((Path(config.base_dir) / "cache").glob("*.nc")) == cache_files


def test_run_climatology_parquet(pipeline_config):
    config = pipeline_config(MODE="climatology", TABLE_FORMAT="parquet",
                             visualization={"enabled": False},
                             cache={"enabled": False})

    outputs = PipelineOrchestrator(config).run()

    assert set(outputs) == {"df_multi_annual", "season_variables"}
    df = pd.read_parquet(outputs["df_multi_annual"])
    assert len(df) == 4
    assert df["season_length_sd"].isna().all()


def test_run_with_study_mask(pipeline_config, temp_dir, synthetic_precip):
    reference = synthetic_precip.isel(time=0, drop=True)
    landcover = np.full(reference.shape, 7.0)
    landcover[:, 0] = 12.0
    lc_path = write_bands(temp_dir / "landcover.tif", {"landcover": landcover},
                          reference["y"].values, reference["x"].values)

    config = pipeline_config(LANDCOVER_PATH=str(lc_path), visualization={"enabled": False})
    orch = PipelineOrchestrator(config)
    outputs = orch.run()

    assert orch.mask.values[:, 0].tolist() == [False, False]
    df = pd.read_csv(outputs["df_multi_annual"])
    assert (df["n_seasons"] == 2).all()
    with rasterio.open(outputs["season_variables"]) as src:
        onset = src.read(src.descriptions.index("onset_1") + 1)
    assert np.isnan(onset[:, 0]).all()


def test_run_missing_input(pipeline_config, temp_dir):
    config = pipeline_config(PRECIP_PATH=str(temp_dir / "missing.nc"))
    with pytest.raises(FileNotFoundError):
        PipelineOrchestrator(config).run()


def test_run_keeps_input_crs(pipeline_config, synthetic_precip):
    precip = synthetic_precip.assign_attrs(crs="EPSG:32637")
    orch = PipelineOrchestrator(pipeline_config(visualization={"enabled": False}))

    outputs = orch.run(precip)

    assert orch.result.attrs["crs"] == "EPSG:32637"
    for name in ("season_variables", "annual_variables"):
        with rasterio.open(outputs[name]) as src:
            assert src.crs.to_epsg() == 32637
