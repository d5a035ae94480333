from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from phenofit.cli.main import main


@pytest.fixture()
def season_csv(tmp_path):
    day = np.arange(0, 240, 10, dtype=float)
    ndvi = 0.15 + 0.55 * np.exp(-((day - 120.0) / 45.0) ** 2)
    p = tmp_path / "season.csv"
    pd.DataFrame({"day": day, "ndvi": ndvi}).to_csv(p, index=False)
    return p


def test_fit_smoother_writes_zip(season_csv, tmp_path, capsys):
    out = tmp_path / "out"
    rc = main([
        "fit", str(season_csv),
        "--x-col", "day", "--y-col", "ndvi",
        "--model", "moving_average", "--param", "window_size=3",
        "--outdir", str(out),
    ])
    assert rc == 0
    assert (out / "phenofit_outputs.zip").exists()
    text = capsys.readouterr().out
    assert "model: moving_average (n=24)" in text
    assert "R2=" in text


def test_fit_optimized_with_auto_start(season_csv, capsys):
    rc = main([
        "fit", str(season_csv),
        "--x-col", "day", "--y-col", "ndvi",
        "--model", "double_logistic", "--auto-start", "--optimize",
        "--lock", "baseline", "--passes", "1", "--max-iterations", "5",
        "--outliers", "iqr", "--loglevel", "WARNING",
    ])
    assert rc == 0
    text = capsys.readouterr().out
    assert "sos: day=" in text
    assert "peak: day=" in text


def test_fit_rejects_bad_param(season_csv):
    with pytest.raises(SystemExit):
        main(["fit", str(season_csv), "--x-col", "day", "--y-col", "ndvi", "--param", "start"])


def test_models_listing(capsys):
    assert main(["models"]) == 0
    text = capsys.readouterr().out
    assert "double_logistic (parametric)" in text
    assert "loess (smoother): span=0.5" in text


def test_fit_picks_columns_by_name(tmp_path, capsys):
    p = tmp_path / "plot.csv"
    pd.DataFrame({
        "site": ["a"] * 12,
        "DAS": np.arange(12) * 10.0,
        "GCC": 0.3 + 0.1 * np.sin(np.arange(12) / 2.0),
    }).to_csv(p, index=False)
    out = tmp_path / "out"
    rc = main(["fit", str(p), "--model", "loess", "--outdir", str(out), "--keep-csv"])
    assert rc == 0
    assert "peak: DAS=" in capsys.readouterr().out
    assert (out / "phenofit_outputs.zip").exists()
    assert (out / "data.csv").exists()
    assert pd.read_csv(out / "data.csv").columns.tolist()[:2] == ["DAS", "GCC"]


def test_fit_rejects_unknown_lock(season_csv):
    with pytest.raises(ValueError):
        main([
            "fit", str(season_csv), "--x-col", "day", "--y-col", "ndvi",
            "--model", "single_logistic", "--optimize", "--lock", "start",
        ])
