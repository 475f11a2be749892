import os
import subprocess
import sys
from pathlib import Path

import pytest
import yaml

from experiments.run_experiments import (
    DEFAULT_CONFIG,
    aggregate_time_series,
    apply_overrides,
    build_parser,
    cli_overrides,
    main,
    mean_ci,
    plot_time_series,
)

REPO_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture
def small_config(tmp_path):
    path = tmp_path / "small.yaml"
    path.write_text(yaml.safe_dump({
        "sim": {"duration": 1.0, "resolution": 1000, "seed": 1, "warmup": 0.1, "series_interval": 0.1},
        "arrivals": {"kind": "markov", "rate": 50.0},
        "packets": {"size": 10},
        "server": {"service_rate": 1000.0, "buffer_limit": 0},
        "experiments": {"replications": 2, "confidence_level": 0.9},
    }))
    return str(path)


def test_apply_overrides_merges_recursively():
    base = {"server": {"service_rate": 1.0, "buffer_limit": 0}, "sim": {"seed": 0}}
    out = apply_overrides(base, {"server": {"buffer_limit": 5}})
    assert out == {"server": {"service_rate": 1.0, "buffer_limit": 5}, "sim": {"seed": 0}}
    assert base["server"]["buffer_limit"] == 0


def test_mean_ci():
    mu, half = mean_ci([1.0, 2.0, 3.0], 0.95)
    assert mu == 2.0
    assert half == pytest.approx(2.4841, rel=1e-3)
    assert mean_ci([4.0], 0.95) == (4.0, 0.0)
    assert mean_ci([], 0.95) == (0.0, 0.0)


def test_cli_overrides_only_set_flags():
    args = build_parser().parse_args(["-a", "12", "-b", "0", "-l", "8"])
    assert cli_overrides(args) == {
        "arrivals": {"rate": 12.0},
        "packets": {"size": 8},
        "server": {"buffer_limit": 0},
    }


@pytest.mark.parametrize("argv", [
    ["-a", "abc"],
    ["-a", "-5"],
    ["-l", "0"],
    ["-b", "-1"],
    ["-t", "nan"],
    ["--scenario", "nope"],
])
def test_bad_flags_exit_with_usage(argv, capsys):
    with pytest.raises(SystemExit) as exc:
        main(argv)
    assert exc.value.code != 0
    assert "usage:" in capsys.readouterr().err


def test_unreachable_packet_length_is_a_usage_error(small_config, capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--config", small_config, "-c", "3000", "-l", "10"])
    assert exc.value.code == 2
    assert "bits per tick" in capsys.readouterr().err


def test_main_prints_report(small_config, capsys):
    assert main(["--config", small_config, "-b", "3"]) == 0
    out = capsys.readouterr().out
    assert "Scenario: baseline (replications=2, 90.0% CI, seeds 1-2)" in out
    assert "Mean sojourn time" in out
    assert "Loss probability" in out
    assert "M/D/1 reference" in out
    assert "conservation violated" not in out


def test_aggregate_time_series_averages_runs():
    results = [
        {"time_series": [{"time_seconds": 0.0, "qlen": 0}, {"time_seconds": 0.1, "qlen": 2}]},
        {"time_series": [{"time_seconds": 0.0, "qlen": 2}, {"time_seconds": 0.1, "qlen": 4}]},
    ]
    assert aggregate_time_series(results) == [
        {"time_seconds": 0.0, "qlen": 1.0},
        {"time_seconds": 0.1, "qlen": 3.0},
    ]
    assert aggregate_time_series([{}]) == []


def test_bundled_config_sits_next_to_runner():
    assert os.path.isfile(DEFAULT_CONFIG)
    assert os.path.dirname(DEFAULT_CONFIG) == str(REPO_ROOT / "experiments")


def test_main_without_config_from_other_directory(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert main(["-t", "0.5", "-n", "1"]) == 0
    assert "Scenario: baseline (replications=1" in capsys.readouterr().out


def test_runner_executes_as_plain_script(tmp_path):
    script = REPO_ROOT / "experiments" / "run_experiments.py"
    proc = subprocess.run(
        [sys.executable, str(script), "-t", "0.5", "-n", "1"],
        cwd=str(tmp_path), capture_output=True, text=True, timeout=300,
    )
    assert proc.returncode == 0, proc.stderr
    assert "Mean sojourn time" in proc.stdout


def test_main_plot_writes_png(small_config, tmp_path, capsys):
    out_dir = tmp_path / "plots"
    assert main(["--config", small_config, "--plot", "--out-dir", str(out_dir)]) == 0
    png = out_dir / "baseline_qlen.png"
    assert png.is_file() and png.stat().st_size > 0
    assert f"Queue-length plot saved to: {png}" in capsys.readouterr().out


def test_plot_time_series_skips_empty_series(tmp_path):
    assert plot_time_series([], 0.0, "empty", out_dir=str(tmp_path)) is None
    out = plot_time_series(
        [{"time_seconds": 0.0, "qlen": 0.0}, {"time_seconds": 0.1, "qlen": 2.0}],
        0.05, "Two Points", out_dir=str(tmp_path),
    )
    assert out == str(tmp_path / "two_points_qlen.png")
    assert os.path.isfile(out)
