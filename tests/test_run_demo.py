import sys
from pathlib import Path
import json
import re

import numpy as np
import pandas as pd
import matplotlib
matplotlib.use("Agg")
import pytest

# Ensure the repository root is on the path so ``trainsim`` is importable
sys.path.append(str(Path(__file__).resolve().parents[1]))

from trainsim.run_demo import main, run

DATA = Path(__file__).resolve().parents[1] / "data"


def test_loop_track_demo(tmp_path, capfd) -> None:
    summary, out_dir = run(
        str(DATA / "loop_track.csv"),
        str(DATA / "vehicle_params.csv"),
        dt=1.0 / 60.0,
        steps=600,
        start_speed=5.0,
        output_dir=tmp_path,
    )

    out = capfd.readouterr().out
    assert re.search(r"Simulated 600 steps", out)
    assert re.search(r"Final speed: -?[0-9.]+ m/s", out)
    assert re.search(r"Total runtime: [0-9.]+ s", out)

    summary_path = out_dir / "summary.json"
    assert summary_path.exists()
    with summary_path.open() as f:
        stored = json.load(f)
    assert stored["steps"] == 600
    assert stored["segments"] == 4
    assert np.isclose(stored["final_speed_mps"], summary["final_speed_mps"])
    assert stored["path_length_m"] > 0

    trajectory = pd.read_csv(out_dir / "trajectory.csv")
    assert len(trajectory) == 601
    assert trajectory["segment"].between(0, 3).all()
    track = pd.read_csv(out_dir / "track.csv")
    assert list(track["next"]) == [1, 2, 3, 0]
    assert np.allclose(track["length_m"], track["integrated_length_m"], rtol=1e-3)


def test_cli_overrides_and_plots(tmp_path, capfd) -> None:
    main(
        [
            "--track",
            str(DATA / "loop_track.csv"),
            "--vehicle",
            str(DATA / "vehicle_params.csv"),
            "--steps",
            "120",
            "--rolling-resistance",
            "0.0",
            "--drag-factor",
            "0.0",
            "--samples",
            "20",
            "--plot",
            "--output-dir",
            str(tmp_path),
        ]
    )
    out = capfd.readouterr().out
    assert "Outputs written to" in out
    (out_dir,) = [p for p in tmp_path.iterdir() if p.is_dir()]
    assert (out_dir / "plan_view.png").is_file()
    assert (out_dir / "elevation.png").is_file()
    assert (out_dir / "speed.png").is_file()


def test_open_track_stops_at_dead_end(tmp_path) -> None:
    _, out_dir = run(
        str(DATA / "loop_track.csv"),
        None,
        dt=0.05,
        steps=400,
        start_segment=2,
        start_speed=30.0,
        closed=False,
        output_dir=tmp_path,
    )
    trajectory = pd.read_csv(out_dir / "trajectory.csv")
    track = pd.read_csv(out_dir / "track.csv")
    assert pd.isna(track.loc[3, "next"])

    end_length = track.loc[3, "length_m"]
    at_end = trajectory[
        (trajectory["segment"] == 3)
        & np.isclose(trajectory["distance_m"], end_length)
    ]
    assert len(at_end) > 0
    assert (at_end["speed_mps"] <= 0.0).all()


def test_negative_steps_rejected(tmp_path) -> None:
    with pytest.raises(ValueError, match="steps"):
        run(str(DATA / "loop_track.csv"), None, dt=0.1, steps=-1, output_dir=tmp_path)
