import logging
from pathlib import Path

import pandas as pd
import pytest

import divvy_segments.pipeline as pipeline_module
from divvy_segments.errors import ReportError
from divvy_segments.pipeline import PipelineConfig, main, run_pipeline


def test_run_pipeline_scenario(legacy_csv, current_csv, tmp_path):
    config = PipelineConfig(legacy_path=legacy_csv, current_path=current_csv, out_dir=tmp_path / "out")
    result = run_pipeline(config)

    assert len(result.trips) == 4
    assert result.summary["number_of_rides"].sum() == 4
    assert result.report.rows_out == 4
    assert set(result.outputs) == {"summary", "rides_chart", "duration_chart", "highlights"}
    for path in result.outputs.values():
        assert path.exists()

    exported = pd.read_csv(config.summary_path)
    assert list(exported.columns) == ["member_casual", "day_of_week", "number_of_rides", "average_duration"]


def test_run_pipeline_writes_cleaned_parquet(legacy_csv, current_csv, tmp_path):
    config = PipelineConfig(
        legacy_path=legacy_csv,
        current_path=current_csv,
        out_dir=tmp_path / "out",
        charts=False,
        highlights=False,
        cleaned_parquet=tmp_path / "trips" / "cleaned.parquet",
    )
    result = run_pipeline(config)
    back = pd.read_parquet(result.outputs["cleaned_parquet"])
    assert len(back) == 4
    assert (back["ride_length"] > 0).all()


def test_hq_qr_trip_excluded_end_to_end(legacy_csv, current_csv, tmp_path):
    text = current_csv.read_text(encoding="utf-8")
    current_csv.write_text(
        text + "ZZ11,docked_bike,2020-01-23 12:00:00,2020-01-23 12:30:00,HQ QR,675,HQ QR,675,41.88,-87.63,41.88,-87.63,casual\n",
        encoding="utf-8",
    )
    result = run_pipeline(
        PipelineConfig(legacy_path=legacy_csv, current_path=current_csv, out_dir=tmp_path, charts=False)
    )
    assert "ZZ11" not in set(result.trips["ride_id"])
    assert result.report.maintenance == 1
    assert len(result.trips) == 4


def test_main_success(legacy_csv, current_csv, tmp_path, capsys):
    out_dir = tmp_path / "out"
    code = main(
        [
            "--legacy-csv", str(legacy_csv),
            "--current-csv", str(current_csv),
            "--out-dir", str(out_dir),
            "--no-charts",
        ]
    )
    assert code == 0
    assert (out_dir / "summary_data.csv").exists()
    assert (out_dir / "summary_highlights.md").exists()
    assert not (out_dir / "rides_by_weekday.png").exists()
    assert "Ride length: member vs casual" in capsys.readouterr().out


def test_main_missing_input_reports_stage(current_csv, tmp_path, caplog):
    with caplog.at_level(logging.ERROR, logger="divvy_segments"):
        code = main(["--legacy-csv", str(tmp_path / "missing.csv"), "--current-csv", str(current_csv),
                     "--out-dir", str(tmp_path)])
    assert code == 1
    assert "stage=load" in caplog.text
    assert not (tmp_path / "summary_data.csv").exists()


def test_main_unknown_label_reports_clean_stage(legacy_csv, current_csv, tmp_path, caplog):
    legacy_csv.write_text(legacy_csv.read_text(encoding="utf-8").replace("Customer", "Dependent"), encoding="utf-8")
    args = ["--legacy-csv", str(legacy_csv), "--current-csv", str(current_csv), "--out-dir", str(tmp_path),
            "--no-charts", "--no-print"]

    with caplog.at_level(logging.ERROR, logger="divvy_segments"):
        assert main(args) == 1
    assert "stage=clean" in caplog.text

    assert main(args + ["--unknown-labels", "drop"]) == 0


def test_main_schema_mismatch(legacy_csv, current_csv, tmp_path, caplog):
    text = current_csv.read_text(encoding="utf-8").replace("member_casual", "rider_type")
    current_csv.write_text(text, encoding="utf-8")
    with caplog.at_level(logging.ERROR, logger="divvy_segments"):
        code = main(["--legacy-csv", str(legacy_csv), "--current-csv", str(current_csv),
                     "--out-dir", str(tmp_path), "--no-print"])
    assert code == 1
    assert "stage=unify" in caplog.text


def test_main_input_directory_reports_load_stage(current_csv, tmp_path, caplog):
    in_dir = tmp_path / "not_a_file"
    in_dir.mkdir()
    with caplog.at_level(logging.ERROR, logger="divvy_segments"):
        code = main(["--legacy-csv", str(in_dir), "--current-csv", str(current_csv),
                     "--out-dir", str(tmp_path / "out"), "--no-print"])
    assert code == 1
    assert "stage=load" in caplog.text


def test_main_unwritable_out_dir_reports_report_stage(legacy_csv, current_csv, tmp_path, caplog):
    blocker = tmp_path / "out"
    blocker.write_text("not a directory\n", encoding="utf-8")
    with caplog.at_level(logging.ERROR, logger="divvy_segments"):
        code = main(["--legacy-csv", str(legacy_csv), "--current-csv", str(current_csv),
                     "--out-dir", str(blocker), "--no-charts", "--no-print"])
    assert code == 1
    assert "stage=report" in caplog.text


def test_run_pipeline_wraps_output_errors(legacy_csv, current_csv, tmp_path):
    blocker = tmp_path / "out"
    blocker.write_text("x\n", encoding="utf-8")
    config = PipelineConfig(legacy_path=legacy_csv, current_path=current_csv, out_dir=blocker, charts=False)
    with pytest.raises(ReportError) as exc:
        run_pipeline(config)
    assert exc.value.stage == "report"


def test_main_selects_file_backend_for_charts(legacy_csv, current_csv, tmp_path, monkeypatch):
    import matplotlib

    calls = []
    monkeypatch.setattr(matplotlib, "use", lambda backend, *a, **k: calls.append(backend))
    args = ["--legacy-csv", str(legacy_csv), "--current-csv", str(current_csv), "--out-dir", str(tmp_path), "--no-print"]
    assert main(args + ["--no-charts"]) == 0
    assert calls == []
    assert main(args) == 0
    assert calls == ["Agg"]


def test_pipeline_module_has_no_shebang():
    assert not Path(pipeline_module.__file__).read_text(encoding="utf-8").startswith("#!")
