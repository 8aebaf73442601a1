from __future__ import annotations

import json
from pathlib import Path

import pytest

from degreport.config import build_pipeline_params, load_json_config


def test_load_project_configs():
    root = Path(__file__).resolve().parents[1]
    example_cfg = load_json_config(root / "configs" / "degreport_example.json")
    airway_cfg = load_json_config(root / "configs" / "degreport_airway.json")
    assert example_cfg["dataset"]["source"] == "example"
    assert airway_cfg["condition_column"] == "dex"

    params = build_pipeline_params(airway_cfg)
    assert params.dataset.source == "csv"
    assert params.reference_level == "untrt"
    assert params.annotation.backend == "mygene"


def test_invalid_json_reports_line_and_column(tmp_path: Path):
    bad = tmp_path / "bad.json"
    bad.write_text('{"a": 1,}\n', encoding="utf-8")
    with pytest.raises(ValueError, match=r"line \d+, column \d+"):
        load_json_config(bad)


def test_non_object_json_config_rejected(tmp_path: Path):
    bad = tmp_path / "list.json"
    bad.write_text(json.dumps([1, 2, 3]), encoding="utf-8")
    with pytest.raises(ValueError, match="expected JSON object"):
        load_json_config(bad)


def test_non_json_extension_rejected(tmp_path: Path):
    bad = tmp_path / "cfg.yaml"
    bad.write_text("{}", encoding="utf-8")
    with pytest.raises(ValueError, match="Use a .json config file"):
        load_json_config(bad)


def test_missing_config_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_json_config(tmp_path / "absent.json")


def test_pipeline_params_defaults(tmp_path: Path):
    params = build_pipeline_params({}, outdir=tmp_path)
    assert params.dataset.source == "example"
    assert params.annotation.backend == "none"
    assert params.condition_column == "condition"
    assert params.reference_level == "A"
    assert params.thresholds == (0.05, 0.001)
    assert params.top_k == 10
    assert params.results_dir == tmp_path / "results"
    assert params.figures_dir == tmp_path / "figures"
    assert params.log_path == tmp_path / "results" / "logs" / "degreport.log"
    assert params.to_dict()["thresholds"] == [0.05, 0.001]


@pytest.mark.parametrize(
    "cfg,match",
    [
        ({"dataset": {"source": "sql"}}, "Unknown dataset source"),
        ({"dataset": {"source": "csv", "counts_path": "c.csv"}}, "requires counts_path"),
        ({"dataset": {"source": "h5ad"}}, "requires h5ad_path"),
        ({"annotation": {"backend": "ldap"}}, "Unknown annotation backend"),
        ({"annotation": {"backend": "table"}}, "requires table_path"),
        ({"annotation": {"batch_size": 0}}, "batch_size"),
        ({"thresholds": []}, "at least one"),
        ({"thresholds": [0.0]}, "must be in"),
        ({"top_k": -1}, "non-negative"),
        ({"alpha": 1.5}, "alpha"),
        ({"dataset": []}, "JSON objects"),
    ],
)
def test_pipeline_params_validation(cfg, match):
    with pytest.raises(ValueError, match=match):
        build_pipeline_params(cfg)
