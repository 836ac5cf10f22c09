import csv
from pathlib import Path
import pytest
from landclassifier.adapters.csv_exporter import CSVExporter
from landclassifier.services.accuracy_service import AccuracyService

def _read(p: Path):
    with open(p, newline="", encoding="utf-8") as f:
        return list(csv.reader(f))

def test_confusion_report(tmp_path: Path):
    acc = AccuracyService()
    cm = acc.tally([0, 1, 1], [0, 1, 0])
    out = acc.export(cm, CSVExporter(), str(tmp_path / "acc" / "confusion.csv"), {0: "Water", 1: "Forest"})
    rows = _read(Path(out))
    assert rows[0] == ["truth \\ predicted", "Water", "Forest", "producer_accuracy"]
    assert rows[1] == ["Water", "1", "0", "1.0000"]
    assert rows[2] == ["Forest", "1", "1", "0.5000"]
    assert rows[-2] == ["overall_accuracy", "0.6667"]

def test_dict_rows_infer_headers(tmp_path: Path):
    out = CSVExporter().render("class_areas", {"rows": [{"class_id": 1, "pixels": 4}]}, str(tmp_path / "a.csv"))
    assert _read(Path(out)) == [["class_id", "pixels"], ["1", "4"]]

def test_empty_rows_write_header_only(tmp_path: Path):
    out = CSVExporter().render("class_areas", {"headers": ["a", "b"], "rows": []}, str(tmp_path / "e.csv"))
    assert _read(Path(out)) == [["a", "b"]]

def test_unknown_template(tmp_path: Path):
    with pytest.raises(ValueError):
        CSVExporter().render("quicklook", {}, str(tmp_path / "x.csv"))
