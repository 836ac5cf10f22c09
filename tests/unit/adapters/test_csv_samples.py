from pathlib import Path
import pytest
from landclassifier.adapters.csv_samples import CsvSampleSource
from landclassifier.contracts.errors import TrainingError

def test_reads_tolerant_columns(tmp_path: Path):
    p = tmp_path / "picks.csv"
    p.write_text("easting,northing,class_id,note\n500005,6999995,0,agua\n500035.5,6999975,1,bosque\n", encoding="utf-8")
    assert CsvSampleSource(p).picks() == [((500005.0, 6999995.0), 0), ((500035.5, 6999975.0), 1)]

def test_drops_incomplete_rows(tmp_path: Path):
    p = tmp_path / "picks.csv"
    p.write_text("x,y,label\n1,2,0\n,3,1\n4,5,abc\n", encoding="utf-8")
    assert CsvSampleSource(p).picks() == [((1.0, 2.0), 0)]

def test_missing_column(tmp_path: Path):
    p = tmp_path / "picks.csv"
    p.write_text("x,label\n1,0\n", encoding="utf-8")
    with pytest.raises(TrainingError):
        CsvSampleSource(p).picks()

def test_negative_label(tmp_path: Path):
    p = tmp_path / "picks.csv"
    p.write_text("x,y,label\n1,2,-1\n", encoding="utf-8")
    with pytest.raises(TrainingError):
        CsvSampleSource(p).picks()

def test_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        CsvSampleSource(tmp_path / "nope.csv").picks()
