# tests/unit/test_config.py
import json
import pytest
import yaml
from pathlib import Path
from landclassifier.adapters.naive_bayes_classifier import NaiveBayesClassifier
from landclassifier.config import ClassifierKind, Settings, get_settings
from landclassifier.composition.di import build_classifier, build_coordinator, build_settings
from tests.factories import FakeReader

def test_settings_defaults_and_paths(tmp_path: Path):
    s = Settings(project_root=tmp_path)
    assert (s.lo_percentile, s.hi_percentile) == (0.02, 0.98)
    assert s.classifier is ClassifierKind.NAIVE_BAYES
    p = s.out_path("classmap", date="20250101")
    assert tmp_path.resolve() in p.parents
    assert p.name == "classmap.tif"
    assert s.class_names()[0] == "Water"

def test_settings_placeholders_guard():
    with pytest.raises(ValueError):
        Settings(output_patterns={"classmap": "products/{site}/x.tif"})

@pytest.mark.parametrize("lo,hi", [(0.5, 0.5), (0.9, 0.1), (-0.1, 0.9), (0.1, 1.5)])
def test_settings_percentile_guard(lo, hi):
    with pytest.raises(ValueError):
        Settings(lo_percentile=lo, hi_percentile=hi)

def test_settings_symbol_count_bounds():
    with pytest.raises(ValueError):
        Settings(symbol_count=70000)

def test_settings_duplicate_class_ids():
    with pytest.raises(ValueError):
        Settings(classes=[{"id": 1, "name": "A"}, {"id": 1, "name": "B"}])

def test_settings_log_level_normalized():
    assert Settings(log_level="debug").log_level == "DEBUG"
    with pytest.raises(ValueError):
        Settings(log_level="chatty")

def test_env_prefix(monkeypatch):
    monkeypatch.setenv("LANDCLS_SYMBOL_COUNT", "256")
    assert get_settings().symbol_count == 256

def test_build_settings_from_yaml(tmp_path: Path):
    cfg_dir = tmp_path / "config"
    cfg_dir.mkdir(parents=True)
    (cfg_dir / "settings.yaml").write_text(yaml.safe_dump({
        "lo_percentile": 0.05,
        "hi_percentile": 0.95,
        "stretch_partitions": 2,
        "output_patterns": {
            "classmap": "out/{date}/cm.tif",
            "accuracy": "out/{date}/acc.csv",
        },
    }), encoding="utf-8")
    (cfg_dir / "class_labels.json").write_text(json.dumps([
        {"id": 0, "name": "Agua", "color": {"r": 0, "g": 0, "b": 255}},
        {"id": 1, "name": "Relave"},
    ]), encoding="utf-8")

    st = build_settings(tmp_path)
    assert st.project_root == tmp_path.resolve()
    assert st.lo_percentile == 0.05
    assert [c.name for c in st.classes] == ["Agua", "Relave"]
    out = st.out_path("classmap", date="20250101")
    assert "out/20250101" in str(out).replace("\\", "/")

def test_build_settings_without_yaml(tmp_path: Path):
    st = build_settings(tmp_path)
    assert st.project_root == tmp_path.resolve()

def test_build_classifier_uses_settings():
    s = Settings(symbol_count=128, laplace_smoothing=False)
    clf = build_classifier(s)
    assert isinstance(clf, NaiveBayesClassifier)
    assert clf.symbol_count == 128 and not clf.laplace

def test_build_coordinator_wires_stretcher():
    s = Settings(stretch_partitions=3, lo_percentile=0.1, hi_percentile=0.9, max_workers=2)
    coord = build_coordinator(s, FakeReader({}))
    assert coord.max_workers == 2
    assert coord.loader.stretcher.partitions == 3
    assert coord.loader.stretcher.lo_percentile == 0.1
