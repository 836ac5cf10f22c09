import numpy as np
import pytest
from landclassifier.adapters.naive_bayes_classifier import NaiveBayesClassifier
from landclassifier.contracts.core import DEFAULT_LAND_COVER
from landclassifier.contracts.errors import ModelNotTrainedError
from landclassifier.services.prediction_service import PredictionService
from landclassifier.services.training_service import TrainingService
from tests.factories import make_band

def _two_region_bands():
    # columnas 0-1 "agua" (valores bajos), 2-3 "bosque" (valores altos)
    a = np.array([[10, 12, 200, 210]] * 3, dtype=np.uint16)
    b = np.array([[5, 6, 90, 95]] * 3, dtype=np.uint16)
    return [make_band(name="B04", data=a, band_number=4), make_band(name="B08", data=b, band_number=8)]

def _picks():
    return [((500005.0, 6999995.0), 0), ((500015.0, 6999985.0), 0),
            ((500025.0, 6999995.0), 1), ((500035.0, 6999975.0), 1)]

def test_predict_raster_classifies_regions():
    bands = _two_region_bands()
    clf = NaiveBayesClassifier(symbol_count=256)
    session = TrainingService().train(clf, bands, _picks())
    cmap = PredictionService().predict_raster(clf, bands, session.layout, DEFAULT_LAND_COVER)

    assert cmap.labels.shape == (3, 4)
    assert cmap.labels.dtype == np.uint8
    assert cmap.labels[:, :2].tolist() == [[0, 0]] * 3
    assert cmap.labels[:, 2:].tolist() == [[1, 1]] * 3
    assert dict(cmap.counts) == {0: 6, 1: 6}
    assert cmap.percents[0] == pytest.approx(50.0)
    assert cmap.palette[0] == DEFAULT_LAND_COVER[0].color.as_tuple()
    assert cmap.transform.is_close(bands[0].transform)

def test_predict_point_matches_training_label():
    bands = _two_region_bands()
    clf = NaiveBayesClassifier(symbol_count=256)
    session = TrainingService().train(clf, bands, _picks())
    assert PredictionService().predict_point(clf, bands, (500035.0, 6999995.0), session.layout) == 1

def test_predict_before_training():
    bands = _two_region_bands()
    svc = PredictionService()
    layout = svc.assembler.snapshot(bands)
    with pytest.raises(ModelNotTrainedError):
        svc.predict_raster(NaiveBayesClassifier(symbol_count=256), bands, layout)

def test_nodata_pixels_get_nodata_label():
    from landclassifier.contracts.errors import DimensionError
    from landclassifier.services.band_loader import LoadOptions, RasterBandLoader
    from landclassifier.services.coordinator import BandRequest, ConcurrencyCoordinator
    from tests.factories import FakeReader, make_decoded

    band = np.array([[10, 12, 200, 210]] * 3, dtype=np.uint16)
    dem = np.array([[1.0, 2.0, np.nan, 40.0]] * 3, dtype=np.float32)
    coord = ConcurrencyCoordinator(RasterBandLoader(reader=FakeReader({
        "b.tif": make_decoded(band), "dem.tif": make_decoded(dem)})))
    coord.load_batch([BandRequest("b.tif", LoadOptions(name="B04", band_number=4))])
    coord.load_layers([BandRequest("dem.tif", LoadOptions(name="DEM", band_number=20))])

    clf = NaiveBayesClassifier(symbol_count=256)
    picks = [((500005.0, 6999995.0), 0), ((500015.0, 6999985.0), 0), ((500035.0, 6999975.0), 1)]
    session = TrainingService().train(clf, coord.layers, picks)
    svc = PredictionService()
    with pytest.raises(DimensionError):
        svc.predict_point(clf, coord.layers, (500025.0, 6999995.0), session.layout)

    cmap = svc.predict_raster(clf, coord.layers, session.layout, DEFAULT_LAND_COVER)
    assert cmap.nodata == 255
    assert (cmap.labels[:, 2] == 255).all()
    assert cmap.labels[:, :2].tolist() == [[0, 0]] * 3
    assert (cmap.labels[:, 3] == 1).all()
    assert dict(cmap.counts) == {0: 6, 1: 3}
    assert sum(cmap.percents.values()) == pytest.approx(100.0)
