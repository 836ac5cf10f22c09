import time
import numpy as np
from landclassifier.contracts.geo import CRSRef, GeoTransform, PixelDomain
from landclassifier.contracts.products import Histogram, RasterBand
from landclassifier.ports.raster_read import DecodedRaster

def make_transform(px=10.0, x0=500000.0, y0=7000000.0):
    return GeoTransform((x0, px, 0.0, y0, 0.0, -px))

def make_band(name="B04", data=None, w=4, h=3, value=0, band_number=4, is_feature=True,
              transform=None, dtype=np.uint16):
    arr = np.full((h, w), value, dtype=dtype) if data is None else np.ascontiguousarray(data)
    domain = PixelDomain.from_dtype(arr.dtype)
    return RasterBand(
        name=name, data=arr, domain=domain,
        transform=transform or make_transform(),
        min_value=float(np.nanmin(arr)) if arr.size else 0.0,
        max_value=float(np.nanmax(arr)) if arr.size else 0.0,
        histogram=Histogram(np.zeros(0, dtype=np.int64), 0.0),
        band_number=band_number, is_feature=is_feature,
        projection=CRSRef.from_epsg(32719),
    )

def make_decoded(data, px=10.0, epsg=32719, x0=500000.0):
    t = make_transform(px, x0=x0)
    return DecodedRaster(data=np.asarray(data), coefficients=t.coefficients, projection=CRSRef.from_epsg(epsg))

class FakeReader:
    """Reader en memoria: uri -> DecodedRaster o excepción a lanzar."""
    def __init__(self, rasters_by_uri, delays=None):
        self._map = dict(rasters_by_uri)
        self._delays = dict(delays or {})
        self.calls = []

    def put(self, uri, item):
        self._map[uri] = item

    def read(self, uri, band_index=None):
        self.calls.append(uri)
        if uri in self._delays:
            time.sleep(self._delays[uri])
        item = self._map.get(uri)
        if item is None:
            raise FileNotFoundError(uri)
        if isinstance(item, BaseException):
            raise item
        return item

    def size(self, uri):
        r = self.read(uri)
        return r.width, r.height

    def exists(self, uri):
        return uri in self._map
