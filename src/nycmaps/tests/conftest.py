"""
Pytest configuration and fixtures for nycmaps tests.
"""

import io
import json

import matplotlib
matplotlib.use("Agg")

import geopandas as gpd
import pandas as pd
import pytest
import requests
from shapely.geometry import box

BROADBAND_URL = "https://example.test/broadband.csv"
INCOME_URL = "https://example.test/income.xlsx"


class FakeResponse:
    """Stand-in for requests.Response."""

    def __init__(self, status_code=200, payload=None, text="", content=b""):
        self.status_code = status_code
        self._payload = payload
        self.text = text
        self.content = content or text.encode("utf-8")

    def json(self):
        if self._payload is None:
            return json.loads(self.text)
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


@pytest.fixture
def facility_records():
    """Facility listing as delivered: coordinates are strings."""
    return [
        {
            "fac_id": "1", "facility_name": "Midtown Hospital",
            "facility_address_1": "1 W 34th St", "facility_city": "New York",
            "facility_zip_code": "10001", "ownership_type": "Not for Profit Corporation",
            "facility_latitude": "40.75", "facility_longitude": "-73.98",
        },
        {
            "fac_id": "2", "facility_name": "Brooklyn Medical Center",
            "facility_address_1": "100 Atlantic Ave", "facility_city": "Brooklyn",
            "facility_zip_code": "11201", "ownership_type": "Public Benefit Corporation",
            "facility_latitude": "40.69", "facility_longitude": "-73.99",
        },
        {
            "fac_id": "3", "facility_name": "Ungeocoded Hospital",
            "facility_address_1": "PO Box 1", "facility_city": "Albany",
            "facility_zip_code": "12201", "ownership_type": "Municipality",
            "facility_latitude": "0", "facility_longitude": "0",
        },
        {
            "fac_id": "4", "facility_name": "Misplaced Hospital",
            "facility_address_1": "5 Main St", "facility_city": "Queens",
            "facility_zip_code": "11101", "ownership_type": "Municipality",
            "facility_latitude": "30.5", "facility_longitude": "-73.9",
        },
    ]


@pytest.fixture
def pumas():
    """Three square PUMAs around Manhattan and Brooklyn; codes not padded."""
    return gpd.GeoDataFrame(
        {
            "puma": ["3801", "4004", "3802"],
            "name": ["Midtown", "Brooklyn Heights", "Upper West Side"],
        },
        geometry=[
            box(-74.02, 40.72, -73.94, 40.78),
            box(-74.02, 40.64, -73.94, 40.72),
            box(-74.02, 40.78, -73.94, 40.84),
        ],
        crs="EPSG:4326",
    )


@pytest.fixture
def puma_feature_collection(pumas):
    return json.loads(pumas.to_json())


@pytest.fixture
def broadband_table():
    # 3802 has no row
    return pd.DataFrame({"puma": [3801, 4004], "broadband_pct": [91.5, 68.0]})


@pytest.fixture
def income_table():
    return pd.DataFrame({
        "puma": [3801, 4004, 3802],
        "median_household_income": [50000, 24999, 160000],
    })


@pytest.fixture
def income_xlsx(income_table):
    buffer = io.BytesIO()
    income_table.to_excel(buffer, index=False)
    return buffer.getvalue()


@pytest.fixture
def settings(tmp_path):
    from nycmaps.config import Settings

    return Settings(
        output_dir=tmp_path / "output",
        download_dir=tmp_path / "downloads",
        request_timeout=5,
        broadband_url=BROADBAND_URL,
        income_url=INCOME_URL,
        verbose=False,
    )


@pytest.fixture
def fake_http(monkeypatch, facility_records, puma_feature_collection, broadband_table, income_xlsx):
    """Route requests.get to canned responses.

    Returns the list of (url, kwargs) calls so tests can inspect them.
    Unknown URLs answer 404.
    """
    from nycmaps.config import FACILITIES, PUMAS_GEOJSON

    routes = {
        FACILITIES.source: FakeResponse(payload=facility_records),
        PUMAS_GEOJSON.source: FakeResponse(payload=puma_feature_collection),
        BROADBAND_URL: FakeResponse(text=broadband_table.to_csv(index=False)),
        INCOME_URL: FakeResponse(content=income_xlsx),
    }
    calls = []

    def fake_get(url, **kwargs):
        calls.append((url, kwargs))
        return routes.get(url, FakeResponse(status_code=404))

    monkeypatch.setattr(requests, "get", fake_get)
    return calls
