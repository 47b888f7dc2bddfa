"""Tests for the Flask preview app."""

import pytest

from nycmaps.app import app


@pytest.fixture
def client(settings):
    app.config["TESTING"] = True
    app.config["NYCMAPS_SETTINGS"] = settings
    with app.test_client() as client:
        yield client
    app.config.pop("NYCMAPS_SETTINGS", None)


@pytest.fixture
def built_outputs(settings):
    settings.figures_dir.mkdir(parents=True)
    (settings.figures_dir / "income_choropleth.png").write_bytes(b"\x89PNG\r\n\x1a\nfake")
    settings.html_path.write_text("<html><body>facility map</body></html>")
    return settings


def test_index_without_outputs(client):
    response = client.get("/")
    assert response.status_code == 200
    body = response.get_data(as_text=True)
    assert "not built yet" in body
    assert "facilities" in body


def test_index_lists_figures(client, built_outputs):
    body = client.get("/").get_data(as_text=True)
    assert "/api/static/income_choropleth.png" in body
    assert "not built yet" not in body


def test_list_datasets(client):
    data = client.get("/api/datasets").get_json()
    assert {"facilities", "pumas", "pumas_shapefile", "broadband", "income"} <= set(data)


def test_dataset_details(client):
    data = client.get("/api/datasets/pumas_shapefile").get_json()
    assert data["format"] == "shapefile_zip"
    assert data["id_column"] == "PUMACE10"


def test_unconfigured_dataset_source_is_null(client):
    data = client.get("/api/datasets/income").get_json()
    assert data["source"] is None
    assert data["value_column"] == "median_household_income"


def test_unknown_dataset(client):
    response = client.get("/api/datasets/walkability")
    assert response.status_code == 404
    assert "not found" in response.get_json()["error"]


def test_map_not_built(client):
    response = client.get("/map")
    assert response.status_code == 404
    assert "error" in response.get_json()


def test_map_served(client, built_outputs):
    response = client.get("/map")
    assert response.status_code == 200
    assert response.mimetype == "text/html"
    assert b"facility map" in response.data


def test_static_figure(client, built_outputs):
    response = client.get("/api/static/income_choropleth.png")
    assert response.status_code == 200
    assert response.mimetype == "image/png"


def test_static_figure_missing(client, built_outputs):
    response = client.get("/api/static/broadband_choropleth.png")
    assert response.status_code == 404
    assert response.get_json()["available"] == ["income_choropleth"]
