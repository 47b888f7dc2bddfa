"""End-to-end tests for the map pipeline with HTTP stubbed out."""

from dataclasses import replace

import pandas as pd
import pytest
import requests

from nycmaps.pipeline import INCOME_BUCKET, BROADBAND_BUCKET, MapPipeline


@pytest.fixture
def pipeline(settings):
    return MapPipeline(settings)


class TestStages:

    def test_load_facilities(self, fake_http, pipeline):
        facilities = pipeline.load_facilities()
        assert facilities["fac_id"].tolist() == ["1", "2"]
        assert facilities.crs.to_epsg() == 4326
        assert pipeline.cleaning_log[-1] == "Facility cleaning complete: 4 -> 2 records"

    def test_load_boundaries_pads_keys(self, fake_http, pipeline):
        pumas = pipeline.load_boundaries("geojson")
        assert sorted(pumas["puma"]) == ["03801", "03802", "04004"]

    def test_unknown_boundary_source(self, pipeline):
        with pytest.raises(ValueError, match="Unknown boundary source"):
            pipeline.load_boundaries("kml")

    def test_join_and_buckets(self, fake_http, pipeline):
        pumas = pipeline.load_boundaries("geojson")
        joined, joins = pipeline.join_attributes(pumas, pipeline.load_attributes())

        by_puma = joined.set_index("puma")
        assert by_puma.loc["03801", INCOME_BUCKET] == "$50-75K"
        assert by_puma.loc["04004", INCOME_BUCKET] == "<$25K"
        assert by_puma.loc["03801", BROADBAND_BUCKET] == "90%+"
        assert pd.isna(by_puma.loc["03802", "broadband_pct"])
        assert pd.isna(by_puma.loc["03802", BROADBAND_BUCKET])

        assert joins["broadband"].unmatched == 1
        assert joins["income"].unmatched == 0

    def test_missing_attribute_source(self, fake_http, settings):
        pipeline = MapPipeline(replace(settings, income_url=None))
        with pytest.raises(ValueError, match="No source configured"):
            pipeline.load_attributes()


class TestRun:

    def test_full_run(self, fake_http, pipeline, settings):
        result = pipeline.run()

        assert len(result.facilities) == 2
        assert len(result.pumas) == 3
        assert set(result.joins) == {"broadband", "income"}

        assert result.html_path == settings.html_path
        html = result.html_path.read_text()
        assert "Median household income" in html
        assert "Broadband adoption" in html
        assert "Midtown Hospital" in html

        assert set(result.figures) == {
            "facilities_scatter",
            "facilities_by_affiliation",
            "pumas_with_facilities",
            "broadband_choropleth",
            "income_choropleth",
            "broadband_vs_income",
        }
        for path in result.figures.values():
            assert path.exists()
            assert path.parent == settings.figures_dir

    def test_run_without_static(self, fake_http, pipeline, settings):
        result = pipeline.run(save_static=False)
        assert result.figures == {}
        assert not settings.figures_dir.exists()
        assert result.html_path.exists()

    def test_http_failure_stops_run(self, fake_http, settings):
        pipeline = MapPipeline(replace(settings, broadband_url="https://example.test/gone.csv"))
        with pytest.raises(requests.HTTPError, match="404"):
            pipeline.run(save_static=False)
        assert not settings.html_path.exists()

    def test_verbose_prints_progress(self, fake_http, settings, capsys):
        MapPipeline(replace(settings, verbose=True)).run(save_static=False)
        out = capsys.readouterr().out
        assert "Loading facilities..." in out
        assert "Removed 1 records with zero or missing coordinates" in out
        assert "broadband: 2 matched, 1 unmatched" in out
