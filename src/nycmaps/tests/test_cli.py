"""Tests for the build_maps command-line script."""

import sys
from pathlib import Path

import pytest

# scripts/ is not a package
SCRIPTS_DIR = Path(__file__).resolve().parents[3] / "scripts"
sys.path.insert(0, str(SCRIPTS_DIR))

import build_maps  # noqa: E402

from nycmaps.tests.conftest import BROADBAND_URL, INCOME_URL  # noqa: E402


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "NYCMAPS_OUTPUT_DIR",
        "NYCMAPS_BROADBAND_URL",
        "NYCMAPS_INCOME_URL",
        "NYCMAPS_VERBOSE",
    ):
        monkeypatch.delenv(name, raising=False)


def _run(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["build_maps.py", *args])
    build_maps.main()


def test_flags_override_settings(fake_http, monkeypatch, tmp_path, capsys):
    out = tmp_path / "out"
    _run(
        monkeypatch,
        "--output-dir", str(out),
        "--broadband-url", BROADBAND_URL,
        "--income-url", INCOME_URL,
        "--quiet",
    )

    assert (out / "facilities_map.html").exists()
    assert (out / "figures" / "income_choropleth.png").exists()
    assert (out / "figures" / "broadband_vs_income.png").exists()
    assert capsys.readouterr().out == ""

    requested = [url for url, _ in fake_http]
    assert BROADBAND_URL in requested
    assert INCOME_URL in requested


def test_no_static(fake_http, monkeypatch, tmp_path):
    out = tmp_path / "out"
    _run(
        monkeypatch,
        "--output-dir", str(out),
        "--broadband-url", BROADBAND_URL,
        "--income-url", INCOME_URL,
        "--no-static",
        "--quiet",
    )
    assert (out / "facilities_map.html").exists()
    assert not (out / "figures").exists()


def test_verbose_summary(fake_http, monkeypatch, tmp_path, capsys):
    _run(
        monkeypatch,
        "--output-dir", str(tmp_path / "out"),
        "--broadband-url", BROADBAND_URL,
        "--income-url", INCOME_URL,
        "--no-static",
    )
    out = capsys.readouterr().out
    assert "Boundaries: geojson" in out
    assert "Build Complete!" in out
    assert "Facilities: 2" in out


def test_failure_exits_with_code_1(fake_http, monkeypatch, tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        _run(
            monkeypatch,
            "--output-dir", str(tmp_path / "out"),
            "--broadband-url", "https://example.test/gone.csv",
            "--income-url", INCOME_URL,
            "--quiet",
        )
    assert excinfo.value.code == 1
    assert "Map build failed" in capsys.readouterr().err
    assert not (tmp_path / "out" / "facilities_map.html").exists()


def test_missing_attribute_source_fails(fake_http, monkeypatch, tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        _run(monkeypatch, "--output-dir", str(tmp_path / "out"), "--quiet")
    assert excinfo.value.code == 1
    assert "No source configured" in capsys.readouterr().err
