"""
Flask application for previewing the generated maps.

This application serves the exported interactive map and the saved static
figures, and exposes the dataset registry as JSON.
"""

from pathlib import Path

from flask import (
    Flask,
    jsonify,
    render_template_string,
    send_file,
)

from nycmaps.config import (
    Settings,
    get_dataset_config,
    list_datasets,
)


app = Flask(__name__)

INDEX_TEMPLATE = """<!doctype html>
<html>
<head><title>NYC facility maps</title></head>
<body>
  <h1>NYC facility maps</h1>
  <p><a href="/map">Interactive map</a>{% if not has_map %} (not built yet){% endif %}</p>
  <h2>Static figures</h2>
  <ul>
  {% for name in figures %}
    <li><a href="/api/static/{{ name }}.png">{{ name }}</a></li>
  {% else %}
    <li>No figures yet. Run scripts/build_maps.py first.</li>
  {% endfor %}
  </ul>
  <h2>Datasets</h2>
  <ul>
  {% for name, description in datasets.items() %}
    <li><a href="/api/datasets/{{ name }}">{{ name }}</a>: {{ description }}</li>
  {% endfor %}
  </ul>
</body>
</html>
"""


def get_settings() -> Settings:
    """Settings for this app, created from the environment on first use."""
    if "NYCMAPS_SETTINGS" not in app.config:
        app.config["NYCMAPS_SETTINGS"] = Settings()
    return app.config["NYCMAPS_SETTINGS"]


def list_figures() -> list:
    """Names of the saved static figures."""
    figures_dir = Path(get_settings().figures_dir)
    if not figures_dir.is_dir():
        return []
    return sorted(p.stem for p in figures_dir.glob("*.png"))


@app.route("/")
def index():
    """Render the landing page."""
    return render_template_string(
        INDEX_TEMPLATE,
        has_map=Path(get_settings().html_path).exists(),
        figures=list_figures(),
        datasets=list_datasets(),
    )


@app.route("/api/datasets")
def api_list_datasets():
    """API endpoint to list available datasets."""
    return jsonify(list_datasets())


@app.route("/api/datasets/<name>")
def api_dataset(name: str):
    """API endpoint to describe a dataset configuration."""
    try:
        config = get_dataset_config(name)
    except KeyError:
        return jsonify({"error": f"Dataset '{name}' not found"}), 404

    return jsonify({
        "name": name,
        "display_name": config.name,
        "source": config.source or None,
        "format": config.format.value,
        "id_column": config.id_column,
        "value_column": config.value_column,
        "layer": config.layer,
    })


@app.route("/map")
def interactive_map():
    """Serve the exported interactive map."""
    html_path = Path(get_settings().html_path)
    if not html_path.exists():
        return jsonify({
            "error": "Interactive map not found. Run scripts/build_maps.py first.",
            "path": str(html_path),
        }), 404
    return send_file(html_path.resolve(), mimetype="text/html")


@app.route("/api/static/<name>.png")
def static_figure(name: str):
    """Serve a saved static figure."""
    if name not in list_figures():
        return jsonify({
            "error": f"Figure '{name}' not found",
            "available": list_figures(),
        }), 404

    path = Path(get_settings().figures_dir) / f"{name}.png"
    return send_file(path.resolve(), mimetype="image/png")


if __name__ == "__main__":
    app.run(debug=True, host="0.0.0.0", port=5000)
