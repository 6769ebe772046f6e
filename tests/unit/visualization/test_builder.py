"""
Unit tests for VisualizationBuilder.

Type selection, aggregation and artifact persistence.
"""

import pytest

from schoolchat.models.errors import EmptyDataError, VisualizationError
from schoolchat.models.visualization import VisualizationOptions
from schoolchat.profiling.columns import profile_columns
from schoolchat.visualization.builder import VisualizationBuilder, suggest_type
from schoolchat.visualization.store import VisualizationStore


@pytest.fixture
def builder(tmp_path):
    return VisualizationBuilder(store=VisualizationStore(tmp_path / "viz"))


def _suggest(rows):
    return suggest_type(len(rows), profile_columns(rows))


class TestSuggestType:
    def test_single_row_is_table(self):
        assert _suggest([{"school_type": "Primary", "capacity": 300}]) == "table"

    def test_date_and_number_is_time_series(self):
        rows = [{"opened": f"20{10 + i}-09-01", "pupils": 100 + i} for i in range(5)]

        assert _suggest(rows) == "time_series"

    def test_two_numbers_is_scatter(self):
        rows = [{"capacity": 100 * i, "enrolled": 90 * i} for i in range(1, 6)]

        assert _suggest(rows) == "scatter"

    def test_category_and_number_is_bar(self):
        rows = [{"school_type": t, "capacity": c} for t, c in [("A", 1), ("B", 2), ("A", 3)]]

        assert _suggest(rows) == "bar"

    def test_many_rows_switch_bar_to_histogram(self):
        rows = [{"school_type": "AB"[i % 2], "capacity": i} for i in range(51)]

        assert _suggest(rows) == "histogram"

    def test_category_alone_is_pie(self):
        assert _suggest([{"phase": p} for p in ["Primary", "Secondary", "Primary"]]) == "pie"

    def test_number_alone_is_histogram(self):
        assert _suggest([{"capacity": c} for c in [100, 200, 300]]) == "histogram"

    def test_free_text_is_table(self):
        rows = [{"note": f"free text number {i}"} for i in range(12)]

        assert _suggest(rows) == "table"

    def test_deterministic(self, school_rows):
        assert len({_suggest(school_rows) for _ in range(5)}) == 1


class TestBuild:
    def test_empty_data(self, builder):
        with pytest.raises(EmptyDataError, match="non-empty array"):
            builder.build([])

    def test_not_a_list(self, builder):
        with pytest.raises(EmptyDataError):
            builder.build({"a": 1})

    def test_unknown_type(self, builder, school_rows):
        with pytest.raises(VisualizationError, match="Unsupported visualization type: radar"):
            builder.build(school_rows, {"type": "radar"})

    def test_bar_averages_per_category(self, builder):
        rows = [
            {"school_type": "Primary", "capacity": 420},
            {"school_type": "Secondary", "capacity": 1100},
            {"school_type": "Primary", "capacity": 315},
            {"school_type": "Secondary", "capacity": 980},
        ]

        spec = builder.build(rows, VisualizationOptions(type="bar", persist=False))

        trace = spec.payload["data"][0]
        assert trace["x"] == ["Primary", "Secondary"]
        assert trace["y"] == [367.5, 1040.0]
        assert trace["marker"]["color"] == "rgb(55, 83, 109)"
        assert spec.payload["layout"]["yaxis"]["title"]["text"] == "capacity"
        assert spec.output_ref is None
        assert spec.format == "json"

    def test_bar_without_numbers_counts_first_column(self, builder):
        rows = [{"phase": p} for p in ["Primary", "Primary", "Secondary"]]

        spec = builder.build(rows, VisualizationOptions(type="bar", persist=False))

        trace = spec.payload["data"][0]
        assert trace["y"] == [2.0, 1.0]
        assert spec.payload["layout"]["yaxis"]["title"]["text"] == "Count"

    def test_pie_counts_with_unknown_bucket(self, builder):
        rows = [{"phase": "Primary"}, {"phase": None}, {"phase": ""}, {"phase": "Primary"}]

        spec = builder.build(rows, VisualizationOptions(type="pie", persist=False))

        trace = spec.payload["data"][0]
        assert trace["labels"] == ["Primary", "Unknown"]
        assert trace["values"] == [2.0, 2.0]
        assert trace["textinfo"] == "label+percent"

    def test_time_series_sorted_by_date(self, builder):
        rows = [
            {"year": "2023-01-01", "pupils": 3},
            {"year": "2021-01-01", "pupils": 1},
            {"year": "2022-01-01", "pupils": 2},
        ]

        spec = builder.build(rows, VisualizationOptions(persist=False))

        assert spec.type == "time_series"
        trace = spec.payload["data"][0]
        assert trace["x"] == ["2021-01-01", "2022-01-01", "2023-01-01"]
        assert trace["y"] == [1.0, 2.0, 3.0]
        assert spec.payload["layout"]["xaxis"]["type"] == "date"

    def test_histogram_without_numbers_degrades_to_bar(self, builder):
        rows = [{"phase": "Primary"}, {"phase": "Secondary"}]

        spec = builder.build(rows, VisualizationOptions(type="histogram", persist=False))

        assert spec.type == "bar"

    def test_plotly_html_is_stored(self, builder, school_rows):
        spec = builder.build(school_rows, VisualizationOptions(title="Capacity by school"))

        assert spec.format == "html"
        assert spec.output_ref.filename.startswith("plot_")
        assert spec.output_ref.url == f"/visualizations/{spec.output_ref.filename}"
        html = (builder.store.output_dir / spec.output_ref.filename).read_text(encoding="utf-8")
        assert "plotly" in html.lower()

    def test_chartjs_image_is_stored(self, builder, school_rows):
        spec = builder.build(school_rows, VisualizationOptions(library="chartjs"))

        assert spec.library == "chartjs"
        assert spec.payload["type"] == "bar"
        assert spec.payload["data"]["datasets"][0]["data"]
        assert spec.format == "png"
        image = (builder.store.output_dir / spec.output_ref.filename).read_bytes()
        assert image.startswith(b"\x89PNG")

    def test_dialect_changes_payload_only(self, builder, school_rows):
        plotly_spec = builder.build(school_rows, VisualizationOptions(persist=False))
        chartjs_spec = builder.build(
            school_rows, VisualizationOptions(library="chartjs", persist=False)
        )

        assert plotly_spec.type == chartjs_spec.type
        assert plotly_spec.payload["data"][0]["y"] == chartjs_spec.payload["data"]["datasets"][0]["data"]

    def test_table_escapes_values(self, builder):
        rows = [{"name": "<script>alert(1)</script>", "capacity": 0}]

        spec = builder.build(rows, VisualizationOptions(title="One <b>row</b>"))

        assert spec.type == "table"
        assert spec.output_ref.filename.startswith("table_")
        html = (builder.store.output_dir / spec.output_ref.filename).read_text(encoding="utf-8")
        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;" in html
        assert "<td>0</td>" in html
        assert spec.payload == {"columns": ["name", "capacity"], "rows": rows}

    def test_explicit_filename_keeps_base_name(self, builder, school_rows):
        spec = builder.build(
            school_rows, VisualizationOptions(filename="../../etc/capacity.html")
        )

        assert spec.output_ref.filename == "capacity.html"
        assert (builder.store.output_dir / "capacity.html").exists()

    def test_explicit_filename_suffix_matches_image_format(self, builder, school_rows):
        spec = builder.build(
            school_rows, VisualizationOptions(library="chartjs", filename="chart.html")
        )

        assert spec.format == "png"
        assert spec.output_ref.filename == "chart.png"
        assert (builder.store.output_dir / "chart.png").read_bytes().startswith(b"\x89PNG")
        assert not (builder.store.output_dir / "chart.html").exists()

    def test_explicit_table_filename_without_suffix_is_listed(self, builder):
        spec = builder.build(
            [{"name": "Northgate High", "capacity": 1200}],
            VisualizationOptions(filename="myreport"),
        )

        assert spec.output_ref.filename == "myreport.html"
        assert [f.filename for f in builder.store.list()] == ["myreport.html"]
