import pytest

from models.chart_models import ChartIntent, ChartSeries, LabelPoint, SourceColumns
from models.dataset_models import ColumnClassification
from services.aggregation_service import build_series, format_label, mean_by_group
from services.chart_renderer import render_series
from services.column_classifier import classify_columns, parse_number
from services.intent_service import KeywordIntentClassifier, select_intent


@pytest.fixture()
def sales(make_dataset):
    return make_dataset(
        "sales",
        "sales",
        [
            {"region": "North", "amount": 10, "units": 1},
            {"region": "North", "amount": 20, "units": 2},
            {"region": "South", "amount": 5, "units": 3},
            {"region": None, "amount": 9, "units": 4},
        ],
    )


@pytest.fixture()
def numeric_pairs(make_dataset):
    def build(n):
        return make_dataset("nums", "nums", [{"x": i, "y": i * 2} for i in range(n)])

    return build


def test_parse_number():
    assert parse_number("3.5") == 3.5
    assert parse_number(" 7 ") == 7.0
    assert parse_number(4) == 4.0
    assert parse_number("") is None
    assert parse_number("1_000") is None
    assert parse_number("inf") is None
    assert parse_number("abc") is None
    assert parse_number(None) is None


def test_classify_columns(make_dataset):
    ds = make_dataset(
        "c",
        "c",
        [
            {"a": "1", "b": "x", "c": None},
            {"a": 2.5, "b": "y", "c": None},
        ],
    )
    result = classify_columns(ds)
    assert result.numeric == ["a"]
    assert result.categorical == ["b", "c"]


def test_classification_only_looks_at_the_sample(make_dataset):
    ds = make_dataset("c", "c", [{"v": 1}, {"v": 2}, {"v": "oops"}])
    assert classify_columns(ds, sample_size=2).numeric == ["v"]
    assert classify_columns(ds).categorical == ["v"]


def test_format_label():
    assert format_label(None) == "Unknown"
    assert format_label(3.0) == "3"
    assert format_label(2.5) == "2.5"
    assert format_label("North") == "North"


def test_bar_series_means_by_group(sales):
    series = build_series(sales, "bar", "region", "amount")
    assert [(p.label, p.value) for p in series.points] == [
        ("North", 15.0),
        ("South", 5.0),
        ("Unknown", 9.0),
    ]
    assert series.source_columns == SourceColumns(x="region", y="amount")


def test_bar_series_top_n_ranks_by_mean(sales):
    series = build_series(sales, "bar", "region", "amount", top_n=2)
    assert [p.label for p in series.points] == ["North", "Unknown"]


def test_mean_by_group_treats_unparseable_as_zero():
    rows = [{"k": "a", "v": "n/a"}, {"k": "a", "v": 4}]
    assert mean_by_group(rows, "k", "v")[0].value == 2.0


def test_pie_counts_and_ignores_y(sales):
    series = build_series(sales, "pie", "region", "amount")
    assert [(p.label, p.value) for p in series.points] == [
        ("North", 2.0),
        ("South", 1.0),
        ("Unknown", 1.0),
    ]
    assert series.source_columns.y is None


@pytest.mark.parametrize("n,bins", [(100, 20), (101, 21), (10, 10)])
def test_numeric_x_is_binned(numeric_pairs, n, bins):
    series = build_series(numeric_pairs(n), "line", "x", "y")
    assert len(series.points) == bins


def test_bin_labels_are_mean_x(numeric_pairs):
    series = build_series(numeric_pairs(100), "bar", "x", "y")
    first = series.points[0]
    assert first.label == "2.0"
    assert first.value == 4.0


def test_scatter_is_truncated(numeric_pairs):
    series = build_series(numeric_pairs(500), "scatter", "x", "y")
    assert len(series.points) == 200
    assert (series.points[0].x, series.points[0].y) == (0.0, 0.0)
    assert series.points[-1].x == 199.0


def test_unsupported_shapes_give_empty_series(sales):
    assert build_series(sales, "bar", "missing", "amount").is_empty
    assert build_series(sales, "bar", "region").is_empty
    assert build_series(sales, "line", "amount", "region").is_empty


def test_explicit_classification_is_respected(sales):
    classification = ColumnClassification(numeric=[], categorical=["region", "amount", "units"])
    assert build_series(sales, "bar", "region", "amount", classification=classification).is_empty


def test_intent_keywords():
    numeric, categorical = ["amount", "units"], ["region"]
    assert select_intent("show the trend", numeric, categorical) == ChartIntent(
        chart_type="line", x_column="amount", y_column="units"
    )
    assert select_intent("Distribution please", numeric, categorical) == ChartIntent(
        chart_type="pie", x_column="region"
    )
    assert select_intent("any correlation?", numeric, categorical).chart_type == "scatter"
    assert select_intent("group by region", numeric, categorical).chart_type == "bar"


def test_intent_defaults():
    assert select_intent("hello", ["amount"], ["region"]) == ChartIntent(
        chart_type="bar", x_column="region", y_column="amount"
    )
    assert select_intent("hello", ["a", "b"], []).chart_type == "scatter"
    # line needs two numeric columns, so the default applies
    assert select_intent("trend", ["amount"], ["region"]).chart_type == "bar"
    assert select_intent("anything", [], ["region"]) is None


def test_intent_classifier_is_pluggable():
    class Always:
        def classify_intent(self, query, numeric_columns, categorical_columns):
            return ChartIntent(chart_type="pie", x_column="fixed")

    assert select_intent("bar", ["a"], ["b"], classifier=Always()).x_column == "fixed"
    custom = KeywordIntentClassifier(families=[("pie", ("share",))])
    assert custom.classify_intent("market share", ["a"], ["b"]).chart_type == "pie"


def test_render_series():
    series = ChartSeries(
        chart_type="bar",
        points=[LabelPoint(label="A", value=1.0), LabelPoint(label="B", value=2.0)],
        source_columns=SourceColumns(x="k", y="v"),
    )
    image = render_series(series)
    assert image and isinstance(image, str)

    empty = ChartSeries(chart_type="pie", points=[], source_columns=SourceColumns(x="k"))
    assert render_series(empty) is None


def test_empty_keyword_families_skip_keyword_matching():
    classifier = KeywordIntentClassifier(families=[])
    # "trend" would pick a line chart with the default families
    assert classifier.classify_intent("trend", ["a", "b"], []).chart_type == "scatter"
