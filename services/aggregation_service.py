from typing import Dict, List, Optional, Tuple

from loguru import logger

from config import BIN_COUNT, SCATTER_MAX_POINTS
from models.chart_models import ChartSeries, ChartType, LabelPoint, SourceColumns, XYPoint
from models.dataset_models import ColumnClassification, Dataset, Row, Scalar
from services.column_classifier import classify_columns, parse_number

UNKNOWN_LABEL = "Unknown"


def coerce_number(value: Scalar) -> float:
    """Numeric coercion for aggregation: anything that does not parse becomes 0."""
    number = parse_number(value)
    return 0.0 if number is None else number


def format_label(value: Scalar) -> str:
    if value is None:
        return UNKNOWN_LABEL
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _empty(chart_type: ChartType, x_column: str, y_column: Optional[str]) -> ChartSeries:
    return ChartSeries(
        chart_type=chart_type,
        points=[],
        source_columns=SourceColumns(x=x_column, y=y_column),
    )


def count_by_group(rows: List[Row], x_column: str) -> List[LabelPoint]:
    counts: Dict[str, int] = {}
    for row in rows:
        key = format_label(row.get(x_column))
        counts[key] = counts.get(key, 0) + 1
    return [LabelPoint(label=k, value=float(v)) for k, v in counts.items()]


def mean_by_group(
    rows: List[Row], x_column: str, y_column: str, top_n: Optional[int] = None
) -> List[LabelPoint]:
    """
    Mean of y per distinct x, in first-seen order of x.
    With `top_n` the groups are ranked by mean (descending) and capped.
    """
    totals: Dict[str, Tuple[float, int]] = {}
    for row in rows:
        key = format_label(row.get(x_column))
        total, count = totals.get(key, (0.0, 0))
        totals[key] = (total + coerce_number(row.get(y_column)), count + 1)

    points = [LabelPoint(label=k, value=total / count) for k, (total, count) in totals.items()]
    if top_n is not None:
        points = sorted(points, key=lambda p: p.value, reverse=True)[:top_n]
    return points


def scatter_points(
    rows: List[Row], x_column: str, y_column: str, max_points: Optional[int] = SCATTER_MAX_POINTS
) -> List[XYPoint]:
    selected = rows if max_points is None else rows[:max_points]
    return [
        XYPoint(x=coerce_number(row.get(x_column)), y=coerce_number(row.get(y_column)))
        for row in selected
    ]


def binned_means(
    rows: List[Row], x_column: str, y_column: str, bin_count: int = BIN_COUNT
) -> List[LabelPoint]:
    """
    Sort (x, y) pairs by x and cut them into consecutive bins of
    max(1, n // bin_count) rows. Each bin yields its mean x (one decimal) as
    the label and its mean y as the value; a short trailing bin still counts.
    """
    pairs = sorted(
        ((coerce_number(row.get(x_column)), coerce_number(row.get(y_column))) for row in rows),
        key=lambda pair: pair[0],
    )
    bin_size = max(1, len(pairs) // bin_count)

    points: List[LabelPoint] = []
    for start in range(0, len(pairs), bin_size):
        chunk = pairs[start : start + bin_size]
        mean_x = sum(x for x, _ in chunk) / len(chunk)
        mean_y = sum(y for _, y in chunk) / len(chunk)
        points.append(LabelPoint(label=f"{mean_x:.1f}", value=mean_y))
    return points


def build_series(
    dataset: Dataset,
    chart_type: ChartType,
    x_column: str,
    y_column: Optional[str] = None,
    classification: Optional[ColumnClassification] = None,
    top_n: Optional[int] = None,
    max_points: Optional[int] = SCATTER_MAX_POINTS,
    bin_count: int = BIN_COUNT,
) -> ChartSeries:
    """
    Turn raw rows into a chart-ready series.

    - pie: occurrence count per x value (missing -> "Unknown"), y ignored
    - scatter: one point per row, first `max_points` rows in original order
    - bar/line, categorical x + numeric y: mean of y per x group
    - bar/line, numeric x + numeric y: mean y over bins of x-sorted rows

    Any other shape returns an empty series, meaning the data cannot feed
    this chart type; it is not an error.
    """
    if classification is None:
        classification = classify_columns(dataset)
    rows = dataset.rows

    if x_column not in dataset.columns:
        logger.info("Column '{}' not in dataset '{}'", x_column, dataset.id)
        return _empty(chart_type, x_column, y_column)

    if chart_type == "pie":
        return ChartSeries(
            chart_type=chart_type,
            points=count_by_group(rows, x_column),
            source_columns=SourceColumns(x=x_column),
        )

    if y_column is None or y_column not in dataset.columns:
        return _empty(chart_type, x_column, y_column)

    if chart_type == "scatter":
        points = scatter_points(rows, x_column, y_column, max_points=max_points)
    elif classification.is_categorical(x_column) and classification.is_numeric(y_column):
        points = mean_by_group(rows, x_column, y_column, top_n=top_n)
    elif classification.is_numeric(x_column) and classification.is_numeric(y_column):
        points = binned_means(rows, x_column, y_column, bin_count=bin_count)
    else:
        logger.info(
            "No {} series for x='{}' y='{}': unsupported column shape", chart_type, x_column, y_column
        )
        points = []

    return ChartSeries(
        chart_type=chart_type,
        points=points,
        source_columns=SourceColumns(x=x_column, y=y_column),
    )
