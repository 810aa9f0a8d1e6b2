import uuid
from typing import Dict, List, Optional

from loguru import logger
from sqlalchemy.orm import Session

from models.dataset_db_model import ChartFormulaDB
from models.dataset_models import Dataset, Row, Scalar
from models.formula_models import (
    Aggregation,
    ChartFormula,
    ChartFormulaCreate,
    ColumnMapping,
    FormulaApplication,
    FormulaChartConfig,
    FormulaFilter,
    RequiredColumns,
)
from services.aggregation_service import coerce_number, format_label
from services.column_classifier import parse_number
from services.errors import FormulaMappingError, FormulaNotFoundError

DEFAULT_FORMULAS: List[ChartFormulaCreate] = [
    ChartFormulaCreate(
        name="Sales by Category",
        description="Bar chart showing sales amounts grouped by category",
        chart_type="bar",
        required_columns=RequiredColumns(
            x_axis={"type": "string", "required": True},
            y_axis={"type": "number", "required": True},
        ),
        aggregation="sum",
        template="Create a bar chart showing {yAxis} by {xAxis}. Group the data by {xAxis} and sum the {yAxis} values.",
    ),
    ChartFormulaCreate(
        name="Trend Over Time",
        description="Line chart showing trends over time periods",
        chart_type="line",
        required_columns=RequiredColumns(
            x_axis={"type": "date", "required": True},
            y_axis={"type": "number", "required": True},
        ),
        template="Create a line chart showing {yAxis} trends over {xAxis}. Display the data chronologically.",
    ),
    ChartFormulaCreate(
        name="Distribution Pie Chart",
        description="Pie chart showing distribution of categories",
        chart_type="pie",
        required_columns=RequiredColumns(
            x_axis={"type": "string", "required": True},
            y_axis={"type": "number", "required": False},
        ),
        aggregation="count",
        template="Create a pie chart showing the distribution of {xAxis}. If {yAxis} is provided, use it as the value, otherwise count occurrences.",
    ),
    ChartFormulaCreate(
        name="Correlation Scatter",
        description="Scatter plot showing correlation between two numeric variables",
        chart_type="scatter",
        required_columns=RequiredColumns(
            x_axis={"type": "number", "required": True},
            y_axis={"type": "number", "required": True},
        ),
        template="Create a scatter plot showing the relationship between {xAxis} and {yAxis}.",
    ),
]


def _to_model(record: ChartFormulaDB) -> ChartFormula:
    return ChartFormula(
        id=record.id,
        name=record.name,
        description=record.description or "",
        chart_type=record.chart_type,
        template=record.template or "",
        required_columns=record.required_columns,
        aggregation=record.aggregation,
        filters=record.filters or [],
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _get_record(db: Session, user_id: str, formula_id: str) -> ChartFormulaDB:
    record = (
        db.query(ChartFormulaDB)
        .filter(ChartFormulaDB.id == formula_id, ChartFormulaDB.user_id == user_id)
        .first()
    )
    if record is None:
        raise FormulaNotFoundError(formula_id)
    return record


def create_formula(db: Session, user_id: str, formula: ChartFormulaCreate) -> ChartFormula:
    record = ChartFormulaDB(
        id=f"formula_{uuid.uuid4().hex}",
        user_id=user_id,
        name=formula.name,
        description=formula.description,
        chart_type=formula.chart_type,
        template=formula.template,
        required_columns=formula.required_columns.model_dump(),
        aggregation=formula.aggregation,
        filters=[f.model_dump() for f in formula.filters],
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return _to_model(record)


def ensure_default_formulas(db: Session, user_id: str) -> None:
    existing = {
        name
        for (name,) in db.query(ChartFormulaDB.name).filter(ChartFormulaDB.user_id == user_id).all()
    }
    for formula in DEFAULT_FORMULAS:
        if formula.name not in existing:
            create_formula(db, user_id, formula)
            logger.info("Seeded default formula '{}' for user '{}'", formula.name, user_id)


def list_formulas(db: Session, user_id: str) -> List[ChartFormula]:
    records = (
        db.query(ChartFormulaDB)
        .filter(ChartFormulaDB.user_id == user_id)
        .order_by(ChartFormulaDB.created_at.desc())
        .all()
    )
    return [_to_model(r) for r in records]


def get_formula(db: Session, user_id: str, formula_id: str) -> ChartFormula:
    return _to_model(_get_record(db, user_id, formula_id))


def delete_formula(db: Session, user_id: str, formula_id: str) -> None:
    db.delete(_get_record(db, user_id, formula_id))
    db.commit()


def _matches(value: Scalar, flt: FormulaFilter) -> bool:
    if flt.operator == "equals":
        return value == flt.value
    if flt.operator == "contains":
        return str(flt.value).lower() in str(value).lower()
    left, right = parse_number(value), parse_number(flt.value)
    if left is None or right is None:
        return False
    if flt.operator == "greater":
        return left > right
    return left < right


def _aggregate(values: List[float], aggregation: Aggregation) -> float:
    if aggregation == "sum":
        return sum(values)
    if aggregation == "avg":
        return sum(values) / len(values)
    if aggregation == "count":
        return float(len(values))
    if aggregation == "min":
        return min(values)
    return max(values)


def _validate_mapping(formula: ChartFormula, mapping: ColumnMapping, dataset: Dataset) -> None:
    requirements = {
        "x_axis": formula.required_columns.x_axis,
        "y_axis": formula.required_columns.y_axis,
    }
    for axis, requirement in requirements.items():
        column = getattr(mapping, axis)
        if requirement is not None and requirement.required and not column:
            raise FormulaMappingError(f"Required column mapping missing: {axis}")
        if column and column not in dataset.columns:
            raise FormulaMappingError(f"Column '{column}' mapped to {axis} is not in dataset '{dataset.name}'")


def apply_formula(formula: ChartFormula, dataset: Dataset, mapping: ColumnMapping) -> FormulaApplication:
    """
    Run a formula over a dataset: validate the column mapping, apply the
    filters, then group by x and aggregate y. `count` works without a y
    column; the other aggregations need one. Without an aggregation the
    filtered rows are returned as they are.
    """
    _validate_mapping(formula, mapping, dataset)
    x_col, y_col = mapping.x_axis, mapping.y_axis

    def resolve(column: str) -> str:
        if column == "x_axis" and x_col:
            return x_col
        if column == "y_axis" and y_col:
            return y_col
        return column

    rows: List[Row] = [
        row for row in dataset.rows
        if all(_matches(row.get(resolve(f.column)), f) for f in formula.filters)
    ]

    aggregation = formula.aggregation
    if aggregation and x_col and (y_col or aggregation == "count"):
        grouped: Dict[str, List[float]] = {}
        for row in rows:
            key = format_label(row.get(x_col))
            grouped.setdefault(key, []).append(coerce_number(row.get(y_col)) if y_col else 1.0)
        value_key = y_col or "count"
        rows = [{x_col: key, value_key: _aggregate(values, aggregation)} for key, values in grouped.items()]

    config = FormulaChartConfig(
        chart_type=formula.chart_type,
        x_axis=x_col,
        y_axis=y_col,
        aggregation=aggregation,
        title=formula.name,
        description=formula.description,
    )
    return FormulaApplication(chart_config=config, data=rows)


def find_formula(db: Session, user_id: str, formula_id: Optional[str]) -> Optional[ChartFormula]:
    if not formula_id:
        return None
    return get_formula(db, user_id, formula_id)
