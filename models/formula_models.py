from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel

from models.chart_models import ChartType
from models.dataset_models import Row, Scalar

Aggregation = Literal["sum", "avg", "count", "min", "max"]
FilterOperator = Literal["equals", "contains", "greater", "less"]


class ColumnRequirement(BaseModel):
    type: Literal["string", "number", "date"]
    required: bool = True


class RequiredColumns(BaseModel):
    x_axis: ColumnRequirement
    y_axis: Optional[ColumnRequirement] = None


class FormulaFilter(BaseModel):
    column: str
    operator: FilterOperator
    value: Scalar = None


class ChartFormulaCreate(BaseModel):
    name: str
    description: str = ""
    chart_type: ChartType
    template: str = ""
    required_columns: RequiredColumns
    aggregation: Optional[Aggregation] = None
    filters: List[FormulaFilter] = []


class ChartFormula(ChartFormulaCreate):
    id: str
    created_at: datetime
    updated_at: datetime


class ColumnMapping(BaseModel):
    x_axis: Optional[str] = None
    y_axis: Optional[str] = None


class FormulaChartConfig(BaseModel):
    chart_type: ChartType
    x_axis: Optional[str] = None
    y_axis: Optional[str] = None
    aggregation: Optional[Aggregation] = None
    title: str
    description: str = ""


class FormulaApplication(BaseModel):
    chart_config: FormulaChartConfig
    data: List[Row] = []

