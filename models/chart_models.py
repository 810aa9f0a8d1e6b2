from datetime import datetime
from typing import List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict

ChartType = Literal["bar", "line", "pie", "scatter"]


class LabelPoint(BaseModel):
    label: str
    value: float


class XYPoint(BaseModel):
    x: float
    y: float


class SourceColumns(BaseModel):
    x: str
    y: Optional[str] = None


class ChartSeries(BaseModel):
    model_config = ConfigDict(frozen=True)

    chart_type: ChartType
    points: List[Union[LabelPoint, XYPoint]] = []
    source_columns: SourceColumns

    @property
    def is_empty(self) -> bool:
        return not self.points


class ChartIntent(BaseModel):
    chart_type: ChartType
    x_column: str
    y_column: Optional[str] = None


class SavedChartCreate(BaseModel):
    dataset_id: str
    name: str
    series: ChartSeries
    formula_id: Optional[str] = None
    ai_prompt: Optional[str] = None


class SavedChart(SavedChartCreate):
    id: str
    created_at: datetime
    updated_at: datetime
