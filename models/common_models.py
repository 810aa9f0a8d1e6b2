from typing import List, Literal, Optional
from pydantic import BaseModel, Field

from models.chart_models import ChartIntent, ChartSeries, ChartType
from models.dataset_models import Row
from models.formula_models import ColumnMapping


class DatasetCreateRequest(BaseModel):
    name: str
    description: str = ""
    columns: Optional[List[str]] = None
    rows: List[Row] = []


class DatasetUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class RowsReplaceRequest(BaseModel):
    rows: List[Row]


class DetectRequest(BaseModel):
    dataset_ids: List[str] = Field(..., min_length=1)
    ai_response_text: Optional[str] = None
    use_ai: bool = False
    strategy: Literal["similarity", "overlap"] = "similarity"


class AITextRequest(BaseModel):
    dataset_ids: List[str] = Field(..., min_length=1)


class AITextResponse(BaseModel):
    prompt: str
    text: str
    extracted: str


class JoinRequest(BaseModel):
    dataset_ids: List[str] = Field(..., min_length=2)


class SeriesRequest(BaseModel):
    dataset_id: str
    chart_type: ChartType
    x_column: str
    y_column: Optional[str] = None
    top_n: Optional[int] = Field(default=None, ge=1)


class IntentRequest(BaseModel):
    dataset_id: str
    query: str


class IntentResponse(BaseModel):
    intent: Optional[ChartIntent] = None
    series: Optional[ChartSeries] = None
    message: str = ""


class RenderResponse(BaseModel):
    image_base64: Optional[str] = None


class FormulaApplyRequest(BaseModel):
    dataset_id: str
    column_mapping: ColumnMapping
