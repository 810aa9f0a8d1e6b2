from typing import Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field

# A single cell: number, text or null
Scalar = Union[int, float, str, None]

Row = Dict[str, Scalar]

RelationshipKind = Literal["one-to-one", "one-to-many"]


class Relationship(BaseModel):
    id: str
    source_dataset_id: str
    target_dataset_id: str
    source_column: str
    target_column: str
    kind: RelationshipKind = "one-to-many"
    confidence: float = Field(ge=0.0, le=1.0)
    matching_row_count: int = Field(default=0, ge=0)


class Dataset(BaseModel):
    id: str
    name: str
    description: str = ""
    columns: List[str] = []
    rows: List[Row] = []
    relationships: List[Relationship] = []

    @property
    def row_count(self) -> int:
        return len(self.rows)


class DatasetSummary(BaseModel):
    id: str
    name: str
    description: str = ""
    columns: List[str]
    row_count: int
    relationship_count: int


class ColumnClassification(BaseModel):
    numeric: List[str] = []
    categorical: List[str] = []

    def is_numeric(self, column: Optional[str]) -> bool:
        return column is not None and column in self.numeric

    def is_categorical(self, column: Optional[str]) -> bool:
        return column is not None and column in self.categorical


class DetectionResult(BaseModel):
    strategy: Literal["ai", "similarity", "overlap", "skipped"]
    datasets: List[Dataset]
