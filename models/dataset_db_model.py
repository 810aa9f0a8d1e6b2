from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text, JSON
from database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class DatasetDB(Base):
    __tablename__ = "datasets"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, default="")
    columns = Column(JSON, default=list)
    rows = Column(JSON, default=list)
    relationships = Column(JSON, default=list)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class ChartFormulaDB(Base):
    __tablename__ = "chart_formulas"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, default="")
    chart_type = Column(String, nullable=False)
    template = Column(Text, default="")
    required_columns = Column(JSON, nullable=False)
    aggregation = Column(String, nullable=True)
    filters = Column(JSON, default=list)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class SavedChartDB(Base):
    __tablename__ = "saved_charts"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    dataset_id = Column(String, index=True, nullable=False)
    formula_id = Column(String, nullable=True)
    name = Column(String, nullable=False)
    series = Column(JSON, nullable=False)
    ai_prompt = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
