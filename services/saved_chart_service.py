import uuid
from typing import List

from sqlalchemy.orm import Session

from models.chart_models import ChartSeries, SavedChart, SavedChartCreate
from models.dataset_db_model import SavedChartDB
from services.dataset_service import get_dataset
from services.errors import SavedChartNotFoundError
from services.formula_service import find_formula


def _to_model(record: SavedChartDB) -> SavedChart:
    return SavedChart(
        id=record.id,
        dataset_id=record.dataset_id,
        name=record.name,
        series=ChartSeries(**record.series),
        formula_id=record.formula_id,
        ai_prompt=record.ai_prompt,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def save_chart(db: Session, user_id: str, chart: SavedChartCreate) -> SavedChart:
    # Both references must resolve for this user
    get_dataset(db, user_id, chart.dataset_id)
    find_formula(db, user_id, chart.formula_id)

    record = SavedChartDB(
        id=f"chart_{uuid.uuid4().hex}",
        user_id=user_id,
        dataset_id=chart.dataset_id,
        formula_id=chart.formula_id,
        name=chart.name,
        series=chart.series.model_dump(),
        ai_prompt=chart.ai_prompt,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return _to_model(record)


def list_charts(db: Session, user_id: str, dataset_id: str) -> List[SavedChart]:
    records = (
        db.query(SavedChartDB)
        .filter(SavedChartDB.dataset_id == dataset_id, SavedChartDB.user_id == user_id)
        .order_by(SavedChartDB.created_at.desc())
        .all()
    )
    return [_to_model(r) for r in records]


def delete_chart(db: Session, user_id: str, chart_id: str) -> None:
    record = (
        db.query(SavedChartDB)
        .filter(SavedChartDB.id == chart_id, SavedChartDB.user_id == user_id)
        .first()
    )
    if record is None:
        raise SavedChartNotFoundError(chart_id)
    db.delete(record)
    db.commit()
