from typing import List, Optional, Sequence

from loguru import logger
from sqlalchemy.orm import Session

from models.dataset_db_model import DatasetDB, SavedChartDB
from models.dataset_models import Dataset, DatasetSummary, Relationship, Row
from services.errors import DatasetNotFoundError
from services.file_reader_service import normalize_rows, observed_columns


def _to_model(record: DatasetDB) -> Dataset:
    return Dataset(
        id=record.id,
        name=record.name,
        description=record.description or "",
        columns=record.columns or [],
        rows=record.rows or [],
        relationships=[Relationship(**r) for r in (record.relationships or [])],
    )


def _get_record(db: Session, user_id: str, dataset_id: str) -> DatasetDB:
    record = (
        db.query(DatasetDB)
        .filter(DatasetDB.id == dataset_id, DatasetDB.user_id == user_id)
        .first()
    )
    if record is None:
        raise DatasetNotFoundError(dataset_id)
    return record


def save_dataset(db: Session, user_id: str, dataset: Dataset) -> Dataset:
    record = DatasetDB(
        id=dataset.id,
        user_id=user_id,
        name=dataset.name,
        description=dataset.description,
        columns=dataset.columns,
        rows=dataset.rows,
        relationships=[r.model_dump() for r in dataset.relationships],
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info("Saved dataset '{}' ({} rows) for user '{}'", dataset.id, dataset.row_count, user_id)
    return _to_model(record)


def get_dataset(db: Session, user_id: str, dataset_id: str) -> Dataset:
    return _to_model(_get_record(db, user_id, dataset_id))


def get_datasets(db: Session, user_id: str, dataset_ids: Sequence[str]) -> List[Dataset]:
    """Datasets in the order requested; any unknown id raises."""
    return [get_dataset(db, user_id, dataset_id) for dataset_id in dataset_ids]


def list_datasets(db: Session, user_id: str) -> List[DatasetSummary]:
    records = (
        db.query(DatasetDB)
        .filter(DatasetDB.user_id == user_id)
        .order_by(DatasetDB.updated_at.desc())
        .all()
    )
    return [
        DatasetSummary(
            id=r.id,
            name=r.name,
            description=r.description or "",
            columns=r.columns or [],
            row_count=len(r.rows or []),
            relationship_count=len(r.relationships or []),
        )
        for r in records
    ]


def update_dataset(
    db: Session,
    user_id: str,
    dataset_id: str,
    name: Optional[str] = None,
    description: Optional[str] = None,
) -> Dataset:
    record = _get_record(db, user_id, dataset_id)
    if name:
        record.name = name
    if description is not None:
        record.description = description
    db.commit()
    db.refresh(record)
    return _to_model(record)


def replace_rows(db: Session, user_id: str, dataset_id: str, rows: List[Row]) -> Dataset:
    """
    Swap the dataset's rows. Columns are recomputed from the new rows;
    existing relationships are kept even if their columns disappeared.
    """
    record = _get_record(db, user_id, dataset_id)
    columns = observed_columns(rows) or (record.columns or [])
    record.columns = columns
    record.rows = normalize_rows(rows, columns)
    db.commit()
    db.refresh(record)
    logger.info("Replaced rows of dataset '{}' ({} rows)", dataset_id, len(rows))
    return _to_model(record)


def store_relationships(db: Session, user_id: str, datasets: Sequence[Dataset]) -> None:
    for ds in datasets:
        record = _get_record(db, user_id, ds.id)
        record.relationships = [r.model_dump() for r in ds.relationships]
    db.commit()


def delete_dataset(db: Session, user_id: str, dataset_id: str) -> None:
    record = _get_record(db, user_id, dataset_id)
    db.query(SavedChartDB).filter(
        SavedChartDB.dataset_id == dataset_id, SavedChartDB.user_id == user_id
    ).delete()
    db.delete(record)
    db.commit()
    logger.info("Deleted dataset '{}' for user '{}'", dataset_id, user_id)
