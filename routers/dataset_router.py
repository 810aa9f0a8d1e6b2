from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import PlainTextResponse
from loguru import logger
from sqlalchemy.orm import Session

from config import CLASSIFIER_SAMPLE_SIZE
from dependencies import get_db, get_share_store, get_user_id
from models.common_models import DatasetCreateRequest, DatasetUpdateRequest, RowsReplaceRequest
from models.dataset_models import ColumnClassification, Dataset, DatasetSummary
from services import dataset_service
from services.column_classifier import classify_columns
from services.errors import DatasetNotFoundError
from services.file_reader_service import dataset_from_rows, dataset_to_csv, load_tabular_file
from services.share_service import ShareLinkStore

router = APIRouter(prefix="/datasets", tags=["datasets"])


@router.post("/upload", response_model=List[Dataset])
async def upload_file(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
):
    content = await file.read()
    try:
        datasets = load_tabular_file(file.filename or "", content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not datasets:
        raise HTTPException(status_code=400, detail="Uploaded file has no sheets.")

    logger.info("Upload '{}' produced {} dataset(s) for user '{}'", file.filename, len(datasets), user_id)
    return [dataset_service.save_dataset(db, user_id, ds) for ds in datasets]


@router.post("", response_model=Dataset)
async def create_dataset(
    req: DatasetCreateRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
):
    dataset = dataset_from_rows(req.name, req.rows, columns=req.columns, description=req.description)
    return dataset_service.save_dataset(db, user_id, dataset)


@router.get("", response_model=List[DatasetSummary])
async def list_datasets(db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    return dataset_service.list_datasets(db, user_id)


@router.get("/{dataset_id}", response_model=Dataset)
async def get_dataset(dataset_id: str, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    try:
        return dataset_service.get_dataset(db, user_id, dataset_id)
    except DatasetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/{dataset_id}", response_model=Dataset)
async def update_dataset(
    dataset_id: str,
    req: DatasetUpdateRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
):
    try:
        return dataset_service.update_dataset(
            db, user_id, dataset_id, name=req.name, description=req.description
        )
    except DatasetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{dataset_id}/rows", response_model=Dataset)
async def replace_rows(
    dataset_id: str,
    req: RowsReplaceRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
):
    try:
        return dataset_service.replace_rows(db, user_id, dataset_id, req.rows)
    except DatasetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{dataset_id}")
async def delete_dataset(
    dataset_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    share_store: ShareLinkStore = Depends(get_share_store),
):
    try:
        dataset_service.delete_dataset(db, user_id, dataset_id)
    except DatasetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    removed_links = share_store.delete_for_dataset(dataset_id)
    return {"deleted": dataset_id, "share_links_removed": removed_links}


@router.get("/{dataset_id}/export", response_class=PlainTextResponse)
async def export_dataset(dataset_id: str, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    try:
        dataset = dataset_service.get_dataset(db, user_id, dataset_id)
    except DatasetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return PlainTextResponse(
        dataset_to_csv(dataset),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{dataset.name}.csv"'},
    )


@router.get("/{dataset_id}/columns", response_model=ColumnClassification)
async def dataset_columns(
    dataset_id: str,
    sample_size: int = CLASSIFIER_SAMPLE_SIZE,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
):
    try:
        dataset = dataset_service.get_dataset(db, user_id, dataset_id)
    except DatasetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return classify_columns(dataset, sample_size=max(1, sample_size))
