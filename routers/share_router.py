from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from dependencies import get_db, get_share_store, get_user_id
from models.share_models import ShareLink, ShareResponse
from services import dataset_service
from services.errors import NotFoundError
from services.share_service import ShareLinkStore

router = APIRouter(prefix="/share", tags=["share"])


@router.post("/{dataset_id}", response_model=ShareResponse)
async def share_dataset(
    dataset_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    store: ShareLinkStore = Depends(get_share_store),
):
    try:
        dataset = dataset_service.get_dataset(db, user_id, dataset_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    _, response = store.share(dataset, user_id)
    return response


@router.get("/link/{url_id}")
async def open_link(
    url_id: str,
    db: Session = Depends(get_db),
    store: ShareLinkStore = Depends(get_share_store),
):
    # Anyone holding the link may read it; the dataset is looked up under its owner.
    try:
        link = store.resolve(url_id)
        dataset = dataset_service.get_dataset(db, store.owner_of(url_id), link.dataset_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {
        "link": link,
        "dataset": {
            "id": dataset.id,
            "name": dataset.name,
            "description": dataset.description,
            "columns": dataset.columns,
            "row_count": dataset.row_count,
        },
    }


@router.get("/dataset/{dataset_id}", response_model=List[ShareLink])
async def dataset_links(
    dataset_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    store: ShareLinkStore = Depends(get_share_store),
):
    try:
        dataset_service.get_dataset(db, user_id, dataset_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return store.for_dataset(dataset_id)


@router.delete("/link/{url_id}")
async def delete_link(
    url_id: str,
    user_id: str = Depends(get_user_id),
    store: ShareLinkStore = Depends(get_share_store),
):
    try:
        if store.owner_of(url_id) != user_id:
            raise HTTPException(status_code=403, detail="Only the owner can delete this share link.")
        store.delete(url_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"deleted": url_id}
