from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from config import LEADERBOARD_SIZE
from dependencies import get_db, get_user_id
from models.chart_models import ChartSeries, SavedChart, SavedChartCreate
from models.common_models import IntentRequest, IntentResponse, RenderResponse, SeriesRequest
from services import dataset_service, saved_chart_service
from services.aggregation_service import build_series
from services.chart_renderer import render_series
from services.column_classifier import classify_columns, classify_columns_fast
from services.errors import NotFoundError
from services.intent_service import select_intent

router = APIRouter(prefix="/charts", tags=["charts"])


@router.post("/series", response_model=ChartSeries)
async def series(req: SeriesRequest, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    try:
        dataset = dataset_service.get_dataset(db, user_id, req.dataset_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return build_series(
        dataset,
        req.chart_type,
        req.x_column,
        req.y_column,
        classification=classify_columns(dataset),
        top_n=req.top_n,
    )


@router.post("/intent", response_model=IntentResponse)
async def intent(req: IntentRequest, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    try:
        dataset = dataset_service.get_dataset(db, user_id, req.dataset_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    classification = classify_columns_fast(dataset)
    chosen = select_intent(req.query, classification.numeric, classification.categorical)
    if chosen is None:
        return IntentResponse(message="Cannot visualize this data automatically.")

    top_n: Optional[int] = LEADERBOARD_SIZE if chosen.chart_type == "bar" else None
    chart = build_series(
        dataset,
        chosen.chart_type,
        chosen.x_column,
        chosen.y_column,
        classification=classification,
        top_n=top_n,
    )
    message = "" if chart.points else "Not enough data to draw this chart."
    return IntentResponse(intent=chosen, series=chart, message=message)


@router.post("/render", response_model=RenderResponse)
async def render(chart: ChartSeries):
    return RenderResponse(image_base64=render_series(chart))


@router.post("/saved", response_model=SavedChart)
async def save_chart(req: SavedChartCreate, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    try:
        return saved_chart_service.save_chart(db, user_id, req)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/saved/{dataset_id}", response_model=List[SavedChart])
async def list_saved(dataset_id: str, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    return saved_chart_service.list_charts(db, user_id, dataset_id)


@router.delete("/saved/{chart_id}")
async def delete_saved(chart_id: str, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    try:
        saved_chart_service.delete_chart(db, user_id, chart_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"deleted": chart_id}
