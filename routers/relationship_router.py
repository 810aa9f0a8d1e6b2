from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger
from sqlalchemy.orm import Session

from config import RELATIONSHIP_MAX_TOKENS
from dependencies import get_db, get_user_id
from models.common_models import AITextRequest, AITextResponse, DetectRequest, JoinRequest
from models.dataset_models import DetectionResult
from services import dataset_service, llm_service
from services.errors import DatasetNotFoundError, TextGenerationError
from services.json_extraction_service import extract_json
from services.relationship_service import (
    build_relationship_prompt,
    detect_by_value_overlap,
    detect_relationships,
    join_datasets,
)

router = APIRouter(prefix="/relationships", tags=["relationships"])


@router.post("/detect", response_model=DetectionResult)
def detect(req: DetectRequest, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    try:
        datasets = dataset_service.get_datasets(db, user_id, req.dataset_ids)
    except DatasetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if req.strategy == "overlap":
        result = detect_by_value_overlap(datasets)
    else:
        ai_text = req.ai_response_text
        if ai_text is None and req.use_ai and len(datasets) >= 2:
            try:
                ai_text = llm_service.generate_text(
                    build_relationship_prompt(datasets), max_tokens=RELATIONSHIP_MAX_TOKENS
                )
            except TextGenerationError as e:
                logger.warning("Relationship AI call failed, using similarity fallback: {}", e)
        result = detect_relationships(datasets, ai_response_text=ai_text)

    if result.strategy != "skipped":
        dataset_service.store_relationships(db, user_id, result.datasets)
    return result


@router.post("/ai-text", response_model=AITextResponse)
def generate_ai_text(req: AITextRequest, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    try:
        datasets = dataset_service.get_datasets(db, user_id, req.dataset_ids)
    except DatasetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    prompt = build_relationship_prompt(datasets)
    try:
        text = llm_service.generate_text(prompt, max_tokens=RELATIONSHIP_MAX_TOKENS)
    except TextGenerationError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return AITextResponse(prompt=prompt, text=text, extracted=extract_json(text))


@router.post("/join")
async def join(req: JoinRequest, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    try:
        datasets = dataset_service.get_datasets(db, user_id, req.dataset_ids)
    except DatasetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    rows: List[Dict[str, Any]] = join_datasets(datasets)
    columns = list(dict.fromkeys(col for row in rows for col in row))
    return {"columns": columns, "rows": rows, "row_count": len(rows)}
