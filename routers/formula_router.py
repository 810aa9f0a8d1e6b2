from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from dependencies import get_db, get_user_id
from models.common_models import FormulaApplyRequest
from models.formula_models import ChartFormula, ChartFormulaCreate, FormulaApplication
from services import dataset_service, formula_service
from services.errors import FormulaMappingError, NotFoundError

router = APIRouter(prefix="/formulas", tags=["formulas"])


@router.get("", response_model=List[ChartFormula])
async def list_formulas(db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    formula_service.ensure_default_formulas(db, user_id)
    return formula_service.list_formulas(db, user_id)


@router.post("", response_model=ChartFormula)
async def create_formula(req: ChartFormulaCreate, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    return formula_service.create_formula(db, user_id, req)


@router.get("/{formula_id}", response_model=ChartFormula)
async def get_formula(formula_id: str, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    try:
        return formula_service.get_formula(db, user_id, formula_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{formula_id}")
async def delete_formula(formula_id: str, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    try:
        formula_service.delete_formula(db, user_id, formula_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"deleted": formula_id}


@router.post("/{formula_id}/apply", response_model=FormulaApplication)
async def apply_formula(
    formula_id: str,
    req: FormulaApplyRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
):
    try:
        formula = formula_service.get_formula(db, user_id, formula_id)
        dataset = dataset_service.get_dataset(db, user_id, req.dataset_id)
        return formula_service.apply_formula(formula, dataset, req.column_mapping)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except FormulaMappingError as e:
        raise HTTPException(status_code=400, detail=str(e))
