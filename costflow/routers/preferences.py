"""
Preferences, calculation history and region list.

GET    /api/preferences        - {units, region}
PUT    /api/preferences        - update units and/or region
GET    /api/history/{key}      - stored calculations, newest first
DELETE /api/history/{key}      - clear one calculator's history
GET    /api/regions            - region selector options
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from .. import schemas
from ..calculators.units import UNIT_SYSTEMS
from ..deps import get_runner
from ..runner import CalculatorRunner

router = APIRouter(tags=["preferences"])


@router.get("/preferences")
def get_preferences(runner: CalculatorRunner = Depends(get_runner)):
    return runner.store.get_preferences()


@router.put("/preferences")
def update_preferences(update: schemas.PreferencesUpdate, runner: CalculatorRunner = Depends(get_runner)):
    if update.units is not None:
        if update.units not in UNIT_SYSTEMS:
            raise HTTPException(status_code=422, detail=f"Units must be one of: {', '.join(UNIT_SYSTEMS)}")
        runner.store.set_preference("units", update.units)
    if update.region is not None:
        runner.store.set_preference("region", runner.pricing.resolve_region(update.region))
    return runner.store.get_preferences()


@router.get("/history/{key}")
def get_history(key: str, runner: CalculatorRunner = Depends(get_runner)):
    if not runner.registry.has_calculator(key):
        raise HTTPException(status_code=404, detail=f"Calculator '{key}' not found")
    return runner.store.history(key)


@router.delete("/history/{key}")
def clear_history(key: str, runner: CalculatorRunner = Depends(get_runner)):
    if not runner.registry.has_calculator(key):
        raise HTTPException(status_code=404, detail=f"Calculator '{key}' not found")
    runner.store.clear_history(key)
    return {"cleared": key}


@router.get("/regions", response_model=List[schemas.Region])
async def list_regions(runner: CalculatorRunner = Depends(get_runner)):
    await runner.pricing.ensure_loaded()
    return runner.pricing.list_regions()
