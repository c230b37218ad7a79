"""
Calculator panels over HTTP.

GET    /api/calculators                          - registered calculators
GET    /api/calculators/{key}                    - field rules and defaults
GET    /api/calculators/{key}/panel              - current panel view
PATCH  /api/calculators/{key}/panel              - set fields (validates only those fields)
POST   /api/calculators/{key}/panel/calculate    - run the calculation
POST   /api/calculators/{key}/panel/reset        - back to defaults
PUT    /api/calculators/{key}/panel/region       - switch pricing region
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from .. import schemas
from ..deps import get_panel, get_runner
from ..runner import CalculatorRunner, PanelView
from ..validation import required_fields

router = APIRouter(prefix="/calculators", tags=["calculators"])


@router.get("/", response_model=List[schemas.CalculatorSummary])
def list_calculators(runner: CalculatorRunner = Depends(get_runner)):
    return [
        schemas.CalculatorSummary(key=key, title=runner.panel(key).title)
        for key in runner.registry.list_calculators()
    ]


@router.get("/{key}", response_model=schemas.CalculatorSchema)
def get_calculator_schema(key: str, runner: CalculatorRunner = Depends(get_runner)):
    panel = get_panel(runner, key)
    return schemas.CalculatorSchema(
        key=key,
        title=panel.title,
        fields=panel.schema,
        defaults=panel.defaults,
        required=required_fields(panel.schema),
    )


@router.get("/{key}/panel", response_model=PanelView)
def get_panel_view(key: str, runner: CalculatorRunner = Depends(get_runner)):
    return get_panel(runner, key).view()


@router.patch("/{key}/panel", response_model=PanelView)
def update_fields(key: str, update: schemas.FieldUpdate, runner: CalculatorRunner = Depends(get_runner)):
    panel = get_panel(runner, key)
    unknown = [name for name in update.values if name not in panel.schema]
    if unknown:
        raise HTTPException(status_code=422, detail=f"Unknown field(s): {', '.join(unknown)}")
    panel.set_fields(update.values)
    return panel.view()


@router.post("/{key}/panel/calculate", response_model=PanelView)
def calculate(key: str, runner: CalculatorRunner = Depends(get_runner)):
    """Always 200: invalid input shows up in the view's error summary, not as an HTTP error."""
    panel = get_panel(runner, key)
    panel.calculate()
    return panel.view()


@router.post("/{key}/panel/reset", response_model=PanelView)
def reset(key: str, runner: CalculatorRunner = Depends(get_runner)):
    panel = get_panel(runner, key)
    panel.reset()
    return panel.view()


@router.put("/{key}/panel/region", response_model=PanelView)
async def change_region(key: str, update: schemas.RegionUpdate, runner: CalculatorRunner = Depends(get_runner)):
    panel = get_panel(runner, key)
    await panel.change_region(update.region)
    return panel.view()
