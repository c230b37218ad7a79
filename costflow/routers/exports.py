"""
Exports of the last calculation.

GET /api/exports/{key}/csv|pdf|print|copy   - last calculation of one calculator
GET /api/exports/latest/csv|pdf|print|copy  - most recent calculation of any calculator

404 when there is nothing to export yet.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse, Response

from .. import export
from ..deps import get_runner
from ..runner import CalculationRecord, CalculatorRunner

router = APIRouter(prefix="/exports", tags=["exports"])

LATEST = "latest"


def _record(runner: CalculatorRunner, key: str) -> CalculationRecord:
    if key == LATEST:
        record = runner.last_calculation()
    else:
        if not runner.registry.has_calculator(key):
            raise HTTPException(status_code=404, detail=f"Calculator '{key}' not found")
        record = runner.last_calculation(key)
    if record is None:
        raise HTTPException(status_code=404, detail="No calculation to export. Run a calculation first.")
    return record


def _download(file: export.ExportFile) -> Response:
    return Response(
        content=file.content,
        media_type=file.media_type,
        headers={"Content-Disposition": f'attachment; filename="{file.filename}"'},
    )


@router.get("/{key}/csv")
def download_csv(key: str, runner: CalculatorRunner = Depends(get_runner)):
    return _download(export.download_csv(_record(runner, key)))


@router.get("/{key}/pdf")
def download_pdf(key: str, runner: CalculatorRunner = Depends(get_runner)):
    return _download(export.download_pdf(_record(runner, key), brand=runner.settings.APP_NAME))


@router.get("/{key}/print", response_class=HTMLResponse)
def print_view(key: str, runner: CalculatorRunner = Depends(get_runner)):
    return HTMLResponse(export.trigger_print(_record(runner, key), brand=runner.settings.APP_NAME))


@router.get("/{key}/copy", response_model=export.CopyResult)
def copy_summary(key: str, runner: CalculatorRunner = Depends(get_runner)):
    # No server-side clipboard: the client gets the manual-selection text
    return export.copy_summary(_record(runner, key))
