from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from babycare.api.deps import get_session, to_http_exception
from babycare.core.logging import logger
from babycare.schemas.backup import ClearReport, ImportReport
from babycare.services.backup_service import dumps_snapshot, snapshot_filename
from babycare.services.session import CareSession

router = APIRouter()

@router.get("/export")
async def export_data(session: CareSession = Depends(get_session)):
    """
    Download every collection as a single JSON document.
    """
    try:
        snapshot = await session.export_snapshot()
    except Exception as e:
        raise to_http_exception(e, "exporting data")

    return Response(
        content=dumps_snapshot(snapshot),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{snapshot_filename(snapshot)}"'},
    )

@router.post("/import", response_model=ImportReport)
async def import_data(request: Request, session: CareSession = Depends(get_session)):
    """
    Restore a previously exported document. Existing records with the same keys are
    overwritten; records missing from the document are kept.
    """
    payload = await request.body()
    try:
        report = await session.import_snapshot(payload)
    except Exception as e:
        raise to_http_exception(e, "importing data")

    logger.info(f"Import request finished with status {report.status.value}")
    return report

@router.delete("/data", response_model=ClearReport)
async def clear_data(session: CareSession = Depends(get_session)):
    """
    Delete all children and records. Preferences are kept.
    """
    try:
        return await session.clear_all_data()
    except Exception as e:
        raise to_http_exception(e, "clearing data")
