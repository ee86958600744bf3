from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Body, Depends, HTTPException

from babycare.api.deps import get_session, to_http_exception
from babycare.services.session import CareSession

router = APIRouter()

@router.get("/{child_id}/records/{collection}", response_model=List[Dict[str, Any]])
async def get_records(child_id: str, collection: str, day: Optional[str] = None, session: CareSession = Depends(get_session)):
    """
    Get a child's records of one kind, localized for display, newest first.
    Pass ``day`` (YYYY-MM-DD, local) to limit the list to one calendar day.
    """
    try:
        return await session.list_records(collection, child_id, day)
    except Exception as e:
        raise to_http_exception(e, f"fetching {collection} records")

@router.post("/{child_id}/records/{collection}", response_model=Dict[str, Any])
async def create_record(child_id: str, collection: str, fields: Dict[str, Any] = Body(...), session: CareSession = Depends(get_session)):
    """
    Create a record. Time fields are local input values (YYYY-MM-DDTHH:MM) in the display timezone.
    """
    try:
        record = await session.add_record(collection, fields, child_id=child_id)
        return session.localize_record(collection, record.to_document())
    except Exception as e:
        raise to_http_exception(e, f"creating {collection} record")

@router.put("/{child_id}/records/{collection}/{record_id}", response_model=Dict[str, Any])
async def update_record(child_id: str, collection: str, record_id: int, fields: Dict[str, Any] = Body(...), session: CareSession = Depends(get_session)):
    try:
        existing = await session.get_record(collection, record_id)
        if existing is None or existing.child_id != child_id:
            raise HTTPException(status_code=404, detail="Record not found")
        record = await session.update_record(collection, record_id, fields)
        if record is None:
            raise HTTPException(status_code=404, detail="Record not found")
        return session.localize_record(collection, record.to_document())
    except Exception as e:
        raise to_http_exception(e, f"updating {collection} record")

@router.delete("/{child_id}/records/{collection}/{record_id}")
async def delete_record(child_id: str, collection: str, record_id: int, session: CareSession = Depends(get_session)):
    """
    Delete a record. Deleting a record that does not exist succeeds;
    a record owned by another child is not found.
    """
    try:
        await session.require_child(child_id)
        existing = await session.get_record(collection, record_id)
        if existing is not None and existing.child_id != child_id:
            raise HTTPException(status_code=404, detail="Record not found")
        await session.delete_record(collection, record_id)
        return {"status": "success", "message": "Record deleted"}
    except Exception as e:
        raise to_http_exception(e, f"deleting {collection} record")
