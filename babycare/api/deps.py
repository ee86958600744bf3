from fastapi import HTTPException, Request

from babycare.core.exceptions import (
    ChildNotFound,
    DuplicateKeyError,
    NotInitialized,
    SchemaError,
    TransactionFailed,
)
from babycare.core.logging import logger
from babycare.services.session import CareSession

def get_session(request: Request) -> CareSession:
    """
    Session for the running application, created during lifespan startup.
    """
    return request.app.state.session

def to_http_exception(error: Exception, action: str) -> HTTPException:
    """Map a storage or validation failure to the HTTP error shown to the user."""
    if isinstance(error, HTTPException):
        return error
    if isinstance(error, ChildNotFound):
        return HTTPException(status_code=404, detail="Child not found")
    if isinstance(error, SchemaError):
        return HTTPException(status_code=404, detail=error.message)
    if isinstance(error, DuplicateKeyError):
        return HTTPException(status_code=409, detail=error.message)
    if isinstance(error, NotInitialized):
        logger.error(f"Error {action}: storage not ready")
        return HTTPException(status_code=503, detail="Storage is not ready")
    if isinstance(error, TransactionFailed):
        logger.error(f"Error {action}: {error.message} ({error.details.get('cause')})")
        return HTTPException(status_code=500, detail=f"Failed {action}")
    if isinstance(error, ValueError):
        return HTTPException(status_code=422, detail=str(error))
    logger.error(f"Error {action}: {type(error).__name__}: {error}")
    return HTTPException(status_code=500, detail=f"Failed {action}")
