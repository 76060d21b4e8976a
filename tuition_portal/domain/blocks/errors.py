"""HTTP translation of backend procedure failures"""

from fastapi import HTTPException

from .procedures import BackendErrorCode, ProcedureError

ERROR_STATUS = {
    BackendErrorCode.NOT_AUTHENTICATED: 401,
    BackendErrorCode.NO_EXISTING_BLOCK: 404,
    BackendErrorCode.NOT_FOUND: 404,
    BackendErrorCode.CAPACITY_FULL: 409,
    BackendErrorCode.ALREADY_ENROLLED: 409,
}

TIMEOUT_MESSAGE = "The operation is taking longer than expected. Please check your connection."


def procedure_http_error(error: ProcedureError) -> HTTPException:
    """HTTPException for a failed procedure; detail carries the code and a human message"""
    status = ERROR_STATUS.get(error.code, 400)
    return HTTPException(
        status_code=status,
        detail={"code": error.code.value, "message": error.message},
    )
