"""
Backend stored-procedure gateway.

Booking, renewal, block materialization and payment verification are owned
by stored procedures in the managed Postgres backend. This module is the only
place that calls them and the only place that interprets their failures:
every backend error leaves here as a ``ProcedureError`` carrying a
``BackendErrorCode``, so callers branch on codes, never on message text.
"""

import json
import logging
import re
from datetime import date
from enum import Enum
from typing import Any, Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class BackendErrorCode(str, Enum):
    NO_EXISTING_BLOCK = "NO_EXISTING_BLOCK"
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    CAPACITY_FULL = "CAPACITY_FULL"
    ALREADY_ENROLLED = "ALREADY_ENROLLED"
    NOT_FOUND = "NOT_FOUND"
    BACKEND_ERROR = "BACKEND_ERROR"


# Human messages shown to the caller
ERROR_MESSAGES = {
    BackendErrorCode.NO_EXISTING_BLOCK: "No existing block found to renew.",
    BackendErrorCode.NOT_AUTHENTICATED: "Please log in again.",
    BackendErrorCode.CAPACITY_FULL: "This group is full. Please choose another slot.",
    BackendErrorCode.ALREADY_ENROLLED: "You are already enrolled in this block.",
    BackendErrorCode.NOT_FOUND: "The requested slot or session could not be found.",
    BackendErrorCode.BACKEND_ERROR: "The booking service rejected the request.",
}

# Postgres SQLSTATE -> code, for errors raised without one of our tokens
_SQLSTATE_CODES = {
    "23505": BackendErrorCode.ALREADY_ENROLLED,  # unique_violation
    "P0002": BackendErrorCode.NOT_FOUND,  # no_data_found
    "42501": BackendErrorCode.NOT_AUTHENTICATED,  # insufficient_privilege
    "28000": BackendErrorCode.NOT_AUTHENTICATED,  # invalid_authorization_specification
}

_TOKEN_PATTERN = re.compile(
    r"\b(" + "|".join(c.value for c in BackendErrorCode if c != BackendErrorCode.BACKEND_ERROR) + r")\b"
)

# Procedure name -> ordered parameter names, exactly as the backend declares them
PROCEDURES = {
    "book_4week_block": ("slot_uuid", "desired_start_date", "package_id"),
    "renew_4week_block": ("p_student_id", "p_slot_id", "p_package_id"),
    "ensure_4week_block": ("slot_uuid", "start_date"),
    "verify_4week_block_payment": ("p_student_id", "p_slot_id", "p_block_start_date"),
    "book_multi_subject_block": ("p_bundle_package_id", "p_start_date", "p_subject_slot_map", "p_payment_mode"),
    "enroll_block": ("start_instance_id", "package_id", "notes"),
}

_JSONB_PARAMS = {"p_subject_slot_map"}


class ProcedureError(Exception):
    """A stored procedure call failed"""

    def __init__(self, procedure: str, code: BackendErrorCode, detail: str = ""):
        self.procedure = procedure
        self.code = code
        self.detail = detail
        super().__init__(f"{procedure} failed with {code.value}: {detail}")

    @property
    def message(self) -> str:
        return ERROR_MESSAGES[self.code]


def classify_backend_error(detail: str, sqlstate: Optional[str] = None) -> BackendErrorCode:
    """Map a backend error to a code: explicit token first, then SQLSTATE"""
    match = _TOKEN_PATTERN.search(detail or "")
    if match:
        return BackendErrorCode(match.group(1))
    if sqlstate and sqlstate in _SQLSTATE_CODES:
        return _SQLSTATE_CODES[sqlstate]
    return BackendErrorCode.BACKEND_ERROR


def _bind_value(name: str, value: Any) -> Any:
    if name in _JSONB_PARAMS and value is not None:
        return json.dumps(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


class ProcedureGateway:
    """Calls backend stored procedures on the request's session (RLS applies)"""

    def __init__(self, db: Session):
        self.db = db

    def call(self, procedure: str, **params) -> list[dict]:
        declared = PROCEDURES.get(procedure)
        if declared is None:
            raise ValueError(f"Unknown procedure: {procedure}")
        if set(params) != set(declared):
            raise ValueError(f"{procedure} expects parameters {declared}, got {tuple(params)}")

        args = ", ".join(
            f"{name} => CAST(:{name} AS jsonb)" if name in _JSONB_PARAMS else f"{name} => :{name}"
            for name in declared
        )
        statement = text(f"SELECT * FROM {procedure}({args})")
        bound = {name: _bind_value(name, params[name]) for name in declared}

        logger.info(f"📞 Calling {procedure}")
        try:
            result = self.db.execute(statement, bound)
            rows = [dict(row._mapping) for row in result] if result.returns_rows else []
            self.db.commit()
        except DBAPIError as e:
            self.db.rollback()
            detail = str(getattr(e, "orig", e))
            sqlstate = getattr(getattr(e, "orig", None), "pgcode", None)
            code = classify_backend_error(detail, sqlstate)
            logger.warning(f"⚠️ {procedure} failed ({code.value}): {detail}")
            raise ProcedureError(procedure, code, detail) from e

        logger.info(f"✅ {procedure} returned {len(rows)} row(s)")
        return rows

    # Typed wrappers

    def book_4week_block(self, slot_id: str, desired_start_date: date, package_id: str) -> list[dict]:
        return self.call(
            "book_4week_block",
            slot_uuid=slot_id,
            desired_start_date=desired_start_date,
            package_id=package_id,
        )

    def renew_4week_block(self, student_id: str, slot_id: str, package_id: str) -> list[dict]:
        return self.call(
            "renew_4week_block",
            p_student_id=student_id,
            p_slot_id=slot_id,
            p_package_id=package_id,
        )

    def ensure_4week_block(self, slot_id: str, start_date: date) -> list[dict]:
        return self.call("ensure_4week_block", slot_uuid=slot_id, start_date=start_date)

    def verify_4week_block_payment(self, student_id: str, slot_id: str, block_start_date: date) -> list[dict]:
        return self.call(
            "verify_4week_block_payment",
            p_student_id=student_id,
            p_slot_id=slot_id,
            p_block_start_date=block_start_date,
        )

    def book_multi_subject_block(
        self, bundle_package_id: str, start_date: date, subject_slot_map: dict, payment_mode: str
    ) -> list[dict]:
        return self.call(
            "book_multi_subject_block",
            p_bundle_package_id=bundle_package_id,
            p_start_date=start_date,
            p_subject_slot_map=subject_slot_map,
            p_payment_mode=payment_mode,
        )

    def enroll_block(self, start_instance_id: str, package_id: str, notes: str = "") -> list[dict]:
        return self.call(
            "enroll_block",
            start_instance_id=start_instance_id,
            package_id=package_id,
            notes=notes,
        )
