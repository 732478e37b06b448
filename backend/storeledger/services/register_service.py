"""
Cash Register Service

WHY: Cash-routed payments (sales, cancellations, store-credit payments)
must land in exactly one open register session, with per-method running
totals that always match the session's movements.

DESIGN PRINCIPLES:
- At most one session is OPEN at a time (checked in-unit + unique index)
- Totals are only written by record_cash_movement, together with the
  movement that justifies them
- The open session is resolved once per unit (require_open_session) and
  passed explicitly to whatever records movements against it
- Closed sessions are frozen: totals and movements are never touched again
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import CashRegisterSession, CashMovement
from ..models.registers import (
    SESSION_STATUS_OPEN,
    SESSION_STATUS_CLOSED,
    TOTAL_COLUMNS,
    MOVEMENT_SALE,
    MOVEMENT_CANCELLATION,
    MOVEMENT_ACCOUNT_PAYMENT,
)
from ..errors import NotFoundError, RegisterAlreadyOpenError, RegisterNotOpenError, ValidationError
from ..validation import MAX_AMOUNT_CENTS, clean_text, require_int
from ..time_utils import utcnow
from .audit_service import record_audit
from .concurrency import lock_for_update, run_atomic


CASH_METHODS = tuple(TOTAL_COLUMNS)
MOVEMENT_KINDS = {MOVEMENT_SALE, MOVEMENT_CANCELLATION, MOVEMENT_ACCOUNT_PAYMENT}


# =============================================================================
# SESSION LOOKUP
# =============================================================================

def get_open_session() -> CashRegisterSession | None:
    """The currently open session, if any (unlocked read)."""
    return db.session.query(CashRegisterSession).filter_by(
        status=SESSION_STATUS_OPEN
    ).order_by(CashRegisterSession.id.desc()).first()


def require_open_session() -> CashRegisterSession:
    """
    Guard for cash-routed operations.

    Must be called inside the same atomic unit as the movement it guards:
    the locked read and the write then commit or fail together.

    Raises:
        RegisterNotOpenError: If no session is open
    """
    session = lock_for_update(
        db.session.query(CashRegisterSession).filter_by(status=SESSION_STATUS_OPEN)
    ).order_by(CashRegisterSession.id.desc()).first()

    if not session:
        raise RegisterNotOpenError("Cash register is closed")

    return session


def get_session(session_id: int) -> CashRegisterSession:
    session = db.session.get(CashRegisterSession, session_id)
    if not session:
        raise NotFoundError(f"Register session {session_id} not found", details={"session_id": session_id})
    return session


def get_session_movements(session_id: int) -> list[CashMovement]:
    """Movements for a session, most recent first."""
    return db.session.query(CashMovement).filter_by(
        session_id=session_id
    ).order_by(CashMovement.id.desc()).all()


# =============================================================================
# LIFECYCLE
# =============================================================================

def open_register(opening_float_cents: int, actor: str | None) -> CashRegisterSession:
    """
    Open a new register session.

    Args:
        opening_float_cents: Starting cash in drawer (in cents)
        actor: Opaque identifier of who opened it

    Raises:
        RegisterAlreadyOpenError: If a session is already open
    """
    opening_float_cents = require_int(
        "opening_float_cents", opening_float_cents, minimum=0, maximum=MAX_AMOUNT_CENTS
    )

    def _op():
        existing = get_open_session()
        if existing:
            raise RegisterAlreadyOpenError(
                f"Cash register already open (session {existing.id})",
                details={"session_id": existing.id},
            )

        session = CashRegisterSession(
            status=SESSION_STATUS_OPEN,
            opened_at=utcnow(),
            opened_by=actor,
            opening_float_cents=opening_float_cents,
            cash_total_cents=0,
            card_total_cents=0,
            transfer_total_cents=0,
        )
        db.session.add(session)
        try:
            db.session.flush()
        except IntegrityError:
            # Another writer opened a session between our read and insert
            raise RegisterAlreadyOpenError("Cash register already open")

        record_audit(
            entity_kind="cash_register_session",
            entity_id=session.id,
            action="open",
            after=session.to_dict(),
            actor=actor,
        )
        return session

    return run_atomic(_op)


def close_register(actor: str | None = None, notes: str | None = None) -> CashRegisterSession:
    """
    Close the open session. Totals stay frozen at their final values.

    Raises:
        RegisterNotOpenError: If no session is open
    """
    notes = clean_text(notes)

    def _op():
        session = require_open_session()
        before = session.to_dict()

        session.status = SESSION_STATUS_CLOSED
        session.closed_at = utcnow()
        session.closed_by = actor
        session.notes = notes
        db.session.flush()

        record_audit(
            entity_kind="cash_register_session",
            entity_id=session.id,
            action="close",
            before=before,
            after=session.to_dict(),
            actor=actor or session.opened_by,
        )
        return session

    return run_atomic(_op)


def register_status() -> dict:
    """
    Read-only snapshot of the open session, or of the most recent one.

    Returns:
        {"open": bool, "session": dict | None, "movements": [dict]}
    """
    session = get_open_session()
    if session is None:
        session = db.session.query(CashRegisterSession).order_by(
            CashRegisterSession.id.desc()
        ).first()

    if session is None:
        return {"open": False, "session": None, "movements": []}

    return {
        "open": session.status == SESSION_STATUS_OPEN,
        "session": session.to_dict(),
        "movements": [m.to_dict() for m in get_session_movements(session.id)],
    }


# =============================================================================
# MOVEMENTS
# =============================================================================

def record_cash_movement(
    session: CashRegisterSession,
    *,
    kind: str,
    method: str,
    amount_cents: int,
    ref_kind: str | None = None,
    ref_id: int | None = None,
    description: str | None = None,
) -> CashMovement:
    """
    Append a movement and move the session's per-method total by the same
    signed amount. Flushes only; the caller's unit commits.

    IMPORTANT: `session` must come from require_open_session() in the
    current unit.
    """
    if session.status != SESSION_STATUS_OPEN:
        raise RegisterNotOpenError("Cash register is closed")
    if method not in TOTAL_COLUMNS:
        raise ValidationError(f"Payment method {method} does not go through the register")
    if kind not in MOVEMENT_KINDS:
        raise ValidationError(f"Unknown cash movement kind: {kind}")

    movement = CashMovement(
        session_id=session.id,
        occurred_at=utcnow(),
        kind=kind,
        method=method,
        amount_cents=amount_cents,
        ref_kind=ref_kind,
        ref_id=ref_id,
        description=description,
    )
    db.session.add(movement)

    column = TOTAL_COLUMNS[method]
    setattr(session, column, session.total_for(method) + amount_cents)

    db.session.flush()
    return movement
