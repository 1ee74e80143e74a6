# backend/concessions/services/distribution_service.py
"""
Profit distribution.

After a real session closes, its profit (drawer gain) is credited to one or
more program accounts as earnings. Distribution is advisory about totals:
handing out more or less than the profit is allowed and reported back as
remaining_cents plus warnings, never rejected. It may be run again later to
hand out what is left.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..errors import SessionStateError, ValidationError
from ..extensions import db
from ..models import ProfitDistribution
from .catalog_service import get_program
from .concurrency import ledger_lock, run_with_retry, session_lock
from .program_ledger_service import post_transaction
from .session_service import get_session, locked_session


def _distributed_total(session_id: int) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(ProfitDistribution.amount_cents), 0))
        .filter(ProfitDistribution.session_id == session_id)
        .scalar()
    )
    return int(total or 0)


def _parse_allocations(allocations: list[dict] | None) -> list[tuple[int, int]]:
    parsed = []
    for index, entry in enumerate(allocations or []):
        program_id = entry.get("program_id")
        amount = entry.get("amount_cents")
        if isinstance(program_id, bool) or not isinstance(program_id, int):
            raise ValidationError(f"allocations[{index}].program_id must be an integer")
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError(f"allocations[{index}].amount_cents must be a positive integer")
        parsed.append((program_id, amount))
    return parsed


def distribute_profit(
    session_id: int,
    allocations: list[dict] | None = None,
    *,
    distributed_by: str | None = None,
) -> dict:
    """
    Credit session profit to programs.

    With no allocations, whatever is still undistributed goes to the
    session's own program.
    """
    parsed = _parse_allocations(allocations)

    def _op():
        with session_lock(session_id):
            session = locked_session(session_id)
            if session.status != "closed":
                raise SessionStateError(
                    "Profit can only be distributed for a closed session",
                    {"session_id": session_id, "status": session.status},
                )
            if session.is_test:
                raise ValidationError("Practice sessions have no profit to distribute", {"session_id": session_id})

            profit = session.profit_cents or 0
            already = _distributed_total(session_id)
            plan = parsed
            if not plan:
                leftover = profit - already
                plan = [(session.program_id, leftover)] if leftover > 0 else []

            with ledger_lock():
                created = []
                for program_id, amount in plan:
                    program = get_program(program_id, require_active=True)
                    dist = ProfitDistribution(
                        session_id=session_id,
                        program_id=program.id,
                        amount_cents=amount,
                        distributed_by=distributed_by,
                    )
                    db.session.add(dist)
                    post_transaction(
                        program.id,
                        amount,
                        "earning",
                        session_id=session_id,
                        note=f"Profit from session '{session.name}'",
                    )
                    created.append(dist)
                db.session.commit()
            return session, created

    session, created = run_with_retry(_op)
    result = get_distribution_status(session_id)
    result["created"] = [d.to_dict() for d in created]
    if result["remaining_cents"] != 0:
        current_app.logger.warning(
            "Session %s distribution does not match profit: %s cents remaining",
            session_id,
            result["remaining_cents"],
        )
    return result


def get_distribution_status(session_id: int) -> dict:
    session = get_session(session_id)
    distributions = (
        db.session.query(ProfitDistribution)
        .filter(ProfitDistribution.session_id == session_id)
        .order_by(ProfitDistribution.id.asc())
        .all()
    )
    profit = session.profit_cents or 0
    distributed = sum(d.amount_cents for d in distributions)
    remaining = profit - distributed

    warnings = []
    if session.status == "closed" and remaining < 0:
        warnings.append(f"Distributed {-remaining} cents more than the session profit")
    elif session.status == "closed" and remaining > 0 and distributions:
        warnings.append(f"{remaining} cents of profit not yet distributed")

    return {
        "session_id": session_id,
        "profit_cents": profit,
        "distributed_cents": distributed,
        "remaining_cents": remaining,
        "distributions": [d.to_dict() for d in distributions],
        "warnings": warnings,
    }
