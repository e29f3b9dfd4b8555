"""
Balance Ledger

Per (employee, leave type, year) day counts. Mutated only by the request
engine, always inside ``exclusive()`` for the tuple being changed:

    with ledger.exclusive(employee_id, leave_type_id, year):
        ledger.reserve(employee_id, leave_type_id, year, days)
        ...
        db.commit()

Invariant after every mutation:
    0 <= used_days + pending_days <= total_days + carried_forward_days
"""
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional

from sqlalchemy.orm import Session

from hr_approvals.core.exceptions import InsufficientBalance, InvariantViolation, NotFound
from hr_approvals.models.leave_balance import LeaveBalance
from hr_approvals.models.leave_type import LeaveType, LeaveTypeStatus
from hr_approvals.services.base import BaseService
from hr_approvals.services.locks import KeyedLockRegistry, balance_locks


@dataclass(frozen=True)
class BalanceView:
    """Read model for one balance tuple. ``persisted`` is False for a provisional view."""
    employee_id: int
    leave_type_id: int
    leave_type_name: str
    year: int
    total_days: int
    used_days: int
    pending_days: int
    carried_forward_days: int
    persisted: bool
    id: Optional[int] = None

    @property
    def available(self) -> int:
        return self.total_days + self.carried_forward_days - self.used_days - self.pending_days


class BalanceLedger(BaseService):
    def __init__(self, db: Session, locks: KeyedLockRegistry = balance_locks):
        super().__init__(db)
        self._locks = locks

    @contextmanager
    def exclusive(self, employee_id: int, leave_type_id: int, year: int) -> Iterator[None]:
        """Single-writer section for one balance tuple. Hold it until the transaction commits."""
        with self._locks.hold((int(employee_id), int(leave_type_id), int(year))):
            yield

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def reserve(self, employee_id: int, leave_type_id: int, year: int, days: int) -> LeaveBalance:
        self._check_days(days)
        balance = self._balance_for_update(employee_id, leave_type_id, year, create=True)
        available = balance.available
        if available < days:
            raise InsufficientBalance(requested=days, available=available)
        balance.pending_days += days
        self._check_invariant(balance)
        self.db.flush()
        return balance

    def commit(self, employee_id: int, leave_type_id: int, year: int, days: int) -> LeaveBalance:
        """Move a reservation from pending to used."""
        self._check_days(days)
        balance = self._require_reservation(employee_id, leave_type_id, year, days, "commit")
        balance.pending_days -= days
        balance.used_days += days
        self._check_invariant(balance)
        self.db.flush()
        return balance

    def release(self, employee_id: int, leave_type_id: int, year: int, days: int) -> LeaveBalance:
        """Return a reservation (rejection or withdrawal)."""
        self._check_days(days)
        balance = self._require_reservation(employee_id, leave_type_id, year, days, "release")
        balance.pending_days -= days
        self._check_invariant(balance)
        self.db.flush()
        return balance

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_available(self, employee_id: int, leave_type_id: int, year: int) -> int:
        balance = self._find(employee_id, leave_type_id, year)
        if balance is not None:
            available = balance.available
        else:
            leave_type = self._leave_type(leave_type_id)
            total, carried = self._provision_values(employee_id, leave_type, year)
            available = total + carried
        if available < 0:
            self._logger.warning(
                "Data integrity warning: negative available balance",
                extra={"employee_id": employee_id, "leave_type_id": leave_type_id, "year": year, "available": available}
            )
        return available

    def get_view(self, employee_id: int, leave_type_id: int, year: int) -> BalanceView:
        leave_type = self._leave_type(leave_type_id)
        balance = self._find(employee_id, leave_type_id, year)
        return self._view(employee_id, leave_type, year, balance)

    def balances_for(self, employee_id: int, company_id: int, year: int) -> List[BalanceView]:
        """
        One view per leave type the employee can use this year.
        Types without a row yet show what lazy creation would provision; nothing is persisted.
        """
        rows = self.db.query(LeaveBalance).filter(
            LeaveBalance.employee_id == employee_id,
            LeaveBalance.year == year
        ).all()
        by_type = {row.leave_type_id: row for row in rows}

        active_types = self.db.query(LeaveType).filter(
            LeaveType.company_id == company_id,
            LeaveType.status == LeaveTypeStatus.ACTIVE.value
        ).order_by(LeaveType.name).all()

        views = [self._view(employee_id, row.leave_type, year, row) for row in rows]
        for leave_type in active_types:
            if leave_type.id not in by_type:
                views.append(self._view(employee_id, leave_type, year, None))

        for view in views:
            if view.available < 0:
                self._logger.warning(
                    "Data integrity warning: negative available balance",
                    extra={"employee_id": employee_id, "leave_type_id": view.leave_type_id, "year": year}
                )
        return views

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _find(self, employee_id: int, leave_type_id: int, year: int) -> Optional[LeaveBalance]:
        return self.db.query(LeaveBalance).filter(
            LeaveBalance.employee_id == employee_id,
            LeaveBalance.leave_type_id == leave_type_id,
            LeaveBalance.year == year
        ).first()

    def _balance_for_update(self, employee_id: int, leave_type_id: int, year: int, create: bool = False) -> Optional[LeaveBalance]:
        balance = self.db.query(LeaveBalance).filter(
            LeaveBalance.employee_id == employee_id,
            LeaveBalance.leave_type_id == leave_type_id,
            LeaveBalance.year == year
        ).populate_existing().with_for_update().first()

        if balance is None and create:
            leave_type = self._leave_type(leave_type_id)
            total, carried = self._provision_values(employee_id, leave_type, year)
            balance = LeaveBalance(
                company_id=leave_type.company_id,
                employee_id=employee_id,
                leave_type_id=leave_type_id,
                year=year,
                total_days=total,
                used_days=0,
                pending_days=0,
                carried_forward_days=carried,
            )
            self.db.add(balance)
            self.db.flush()
            self._logger.info(
                "Provisioned leave balance",
                extra={"employee_id": employee_id, "leave_type_id": leave_type_id, "year": year,
                       "total_days": total, "carried_forward_days": carried}
            )
        return balance

    def _require_reservation(self, employee_id: int, leave_type_id: int, year: int, days: int, operation: str) -> LeaveBalance:
        balance = self._balance_for_update(employee_id, leave_type_id, year)
        if balance is None or balance.pending_days < days:
            details = {
                "operation": operation,
                "employee_id": employee_id,
                "leave_type_id": leave_type_id,
                "year": year,
                "days": days,
                "pending_days": balance.pending_days if balance else None,
            }
            self._logger.error("Ledger invariant violation: reservation missing", extra=details)
            raise InvariantViolation(f"Cannot {operation} {days} day(s): not reserved", details=details)
        return balance

    def _check_days(self, days: int):
        if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
            self._logger.error("Ledger invariant violation: invalid day count", extra={"days": repr(days)})
            raise InvariantViolation(f"Day count must be a positive integer, got {days!r}")

    def _check_invariant(self, balance: LeaveBalance):
        consumed = balance.used_days + balance.pending_days
        capacity = balance.total_days + balance.carried_forward_days
        if balance.used_days < 0 or balance.pending_days < 0 or consumed > capacity:
            details = {
                "balance_id": balance.id,
                "used_days": balance.used_days,
                "pending_days": balance.pending_days,
                "total_days": balance.total_days,
                "carried_forward_days": balance.carried_forward_days,
            }
            self._logger.error("Ledger invariant violation", extra=details)
            raise InvariantViolation("Leave balance invariant violated", details=details)

    def _leave_type(self, leave_type_id: int) -> LeaveType:
        leave_type = self.db.get(LeaveType, leave_type_id)
        if not leave_type:
            raise NotFound("Leave type", leave_type_id)
        return leave_type

    def _provision_values(self, employee_id: int, leave_type: LeaveType, year: int):
        """(total_days, carried_forward_days) for a balance that does not exist yet."""
        total = int(leave_type.days_allowed or 0)
        carried = 0
        if leave_type.carry_forward_allowed and leave_type.max_carry_forward_days:
            previous = self._find(employee_id, leave_type.id, year - 1)
            if previous is not None:
                unused = max(previous.available, 0)
                carried = min(unused, int(leave_type.max_carry_forward_days))
        return total, carried

    def _view(self, employee_id: int, leave_type: LeaveType, year: int, balance: Optional[LeaveBalance]) -> BalanceView:
        if balance is not None:
            return BalanceView(
                id=balance.id,
                employee_id=employee_id,
                leave_type_id=leave_type.id,
                leave_type_name=leave_type.name,
                year=year,
                total_days=balance.total_days,
                used_days=balance.used_days,
                pending_days=balance.pending_days,
                carried_forward_days=balance.carried_forward_days,
                persisted=True,
            )
        total, carried = self._provision_values(employee_id, leave_type, year)
        return BalanceView(
            employee_id=employee_id,
            leave_type_id=leave_type.id,
            leave_type_name=leave_type.name,
            year=year,
            total_days=total,
            used_days=0,
            pending_days=0,
            carried_forward_days=carried,
            persisted=False,
        )
