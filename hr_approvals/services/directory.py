"""
Directory lookup consumed by the approval engine.

The organisation-structure service owns employees and departments; the engine
only needs to know which company and department an employee belongs to.
"""
from dataclasses import dataclass
from typing import Optional, Protocol

from sqlalchemy.orm import Session

from hr_approvals.models.department import Department
from hr_approvals.models.employee import Employee


@dataclass(frozen=True)
class EmployeeRef:
    id: int
    company_id: int
    department_id: Optional[int]


class DirectoryLookup(Protocol):
    def get_employee(self, employee_id: int) -> Optional[EmployeeRef]:
        raise NotImplementedError

    def department_of(self, employee_id: int) -> Optional[int]:
        raise NotImplementedError

    def department_exists(self, company_id: int, department_id: int) -> bool:
        raise NotImplementedError


class SqlDirectory(DirectoryLookup):
    def __init__(self, db: Session):
        self._db = db

    def get_employee(self, employee_id: int) -> Optional[EmployeeRef]:
        emp = self._db.get(Employee, int(employee_id))
        if not emp:
            return None
        return EmployeeRef(id=emp.id, company_id=emp.company_id, department_id=emp.department_id)

    def department_of(self, employee_id: int) -> Optional[int]:
        ref = self.get_employee(employee_id)
        return ref.department_id if ref else None

    def department_exists(self, company_id: int, department_id: int) -> bool:
        return self._db.query(Department.id).filter(
            Department.id == int(department_id),
            Department.company_id == int(company_id)
        ).first() is not None
