"""
Seed a demo directory (departments, employees) and leave types for local development.

    python -m scripts.seed_demo
"""
from hr_approvals.database import SessionLocal, init_db
from hr_approvals.models.department import Department
from hr_approvals.models.employee import Employee
from hr_approvals.models.leave_type import LeaveType

COMPANY_ID = 1

init_db()
db = SessionLocal()

def get_or_create_department(name, code):
    existing = db.query(Department).filter(Department.company_id == COMPANY_ID, Department.code == code).first()
    if existing:
        print(f"Department {code} already exists. Skipping.")
        return existing
    dept = Department(company_id=COMPANY_ID, name=name, code=code)
    db.add(dept)
    db.commit()
    db.refresh(dept)
    print(f"Created department {code} -> id {dept.id}")
    return dept

def create_employee(first_name, last_name, email, department):
    # Check if employee already exists to avoid unique constraint errors
    if db.query(Employee).filter(Employee.email == email).first():
        print(f"Employee {email} already exists. Skipping.")
        return
    emp = Employee(
        company_id=COMPANY_ID,
        department_id=department.id,
        first_name=first_name,
        last_name=last_name,
        email=email,
    )
    db.add(emp)
    db.commit()
    db.refresh(emp)
    print(f"Created employee {email} -> id {emp.id}")

def create_leave_type(name, code, days_allowed, **extra):
    if db.query(LeaveType).filter(LeaveType.company_id == COMPANY_ID, LeaveType.code == code).first():
        print(f"Leave type {code} already exists. Skipping.")
        return
    db.add(LeaveType(company_id=COMPANY_ID, name=name, code=code, days_allowed=days_allowed, **extra))
    db.commit()
    print(f"Created leave type {code} ({days_allowed} days)")

engineering = get_or_create_department("Engineering", "ENG")
hr = get_or_create_department("Human Resources", "HR")

create_employee("Ada", "Lovelace", "ada@example.com", engineering)
create_employee("Grace", "Hopper", "grace@example.com", hr)
create_employee("Linus", "Torvalds", "linus@example.com", hr)

create_leave_type("Annual Leave", "AL", 20, carry_forward_allowed=True, max_carry_forward_days=5)
create_leave_type("Sick Leave", "SL", 10, requires_documentation=True)
create_leave_type("Unpaid Leave", "UL", 30, is_paid=False)

db.close()
print("✓ Demo data ready")
