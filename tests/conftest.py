import pytest
import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

from hr_approvals.database import Base, get_db
from hr_approvals.main import app
from hr_approvals.core.context import RequestContext
from hr_approvals.models.department import Department
from hr_approvals.models.employee import Employee
from hr_approvals.models.leave_type import LeaveType
from hr_approvals.services.approvals import ApprovalService
from fastapi.testclient import TestClient

COMPANY_ID = 1
OTHER_COMPANY_ID = 2

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def setup_database():
    """Fresh schema per test: services commit and roll back on their own."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(setup_database):
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture(scope="function")
def department(db_session):
    dept = Department(company_id=COMPANY_ID, name="Engineering", code="ENG")
    db_session.add(dept)
    db_session.commit()
    return dept


@pytest.fixture(scope="function")
def other_department(db_session):
    dept = Department(company_id=COMPANY_ID, name="Human Resources", code="HR")
    db_session.add(dept)
    db_session.commit()
    return dept


def _employee(db_session, first_name, department_id, company_id=COMPANY_ID):
    emp = Employee(
        company_id=company_id,
        department_id=department_id,
        first_name=first_name,
        last_name="Tester",
        email=f"{first_name.lower()}@example.com",
    )
    db_session.add(emp)
    db_session.commit()
    return emp


@pytest.fixture(scope="function")
def employee(db_session, department):
    return _employee(db_session, "Ada", department.id)


@pytest.fixture(scope="function")
def approver(db_session, other_department):
    return _employee(db_session, "Grace", other_department.id)


@pytest.fixture(scope="function")
def second_approver(db_session, other_department):
    return _employee(db_session, "Linus", other_department.id)


@pytest.fixture(scope="function")
def outsider(db_session):
    """Employee of a different company."""
    return _employee(db_session, "Mallory", None, company_id=OTHER_COMPANY_ID)


@pytest.fixture(scope="function")
def annual_leave(db_session):
    leave_type = LeaveType(
        company_id=COMPANY_ID,
        name="Annual Leave",
        code="AL",
        days_allowed=10,
        carry_forward_allowed=True,
        max_carry_forward_days=5,
    )
    db_session.add(leave_type)
    db_session.commit()
    return leave_type


@pytest.fixture(scope="function")
def sick_leave(db_session):
    leave_type = LeaveType(
        company_id=COMPANY_ID,
        name="Sick Leave",
        code="SL",
        days_allowed=5,
        requires_documentation=True,
    )
    db_session.add(leave_type)
    db_session.commit()
    return leave_type


@pytest.fixture(scope="function")
def ctx_for():
    def _ctx(emp):
        return RequestContext(company_id=emp.company_id, employee_id=emp.id)
    return _ctx


@pytest.fixture(scope="function")
def service(db_session):
    """Facade with the reference policy: first approval finalizes, memos need approval."""
    return ApprovalService(db_session, enforce_multi_step=False, memo_requires_approval=True)


@pytest.fixture(scope="function")
def multi_step_service(db_session):
    return ApprovalService(db_session, enforce_multi_step=True, memo_requires_approval=True)


@pytest.fixture(scope="function")
def headers_for():
    def _headers(emp):
        return {"X-Company-Id": str(emp.company_id), "X-Employee-Id": str(emp.id)}
    return _headers


@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
