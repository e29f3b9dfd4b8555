from dataclasses import dataclass


@dataclass(frozen=True)
class RequestContext:
    """
    Who is acting and in which company.
    Passed explicitly into every engine call instead of living in ambient session state.
    """
    company_id: int
    employee_id: int
