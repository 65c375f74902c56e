"""Employee directory (read-only)."""

from typing import Optional

from pydantic import Field

from connectors.business_central.bc_models import Employee
from connectors.erp_base import ERPClient
from connectors.odata import ODataFilter
from core.resources import ResourceSchema, ResourceService


class EmployeeFilter(ODataFilter):
    department_code: Optional[str] = Field(None, alias="DepartmentCode")
    status: Optional[str] = Field(None, alias="Status")
    manager_no: Optional[str] = Field(None, alias="ManagerNo")


EMPLOYEE_SCHEMA = ResourceSchema(
    name="employees",
    label="Employee",
    entity_set="Employees",
    model=Employee,
    key_field="no",
    filter_model=EmployeeFilter,
    search_fields=("No", "FullName", "Email"),
    default_order_by="No",
    status_field="status",
    read_only=True,
)


class EmployeeService(ResourceService[Employee]):
    def __init__(self, client: ERPClient, **kwargs):
        super().__init__(client, EMPLOYEE_SCHEMA, **kwargs)

    async def relievers(self, employee_no: str, department_code: Optional[str] = None):
        """Colleagues who can take over duties during leave."""
        result = await self.list(EmployeeFilter(department_code=department_code, status="Active"))
        return [e for e in result.items if e.no != employee_no]
