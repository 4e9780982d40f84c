"""
agent_labs.agent.tools.sensitive - Operations that need a human in the loop.

The agent may *request* these calls; the runtime parks them until a
human approves (see ChatAgent.resume).
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from agent_labs.application.context import RequestContext
from agent_labs.agent.tools.base import BaseTool, ToolResult

logger = logging.getLogger(__name__)


class EmployeeIdInput(BaseModel):
    employee_id: str = Field(description="The employee ID to delete all data for")


class DeleteEmployeeDataTool(BaseTool):
    """Simulated irreversible deletion of an employee's data."""

    name = "delete_employee_data"
    description = (
        "Deletes all data for an employee. This is a SENSITIVE operation that "
        "cannot be undone."
    )
    requires_approval = True

    def get_schema(self) -> type[BaseModel]:
        return EmployeeIdInput

    async def execute(self, ctx: RequestContext, employee_id: str = "", **kwargs) -> ToolResult:
        logger.warning("Deleting all data for employee %s (approved)", employee_id)
        return ToolResult(
            output=(
                f"Sensitive operation executed: All data for employee '{employee_id}' "
                "has been permanently deleted. This action cannot be undone."
            ),
            data=employee_id,
            store_as="deleted_employee",
        )
