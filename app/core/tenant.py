from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Query, status
from pydantic import BaseModel

from app.core.auth import get_current_user


class TenantScope(BaseModel):
    """The (company, department) pair an availability configuration belongs to"""
    company_id: str
    department_id: Optional[str] = None

    def for_department(self, department_id: Optional[str]) -> "TenantScope":
        """Narrow to a department named in a request body, if any"""
        if not department_id:
            return self
        return TenantScope(company_id=self.company_id, department_id=department_id)


def resolve_scope(user: Dict[str, Any], department_id: Optional[str] = None) -> TenantScope:
    """
    Build the tenant scope for a staff user.

    An explicit department wins over the one carried in the token; with
    neither, the scope is company-wide.
    """
    company_id = user.get("companyId")
    if not company_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Company ID is required"
        )
    return TenantScope(
        company_id=str(company_id),
        department_id=department_id or user.get("departmentId") or None,
    )


async def get_tenant_scope(
    departmentId: Optional[str] = Query(None, description="Department scope; omit for company-wide"),
    current_user: dict = Depends(get_current_user)
) -> TenantScope:
    """
    Default tenant resolution for authenticated dashboard requests.

    Routes depend on this function rather than reading the token themselves,
    so the policy can be replaced through ``app.dependency_overrides``.
    """
    return resolve_scope(current_user, departmentId)
