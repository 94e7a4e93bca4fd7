"""Bearer-token auth with table-level permissions."""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel, Field

from scout.core.config import settings

security = HTTPBearer(auto_error=False)

ADMIN_TABLE = "*"
JOBS_TABLE = "jobs"
RESUMES_TABLE = "resumes"
APPLICATIONS_TABLE = "job_applications"

ROLE_TABLES: dict[str, list[str]] = {
    "admin": [ADMIN_TABLE],
    "hr_manager": [JOBS_TABLE, RESUMES_TABLE, APPLICATIONS_TABLE],
    "recruiter": [JOBS_TABLE, RESUMES_TABLE, APPLICATIONS_TABLE],
}


class UserContext(BaseModel):
    user_id: str
    role: str
    tables: list[str] = Field(default_factory=list)
    approved: bool = True

    def can_access(self, table: str) -> bool:
        if ADMIN_TABLE in self.tables:
            return True
        if table == ADMIN_TABLE:
            return False
        return table in self.tables


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> UserContext:
    """Extract the user from a JWT, or fall back to the demo admin.

    In production, remove the fallback and set auto_error=True.
    """
    if credentials is None:
        return UserContext(user_id="demo-user", role="admin", tables=[ADMIN_TABLE])

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
        role = payload.get("role", "recruiter")
        tables = payload.get("tables")
        if tables is None:
            tables = ROLE_TABLES.get(role, [])
        return UserContext(
            user_id=payload["sub"],
            role=role,
            tables=list(tables),
            approved=bool(payload.get("approved", True)),
        )
    except (JWTError, KeyError, ValueError, TypeError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        ) from exc


def check_table_access(user: UserContext, table: str) -> UserContext:
    if not user.approved:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User not approved")
    if not user.can_access(table):
        detail = "Admin access required" if table == ADMIN_TABLE else f"Access denied for table: {table}"
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
    return user


def require_table(table: str):
    """Dependency factory: the caller must hold `table` (or the admin wildcard)."""

    def dependency(user: UserContext = Depends(get_current_user)) -> UserContext:
        return check_table_access(user, table)

    return dependency
