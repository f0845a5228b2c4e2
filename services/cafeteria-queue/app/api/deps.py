"""
Cafeteria Queue — Caller identity and role checks
"""
from dataclasses import dataclass
from fastapi import Depends, HTTPException, Request, status

ROLES = ("student", "staff", "admin")


@dataclass(frozen=True)
class Caller:
    user_id: str
    role: str


def get_caller(request: Request) -> Caller:
    claims = getattr(request.state, "user", None)
    if not claims:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required.")
    return Caller(user_id=str(claims["sub"]), role=str(claims["role"]).lower())


def require_roles(*role_names: str):
    """
    Usage: caller: Caller = Depends(require_roles("staff"))
    Admins pass every role check.
    """
    def dependency(caller: Caller = Depends(get_caller)) -> Caller:
        if caller.role != "admin" and caller.role not in role_names:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return caller
    return dependency
