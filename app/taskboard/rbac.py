from collections.abc import Callable, Iterable
from functools import wraps
from typing import Any

from flask import g
from werkzeug.exceptions import Forbidden, Unauthorized

from app.taskboard.models import User


def current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise Unauthorized(getattr(g, "auth_error", None) or "Authentication required.")
    return u


def user_has_role(user: User | None, allowed: Iterable[str]) -> bool:
    if not user or not user.is_active:
        return False
    return user.role in set(allowed)


def require_role(*allowed: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Guard a role-scoped route ("/<role>/...").

    The path role must be the caller's own role and one of `allowed`.
    The role kwarg is consumed here; handlers read the caller from g.current_user.
    """
    allowed_set = frozenset(allowed)

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            path_role = kwargs.pop("role", None)
            user = current_user()
            if path_role != user.role:
                g.missing_role = f"path role {path_role!r} does not match token role {user.role!r}"
                raise Forbidden(f"This route is for {path_role} members.")
            if not user_has_role(user, allowed_set):
                g.missing_role = f"role {user.role!r} not in {sorted(allowed_set)}"
                raise Forbidden(f"Role '{user.role}' may not access this resource.")
            return fn(*args, **kwargs)

        return wrapped

    return decorator
