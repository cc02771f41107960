# Overview: Operator directory used by the route layer and the CLI.

from __future__ import annotations

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import User
from .concurrency import run_atomically


def get_active_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user or not user.is_active:
        raise NotFoundError("user", user_id)
    return user


def create_user(*, username: str, name: str, role: str = "staff") -> User:
    username = (username or "").strip()
    name = (name or "").strip()
    if not username:
        raise ValidationError("username is required", field="username")
    if not name:
        raise ValidationError("name is required", field="name")

    def _op() -> User:
        if db.session.query(User.id).filter_by(username=username).first():
            raise ConflictError(f"User '{username}' already exists")
        user = User(username=username, name=name, role=role, is_active=True)
        db.session.add(user)
        return user

    return run_atomically(_op)


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.username.asc()).all()
