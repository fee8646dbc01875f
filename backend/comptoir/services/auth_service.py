# Overview: Service-layer operations for accounts, passwords and invitation codes.

"""
Authentication Service

Passwords and invitation codes are hashed with bcrypt. New employees
register themselves with a one-time invitation code generated by an admin
(valid 24 hours); admins manage roles, grades and salary parameters.
"""

import re
import secrets
from datetime import timedelta

import bcrypt

from ..extensions import db
from ..models import InvitationCode, User
from ..models.auth import GRADES, ROLE_EMPLOYEE, ROLES
from ..validation import BusinessRuleError, NotFoundError, ValidationError, parse_amount, require_fields
from . import broadcast
from .session_service import revoke_all_user_sessions
from comptoir.time_utils import utcnow


INVITATION_TTL = timedelta(hours=24)
BCRYPT_ROUNDS = 12
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.\- ]{3,64}$")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    """
    Minimum 8 characters with at least one uppercase letter, one lowercase
    letter, one digit and one special character.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>?_\-]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def _bcrypt_hash(secret: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(secret.encode('utf-8'), salt).decode('utf-8')


def _bcrypt_check(secret: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(secret.encode('utf-8'), hashed.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


def hash_password(password: str) -> str:
    validate_password_strength(password)
    return _bcrypt_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return _bcrypt_check(password, password_hash)


def _validate_username(username) -> str:
    if not isinstance(username, str) or not USERNAME_PATTERN.match(username.strip()):
        raise ValidationError("username must be 3-64 letters, digits, spaces or . _ -")
    return username.strip()


def create_user(
    username: str,
    password: str,
    role: str = ROLE_EMPLOYEE,
    grade: str = "Novice",
    *,
    commit: bool = True,
) -> User:
    """
    Create an account. Raises ValidationError (including
    PasswordValidationError) or BusinessRuleError for a taken username.
    """
    username = _validate_username(username)
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
    if grade not in GRADES:
        raise ValidationError(f"grade must be one of: {', '.join(GRADES)}")

    if db.session.query(User.id).filter_by(username=username).first():
        raise BusinessRuleError("Ce nom d'utilisateur est déjà pris.")

    user = User(
        username=username,
        password_hash=hash_password(password),
        role=role,
        grade=grade,
    )
    db.session.add(user)
    if commit:
        db.session.commit()
    return user


def authenticate(username: str, password: str) -> User | None:
    """Return the active user matching the credentials, else None."""
    user = db.session.query(User).filter(
        User.username == username,
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


# --- Invitation codes ---------------------------------------------------------

def generate_invitation_code(*, created_by_user_id: int | None = None) -> str:
    """Create a one-time code like "A1F3-482"; only its hash is stored."""
    code = f"{secrets.token_hex(2).upper()}-{100 + secrets.randbelow(899)}"
    db.session.add(InvitationCode(
        code_hash=_bcrypt_hash(code),
        expires_at=utcnow() + INVITATION_TTL,
        is_used=False,
        created_by_user_id=created_by_user_id,
    ))
    db.session.commit()
    return code


def _find_active_code(code: str) -> InvitationCode | None:
    candidates = db.session.query(InvitationCode).filter(
        InvitationCode.is_used.is_(False),
        InvitationCode.expires_at > utcnow(),
    ).all()
    for candidate in candidates:
        if _bcrypt_check(code, candidate.code_hash):
            return candidate
    return None


def register_with_invitation(data: dict) -> User:
    require_fields(data, "username", "password", "invitation_code")
    invitation = _find_active_code(str(data["invitation_code"]).strip())
    if invitation is None:
        raise ValidationError("Code d'invitation invalide, expiré ou déjà utilisé.")

    try:
        user = create_user(data["username"], data["password"], commit=False)
        db.session.flush()
        invitation.is_used = True
        invitation.used_by_user_id = user.id
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    broadcast.emit(broadcast.USERS_UPDATED)
    return user


# --- Administration -----------------------------------------------------------

def list_users() -> list[User]:
    return db.session.query(User).order_by(User.username.asc()).all()


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("Utilisateur non trouvé")
    return user


def toggle_user_status(user_id: int) -> User:
    """Flip is_active; deactivation also revokes the user's sessions."""
    user = get_user(user_id)
    user.is_active = not user.is_active
    db.session.commit()
    if not user.is_active:
        revoke_all_user_sessions(user.id, reason="User account deactivated")

    broadcast.emit(broadcast.USERS_UPDATED)
    return user


def update_user(user_id: int, data: dict, *, actor: User) -> User:
    user = get_user(user_id)
    allowed = {"role", "grade", "max_salary", "allow_max_salary_exceed", "salary_percentage_of_margin"}
    unknown = set(data) - allowed
    if unknown:
        raise ValidationError(f"Unknown user fields: {', '.join(sorted(unknown))}")
    if not data:
        raise ValidationError("No user fields to update")

    if "role" in data:
        if data["role"] not in ROLES:
            raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
        if user.id == actor.id and data["role"] != user.role:
            raise BusinessRuleError("Vous ne pouvez pas modifier votre propre rôle.")
        user.role = data["role"]

    if "grade" in data:
        if data["grade"] not in GRADES:
            raise ValidationError(f"grade must be one of: {', '.join(GRADES)}")
        user.grade = data["grade"]

    if "max_salary" in data:
        value = data["max_salary"]
        user.max_salary = None if value in (None, "") else parse_amount(value, "max_salary")

    if "allow_max_salary_exceed" in data:
        if not isinstance(data["allow_max_salary_exceed"], bool):
            raise ValidationError("allow_max_salary_exceed must be a boolean")
        user.allow_max_salary_exceed = data["allow_max_salary_exceed"]

    if "salary_percentage_of_margin" in data:
        percentage = parse_amount(data["salary_percentage_of_margin"], "salary_percentage_of_margin")
        if percentage > 1:
            raise ValidationError("salary_percentage_of_margin must be between 0 and 1")
        user.salary_percentage_of_margin = percentage

    db.session.commit()
    broadcast.emit(broadcast.USERS_UPDATED)
    return user
