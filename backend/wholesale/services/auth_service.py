# Overview: Service-layer operations for auth; password hashing and credential checks.

"""
Authentication Service

Two kinds of principal:
- admin: wholesaler staff (User), roles owner/staff
- shop:  shop owners (Account), one login for every shop under the email

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS)
- Minimum 6 characters
- Session tokens managed separately (see session_service.py)
- A login is refused when every shop under the account is blocked
"""

import bcrypt
from flask import current_app
from ..extensions import db
from ..models import User, Account, Shop
from ..models.auth import ADMIN_ROLES
from ..models.shops import SHOP_STATUS_BLOCKED
from wholesale.time_utils import utcnow


MIN_PASSWORD_LENGTH = 6


class PasswordValidationError(Exception):
    """Raised when password doesn't meet requirements."""
    pass


class AuthError(Exception):
    """Raised when credentials are valid but the login is not allowed."""
    pass


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def validate_password_strength(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt (cost factor from Config.BCRYPT_ROUNDS, default 12).

    Password is validated before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """bcrypt.checkpw is timing-safe. Malformed hashes verify as False."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_admin_user(email: str, name: str, password: str, role: str = "owner") -> User:
    """
    Create an admin staff user.

    Raises:
        ValueError: If the email is taken or the role is unknown
        PasswordValidationError: If password doesn't meet requirements
    """
    email = normalize_email(email)
    if role not in ADMIN_ROLES:
        raise ValueError(f"Role must be one of: {', '.join(ADMIN_ROLES)}")

    existing = db.session.query(User).filter_by(email=email).first()
    if existing:
        raise ValueError("An admin user with this email already exists")

    user = User(email=email, name=name, password_hash=hash_password(password), role=role)
    db.session.add(user)
    db.session.commit()
    return user


def authenticate_admin(email: str, password: str) -> User | None:
    user = db.session.query(User).filter(
        User.email == normalize_email(email),
        User.is_active.is_(True),
    ).first()
    if not user or not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def authenticate_account(email: str, password: str) -> Account | None:
    """
    Authenticate a shop owner.

    Raises:
        AuthError: If every shop under the account is blocked
    """
    account = db.session.query(Account).filter(
        Account.email == normalize_email(email),
        Account.is_active.is_(True),
    ).first()
    if not account or not verify_password(password, account.password_hash):
        return None

    statuses = [s.status for s in account.shops]
    if statuses and all(status == SHOP_STATUS_BLOCKED for status in statuses):
        raise AuthError("Your shop has been blocked. Please contact support.")

    account.last_login_at = utcnow()
    db.session.commit()
    return account


def default_shop_for(account: Account) -> Shop | None:
    """Shop a fresh session lands on: first non-blocked shop, oldest first."""
    shops = sorted(account.shops, key=lambda s: s.id)
    for shop in shops:
        if shop.status != SHOP_STATUS_BLOCKED:
            return shop
    return shops[0] if shops else None


def change_account_password(account_id: int, current_password: str, new_password: str) -> Account:
    account = db.session.get(Account, account_id)
    if not account:
        raise AuthError("Account not found")
    if not verify_password(current_password or "", account.password_hash):
        raise AuthError("Current password is incorrect")

    account.password_hash = hash_password(new_password)
    account.must_change_password = False
    db.session.commit()
    return account


def reset_account_password(account_id: int, temporary_password: str) -> Account:
    """Admin reset: set a temporary password and force a change on next login."""
    account = db.session.get(Account, account_id)
    if not account:
        raise AuthError("Account not found")

    account.password_hash = hash_password(temporary_password)
    account.must_change_password = True
    db.session.commit()
    return account
