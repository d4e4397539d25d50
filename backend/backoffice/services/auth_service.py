# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service with Multi-Tenant Support

WHY: Every action must be attributable. Uses bcrypt for password hashing.

MULTI-TENANT: Users belong to exactly one company (company_id).
Email is unique system-wide (login is by email alone) and stored lower-cased.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 6 characters required
- Failed logins never reveal whether the email exists
- Identity tokens managed separately (see token_service.py)
"""

from __future__ import annotations

import re

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User, Company
from ..validation import ValidationError, ConflictError
from .permission_service import PERMISSION_FLAGS, AuthenticationError
from .tenant_service import repository_operation


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MIN_PASSWORD_LENGTH = 6
MIN_NAME_LENGTH = 2

# Used to spend the same bcrypt time when the email is unknown
_DUMMY_HASH = bcrypt.hashpw(b"not-a-real-password", bcrypt.gensalt(rounds=4)).decode("utf-8")


def normalize_email(email) -> str:
    if not isinstance(email, str):
        raise ValidationError("Valid email is required")
    normalized = email.strip().lower()
    if not EMAIL_RE.match(normalized) or len(normalized) > 255:
        raise ValidationError("Valid email is required")
    return normalized


def validate_password(password) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


def validate_name(value, label: str, *, min_length: int = 1, max_length: int = 120) -> str:
    if not isinstance(value, str) or len(value.strip()) < min_length:
        if min_length > 1:
            raise ValidationError(f"{label} must be at least {min_length} characters")
        raise ValidationError(f"{label} is required")
    cleaned = value.strip()
    if len(cleaned) > max_length:
        raise ValidationError(f"{label} exceeds max length {max_length}")
    return cleaned


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Cost factor comes from BCRYPT_ROUNDS (tests drop it to 4).
    """
    rounds = int(current_app.config.get("BCRYPT_ROUNDS", 12))
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Return True if password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in the database
        return False


def find_user_by_email(email: str) -> User | None:
    """Exact lookup on the stored (lower-cased) email."""
    return db.session.query(User).filter(User.email == email).first()


def email_taken(email: str) -> bool:
    with repository_operation("email_taken"):
        return find_user_by_email(email) is not None


def register_company(*, company_name, owner_name, owner_email, owner_password) -> tuple[Company, User]:
    """
    Bootstrap a Company and its owner User in one transaction.

    The two rows reference each other (companies.owner_id <-> users.company_id):
    the company is flushed without an owner, the owner is inserted against it,
    then owner_id is set. A single commit makes both visible; any failure
    rolls both back.

    Raises:
        ValidationError: bad input
        ConflictError: email already registered
    """
    company_name = validate_name(company_name, "Company name", min_length=MIN_NAME_LENGTH, max_length=255)
    owner_name = validate_name(owner_name, "Owner name", min_length=MIN_NAME_LENGTH)
    email = normalize_email(owner_email)
    validate_password(owner_password)

    if email_taken(email):
        raise ConflictError("Email already registered")

    password_hash = hash_password(owner_password)

    with repository_operation("register_company"):
        try:
            company = Company(name=company_name)
            db.session.add(company)
            db.session.flush()

            owner = User(
                company_id=company.id,
                name=owner_name,
                email=email,
                password_hash=password_hash,
                **{flag: True for flag in PERMISSION_FLAGS},
            )
            db.session.add(owner)
            db.session.flush()

            company.owner_id = owner.id
            db.session.commit()
        except IntegrityError:
            # Lost a race on the unique email
            db.session.rollback()
            raise ConflictError("Email already registered")

    current_app.logger.info("Registered company %s (owner user_id=%s)", company.id, owner.id)
    return company, owner


def authenticate(email, password) -> tuple[User, Company]:
    """
    Check credentials and return (user, company).

    Raises ValidationError when either field is missing and
    AuthenticationError with the same message for unknown email and
    wrong password.
    """
    if not isinstance(email, str) or not email.strip() or not isinstance(password, str) or not password:
        raise ValidationError("Email and password are required")

    with repository_operation("authenticate"):
        user = find_user_by_email(email.strip().lower())

        if user is None:
            verify_password(password, _DUMMY_HASH)
            raise AuthenticationError("Invalid email or password")

        if not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")

        company = db.session.get(Company, user.company_id)
        if company is None:
            raise AuthenticationError("Invalid email or password")

    return user, company


def create_user(*, company_id: int, payload: dict) -> User:
    """
    Create a user inside an existing company.

    payload: name, email, password, and the three permission flags
    (booleans, default false).

    Raises:
        ValidationError: bad input
        ConflictError: email already registered
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    allowed = {"name", "email", "password", *PERMISSION_FLAGS}
    unknown = set(payload) - allowed
    if unknown:
        raise ValidationError(f"Field not allowed: {sorted(unknown)[0]}")

    name = validate_name(payload.get("name"), "Name")
    email = normalize_email(payload.get("email"))
    password = payload.get("password")
    validate_password(password)

    flags = {}
    for flag in PERMISSION_FLAGS:
        value = payload.get(flag, False)
        if not isinstance(value, bool):
            raise ValidationError(f"{flag} must be a boolean")
        flags[flag] = value

    if email_taken(email):
        raise ConflictError("Email already registered")

    user = User(
        company_id=company_id,
        name=name,
        email=email,
        password_hash=hash_password(password),
        **flags,
    )

    with repository_operation("create_user"):
        try:
            db.session.add(user)
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError("Email already registered")

    current_app.logger.info("Created user %s in company %s", user.id, company_id)
    return user
