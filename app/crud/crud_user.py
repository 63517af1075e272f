from typing import Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.security import get_password_hash, verify_password
from app.models.user import User


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """
    Obtiene un usuario por su email.
    """
    return db.query(User).filter(User.email == email).first()


def get_user_by_login(db: Session, login: str) -> Optional[User]:
    """
    Obtiene un usuario por username o email.
    """
    return db.query(User).filter(or_(User.username == login, User.email == login)).first()


def authenticate_user(db: Session, login: str, password: str) -> Optional[User]:
    """
    Autentica un usuario verificando username/email y contraseña.
    """
    user = get_user_by_login(db, login)
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    if not user.is_active:
        return None
    return user


def create_user(
    db: Session,
    username: str,
    email: str,
    password: str = None,
    full_name: str = None,
    is_admin: bool = False,
    hashed_password: str = None,
) -> User:
    """
    Crea un usuario. Acepta password plano O hashed_password.
    """
    if hashed_password is None:
        if password is None:
            raise ValueError("Debe proporcionar password o hashed_password")
        hashed_password = get_password_hash(password)

    db_user = User(
        username=username,
        email=email,
        full_name=full_name or username,
        hashed_password=hashed_password,
        is_active=True,
        is_admin=is_admin,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user
