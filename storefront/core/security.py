# storefront/core/security.py
# Функции для хеширования паролей и работы с JWT, текущий пользователь (principal).
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from storefront.core.config import settings
from storefront.db.session import get_db
from storefront.models.user import User, RoleEnum

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


@dataclass(frozen=True)
class Principal:
    """Аутентифицированный пользователь, от имени которого выполняется операция."""
    id: str
    email: str
    role: RoleEnum = RoleEnum.customer

    @property
    def is_admin(self) -> bool:
        return self.role == RoleEnum.admin

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(id=user.id, email=user.email, role=user.role)


def get_password_hash(password: str) -> str:
    """Хешируем пароль для хранения в БД."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Проверяем пароль при логине."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(subject: str, expires_delta: timedelta | None = None) -> str:
    """Создаём JWT токен с полем sub = subject (id пользователя)."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": str(subject), "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def get_current_principal(
    token: str | None = Depends(oauth2_scheme), db: Session = Depends(get_db)
) -> Principal | None:
    """
    Текущий пользователь по JWT или None.
    Невалидный/просроченный токен и удалённый пользователь дают тоже None,
    решение «пускать или нет» принимает сервис.
    """
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    user_id = payload.get("sub")
    if user_id is None:
        return None
    user = db.get(User, user_id)
    if user is None:
        return None
    return Principal.from_user(user)


def get_current_user(
    principal: Principal | None = Depends(get_current_principal), db: Session = Depends(get_db)
) -> User:
    """Возвращает текущего пользователя или бросает 401."""
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return db.get(User, principal.id)


def require_role(role: str):
    """Фабрика зависимости: проверяет роль пользователя."""
    def _checker(principal: Principal | None = Depends(get_current_principal)) -> Principal:
        if principal is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Could not validate credentials",
                headers={"WWW-Authenticate": "Bearer"},
            )
        if principal.role != role:
            raise HTTPException(status_code=403, detail="Insufficient privileges")
        return principal
    return _checker
