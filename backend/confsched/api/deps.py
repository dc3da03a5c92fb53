from collections.abc import Callable, Generator, Iterable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from confsched.core.config import Settings, get_settings
from confsched.core.security import decode_token
from confsched.db.session import SessionLocal
from confsched.models.user import User, UserRole
from confsched.services.audit import AuditLog
from confsched.services.collaborators import SqlSchedulingParametersSource, SqlSubmissionRoster
from confsched.services.email import EmailTransport, SmtpEmailTransport
from confsched.services.notifications import FinalScheduleNotifier
from confsched.services.schedule_service import ScheduleService
from confsched.services.schedule_store import ScheduleStore, SqlScheduleStore, memory_schedule_store

security = HTTPBearer()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    token = credentials.credentials
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(token)
        user_id = payload.get("sub")
        if user_id is None:
            raise credentials_exception
    except JWTError as exc:
        raise credentials_exception from exc

    user = db.get(User, user_id)
    if user is None:
        raise credentials_exception
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive")
    return user


def require_roles(*roles: UserRole) -> Callable[[User], User]:
    allowed_roles: Iterable[UserRole] = set(roles)

    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return current_user

    return role_checker


def get_schedule_store(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ScheduleStore:
    if settings.schedule_store_backend == "memory":
        return memory_schedule_store
    return SqlScheduleStore(db)


def get_schedule_service(
    db: Session = Depends(get_db),
    store: ScheduleStore = Depends(get_schedule_store),
) -> ScheduleService:
    return ScheduleService(
        store=store,
        roster=SqlSubmissionRoster(db),
        parameters_source=SqlSchedulingParametersSource(db),
    )


def get_email_transport() -> EmailTransport:
    return SmtpEmailTransport()


def get_audit_log(db: Session = Depends(get_db)) -> AuditLog:
    return AuditLog(db)


def get_notifier(
    db: Session = Depends(get_db),
    transport: EmailTransport = Depends(get_email_transport),
    audit: AuditLog = Depends(get_audit_log),
    settings: Settings = Depends(get_settings),
) -> FinalScheduleNotifier:
    return FinalScheduleNotifier(
        db,
        roster=SqlSubmissionRoster(db),
        transport=transport,
        audit=audit,
        settings=settings,
    )
