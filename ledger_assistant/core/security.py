from passlib.context import CryptContext
from datetime import date, datetime, timedelta, timezone
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from typing import Annotated
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import jwt

from ledger_assistant.core.database import get_db
from ledger_assistant.core import models
from ledger_assistant.core.config import settings
from ledger_assistant.ai_query.intent import TenantContext

db_dep = Annotated[AsyncSession, Depends(get_db)]
# Hash mechanism
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# Hash the password
def hash_password(password: str):
    return pwd_context.hash(password)


# Verify the password
def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict):
    to_encode = data.copy()

    expire_time = datetime.now(timezone.utc) + timedelta(
        minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    to_encode.update({"exp": expire_time})

    encoded_jwt = jwt.encode(
        to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM
    )

    return encoded_jwt


# tokenUrl="profile/login" if you don't have a token yet, go to this address to get one
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="profile/login")


# Decode the token and see who is the user
async def get_current_user(token: Annotated[str, Depends(oauth2_scheme)], db: db_dep):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
        user_id: str = payload.get("user_id")
        company_id: str = payload.get("company_id")

        if user_id is None or company_id is None:
            raise credentials_exception

    # Expired tokens are a subclass of InvalidTokenError
    except jwt.InvalidTokenError:
        raise credentials_exception

    query = select(models.User).where(models.User.id == user_id)
    result = await db.execute(query)
    user = result.scalars().first()

    # A token only works for the company it was issued under
    if user is None or user.company_id != company_id:
        raise credentials_exception

    return user


# The tenant always comes from the authenticated user, never from the request body
async def get_tenant_context(
    current_user: Annotated[models.User, Depends(get_current_user)], db: db_dep
) -> TenantContext:
    company = await db.get(models.Company, current_user.company_id)
    if company is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="User has no company"
        )
    return TenantContext(
        tenant_id=company.id,
        display_name=company.name,
        base_currency=company.base_currency or settings.DEFAULT_CURRENCY,
        as_of_date=date.today(),
    )
