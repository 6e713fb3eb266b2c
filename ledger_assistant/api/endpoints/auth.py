import logging
from typing import Annotated
from fastapi import APIRouter, HTTPException, status, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ledger_assistant.core import schemas, models
from ledger_assistant.core.database import get_db
from ledger_assistant.core.security import verify_password, create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["Authentication"])

db_dep = Annotated[AsyncSession, Depends(get_db)]


# Sign in and get a bearer token bound to the user's company
@router.post("/login", status_code=status.HTTP_200_OK)
async def login(credentials: schemas.UserLogin, db: db_dep):
    # Same answer for an unknown email and a wrong password
    invalid_credentials = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Incorrect email or password",
        headers={"WWW-Authenticate": "Bearer"},
    )

    query = select(models.User).where(models.User.email == credentials.email)
    result = await db.execute(query)
    db_user = result.scalars().first()

    if db_user is None or not verify_password(credentials.password, db_user.password):
        logger.info("failed login for %s", credentials.email)
        raise invalid_credentials

    token = create_access_token(
        {
            "user_id": db_user.id,
            "company_id": db_user.company_id,
            "role": db_user.role,
        }
    )
    return {"access_token": token, "token_type": "bearer"}
