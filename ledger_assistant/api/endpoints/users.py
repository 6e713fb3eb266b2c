import logging
from typing import Annotated
from fastapi import APIRouter, HTTPException, status, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ledger_assistant.core import schemas, models
from ledger_assistant.core.config import settings
from ledger_assistant.core.database import get_db
from ledger_assistant.core.security import get_current_user, hash_password

router = APIRouter(prefix="/profile", tags=["Users"])

db_dep = Annotated[AsyncSession, Depends(get_db)]

# Chart of accounts every new company starts with
DEFAULT_ACCOUNTS = [
    ("1000", "Cash", schemas.AccountType.ASSET),
    ("1100", "Accounts Receivable", schemas.AccountType.ASSET),
    ("1200", "Inventory", schemas.AccountType.ASSET),
    ("1300", "Prepaid Expenses", schemas.AccountType.ASSET),
    ("1500", "Fixed Assets", schemas.AccountType.ASSET),
    ("2000", "Accounts Payable", schemas.AccountType.LIABILITY),
    ("2100", "Accrued Expenses", schemas.AccountType.LIABILITY),
    ("2200", "Tax Payable (SST)", schemas.AccountType.LIABILITY),
    ("2500", "Long-term Loans", schemas.AccountType.LIABILITY),
    ("3000", "Owner Equity", schemas.AccountType.EQUITY),
    ("3100", "Retained Earnings", schemas.AccountType.EQUITY),
    ("4000", "Sales Revenue", schemas.AccountType.REVENUE),
    ("4100", "Service Revenue", schemas.AccountType.REVENUE),
    ("4200", "Other Income", schemas.AccountType.REVENUE),
    ("5000", "Cost of Goods Sold", schemas.AccountType.EXPENSE),
    ("5100", "Salaries & Wages", schemas.AccountType.EXPENSE),
    ("5200", "Rent Expense", schemas.AccountType.EXPENSE),
    ("5300", "Utilities Expense", schemas.AccountType.EXPENSE),
    ("5400", "Office Supplies", schemas.AccountType.EXPENSE),
    ("5500", "Marketing Expense", schemas.AccountType.EXPENSE),
    ("5600", "Depreciation", schemas.AccountType.EXPENSE),
    ("5700", "Insurance Expense", schemas.AccountType.EXPENSE),
    ("5800", "Travel Expense", schemas.AccountType.EXPENSE),
    ("5900", "Miscellaneous Expense", schemas.AccountType.EXPENSE),
]


# Register a company together with its first (admin) user
@router.post(
    "/signup",
    response_model=schemas.UserResponse,
    status_code=status.HTTP_201_CREATED,
)
async def sign_up(user: schemas.CreateUser, db: db_dep):
    # Validate whether a user already exists
    query = select(models.User).where(models.User.email == user.email)
    result = await db.execute(query)
    db_user = result.scalars().first()

    if db_user:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="User already exists"
        )

    try:
        company = models.Company(
            id=models.new_id(),
            name=user.company_name,
            base_currency=(user.base_currency or settings.DEFAULT_CURRENCY).upper(),
        )
        new_user = models.User(
            email=user.email,
            name=user.name,
            password=hash_password(user.password),
            role=schemas.UserRole.ADMIN.value,
            company_id=company.id,
        )
        accounts = [
            models.Account(
                code=code, name=name, type=account_type.value, company_id=company.id
            )
            for code, name, account_type in DEFAULT_ACCOUNTS
        ]
        db.add(company)
        db.add(new_user)
        db.add_all(accounts)
        await db.commit()
        await db.refresh(new_user)
        return new_user
    except Exception as error:
        await db.rollback()
        logging.error(f"Failed to register company {user.company_name!r}: {error}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to sign up",
        )


@router.get("/me", response_model=schemas.UserResponse)
async def get_me(current_user: Annotated[models.User, Depends(get_current_user)]):
    return current_user
