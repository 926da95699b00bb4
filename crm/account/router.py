from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.account.models import Account
from crm.auth import get_current_user
from crm.base.dependencies import get_session
from crm.user.models import User

router = APIRouter(prefix="/accounts")


class AccountCreate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


class AccountResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    name: str
    created_at: datetime


@router.get("", response_model=list[AccountResponse])
async def list_accounts(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[Account]:
    stmt = select(Account).where(Account.user_id == user.id).order_by(Account.name)
    return list((await session.execute(stmt)).scalars().all())


@router.post("", response_model=AccountResponse, status_code=201)
async def create_account(
    body: AccountCreate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Account:
    duplicate_stmt = select(Account.id).where(
        Account.user_id == user.id,
        func.lower(Account.name) == body.name.lower(),
    )
    if (await session.execute(duplicate_stmt)).first() is not None:
        raise HTTPException(status_code=409, detail="Account already exists")

    account = Account(user_id=user.id, name=body.name)
    session.add(account)
    await session.flush()
    return account
