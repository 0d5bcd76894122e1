from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional

class UserBase(BaseModel):
    username: str
    email: EmailStr
    full_name: Optional[str] = None

class UserCreate(UserBase):
    password: str

    @field_validator('username', 'password')
    @classmethod
    def not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError('must not be blank')
        return v

    @field_validator('username')
    @classmethod
    def strip_username(cls, v):
        # Stored stripped, so duplicates must be compared stripped too
        return v.strip()

class User(UserBase):
    id: int

    class Config:
        from_attributes = True

class UserUpdate(BaseModel):
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None

class Token(BaseModel):
    access_token: str
    token_type: str

class TokenWithUser(Token):
    user: User

class TokenData(BaseModel):
    user_id: Optional[int] = None

# Expense schemas
class ShareBase(BaseModel):
    user_id: int
    amount: Decimal = Field(ge=0)

class ExpenseCreate(BaseModel):
    group_id: Optional[int] = None
    amount: Decimal = Field(ge=0)
    description: str
    shares: list[ShareBase]

class ExpenseUpdate(BaseModel):
    amount: Optional[Decimal] = Field(default=None, ge=0)
    description: Optional[str] = None
    shares: Optional[list[ShareBase]] = None

class Expense(BaseModel):
    id: int
    group_id: Optional[int]
    paid_by_id: int
    amount: float
    description: str
    date: Optional[datetime] = None

    class Config:
        from_attributes = True

class ExpenseShareDetail(BaseModel):
    id: int
    expense_id: int
    user_id: int
    username: str
    amount: float
    is_settled: bool

    class Config:
        from_attributes = True

class ExpenseWithShares(Expense):
    payer_name: str
    group_name: Optional[str] = None
    shares: list[ExpenseShareDetail]

# Group schemas
class GroupCreate(BaseModel):
    name: str
    description: Optional[str] = None
    members: list[int] = []

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError('Group name is required')
        return v

class Group(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    created_by_id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class GroupWithBalance(Group):
    member_count: int
    balance: float  # Positive means you are owed, negative means you owe

class GroupMemberAdd(BaseModel):
    user_id: int

class GroupMember(BaseModel):
    id: int
    username: str
    full_name: Optional[str] = None

    class Config:
        from_attributes = True

class Balance(BaseModel):
    """Net balance of the current user, positive when owed money."""
    balance: float

# Friend schemas
class FriendRequest(BaseModel):
    friend_id: int

class Friend(BaseModel):
    id: int
    username: str
    full_name: Optional[str] = None

    class Config:
        from_attributes = True

class FriendWithBalance(Friend):
    balance: float  # Positive means the friend owes you

# Settlement schemas
class SettlementCreate(BaseModel):
    group_id: Optional[int] = None
    to_user_id: int
    amount: Decimal = Field(gt=0)

class Settlement(BaseModel):
    id: int
    group_id: Optional[int]
    from_user_id: int
    to_user_id: int
    amount: float
    date: Optional[datetime] = None

    class Config:
        from_attributes = True

class SettlementResult(BaseModel):
    settlement: Settlement
    shares_settled: int
    message: str = "Settlement recorded successfully"

class Message(BaseModel):
    message: str
