from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import Field

from ..schemas import CamelModel


class AddressIn(CamelModel):
    street: Optional[str] = Field(None, max_length=200)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=100)


class ProfileIn(CamelModel):
    phone: Optional[str] = Field(None, pattern=r"^\+?[0-9 ()\-]{7,20}$")
    company: Optional[str] = Field(None, max_length=100)
    address: Optional[AddressIn] = None


class ProfileUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    profile: Optional[ProfileIn] = None


class NotificationPreferences(CamelModel):
    email: Optional[bool] = None
    sms: Optional[bool] = None


class PreferencesUpdate(CamelModel):
    currency: Optional[Literal["USD", "EUR", "GBP", "CAD", "AUD"]] = None
    notifications: Optional[NotificationPreferences] = None


class AccountDelete(CamelModel):
    confirm_delete: Optional[str] = None


class UserOut(CamelModel):
    id: UUID
    name: str
    email: str
    profile: Dict[str, Any] = Field(default_factory=dict)
    preferences: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None


class ProfileOut(CamelModel):
    user: UserOut
    domain_count: int
    transaction_count: int


class StatsSummary(CamelModel):
    total_domains: int
    active_domains: int
    total_spent: float
    member_since: Optional[datetime] = None


class MonthlySpending(CamelModel):
    month: str  # YYYY-MM
    total: float
    count: int


class RecentActivity(CamelModel):
    id: UUID
    type: str
    status: str
    amount: float
    currency: str
    domain: Optional[str] = None
    created_at: Optional[datetime] = None


class UserStats(CamelModel):
    summary: StatsSummary
    domain_stats: Dict[str, int]
    transaction_stats: Dict[str, Dict[str, float]]
    monthly_spending: List[MonthlySpending]
    recent_activity: List[RecentActivity]
