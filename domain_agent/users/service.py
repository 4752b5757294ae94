# domain_agent/users/service.py
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domains.models import Domain, DomainStatus
from ..error_handlers import BusinessRuleException, ErrorCode, ValidationException
from ..logging_config import get_logger, log_business_event
from ..payments.models import Transaction, TransactionStatus
from .models import User
from .schemas import (
    MonthlySpending,
    PreferencesUpdate,
    ProfileOut,
    ProfileUpdate,
    RecentActivity,
    StatsSummary,
    UserOut,
    UserStats,
)

logger = get_logger(__name__)

DELETE_CONFIRMATION = "DELETE"


def _month_key(value: datetime) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def _last_twelve_months(now: datetime) -> "OrderedDict[str, dict]":
    months = OrderedDict()
    year, month = now.year, now.month
    keys = []
    for _ in range(12):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            month = 12
            year -= 1
    for key in reversed(keys):
        months[key] = {"total": Decimal("0"), "count": 0}
    return months


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_profile(self, user: User) -> ProfileOut:
        domain_count = await self.db.scalar(
            select(func.count(Domain.id)).where(Domain.owner_id == user.id)
        )
        transaction_count = await self.db.scalar(
            select(func.count(Transaction.id)).where(Transaction.user_id == user.id)
        )
        return ProfileOut(
            user=UserOut.model_validate(user),
            domain_count=domain_count or 0,
            transaction_count=transaction_count or 0,
        )

    async def update_profile(self, user: User, update: ProfileUpdate) -> User:
        if update.name is not None:
            name = update.name.strip()
            if len(name) < 2:
                raise ValidationException("Name must be between 2 and 50 characters")
            user.name = name

        if update.profile is not None:
            # JSON columns only track reassignment, so build a fresh dict
            profile = dict(user.profile or {})
            changes = update.profile.model_dump(exclude_unset=True, by_alias=True)
            address = changes.pop("address", None)
            profile.update(changes)
            if address is not None:
                merged = dict(profile.get("address") or {})
                merged.update(address)
                profile["address"] = merged
            user.profile = profile

        await self.db.commit()
        logger.info("Profile updated", extra={"user_id": str(user.id)})
        return user

    async def update_preferences(self, user: User, update: PreferencesUpdate) -> User:
        preferences = dict(user.preferences or {})
        if update.currency is not None:
            preferences["currency"] = update.currency
        if update.notifications is not None:
            notifications = dict(preferences.get("notifications") or {})
            notifications.update(update.notifications.model_dump(exclude_none=True))
            preferences["notifications"] = notifications
        user.preferences = preferences

        await self.db.commit()
        return user

    async def delete_account(self, user: User, confirm_delete):
        if confirm_delete != DELETE_CONFIRMATION:
            raise ValidationException(
                "Please confirm account deletion by sending confirmDelete: 'DELETE'"
            )

        active_domains = await self.db.scalar(
            select(func.count(Domain.id)).where(
                Domain.owner_id == user.id,
                Domain.status.in_([DomainStatus.REGISTERED, DomainStatus.PENDING]),
            )
        )
        pending_transactions = await self.db.scalar(
            select(func.count(Transaction.id)).where(
                Transaction.user_id == user.id,
                Transaction.status == TransactionStatus.PENDING,
            )
        )
        if active_domains or pending_transactions:
            raise BusinessRuleException(
                "Cannot delete account with active domains or pending transactions",
                error_code=ErrorCode.ACCOUNT_HAS_ACTIVE_ITEMS,
                details={
                    "activeDomains": active_domains or 0,
                    "pendingTransactions": pending_transactions or 0,
                },
            )

        # Soft delete: keep the row for transaction history, free the email
        original_email = user.email
        user.is_active = False
        user.email = f"deleted_{int(datetime.now(timezone.utc).timestamp())}_{original_email}"
        await self.db.commit()

        log_business_event("account_deleted", user_id=str(user.id), email=original_email)

    async def get_stats(self, user: User) -> UserStats:
        domain_rows = await self.db.execute(
            select(Domain.status, func.count(Domain.id))
            .where(Domain.owner_id == user.id)
            .group_by(Domain.status)
        )
        domain_stats = {
            (status.value if hasattr(status, "value") else status): count
            for status, count in domain_rows.all()
        }

        txn_rows = await self.db.execute(
            select(Transaction.type, func.count(Transaction.id), func.sum(Transaction.amount))
            .where(
                Transaction.user_id == user.id,
                Transaction.status == TransactionStatus.COMPLETED,
            )
            .group_by(Transaction.type)
        )
        transaction_stats = {}
        total_spent = Decimal("0")
        for txn_type, count, total in txn_rows.all():
            total = Decimal(str(total or 0))
            key = txn_type.value if hasattr(txn_type, "value") else txn_type
            transaction_stats[key] = {"count": count, "total": float(total)}
            total_spent += total

        now = datetime.now(timezone.utc)
        months = _last_twelve_months(now)
        completed = await self.db.execute(
            select(Transaction.amount, Transaction.created_at).where(
                Transaction.user_id == user.id,
                Transaction.status == TransactionStatus.COMPLETED,
                Transaction.created_at >= now - timedelta(days=366),
            )
        )
        for amount, created_at in completed.all():
            bucket = months.get(_month_key(created_at))
            if bucket is not None:
                bucket["total"] += Decimal(str(amount))
                bucket["count"] += 1

        recent = await self.db.execute(
            select(Transaction, Domain.full_domain)
            .outerjoin(Domain, Transaction.domain_id == Domain.id)
            .where(Transaction.user_id == user.id)
            .order_by(Transaction.created_at.desc())
            .limit(5)
        )

        active_domains = sum(
            count for status, count in domain_stats.items()
            if status == DomainStatus.REGISTERED.value
        )
        return UserStats(
            summary=StatsSummary(
                total_domains=sum(domain_stats.values()),
                active_domains=active_domains,
                total_spent=float(total_spent),
                member_since=user.created_at,
            ),
            domain_stats=domain_stats,
            transaction_stats=transaction_stats,
            monthly_spending=[
                MonthlySpending(month=month, total=float(bucket["total"]), count=bucket["count"])
                for month, bucket in months.items()
            ],
            recent_activity=[
                RecentActivity(
                    id=txn.id,
                    type=txn.type.value,
                    status=txn.status.value,
                    amount=float(txn.amount),
                    currency=txn.currency,
                    domain=full_domain,
                    created_at=txn.created_at,
                )
                for txn, full_domain in recent.all()
            ],
        )
