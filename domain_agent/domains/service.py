# domain_agent/domains/service.py
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..ai.advisor import AIServiceError, DomainAdvisor
from ..error_handlers import (
    BusinessRuleException,
    ErrorCode,
    ExternalServiceException,
    NotFoundException,
    ValidationException,
)
from ..logging_config import get_logger
from ..registrar.base import BaseRegistrar, RegistrarError
from ..users.models import User
from .models import ACTIVE_DOMAIN_STATUSES, Domain, DomainStatus
from .pricing import normalize_extensions, price_for
from .schemas import DomainOut

logger = get_logger(__name__)

ALREADY_REGISTERED_REASON = "Domain is already registered"
_LABEL_CHARS_RE = re.compile(r"[^a-z0-9-]")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def validate_domain_name(domain: Optional[str]) -> str:
    full_domain = (domain or "").strip().lower()
    if len(full_domain) < 3 or "." not in full_domain:
        raise ValidationException("Valid domain name is required")
    return full_domain


class DomainService:
    """Search, availability, ownership listing and DNS management"""

    def __init__(self, db: AsyncSession, registrar: BaseRegistrar, advisor: DomainAdvisor):
        self.db = db
        self.registrar = registrar
        self.advisor = advisor

    async def _active_domain(self, full_domain: str) -> Optional[Domain]:
        return await self.db.scalar(
            select(Domain).where(
                Domain.full_domain == full_domain,
                Domain.status.in_(ACTIVE_DOMAIN_STATUSES),
            )
        )

    async def _owned_domain(self, user: User, domain_id) -> Domain:
        domain = await self.db.scalar(
            select(Domain).where(Domain.id == domain_id, Domain.owner_id == user.id)
        )
        if domain is None:
            raise NotFoundException("Domain not found", resource="domain")
        return domain

    async def _availability(self, full_domain: str) -> Dict[str, Any]:
        existing = await self._active_domain(full_domain)
        if existing is not None:
            return {
                "domain": full_domain,
                "available": False,
                "reason": ALREADY_REGISTERED_REASON,
                "pricing": price_for(existing.cost, existing.currency).as_dict(),
            }

        result = await self.registrar.check_availability(full_domain)
        return {
            "domain": full_domain,
            "available": result.available,
            "pricing": price_for(result.price, result.currency).as_dict(),
        }

    async def search(self, query: str, extensions=None, include_ai: bool = True) -> Dict[str, Any]:
        # "Shop.io" and "shop" search the same label
        label = _LABEL_CHARS_RE.sub("", query.strip().lower().split(".")[0])
        if not label:
            raise ValidationException("Search query must be between 1 and 100 characters")

        wanted = normalize_extensions(extensions)
        direct_matches: List[Dict[str, Any]] = []
        for extension in wanted:
            full_domain = f"{label}{extension}"
            try:
                match = await self._availability(full_domain)
            except RegistrarError as e:
                logger.warning(
                    "Availability check failed, skipping extension",
                    extra={"extra_data": {"domain": full_domain, "error": str(e)}}
                )
                continue
            match["extension"] = extension
            direct_matches.append(match)

        ai_suggestions: List[Dict[str, Any]] = []
        if include_ai:
            try:
                suggestions = await self.advisor.suggest_domains(
                    {"business": label, "extensions": wanted}
                )
                ai_suggestions = [s.as_dict() for s in suggestions]
            except AIServiceError as e:
                logger.warning(
                    "AI suggestions unavailable for search",
                    extra={"extra_data": {"query": label, "error": str(e)}}
                )

        logger.info(
            "Domain search completed",
            extra={"extra_data": {"query": label, "matches": len(direct_matches), "ai": len(ai_suggestions)}}
        )
        return {
            "query": label,
            "directMatches": direct_matches,
            "aiSuggestions": ai_suggestions,
            "searchedAt": _now_iso(),
        }

    async def check(self, domain: str) -> Dict[str, Any]:
        full_domain = validate_domain_name(domain)
        try:
            result = await self._availability(full_domain)
        except RegistrarError as e:
            logger.error(
                "Availability check failed",
                extra={"extra_data": {"domain": full_domain, "error": str(e)}}
            )
            raise ExternalServiceException(
                service_name="Domain Registrar",
                message="Domain registrar is temporarily unavailable",
                error_code=ErrorCode.REGISTRAR_ERROR,
            )
        result["checkedAt"] = _now_iso()
        return result

    async def details(self, domain: str) -> Dict[str, Any]:
        full_domain = validate_domain_name(domain)

        record = await self._active_domain(full_domain)
        if record is None:
            record = await self.db.scalar(
                select(Domain)
                .where(Domain.full_domain == full_domain)
                .order_by(Domain.created_at.desc())
                .limit(1)
            )

        details: Dict[str, Any] = {"domain": full_domain}
        if record is not None:
            details["record"] = DomainOut.model_validate(record)
            details["available"] = False if record.status in ACTIVE_DOMAIN_STATUSES else None
        else:
            try:
                availability = await self.registrar.check_availability(full_domain)
            except RegistrarError as e:
                logger.error(
                    "Availability check failed",
                    extra={"extra_data": {"domain": full_domain, "error": str(e)}}
                )
                raise ExternalServiceException(
                    service_name="Domain Registrar",
                    message="Domain registrar is temporarily unavailable",
                    error_code=ErrorCode.REGISTRAR_ERROR,
                )
            details["available"] = availability.available
            details["pricing"] = price_for(availability.price, availability.currency).as_dict()

            if not availability.available:
                # Only domains in our registrar account return info
                try:
                    info = await self.registrar.get_info(full_domain)
                    details["registrarInfo"] = {
                        "status": info.status,
                        "expirationDate": info.expiration_date.isoformat() if info.expiration_date else None,
                        "autoRenew": info.auto_renew,
                    }
                except RegistrarError as e:
                    logger.info(
                        "Registrar info unavailable",
                        extra={"extra_data": {"domain": full_domain, "error": str(e)}}
                    )

        try:
            analysis = await self.advisor.analyze_domain(full_domain)
            details["aiAnalysis"] = analysis.as_dict()
        except AIServiceError as e:
            logger.warning(
                "AI analysis unavailable",
                extra={"extra_data": {"domain": full_domain, "error": str(e)}}
            )
            details["aiAnalysis"] = None

        details["checkedAt"] = _now_iso()
        return details

    async def my_domains(
        self,
        user: User,
        page: int,
        limit: int,
        status: Optional[DomainStatus] = None,
    ):
        conditions = [Domain.owner_id == user.id]
        if status is not None:
            conditions.append(Domain.status == status)

        total = await self.db.scalar(select(func.count(Domain.id)).where(*conditions))
        result = await self.db.execute(
            select(Domain)
            .where(*conditions)
            .order_by(Domain.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return result.scalars().all(), total or 0

    async def dns_get(self, user: User, domain_id) -> Dict[str, Any]:
        domain = await self._owned_domain(user, domain_id)
        return {"domain": domain.full_domain, "records": domain.dns_records or []}

    async def dns_update(self, user: User, domain_id, records: List[Dict[str, Any]]) -> Dict[str, Any]:
        domain = await self._owned_domain(user, domain_id)
        if domain.status != DomainStatus.REGISTERED:
            raise BusinessRuleException(
                "DNS can only be updated for registered domains",
                error_code=ErrorCode.INVALID_DOMAIN_STATE,
                details={"status": domain.status.value},
            )

        try:
            result = await self.registrar.set_dns(domain.full_domain, records)
        except RegistrarError as e:
            logger.error(
                "DNS update failed",
                extra={"user_id": str(user.id), "extra_data": {"domain": domain.full_domain, "error": str(e)}}
            )
            result = None

        if result is None or not result.success:
            raise BusinessRuleException(
                "Failed to update DNS records",
                error_code=ErrorCode.REGISTRAR_ERROR,
            )

        domain.dns_records = records
        await self.db.commit()

        logger.info(
            "DNS records updated",
            extra={"user_id": str(user.id), "extra_data": {"domain": domain.full_domain, "count": len(records)}}
        )
        return {"domain": domain.full_domain, "records": domain.dns_records}
