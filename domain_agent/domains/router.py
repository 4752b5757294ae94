# domain_agent/domains/router.py
"""
Domains API
Endpoints:
- GET  /domains/search
- GET  /domains/check/{domain}
- GET  /domains/details/{domain}
- GET  /domains/my-domains
- POST /domains/purchase
- POST /domains/renew/{domain_id}
- POST /domains/transfer
- GET  /domains/dns/{domain_id}
- PUT  /domains/dns/{domain_id}
"""

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..ai.advisor import DomainAdvisor
from ..auth.dependencies import CurrentUser
from ..database import get_async_db
from ..dependencies import get_advisor, get_purchase_service, get_registrar, request_metadata
from ..payments.schemas import TransactionOut
from ..purchases.service import DomainPurchaseService
from ..registrar.base import BaseRegistrar
from ..responses import success_response
from ..schemas import Pagination
from . import schemas
from .models import DomainStatus
from .service import DomainService

router = APIRouter(prefix="/domains", tags=["domains"])


def get_domain_service(
    db: AsyncSession = Depends(get_async_db),
    registrar: BaseRegistrar = Depends(get_registrar),
    advisor: DomainAdvisor = Depends(get_advisor),
) -> DomainService:
    return DomainService(db, registrar, advisor)


@router.get("/search")
async def search_domains(
    q: str = Query(..., min_length=1, max_length=100),
    extensions: Optional[str] = Query(None, description="Comma separated, e.g. com,net,org"),
    include_ai: bool = Query(True, alias="includeAI"),
    service: DomainService = Depends(get_domain_service),
):
    """Direct availability for each extension plus AI suggestions"""
    return success_response(await service.search(q, extensions, include_ai))


@router.get("/check/{domain}")
async def check_domain(domain: str, service: DomainService = Depends(get_domain_service)):
    return success_response(await service.check(domain))


@router.get("/details/{domain}")
async def domain_details(domain: str, service: DomainService = Depends(get_domain_service)):
    return success_response(await service.details(domain))


@router.get("/my-domains")
async def my_domains(
    user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    domain_status: Optional[DomainStatus] = Query(None, alias="status"),
    service: DomainService = Depends(get_domain_service),
):
    domains, total = await service.my_domains(user, page, limit, domain_status)
    return success_response({
        "domains": [schemas.DomainOut.model_validate(d) for d in domains],
        "pagination": Pagination.build(page, limit, total),
    })


@router.post("/purchase", status_code=status.HTTP_201_CREATED)
async def purchase_domain(
    body: schemas.PurchaseRequest,
    user: CurrentUser,
    meta: Dict[str, Any] = Depends(request_metadata),
    service: DomainPurchaseService = Depends(get_purchase_service),
):
    domain, transaction = await service.initiate_purchase(
        user,
        body.domain,
        body.years,
        body.contact_info.model_dump(by_alias=True),
        meta,
    )
    return success_response(
        {
            "domain": schemas.DomainOut.model_validate(domain),
            "transaction": TransactionOut.model_validate(transaction),
            "paymentRequired": True,
        },
        message="Domain purchase initiated. Complete payment to finalize.",
    )


@router.post("/renew/{domain_id}", status_code=status.HTTP_201_CREATED)
async def renew_domain(
    domain_id: UUID,
    user: CurrentUser,
    body: Optional[schemas.RenewRequest] = None,
    meta: Dict[str, Any] = Depends(request_metadata),
    service: DomainPurchaseService = Depends(get_purchase_service),
):
    years = body.years if body else 1
    transaction, price = await service.renew(user, domain_id, years, meta)
    return success_response(
        {
            "transaction": TransactionOut.model_validate(transaction),
            "renewalPrice": float(price),
        },
        message="Domain renewal initiated",
    )


@router.post("/transfer", status_code=status.HTTP_201_CREATED)
async def transfer_domain(
    body: schemas.TransferRequest,
    user: CurrentUser,
    meta: Dict[str, Any] = Depends(request_metadata),
    service: DomainPurchaseService = Depends(get_purchase_service),
):
    domain, transaction = await service.transfer(user, body.domain, body.auth_code, meta)
    return success_response(
        {
            "domain": schemas.DomainOut.model_validate(domain),
            "transaction": TransactionOut.model_validate(transaction),
        },
        message="Domain transfer initiated",
    )


@router.get("/dns/{domain_id}")
async def get_dns_records(
    domain_id: UUID,
    user: CurrentUser,
    service: DomainService = Depends(get_domain_service),
):
    return success_response(await service.dns_get(user, domain_id))


@router.put("/dns/{domain_id}")
async def update_dns_records(
    domain_id: UUID,
    body: schemas.DnsUpdateRequest,
    user: CurrentUser,
    service: DomainService = Depends(get_domain_service),
):
    records = [record.model_dump() for record in body.records]
    return success_response(
        await service.dns_update(user, domain_id, records),
        message="DNS records updated successfully",
    )
