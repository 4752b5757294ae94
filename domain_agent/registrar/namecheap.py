# domain_agent/registrar/namecheap.py
"""
Namecheap XML API client.

Responses are matched with regular expressions for the handful of
attributes the service needs; nothing else in the XML is consumed.
"""

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import httpx

from ..config import RegistrarConfig
from ..logging_config import get_logger
from .base import (
    AvailabilityResult,
    BaseRegistrar,
    ContactInfo,
    DnsUpdateResult,
    DomainInfo,
    RegistrarError,
    RegistrationResult,
)

logger = get_logger(__name__)

SANDBOX_URL = "https://api.sandbox.namecheap.com/xml.response"
PRODUCTION_URL = "https://api.namecheap.com/xml.response"

CONTACT_ROLES = ("Registrant", "Tech", "Admin", "AuxBilling")

_AVAILABLE_RE = re.compile(r'Available="true"', re.IGNORECASE)
_PRICE_RE = re.compile(r'\b(?:PremiumRegistrationPrice|Price)="([^"]+)"', re.IGNORECASE)
_DOMAIN_ID_RE = re.compile(r'DomainID="([^"]+)"')
_INFO_STATUS_RE = re.compile(r'<DomainGetInfoResult[^>]*\bStatus="([^"]+)"')
_EXPIRES_RE = re.compile(r'Expires="([^"]+)"')
_AUTO_RENEW_RE = re.compile(r'AutoRenew="true"', re.IGNORECASE)
_API_STATUS_RE = re.compile(r'<ApiResponse[^>]*\bStatus="([^"]+)"')
_ERROR_RE = re.compile(r'<Error[^>]*>([^<]*)</Error>')


def parse_price(xml: str) -> Optional[Decimal]:
    match = _PRICE_RE.search(xml)
    if not match:
        return None
    try:
        price = Decimal(match.group(1))
    except InvalidOperation:
        return None
    return price if price > 0 else None


def parse_expiration(xml: str) -> Optional[datetime]:
    match = _EXPIRES_RE.search(xml)
    if not match:
        return None
    for fmt in ("%m/%d/%Y", "%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"):
        try:
            return datetime.strptime(match.group(1), fmt)
        except ValueError:
            continue
    return None


def is_ok(xml: str) -> bool:
    match = _API_STATUS_RE.search(xml)
    return bool(match and match.group(1).upper() == "OK")


def error_message(xml: str) -> Optional[str]:
    match = _ERROR_RE.search(xml)
    return match.group(1).strip() if match else None


def split_domain(domain: str):
    """'example.co.uk' -> ('example', 'co.uk')"""
    sld, _, tld = domain.partition(".")
    return sld, tld


class NamecheapRegistrar(BaseRegistrar):
    """Namecheap registrar over its XML GET API"""

    def __init__(self, config: RegistrarConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.base_url = SANDBOX_URL if config.sandbox else PRODUCTION_URL
        self._transport = transport

    def _base_params(self, command: str) -> Dict[str, Any]:
        return {
            "ApiUser": self.config.api_user,
            "ApiKey": self.config.api_key,
            "UserName": self.config.username or self.config.api_user,
            "ClientIp": self.config.client_ip,
            "Command": command,
        }

    async def _request(self, operation: str, command: str, params: Dict[str, Any]) -> str:
        query = {**self._base_params(command), **params}
        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.get(self.base_url, params=query)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(
                f"Namecheap {command} request failed",
                extra={"extra_data": {"error": str(e), "command": command}}
            )
            raise RegistrarError(f"Failed to {operation}") from e

        body = response.text
        if not is_ok(body):
            detail = error_message(body) or "unexpected response"
            logger.error(
                f"Namecheap {command} returned an error",
                extra={"extra_data": {"error": detail, "command": command}}
            )
            raise RegistrarError(f"Failed to {operation}: {detail}")

        return body

    async def check_availability(self, domain: str) -> AvailabilityResult:
        body = await self._request(
            "check domain availability",
            "namecheap.domains.check",
            {"DomainList": domain},
        )
        return AvailabilityResult(
            domain=domain,
            available=bool(_AVAILABLE_RE.search(body)),
            price=parse_price(body),
            currency="USD",
        )

    async def register(self, domain: str, years: int, contact: ContactInfo) -> RegistrationResult:
        params: Dict[str, Any] = {"DomainName": domain, "Years": years}
        for role in CONTACT_ROLES:
            params.update({
                f"{role}FirstName": contact.first_name,
                f"{role}LastName": contact.last_name,
                f"{role}Address1": contact.address,
                f"{role}City": contact.city,
                f"{role}StateProvince": contact.state,
                f"{role}PostalCode": contact.postal_code,
                f"{role}Country": contact.country,
                f"{role}Phone": contact.phone,
                f"{role}EmailAddress": contact.email,
            })

        body = await self._request("register domain", "namecheap.domains.create", params)

        match = _DOMAIN_ID_RE.search(body)
        return RegistrationResult(
            success=True,
            domain=domain,
            registration_id=match.group(1) if match else None,
        )

    async def get_info(self, domain: str) -> DomainInfo:
        body = await self._request(
            "get domain information",
            "namecheap.domains.getInfo",
            {"DomainName": domain},
        )
        status_match = _INFO_STATUS_RE.search(body)
        return DomainInfo(
            domain=domain,
            status=status_match.group(1) if status_match else "unknown",
            expiration_date=parse_expiration(body),
            auto_renew=bool(_AUTO_RENEW_RE.search(body)),
        )

    async def set_dns(self, domain: str, records: List[Dict[str, Any]]) -> DnsUpdateResult:
        sld, tld = split_domain(domain)
        params: Dict[str, Any] = {"SLD": sld, "TLD": tld}
        for index, record in enumerate(records, start=1):
            params[f"HostName{index}"] = record["name"]
            params[f"RecordType{index}"] = record["type"]
            params[f"Address{index}"] = record["value"]
            params[f"TTL{index}"] = record.get("ttl") or 3600

        await self._request("set DNS records", "namecheap.domains.dns.setHosts", params)

        return DnsUpdateResult(success=True, domain=domain, records=records)
