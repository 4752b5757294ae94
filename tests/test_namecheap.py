"""Namecheap client tests against a mocked HTTP transport."""

from decimal import Decimal

import httpx
import pytest

from domain_agent.config import RegistrarConfig
from domain_agent.registrar.base import ContactInfo, RegistrarError
from domain_agent.registrar.namecheap import (
    PRODUCTION_URL,
    SANDBOX_URL,
    NamecheapRegistrar,
    parse_expiration,
    parse_price,
)

CONFIG = RegistrarConfig(
    api_user="apiuser",
    api_key="apikey",
    username="",
    client_ip="10.0.0.1",
    sandbox=True,
)

CHECK_OK = (
    '<?xml version="1.0" encoding="utf-8"?>'
    '<ApiResponse Status="OK" xmlns="http://api.namecheap.com/xml.response">'
    '<CommandResponse Type="namecheap.domains.check">'
    '<DomainCheckResult Domain="brandtest.com" Available="true" IsPremiumName="false" Price="12.99" />'
    '</CommandResponse></ApiResponse>'
)

CHECK_TAKEN = (
    '<ApiResponse Status="OK"><CommandResponse>'
    '<DomainCheckResult Domain="google.com" Available="false" Price="0" />'
    '</CommandResponse></ApiResponse>'
)

API_ERROR = (
    '<ApiResponse Status="ERROR"><Errors>'
    '<Error Number="1011102">Parameter APIKey is invalid</Error>'
    '</Errors></ApiResponse>'
)


def make_registrar(handler, config=CONFIG):
    return NamecheapRegistrar(config, transport=httpx.MockTransport(handler))


class TestParsers:
    def test_parse_price(self):
        assert parse_price('Price="10.98"') == Decimal("10.98")

    def test_parse_price_prefers_premium_when_first(self):
        assert parse_price('PremiumRegistrationPrice="99.00" Price="10.00"') == Decimal("99.00")

    @pytest.mark.parametrize("xml", ['Price="0"', 'Price="abc"', "<nothing/>"])
    def test_unusable_price_is_none(self, xml):
        assert parse_price(xml) is None

    def test_parse_expiration(self):
        assert parse_expiration('Expires="10/19/2027"').year == 2027
        assert parse_expiration("<x/>") is None


class TestNamecheapRegistrar:
    async def test_availability_and_price(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, text=CHECK_OK)

        result = await make_registrar(handler).check_availability("brandtest.com")

        assert result.available is True
        assert result.price == Decimal("12.99")
        params = requests[0].url.params
        assert str(requests[0].url).startswith(SANDBOX_URL)
        assert params["Command"] == "namecheap.domains.check"
        assert params["DomainList"] == "brandtest.com"
        # Username falls back to the API user
        assert params["UserName"] == "apiuser"
        assert params["ClientIp"] == "10.0.0.1"

    async def test_taken_domain(self):
        result = await make_registrar(lambda r: httpx.Response(200, text=CHECK_TAKEN)).check_availability(
            "google.com"
        )
        assert result.available is False
        assert result.price is None

    async def test_production_url(self):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, text=CHECK_OK)

        config = RegistrarConfig(api_user="u", api_key="k", username="u", client_ip="1.1.1.1", sandbox=False)
        await make_registrar(handler, config).check_availability("brandtest.com")
        assert seen[0].startswith(PRODUCTION_URL)

    async def test_api_error_raises_registrar_error(self):
        registrar = make_registrar(lambda r: httpx.Response(200, text=API_ERROR))
        with pytest.raises(RegistrarError, match="Failed to check domain availability: Parameter APIKey is invalid"):
            await registrar.check_availability("brandtest.com")

    async def test_http_failure_raises_registrar_error(self):
        registrar = make_registrar(lambda r: httpx.Response(502, text="bad gateway"))
        with pytest.raises(RegistrarError, match="Failed to check domain availability"):
            await registrar.check_availability("brandtest.com")

    async def test_network_failure_raises_registrar_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(RegistrarError):
            await make_registrar(handler).get_info("brandtest.com")

    async def test_register_sends_every_contact_role(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(
                200,
                text='<ApiResponse Status="OK"><DomainCreateResult Domain="brandtest.com" '
                     'Registered="true" DomainID="9001" /></ApiResponse>',
            )

        contact = ContactInfo(
            first_name="Jane",
            last_name="Owner",
            email="owner@example.com",
            phone="+1.5555550100",
            address="1 Main Street",
            city="Springfield",
            country="US",
            state="IL",
            postal_code="62701",
        )
        result = await make_registrar(handler).register("brandtest.com", 2, contact)

        assert result.success is True
        assert result.registration_id == "9001"
        params = requests[0].url.params
        assert params["Years"] == "2"
        for role in ("Registrant", "Tech", "Admin", "AuxBilling"):
            assert params[f"{role}FirstName"] == "Jane"
            assert params[f"{role}EmailAddress"] == "owner@example.com"

    async def test_get_info(self):
        body = (
            '<ApiResponse Status="OK"><DomainGetInfoResult Status="Ok" DomainName="brandtest.com">'
            '<DomainDetails><CreatedDate>10/19/2026</CreatedDate><ExpiredDate>10/19/2027</ExpiredDate>'
            '</DomainDetails><Modificationrights All="true" />'
            '<Whoisguard Enabled="True" Expires="10/19/2027" AutoRenew="true" /></DomainGetInfoResult></ApiResponse>'
        )
        info = await make_registrar(lambda r: httpx.Response(200, text=body)).get_info("brandtest.com")
        assert info.status == "Ok"
        assert info.expiration_date.year == 2027
        assert info.auto_renew is True

    async def test_set_dns_numbers_host_records(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, text='<ApiResponse Status="OK"><DomainDNSSetHostsResult IsSuccess="true" /></ApiResponse>')

        records = [
            {"type": "A", "name": "@", "value": "203.0.113.10", "ttl": 600},
            {"type": "CNAME", "name": "www", "value": "brandtest.com"},
        ]
        result = await make_registrar(handler).set_dns("brandtest.com", records)

        assert result.success is True
        params = requests[0].url.params
        assert params["SLD"] == "brandtest"
        assert params["TLD"] == "com"
        assert params["HostName1"] == "@"
        assert params["RecordType2"] == "CNAME"
        assert params["Address1"] == "203.0.113.10"
        assert params["TTL1"] == "600"
        assert params["TTL2"] == "3600"
