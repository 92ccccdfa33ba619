"""Unit tests for middleware functionality."""

import ipaddress
import json
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi import Request
from starlette.responses import Response

from oaServiceControl.middleware import AllowedSubnetMiddleware, is_allowed


class TestIsAllowed:
    """Test the client address check."""

    subnets = [ipaddress.ip_network("100.64.0.0/10"), ipaddress.ip_network("fd7a:115c:a1e0::/48")]

    @pytest.mark.parametrize("ip", ["127.0.0.1", "::1", "localhost"])
    def test_loopback_allowed(self, ip):
        assert is_allowed(ip, self.subnets)

    @pytest.mark.parametrize("ip", ["100.64.0.1", "100.127.255.254", "fd7a:115c:a1e0::1"])
    def test_inside_subnet(self, ip):
        assert is_allowed(ip, self.subnets)

    @pytest.mark.parametrize("ip", ["192.168.1.10", "100.128.0.1", "2001:db8::1"])
    def test_outside_subnet(self, ip):
        assert not is_allowed(ip, self.subnets)

    @pytest.mark.parametrize("ip", ["not-an-ip", "", None, "testclient"])
    def test_unparseable_denied(self, ip):
        assert not is_allowed(ip, self.subnets)


class TestAllowedSubnetMiddleware:
    """Test AllowedSubnetMiddleware dispatch."""

    def setup_method(self):
        """Set up test fixtures."""
        self.middleware = AllowedSubnetMiddleware(app=Mock(), allowed_subnets=["100.64.0.0/10"])

    @pytest.mark.asyncio
    async def test_allowed_request_passes(self):
        call_next = AsyncMock(return_value=Response(content="OK"))
        request = Mock(spec=Request)
        request.client = Mock(host="100.100.1.1")

        response = await self.middleware.dispatch(request, call_next)

        assert response.status_code == 200
        call_next.assert_called_once_with(request)

    @pytest.mark.asyncio
    async def test_denied_request_gets_403(self):
        call_next = AsyncMock()
        request = Mock(spec=Request)
        request.client = Mock(host="192.168.1.10")

        response = await self.middleware.dispatch(request, call_next)

        assert response.status_code == 403
        assert json.loads(response.body)["status"] == "error"
        call_next.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_client_denied(self):
        call_next = AsyncMock()
        request = Mock(spec=Request)
        request.client = None

        response = await self.middleware.dispatch(request, call_next)

        assert response.status_code == 403
