"""Tests for the BIG-IP AS3 HTTP client."""
import json

import httpx
import pytest

from as3_agent.client.post_manager import PostManager, classify_status
from as3_agent.dispatch.errors import StartupError
from as3_agent.dispatch.schema import ResponseEvent


def make_pm(handler, **kwargs) -> PostManager:
    return PostManager(
        "https://bigip.example/",
        "admin",
        "secret",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestClassifyStatus:
    """Tests for status code classification."""

    @pytest.mark.parametrize("code,event", [
        (200, ResponseEvent.OK),
        (202, ResponseEvent.OK),
        (400, ResponseEvent.VALIDATION_FAILED),
        (404, ResponseEvent.NOT_FOUND),
        (422, ResponseEvent.UNPROCESSABLE_ENTITY),
        (429, ResponseEvent.SERVICE_UNAVAILABLE),
        (503, ResponseEvent.SERVICE_UNAVAILABLE),
        (500, ResponseEvent.TRANSIENT_ERROR),
        (401, ResponseEvent.TRANSIENT_ERROR),
    ])
    def test_mapping(self, code, event):
        assert classify_status(code) == event


class TestPostConfig:
    """Tests for PostManager.post_config."""

    @pytest.mark.asyncio
    async def test_success(self):
        """2xx replies are accepted."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = request.content.decode()
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json={"results": [{"code": 200, "tenant": "t1"}]})

        pm = make_pm(handler)
        outcome = await pm.post_config('{"class": "AS3"}')
        await pm.aclose()

        assert outcome.accepted is True
        assert outcome.event == ResponseEvent.OK
        assert seen["url"] == "https://bigip.example/mgmt/shared/appsvcs/declare"
        assert seen["body"] == '{"class": "AS3"}'
        assert seen["auth"].startswith("Basic ")

    @pytest.mark.asyncio
    async def test_tenant_in_url(self):
        """A tenant scope is appended to the declare path."""
        urls = []

        def handler(request: httpx.Request) -> httpx.Response:
            urls.append(request.url.path)
            return httpx.Response(200, json={})

        pm = make_pm(handler)
        await pm.post_config("{}", tenant="tenant1")
        await pm.aclose()

        assert urls == ["/mgmt/shared/appsvcs/declare/tenant1"]

    @pytest.mark.asyncio
    async def test_unprocessable(self):
        """422 replies carry the AS3 error summary."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(422, json={
                "message": "declaration is invalid",
                "errors": ["/tenant1/app: should have required property 'class'"],
            })

        pm = make_pm(handler)
        outcome = await pm.post_config("{}")
        await pm.aclose()

        assert outcome.accepted is False
        assert outcome.event == ResponseEvent.UNPROCESSABLE_ENTITY
        assert outcome.status_code == 422
        assert "declaration is invalid" in outcome.message
        assert "required property" in outcome.message

    @pytest.mark.asyncio
    async def test_tenant_failures_summarized(self):
        """Per-tenant failures in results are included in the message."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, json={
                "results": [
                    {"code": 200, "tenant": "ok-tenant", "message": "success"},
                    {"code": 503, "tenant": "busy", "message": "in progress"},
                ],
            })

        pm = make_pm(handler)
        outcome = await pm.post_config("{}")
        await pm.aclose()

        assert outcome.event == ResponseEvent.SERVICE_UNAVAILABLE
        assert outcome.message == "busy: in progress"

    @pytest.mark.asyncio
    async def test_non_json_error_body(self):
        """Non-JSON error bodies fall back to the reason phrase."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="<html>oops</html>")

        pm = make_pm(handler)
        outcome = await pm.post_config("{}")
        await pm.aclose()

        assert outcome.event == ResponseEvent.TRANSIENT_ERROR
        assert outcome.message == "Internal Server Error"

    @pytest.mark.asyncio
    async def test_network_error(self):
        """Transport failures become transient outcomes, not exceptions."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        pm = make_pm(handler)
        outcome = await pm.post_config("{}")
        await pm.aclose()

        assert outcome.accepted is False
        assert outcome.event == ResponseEvent.TRANSIENT_ERROR
        assert "connection refused" in outcome.message

    @pytest.mark.asyncio
    async def test_user_agent_includes_release(self):
        """The AS3 release is reported in the User-Agent once known."""
        agents = []

        def handler(request: httpx.Request) -> httpx.Response:
            agents.append(request.headers["user-agent"])
            return httpx.Response(200, json={})

        pm = make_pm(handler, user_agent="as3-agent/test")
        await pm.post_config("{}")
        pm.as3_release = "3.20.0-3"
        await pm.post_config("{}")
        await pm.aclose()

        assert agents == ["as3-agent/test", "as3-agent/test AS3/3.20.0-3"]


class TestGetAS3Version:
    """Tests for PostManager.get_as3_version."""

    @pytest.mark.asyncio
    async def test_version_and_release(self):
        """Version and release are read from the info endpoint."""
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/mgmt/shared/appsvcs/info"
            return httpx.Response(200, json={
                "version": "3.20.0",
                "release": "3",
                "schemaCurrent": "3.20.0",
            })

        pm = make_pm(handler)
        version, build = await pm.get_as3_version()
        await pm.aclose()

        assert (version, build) == ("3.20.0", "3")

    @pytest.mark.asyncio
    async def test_not_installed(self):
        """404 means AS3 is missing."""
        pm = make_pm(lambda request: httpx.Response(404))
        with pytest.raises(StartupError, match="not installed"):
            await pm.get_as3_version()
        await pm.aclose()

    @pytest.mark.asyncio
    async def test_missing_version(self):
        """A reply without a version is a startup error."""
        pm = make_pm(lambda request: httpx.Response(200, content=json.dumps({"release": "1"})))
        with pytest.raises(StartupError, match="no version"):
            await pm.get_as3_version()
        await pm.aclose()
