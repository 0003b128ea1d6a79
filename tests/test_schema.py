"""Tests for dispatch data types."""
import json

import pytest

from as3_agent.dispatch.notify import ResponseSink
from as3_agent.dispatch.errors import AgentError
from as3_agent.dispatch.schema import (
    Declaration,
    DeployResult,
    PostOutcome,
    ResponseEvent,
)


AS3 = {
    "class": "AS3",
    "declaration": {"class": "ADC", "schemaVersion": "3.20.0", "id": "urn:uuid:1"},
}


class TestDeclaration:
    """Tests for Declaration."""

    def test_from_dict(self):
        """Schema version is read from the ADC body."""
        d = Declaration.from_dict(AS3, tenant="t1")
        assert d.schema_version == "3.20.0"
        assert d.tenant == "t1"
        assert json.loads(d.body) == AS3

    def test_from_bare_adc(self):
        """A bare ADC declaration also yields its schema version."""
        d = Declaration.from_dict(AS3["declaration"])
        assert d.schema_version == "3.20.0"

    def test_from_file_keeps_text(self, tmp_path):
        """File contents are kept verbatim."""
        path = tmp_path / "decl.json"
        text = json.dumps(AS3, indent=2)
        path.write_text(text)

        d = Declaration.from_file(path)
        assert d.body == text
        assert d.schema_version == "3.20.0"

    def test_from_file_malformed(self, tmp_path):
        """Malformed files still load so the gates can reject them."""
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        d = Declaration.from_file(path)
        assert d.body == "{not json"
        assert d.schema_version == ""

    def test_immutable(self):
        """Declarations cannot be mutated after creation."""
        d = Declaration(body="{}")
        with pytest.raises(AttributeError):
            d.body = "[]"  # type: ignore[misc]

    def test_empty(self):
        """Default declaration is empty."""
        assert Declaration().is_empty
        assert not Declaration(body="{}").is_empty


class TestPostOutcome:
    """Tests for PostOutcome helpers."""

    def test_ok(self):
        outcome = PostOutcome.ok(200)
        assert outcome.accepted and outcome.event == ResponseEvent.OK

    def test_failed(self):
        outcome = PostOutcome.failed(ResponseEvent.NOT_FOUND, 404, "gone")
        assert not outcome.accepted
        assert outcome.message == "gone"


class TestResponseSink:
    """Tests for ResponseSink."""

    @pytest.mark.asyncio
    async def test_publish_and_iterate(self):
        """Published results come out in order until close."""
        sink = ResponseSink()
        first = DeployResult(Declaration(body="{}"), ResponseEvent.OK)
        second = DeployResult(Declaration(body="[]"), ResponseEvent.UNCHANGED)
        sink.publish(first)
        sink.publish(second)
        sink.close()

        received = [r async for r in sink]
        assert received == [first, second]
        assert await sink.get() is None

    def test_double_close(self):
        """Closing twice is refused."""
        sink = ResponseSink()
        sink.close()
        with pytest.raises(AgentError):
            sink.close()

    def test_publish_after_close_dropped(self):
        """Results published after close are dropped."""
        sink = ResponseSink()
        sink.close()
        sink.publish(DeployResult(Declaration(body="{}"), ResponseEvent.OK))

    def test_to_dict(self):
        """DeployResult serializes for logging."""
        result = DeployResult(Declaration(body="{}", tenant="t1", schema_version="3.20.0"), ResponseEvent.OK)
        data = result.to_dict()
        assert data["tenant"] == "t1"
        assert data["event"] == "ok"

    def test_succeeded(self):
        """Only applied declarations count as success."""
        decl = Declaration(body="{}")
        assert DeployResult(decl, ResponseEvent.OK).succeeded
        assert DeployResult(decl, ResponseEvent.UNCHANGED).succeeded
        assert not DeployResult(decl, ResponseEvent.VALIDATION_FAILED, "bad").succeeded

    @pytest.mark.asyncio
    async def test_pending_counts_unconsumed(self):
        """pending ignores the end marker left by close."""
        sink = ResponseSink()
        sink.publish(DeployResult(Declaration(body="{}"), ResponseEvent.OK))
        assert sink.pending == 1
        sink.close()
        assert sink.pending == 1
        await sink.get()
        assert sink.pending == 0
