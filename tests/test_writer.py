# file: tests/test_writer.py
import asyncio
import random
import pytest
from unittest.mock import AsyncMock, Mock
from agents.writer import Writer
from app.errors import ExternalServiceError, QuotaExceededError, ValidationError
from app.schema import Company

def make_llm(**kwargs):
    llm = Mock()
    llm.generate = AsyncMock(**kwargs)
    return llm

@pytest.mark.asyncio
async def test_quota_exhaustion_uses_fallback(sarah, acme):
    """Quota errors never surface; the fallback template is returned instead"""
    llm = make_llm(side_effect=QuotaExceededError("openai", "insufficient_quota", status=429))
    writer = Writer(llm, rng=random.Random(3))

    result = await writer.run(sarah, acme)

    assert result.usage is None
    assert "Accel" in result.message
    assert "Acme" in result.message
    assert result.subject
    llm.generate.assert_awaited_once()

@pytest.mark.asyncio
async def test_service_failure_uses_fallback(sarah, acme):
    """Connection failures and empty output degrade the same way"""
    for error in (
        ExternalServiceError("openai", "connection reset"),
        ExternalServiceError("openai", "No message generated"),
    ):
        writer = Writer(make_llm(side_effect=error))
        result = await writer.run(sarah, acme, message_type="follow_up")
        assert result.usage is None
        assert "Acme" in result.message

@pytest.mark.asyncio
async def test_generated_message_keeps_usage(sarah, acme):
    """A successful generation returns the model text and its usage"""
    usage = {"prompt_tokens": 120, "completion_tokens": 80, "total_tokens": 200}
    llm = make_llm(return_value=("Hi Sarah, ...", usage))
    writer = Writer(llm, rng=random.Random(0))

    result = await writer.run(sarah, acme, "Met at SaaStr")

    assert result.message == "Hi Sarah, ..."
    assert result.usage == usage
    assert "{" not in result.subject

    system, prompt = llm.generate.call_args.args
    assert "investor outreach" in system
    assert "ADDITIONAL CONTEXT:\nMet at SaaStr" in prompt

@pytest.mark.asyncio
async def test_invalid_inputs_block_before_generation(sarah):
    """Validation fails before any call to the model"""
    llm = make_llm(return_value=("unused", None))
    writer = Writer(llm)

    with pytest.raises(ValidationError) as exc:
        await writer.run(sarah, Company(id="co_x", description="x"))

    assert exc.value.fields == ["company.name", "company.industry"]
    llm.generate.assert_not_called()

@pytest.mark.asyncio
async def test_identical_concurrent_requests_share_one_call(sarah, acme):
    """Two identical in-flight requests trigger a single generation"""
    release = asyncio.Event()

    async def slow_generate(system, prompt):
        await release.wait()
        return "Shared body", None

    llm = make_llm(side_effect=slow_generate)
    writer = Writer(llm)

    first = asyncio.create_task(writer.run(sarah, acme, "same"))
    second = asyncio.create_task(writer.run(sarah, acme, "same"))
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    release.set()
    a, b = await asyncio.gather(first, second)

    assert a.message == b.message == "Shared body"
    assert llm.generate.await_count == 1
    assert writer._in_flight == {}

@pytest.mark.asyncio
async def test_different_requests_are_not_merged(sarah, acme):
    """Different notes are separate generations"""
    llm = make_llm(return_value=("Body", None))
    writer = Writer(llm)

    await asyncio.gather(writer.run(sarah, acme, "one"), writer.run(sarah, acme, "two"))

    assert llm.generate.await_count == 2

def test_fallback_survives_template_errors(sarah, acme, monkeypatch):
    """The last-resort body is returned even if rendering blows up"""
    def broken(*args, **kwargs):
        raise KeyError("boom")

    monkeypatch.setattr("agents.writer.render_fallback_message", broken)
    result = Writer(Mock()).fallback(sarah, acme)

    assert result.usage is None
    assert "Acme" in result.message and "Accel" in result.message
