"""
Tests for booking code generation and its bounded retry.
"""

import re

import pytest

from booking_engine.core.exceptions import ResourceExhausted
from booking_engine.services import code_generator
from booking_engine.services.code_generator import CodeGenerator, make_candidate

CODE_PATTERN = re.compile(r"^EVT-\d{5}$")


def test_candidate_format():
    for _ in range(200):
        code = make_candidate()
        assert CODE_PATTERN.match(code)
        assert 10000 <= int(code.split("-")[1]) <= 99999


def test_candidate_uses_given_prefix():
    assert make_candidate("RSV").startswith("RSV-")


@pytest.mark.asyncio
async def test_retries_past_existing_codes():
    taken = {"EVT-10001", "EVT-10002"}
    sequence = iter(["EVT-10001", "EVT-10002", "EVT-10003"])

    async def exists(code):
        return code in taken

    generator = CodeGenerator(exists=exists, candidates=lambda: next(sequence))
    assert await generator.next_code() == "EVT-10003"
    assert generator.attempts == 3


@pytest.mark.asyncio
async def test_gives_up_after_attempt_budget():
    async def exists(code):
        return True

    generator = CodeGenerator(exists=exists, max_attempts=10)
    with pytest.raises(ResourceExhausted):
        await generator.next_code()
    assert generator.attempts == 10


@pytest.mark.asyncio
async def test_default_candidates_resolved_at_construction(monkeypatch):
    monkeypatch.setattr(code_generator, "make_candidate", lambda: "EVT-55555")

    async def exists(code):
        return False

    assert await CodeGenerator(exists=exists).next_code() == "EVT-55555"
