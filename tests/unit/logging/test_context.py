# tests/unit/logging/test_context.py
"""Tests for logging/context.py: contextual logging variables."""

from __future__ import annotations

import asyncio

import pytest

from imageproxy.logging.context import (
    clear_context,
    get_context,
    set_address_context,
    set_request_context,
    set_state_context,
)


class TestLogContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_initial_state(self):
        ctx = get_context()
        assert ctx.request_id is None
        assert ctx.address is None
        assert ctx.state is None

    def test_request_id_given(self):
        assert set_request_context("abc") == "abc"
        assert get_context().request_id == "abc"

    def test_request_id_generated(self):
        rid = set_request_context()
        assert len(rid) == 12
        assert get_context().request_id == rid

    def test_new_request_resets_address_and_state(self):
        set_address_context("a/b")
        set_state_context("fetching")
        set_request_context("next")
        ctx = get_context()
        assert ctx.address is None
        assert ctx.state is None

    def test_as_dict_filters_none(self):
        set_request_context("r1")
        d = get_context().as_dict()
        assert d == {"request_id": "r1"}

    def test_clear(self):
        set_request_context("r1")
        set_address_context("a/b")
        clear_context()
        assert get_context().as_dict() == {}

    @pytest.mark.asyncio
    async def test_isolated_between_tasks(self):
        async def request(rid: str) -> str | None:
            set_request_context(rid)
            await asyncio.sleep(0)
            return get_context().request_id

        results = await asyncio.gather(
            asyncio.create_task(request("one")), asyncio.create_task(request("two"))
        )
        assert results == ["one", "two"]
