"""Unit tests for core/concurrency.py and core/budget.py."""

import asyncio

import pytest

from core.budget import calculate_comment_allocation, calculate_token_allocation
from core.concurrency import chunked, pmap


class TestPmap:
    """Test suite for pmap."""

    @pytest.mark.asyncio
    async def test_keeps_order(self):
        async def work(item, index):
            await asyncio.sleep(0)
            return (index, item * 2)

        assert await pmap([3, 1, 2], work, 2) == [(0, 6), (1, 2), (2, 4)]

    @pytest.mark.asyncio
    async def test_bounds_in_flight(self):
        in_flight = 0
        peak = 0
        release = asyncio.Event()

        async def work(item, index):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            if in_flight >= 3:
                release.set()
            await release.wait()
            in_flight -= 1
            return item

        assert await pmap(list(range(10)), work, 3) == list(range(10))
        assert peak == 3

    @pytest.mark.asyncio
    async def test_empty(self):
        async def work(item, index):
            raise AssertionError("not called")

        assert await pmap([], work, 3) == []

    @pytest.mark.asyncio
    async def test_exceptions_propagate(self):
        async def work(item, index):
            raise RuntimeError("nope")

        with pytest.raises(RuntimeError):
            await pmap([1], work, 1)


class TestChunked:
    def test_splits(self):
        assert chunked([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
        assert chunked([], 3) == []

    def test_rejects_bad_size(self):
        with pytest.raises(ValueError):
            chunked([1], 0)


class TestBudget:
    def test_token_allocation(self):
        assert calculate_token_allocation(3, 32000) == 10666
        assert calculate_token_allocation(0, 32000) == 32000

    def test_comment_allocation_capped(self):
        allocation = calculate_comment_allocation(2)
        assert allocation.total_budget == 1000
        assert allocation.per_post_base == 500
        assert allocation.per_post_capped == 200

    def test_comment_allocation_many_posts(self):
        allocation = calculate_comment_allocation(50)
        assert allocation.per_post_capped == 20
