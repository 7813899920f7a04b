"""Tests for the fixture-backed search and tangent providers."""

import pytest

from tangent.search.mock import (
    MOCK_SOURCE_CARDS,
    MOCK_TANGENTS,
    MockSearchProvider,
    MockTangentGenerator,
)
from tangent.trail.models import SearchParams, TangentContext


@pytest.mark.asyncio
async def test_empty_query_returns_all_cards_up_to_k():
    provider = MockSearchProvider()

    cards = await provider.search("", SearchParams(k=4))

    assert provider.name == "mock"
    assert [c.url for c in cards] == [c.url for c in MOCK_SOURCE_CARDS[:4]]


@pytest.mark.asyncio
async def test_filters_by_bucket():
    provider = MockSearchProvider()

    cards = await provider.search("", SearchParams(buckets=["primary", "dataset"]))

    assert {c.bucket for c in cards} == {"primary", "dataset"}


@pytest.mark.asyncio
async def test_query_matches_title_or_snippet_case_insensitively():
    provider = MockSearchProvider()

    cards = await provider.search("BENCHMARK", SearchParams())

    assert [c.domain for c in cards] == ["huggingface.co"]
    assert await provider.search("no such topic anywhere", SearchParams()) == []


@pytest.mark.asyncio
async def test_low_serendipity_keeps_card_tangents():
    provider = MockSearchProvider()

    cards = await provider.search("", SearchParams(sigma=0.5))

    assert cards[0].tangents == MOCK_SOURCE_CARDS[0].tangents


@pytest.mark.asyncio
async def test_high_serendipity_shuffles_tangents():
    provider = MockSearchProvider(seed=42)

    cards = await provider.search("", SearchParams(sigma=0.9))

    for card in cards:
        assert len(card.tangents) == 3
        assert set(card.tangents) <= set(MOCK_TANGENTS)
    # Fixture cards are not modified
    assert MOCK_SOURCE_CARDS[0].tangents[0] == "machine learning basics"


@pytest.mark.asyncio
async def test_tangent_generator_is_seedable():
    context = TangentContext(title="Paper", url="https://arxiv.org/abs/1")

    first = await MockTangentGenerator(seed=7).generate(context)
    second = await MockTangentGenerator(seed=7).generate(context)

    assert first == second
    assert len(first) == 3
    assert len(set(first)) == 3
