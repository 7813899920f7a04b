"""Mock search and tangent providers backed by fixture data."""

import asyncio
import logging
import random

from ..trail.models import SearchParams, SourceCard, TangentContext

logger = logging.getLogger(__name__)


MOCK_SOURCE_CARDS: list[SourceCard] = [
    SourceCard(
        url="https://en.wikipedia.org/wiki/Artificial_intelligence",
        title="Artificial Intelligence - Wikipedia",
        domain="wikipedia.org",
        bucket="encyclopedia",
        snippet=(
            "Artificial intelligence (AI) is intelligence demonstrated by machines, in contrast "
            "to the natural intelligence displayed by humans and animals."
        ),
        published_at="2024-01-15T10:00:00Z",
        tangents=["machine learning basics", "AI ethics debate", "neural networks explained"],
    ),
    SourceCard(
        url="https://arxiv.org/abs/2301.00001",
        title="Large Language Models and Their Applications",
        domain="arxiv.org",
        bucket="primary",
        snippet=(
            "This paper explores the current state and future directions of large language "
            "models in various applications."
        ),
        published_at="2024-01-10T14:30:00Z",
        tangents=["transformer architecture", "LLM training methods", "AI safety research"],
    ),
    SourceCard(
        url="https://techcrunch.com/2024/01/20/ai-breakthrough",
        title="Major AI Breakthrough Announced by Leading Tech Company",
        domain="techcrunch.com",
        bucket="news",
        snippet=(
            "A significant advancement in artificial intelligence has been announced, promising "
            "to revolutionize how we interact with technology."
        ),
        published_at="2024-01-20T09:15:00Z",
        tangents=["tech industry trends", "AI commercialization", "startup funding AI"],
    ),
    SourceCard(
        url="https://blog.openai.com/gpt-insights",
        title="Understanding GPT: A Deep Dive into Language Models",
        domain="blog.openai.com",
        bucket="blog",
        snippet=(
            "An in-depth exploration of how GPT models work and their implications for the "
            "future of AI."
        ),
        published_at="2024-01-18T16:45:00Z",
        tangents=["GPT architecture", "language model training", "AI research methods"],
    ),
    SourceCard(
        url="https://reddit.com/r/MachineLearning/comments/ai_discussion",
        title="Discussion: Current State of AI Research",
        domain="reddit.com",
        bucket="forum",
        snippet=(
            "Community discussion about the latest developments in AI research and their "
            "practical applications."
        ),
        published_at="2024-01-19T12:20:00Z",
        tangents=["AI research community", "ML paper discussions", "AI career advice"],
    ),
    SourceCard(
        url="https://huggingface.co/datasets/ai-benchmark",
        title="AI Performance Benchmark Dataset",
        domain="huggingface.co",
        bucket="dataset",
        snippet=(
            "Comprehensive dataset for benchmarking AI model performance across various tasks "
            "and domains."
        ),
        published_at="2024-01-12T08:00:00Z",
        tangents=["AI benchmarking", "model evaluation", "dataset creation"],
    ),
]

MOCK_TANGENTS: list[str] = [
    "quantum computing applications",
    "AI in healthcare",
    "robotics integration",
    "natural language processing",
    "computer vision advances",
    "AI governance policies",
    "machine learning ethics",
    "neural network architectures",
    "deep learning frameworks",
    "AI safety research",
    "automated reasoning",
    "cognitive computing",
]

# Above this serendipity level cards get shuffled tangents instead of their own
SERENDIPITY_SHUFFLE_THRESHOLD = 0.5
TANGENTS_PER_RESULT = 3


class MockSearchProvider:
    """Search provider returning fixture cards (development and tests)."""

    def __init__(
        self,
        cards: list[SourceCard] | None = None,
        seed: int | None = None,
        latency_seconds: float = 0.0,
    ):
        """
        Initialize mock provider.

        Args:
            cards: Fixture cards (defaults to MOCK_SOURCE_CARDS)
            seed: Seed for tangent shuffling
            latency_seconds: Simulated network delay
        """
        self.cards = cards if cards is not None else MOCK_SOURCE_CARDS
        self.latency_seconds = latency_seconds
        self._rng = random.Random(seed)

    @property
    def name(self) -> str:
        return "mock"

    def _matches(self, card: SourceCard, query: str) -> bool:
        needle = query.strip().lower()
        if not needle:
            return True
        return needle in card.title.lower() or needle in card.snippet.lower()

    async def search(self, query: str, params: SearchParams) -> list[SourceCard]:
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)

        matched = [
            card
            for card in self.cards
            if card.bucket in params.buckets and self._matches(card, query)
        ][: params.k]

        if params.sigma > SERENDIPITY_SHUFFLE_THRESHOLD:
            matched = [
                card.model_copy(
                    update={"tangents": self._rng.sample(MOCK_TANGENTS, TANGENTS_PER_RESULT)}
                )
                for card in matched
            ]

        logger.info(f"Search via {self.name}: {len(matched)} results for '{query[:50]}'")
        return matched


class MockTangentGenerator:
    """Tangent generator returning shuffled fixture queries."""

    def __init__(self, seed: int | None = None, latency_seconds: float = 0.0):
        self.latency_seconds = latency_seconds
        self._rng = random.Random(seed)

    async def generate(self, context: TangentContext) -> list[str]:
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)

        queries = self._rng.sample(MOCK_TANGENTS, TANGENTS_PER_RESULT)
        logger.debug(f"Generated {len(queries)} tangents for {context.url or context.title or 'context'}")
        return queries
