"""
Classifier - rule-based category and sentiment assignment.

Classification is a pure function of (title, text) and the ruleset held in
ClassifierConfig: the same input always yields the same category and
sentiment until the ruleset itself changes. Title matches count more than
body matches; ties between categories fall back to enumeration order.
"""

import re
from dataclasses import dataclass, field
from enum import Enum


class Category(str, Enum):
    """Fixed category enumeration. Declaration order is the tie-break order."""
    AI_ML = "ai_ml"
    STARTUPS = "startups"
    CYBERSECURITY = "cybersecurity"
    MOBILE = "mobile"
    WEB3 = "web3"
    OTHERS = "others"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


DEFAULT_CATEGORY_KEYWORDS: dict[Category, list[str]] = {
    Category.AI_ML: [
        "ai", "artificial intelligence", "machine learning", "deep learning",
        "neural network", "llm", "large language model", "gpt", "chatgpt",
        "openai", "anthropic", "claude", "gemini", "deepmind", "generative",
        "transformer", "model training", "inference", "computer vision",
        "nlp", "copilot", "agentic", "ai agent", "diffusion", "mistral",
    ],
    Category.STARTUPS: [
        "startup", "start-up", "founder", "founders", "raises", "raised",
        "funding", "funding round", "seed round", "pre-seed", "series a",
        "series b", "series c", "venture capital", "vc", "valuation",
        "unicorn", "ipo", "acquires", "acquisition", "acquired",
        "y combinator", "accelerator", "investors", "backed",
    ],
    Category.CYBERSECURITY: [
        "security", "cybersecurity", "breach", "data breach", "hack",
        "hacked", "hackers", "ransomware", "malware", "phishing",
        "vulnerability", "zero-day", "exploit", "cve", "patch",
        "encryption", "ddos", "botnet", "spyware", "infosec", "leak",
    ],
    Category.MOBILE: [
        "iphone", "ipad", "ios", "android", "smartphone", "mobile",
        "pixel", "galaxy", "samsung", "app store", "google play",
        "wearable", "apple watch", "5g", "tablet", "foldable",
    ],
    Category.WEB3: [
        "web3", "blockchain", "crypto", "cryptocurrency", "bitcoin",
        "ethereum", "nft", "nfts", "defi", "dao", "stablecoin", "token",
        "solana", "coinbase", "binance", "smart contract", "wallet",
    ],
}

DEFAULT_POSITIVE_TERMS: list[str] = [
    "raises", "raised", "launch", "launches", "launched", "growth", "grows",
    "record", "wins", "win", "breakthrough", "improves", "improved",
    "surge", "surges", "success", "successful", "partnership", "secures",
    "expands", "boost", "boosts", "beats", "profit", "innovative",
    "milestone", "upgrade", "faster", "award",
]

DEFAULT_NEGATIVE_TERMS: list[str] = [
    "breach", "hack", "hacked", "layoffs", "layoff", "lawsuit", "sued",
    "fine", "fined", "vulnerability", "outage", "decline", "declines",
    "fraud", "ban", "banned", "attack", "attacks", "loss", "losses",
    "crash", "exploit", "leak", "leaked", "shutdown", "recall", "delay",
    "delayed", "warning", "slump", "scam", "bankrupt", "bankruptcy",
]


@dataclass(frozen=True)
class ClassifierConfig:
    """Ruleset for the classifier."""
    category_keywords: dict[Category, list[str]] = field(default_factory=dict)
    positive_terms: list[str] = field(default_factory=list)
    negative_terms: list[str] = field(default_factory=list)
    title_weight: int = 3
    body_weight: int = 1
    # Sentiment scores with |score| below this are reported as neutral
    neutral_band: float = 0.2
    # Minimum weighted score for a category to beat "others"
    min_category_score: int = 1

    @classmethod
    def default(cls) -> "ClassifierConfig":
        return cls(
            category_keywords={k: list(v) for k, v in DEFAULT_CATEGORY_KEYWORDS.items()},
            positive_terms=list(DEFAULT_POSITIVE_TERMS),
            negative_terms=list(DEFAULT_NEGATIVE_TERMS),
        )


@dataclass(frozen=True)
class Classification:
    category: Category
    sentiment: Sentiment
    sentiment_score: float


def _compile_terms(terms: list[str]) -> re.Pattern | None:
    """Build one case-insensitive word-boundary pattern for a list of terms."""
    cleaned = sorted({t.strip().lower() for t in terms if t.strip()}, key=len, reverse=True)
    if not cleaned:
        return None
    alternatives = "|".join(re.escape(t) for t in cleaned)
    return re.compile(rf"(?<![\w-])(?:{alternatives})(?![\w-])", re.IGNORECASE)


class Classifier:
    """Deterministic keyword classifier."""

    def __init__(self, config: ClassifierConfig | None = None):
        self.config = config or ClassifierConfig.default()
        self._category_patterns: list[tuple[Category, re.Pattern]] = []
        for category in Category:
            if category is Category.OTHERS:
                continue
            pattern = _compile_terms(self.config.category_keywords.get(category, []))
            if pattern is not None:
                self._category_patterns.append((category, pattern))
        self._positive = _compile_terms(self.config.positive_terms)
        self._negative = _compile_terms(self.config.negative_terms)

    def classify(self, title: str | None, text: str | None) -> Classification:
        """Assign exactly one category and a sentiment label/score."""
        title = (title or "").strip()
        text = (text or "").strip()

        if not title and not text:
            return Classification(Category.OTHERS, Sentiment.NEUTRAL, 0.0)

        category = self._classify_category(title, text)
        sentiment, score = self._classify_sentiment(f"{title}\n{text}")
        return Classification(category, sentiment, score)

    def _classify_category(self, title: str, text: str) -> Category:
        best = Category.OTHERS
        best_score = 0
        for category, pattern in self._category_patterns:
            score = (
                len(pattern.findall(title)) * self.config.title_weight
                + len(pattern.findall(text)) * self.config.body_weight
            )
            # Strictly greater keeps the earlier category on ties
            if score > best_score:
                best, best_score = category, score

        if best_score < self.config.min_category_score:
            return Category.OTHERS
        return best

    def _classify_sentiment(self, text: str) -> tuple[Sentiment, float]:
        positive = len(self._positive.findall(text)) if self._positive else 0
        negative = len(self._negative.findall(text)) if self._negative else 0
        total = positive + negative
        if total == 0:
            return Sentiment.NEUTRAL, 0.0

        score = round(max(-1.0, min(1.0, (positive - negative) / total)), 4)
        if abs(score) < self.config.neutral_band:
            return Sentiment.NEUTRAL, score
        if score > 0:
            return Sentiment.POSITIVE, score
        return Sentiment.NEGATIVE, score
