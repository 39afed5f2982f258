import json
import logging
import re
from collections import Counter
from functools import lru_cache
from typing import Any, Callable, Dict, Iterable, List, Optional

import numpy as np
from pydantic import BaseModel
from sentence_transformers import SentenceTransformer
from transformers import AutoTokenizer, AutoModelForSeq2SeqLM, pipeline

from .config import Config
from .models import (
    BasedOn,
    BookSummary,
    ReadingInsight,
    Recommendation,
    RecommendationResponse,
)


logger = logging.getLogger(__name__)

MAX_RECOMMENDATIONS = 4
DEFAULT_GENRE = "General"
# Minimum cosine similarity for mapping a category onto a fallback genre
GENRE_MATCH_THRESHOLD = 0.5
FALLBACK_NOTE = "Using fallback recommendations"


FALLBACK_RECOMMENDATIONS: Dict[str, List[Dict[str, Any]]] = {
    "Science": [
        {
            "title": "Sapiens",
            "author": "Yuval Noah Harari",
            "reason": "A fascinating exploration of human history and development that combines science with engaging storytelling.",
            "confidence": 8,
            "genre": "Science",
        },
        {
            "title": "The Immortal Life of Henrietta Lacks",
            "author": "Rebecca Skloot",
            "reason": "Combines medical science with human story, perfect for science enthusiasts who enjoy narrative non-fiction.",
            "confidence": 7,
            "genre": "Science",
        },
        {
            "title": "Astrophysics for People in a Hurry",
            "author": "Neil deGrasse Tyson",
            "reason": "Makes complex astrophysics accessible and engaging, perfect for curious science readers.",
            "confidence": 8,
            "genre": "Science",
        },
        {
            "title": "The Code Breaker",
            "author": "Walter Isaacson",
            "reason": "Biography of Jennifer Doudna and the CRISPR revolution, combining science with human story.",
            "confidence": 8,
            "genre": "Science",
        },
    ],
    "Sports & Recreation": [
        {
            "title": "Open",
            "author": "Andre Agassi",
            "reason": "An honest sports memoir that goes beyond tennis to explore personal struggles and triumphs.",
            "confidence": 8,
            "genre": "Sports",
        },
        {
            "title": "The Boys in the Boat",
            "author": "Daniel James Brown",
            "reason": "An inspiring story of teamwork and perseverance, combining sports history with compelling narrative.",
            "confidence": 8,
            "genre": "Sports",
        },
        {
            "title": "Moneyball",
            "author": "Michael Lewis",
            "reason": "The look at baseball analytics that changed the sport, engaging even for non-fans.",
            "confidence": 9,
            "genre": "Sports",
        },
        {
            "title": "Born to Run",
            "author": "Christopher McDougall",
            "reason": "A gripping mix of adventure, science and ultra-running culture.",
            "confidence": 8,
            "genre": "Sports",
        },
    ],
    "Fiction": [
        {
            "title": "The Seven Husbands of Evelyn Hugo",
            "author": "Taylor Jenkins Reid",
            "reason": "An engaging novel with complex characters and compelling storytelling that's widely loved.",
            "confidence": 8,
            "genre": "Fiction",
        },
        {
            "title": "Where the Crawdads Sing",
            "author": "Delia Owens",
            "reason": "Coming-of-age story with mystery elements, perfect for literary fiction lovers.",
            "confidence": 8,
            "genre": "Fiction",
        },
        {
            "title": "The Midnight Library",
            "author": "Matt Haig",
            "reason": "Thought-provoking novel about life's possibilities and second chances.",
            "confidence": 8,
            "genre": "Fiction",
        },
        {
            "title": "Klara and the Sun",
            "author": "Kazuo Ishiguro",
            "reason": "Beautifully written exploration of love, consciousness, and what makes us human.",
            "confidence": 8,
            "genre": "Fiction",
        },
    ],
    "General": [
        {
            "title": "Educated",
            "author": "Tara Westover",
            "reason": "A powerful memoir about education and self-discovery that appeals to readers across all genres.",
            "confidence": 9,
            "genre": "Biography",
        },
        {
            "title": "Becoming",
            "author": "Michelle Obama",
            "reason": "Memoir that combines personal story with historical insight, universally appealing.",
            "confidence": 9,
            "genre": "Biography",
        },
        {
            "title": "The Alchemist",
            "author": "Paulo Coelho",
            "reason": "Timeless philosophical novel about following your dreams and finding your purpose.",
            "confidence": 8,
            "genre": "Philosophy",
        },
        {
            "title": "Atomic Habits",
            "author": "James Clear",
            "reason": "Practical guide to building good habits and breaking bad ones.",
            "confidence": 9,
            "genre": "Self-Help",
        },
    ],
}

FALLBACK_INSIGHT = ReadingInsight(
    pattern="You're building a diverse reading collection!",
    recommendation="Based on your current books, try exploring related authors in your favorite genres.",
    categories=["Science", "Fiction", "Biography"],
)
FALLBACK_ANALYSIS = "This book offers a unique perspective worth exploring."


# === Model loading (once, on first use) ===

@lru_cache(maxsize=1)
def get_embedder() -> SentenceTransformer:
    return SentenceTransformer(Config.EMBEDDING_MODEL_NAME)


@lru_cache(maxsize=1)
def get_generator():
    tokenizer = AutoTokenizer.from_pretrained(Config.LLM_MODEL_NAME)
    model = AutoModelForSeq2SeqLM.from_pretrained(Config.LLM_MODEL_NAME)
    return pipeline("text2text-generation", model=model, tokenizer=tokenizer)


def generate_text(prompt: str, max_new_tokens: int = 256) -> str:
    result = get_generator()(prompt, max_new_tokens=max_new_tokens)[0]["generated_text"]
    return result


def _cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    denom = np.linalg.norm(a) * np.linalg.norm(b)
    if denom == 0:
        return 0.0
    return float(np.dot(a, b) / denom)


# === Helpers ===

def summarize_books(books: Iterable[Any]) -> List[BookSummary]:
    """Accept ``Book``/``BookSummary`` instances or plain dicts."""
    summaries: List[BookSummary] = []
    for book in books:
        if isinstance(book, BookSummary):
            summaries.append(book)
            continue
        if isinstance(book, BaseModel):
            book = book.model_dump()
        summaries.append(BookSummary.model_validate(book))
    return summaries


def _categories(books: List[BookSummary]) -> List[str]:
    return list(dict.fromkeys(b.category for b in books if b.category))


def based_on(books: List[BookSummary]) -> BasedOn:
    return BasedOn(
        completed_books=sum(1 for b in books if b.reading_status == "finished"),
        categories=_categories(books),
        total_books=len(books),
    )


def _extract_json(text: str, pattern: str) -> Any:
    match = re.search(pattern, text or "", re.DOTALL)
    if not match:
        raise ValueError("No JSON found in model output")
    return json.loads(match.group(0))


def _confidence(value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return 7
    if number == 0:
        return 7
    return max(1, min(10, number))


# === Recommendations ===

def build_recommendation_prompt(books: List[BookSummary], limit: int = MAX_RECOMMENDATIONS) -> str:
    completed = [b for b in books if b.reading_status == "finished"]
    reading = [b for b in books if b.reading_status == "reading"]

    def lines(items: List[BookSummary]) -> str:
        if not items:
            return "- (none)"
        return "\n".join(f'- "{b.title}" by {b.author} ({b.category})' for b in items)

    return (
        "You are an expert librarian. Always suggest real, existing books "
        "with correct titles and authors.\n\n"
        f"Based on this person's reading history, recommend {limit} books they would enjoy.\n\n"
        f"COMPLETED BOOKS:\n{lines(completed)}\n\n"
        f"CURRENTLY READING:\n{lines(reading)}\n\n"
        f"FAVORITE CATEGORIES: {', '.join(_categories(books)) or 'unknown'}\n\n"
        "Mix their favorite categories with one or two new genres. "
        "Answer only with a JSON array of objects with the keys "
        '"title", "author", "reason" (30-40 words), "confidence" (1-10) and "genre".'
    )


def parse_recommendations(text: str, limit: int = MAX_RECOMMENDATIONS) -> List[Recommendation]:
    raw = _extract_json(text, r"\[.*\]")
    if not isinstance(raw, list):
        raise ValueError("Model output is not a JSON array")

    recs: List[Recommendation] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        recs.append(
            Recommendation(
                title=str(item.get("title") or "Unknown Title"),
                author=str(item.get("author") or "Unknown Author"),
                reason=str(item.get("reason") or "Recommended based on your reading history"),
                confidence=_confidence(item.get("confidence")),
                genre=str(item.get("genre") or DEFAULT_GENRE),
            )
        )
    if not recs:
        raise ValueError("Model output contained no recommendations")
    return recs[:limit]


def match_fallback_genre(category: str) -> str:
    """Map a free-form category onto one of the fallback list keys."""
    category = (category or "").strip()
    if not category:
        return DEFAULT_GENRE
    for genre in FALLBACK_RECOMMENDATIONS:
        if genre.lower() == category.lower():
            return genre

    genres = [g for g in FALLBACK_RECOMMENDATIONS if g != DEFAULT_GENRE]
    try:
        vectors = get_embedder().encode([category] + genres, convert_to_numpy=True)
    except Exception as exc:
        logger.warning("Genre matching unavailable: %s", exc)
        return DEFAULT_GENRE

    scores = [(g, _cosine_similarity(vectors[0], v)) for g, v in zip(genres, vectors[1:])]
    best, score = max(scores, key=lambda x: x[1])
    return best if score >= GENRE_MATCH_THRESHOLD else DEFAULT_GENRE


def guess_preferred_genre(books: List[BookSummary]) -> str:
    """Most read category (finished books count double), as a fallback key."""
    weights: Counter = Counter()
    for b in books:
        if b.category:
            weights[b.category] += 2 if b.reading_status == "finished" else 1
    if not weights:
        return DEFAULT_GENRE
    favourite = weights.most_common(1)[0][0]
    return match_fallback_genre(favourite)


def fallback_recommendations(genre: str) -> List[Recommendation]:
    entries = FALLBACK_RECOMMENDATIONS.get(genre) or FALLBACK_RECOMMENDATIONS[DEFAULT_GENRE]
    return [Recommendation(**entry) for entry in entries]


def _with_cover(rec: Recommendation, lookup_cover: Callable[[str, str], Optional[str]]) -> Recommendation:
    try:
        cover_url = lookup_cover(rec.title, rec.author)
    except Exception as exc:
        logger.warning("Failed to fetch cover for %r: %s", rec.title, exc)
        cover_url = None
    return rec.model_copy(update={"cover_url": cover_url})


def recommend_books(
    books: Iterable[Any],
    limit: int = MAX_RECOMMENDATIONS,
    lookup_cover: Optional[Callable[[str, str], Optional[str]]] = None,
) -> RecommendationResponse:
    """Suggest up to four books for a reading history.

    Falls back to a fixed list for the reader's guessed genre whenever the
    model cannot be run or its answer cannot be parsed, so the result is
    never empty.
    """
    summaries = summarize_books(books)
    limit = max(1, min(limit, MAX_RECOMMENDATIONS))
    error = None
    try:
        text = generate_text(build_recommendation_prompt(summaries, limit), max_new_tokens=512)
        recs = parse_recommendations(text, limit)
    except Exception as exc:
        logger.error("Recommendation generation failed: %s", exc)
        genre = guess_preferred_genre(summaries)
        logger.info("Serving fallback recommendations for genre %s", genre)
        recs = fallback_recommendations(genre)[:limit]
        error = FALLBACK_NOTE

    if lookup_cover is not None:
        recs = [_with_cover(r, lookup_cover) for r in recs]

    return RecommendationResponse(
        recommendations=recs,
        based_on=based_on(summaries),
        error=error,
    )


# === Insights ===

def analyze_reading_patterns(books: Iterable[Any]) -> ReadingInsight:
    summaries = summarize_books(books)
    payload = [
        {
            "title": b.title,
            "author": b.author,
            "category": b.category,
            "status": b.reading_status,
            "progress": b.progress_percentage,
        }
        for b in summaries
    ]
    prompt = (
        "Analyze this person's reading habits.\n\n"
        f"Books: {json.dumps(payload, indent=2)}\n\n"
        "Give a pattern you notice in their preferences, a personalized "
        "recommendation for what type of book to read next, and their top 3 "
        "categories based on completion. Answer only with JSON: "
        '{"pattern": "...", "recommendation": "...", "categories": ["...", "...", "..."]}'
    )
    try:
        raw = _extract_json(generate_text(prompt, max_new_tokens=300), r"\{.*\}")
        if not isinstance(raw, dict):
            raise ValueError("Model output is not a JSON object")
    except Exception as exc:
        logger.error("Reading pattern analysis failed: %s", exc)
        return FALLBACK_INSIGHT.model_copy(deep=True)

    categories = raw.get("categories")
    return ReadingInsight(
        pattern=str(raw.get("pattern") or "No clear pattern detected yet."),
        recommendation=str(raw.get("recommendation") or "Keep reading what you enjoy!"),
        categories=[str(c) for c in categories] if isinstance(categories, list) and categories
        else list(FALLBACK_INSIGHT.categories),
    )


def analyze_book(title: str, author: str) -> str:
    prompt = (
        f'Provide a brief, engaging analysis of the book "{title}" by {author}: '
        "what makes it special, who would enjoy it, its key themes and why it is "
        "worth reading. Two or three sentences."
    )
    try:
        text = generate_text(prompt, max_new_tokens=150).strip()
    except Exception as exc:
        logger.error("Book analysis failed for %r: %s", title, exc)
        return FALLBACK_ANALYSIS
    return text or FALLBACK_ANALYSIS
