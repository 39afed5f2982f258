"""Reading statistics and the HTML analytics dashboard."""

from collections import Counter
from datetime import date, datetime
from typing import Dict, List, Optional

from jinja2 import Environment, PackageLoader, select_autoescape

from .models import (
    AnalyticsOverview,
    Book,
    BookStats,
    CategoryCount,
    ProgressStats,
    ReadingStats,
    RecentActivity,
)


TOP_CATEGORIES = 5

_env = Environment(
    loader=PackageLoader("bookshelf", "templates"),
    autoescape=select_autoescape(["html"]),
)


def category_counts(books: List[Book]) -> Dict[str, int]:
    """Books per category, most common first."""
    return dict(Counter(b.category for b in books).most_common())


def book_stats(books: List[Book]) -> BookStats:
    counts = category_counts(books)
    return BookStats(
        total_books=len(books),
        categories=counts,
        top_categories=[
            CategoryCount(category=c, count=n)
            for c, n in list(counts.items())[:TOP_CATEGORIES]
        ],
    )


def _in_month(day: Optional[date], today: date) -> bool:
    return day is not None and day.year == today.year and day.month == today.month


def average_progress(books: List[Book]) -> int:
    if not books:
        return 0
    return round(sum(b.progress_percentage for b in books) / len(books))


def analytics_overview(books: List[Book], today: Optional[date] = None) -> AnalyticsOverview:
    today = today or date.today()
    return AnalyticsOverview(
        total_books=len(books),
        reading_stats=ReadingStats(
            finished=sum(1 for b in books if b.reading_status == "finished"),
            reading=sum(1 for b in books if b.reading_status == "reading"),
            to_read=sum(1 for b in books if b.reading_status == "to-read"),
        ),
        progress_stats=ProgressStats(
            average_progress=average_progress(books),
            books_with_progress=sum(1 for b in books if b.progress_percentage > 0),
        ),
        category_breakdown=category_counts(books),
        recent_activity=RecentActivity(
            books_started_this_month=sum(1 for b in books if _in_month(b.date_started, today)),
            books_finished_this_month=sum(1 for b in books if _in_month(b.date_finished, today)),
        ),
    )


def render_dashboard(books: List[Book], now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    today = now.date()
    overview = analytics_overview(books, today)
    total = overview.total_books
    finished = overview.reading_stats.finished
    categories = overview.category_breakdown
    template = _env.get_template("dashboard.html")
    return template.render(
        books=books,
        overview=overview,
        categories=categories,
        completion_rate=round(finished / total * 100) if total else 0,
        favourite_category=next(iter(categories), None),
        currently_reading=[b for b in books if b.reading_status == "reading"],
        finished_this_month=[b for b in books if _in_month(b.date_finished, today)],
        updated_at=now.strftime("%Y-%m-%d %H:%M"),
    )
