from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from typing_extensions import Literal


ReadingStatus = Literal["to-read", "reading", "finished"]
ViewMode = Literal["grid", "table"]

READING_STATUSES = ("to-read", "reading", "finished")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def consistent_progress(status: str, progress: int) -> int:
    """Progress value that agrees with ``status``.

    ``finished`` is always 100 and ``to-read`` always 0; only ``reading``
    keeps the value it was given.
    """
    if status == "finished":
        return 100
    if status == "to-read":
        return 0
    return progress


def reading_fields(
    status: str,
    progress: Optional[int] = None,
    date_started: Optional[date] = None,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """Build the status related fields for moving a book to ``status``.

    ``date_started`` is kept (or set to ``today``) once the book leaves
    ``to-read``; ``date_finished`` is ``today`` only for ``finished``.
    """
    if status not in READING_STATUSES:
        raise ValueError(f"Unknown reading status: {status!r}")
    today = today or date.today()
    return {
        "reading_status": status,
        "progress_percentage": consistent_progress(status, progress or 0),
        "date_started": None if status == "to-read" else (date_started or today),
        "date_finished": today if status == "finished" else None,
    }


def _required_text(value: Any) -> str:
    if value is None:
        raise ValueError("must not be null")
    if not isinstance(value, str):
        raise ValueError("must be a string")
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


class Book(BaseModel):
    """A tracked title, as stored in the ``books`` table.

    ``id``, ``created_at`` and the owning ``user_id`` are assigned by the
    persistence layer. The model keeps ``progress_percentage`` consistent
    with ``reading_status`` whenever an instance is validated, so rows that
    come back from the database or from a merged update can never carry
    a finished book at 40%.
    """

    id: str
    title: str
    author: str
    category: str
    cover_url: Optional[str] = None
    reading_status: ReadingStatus = "to-read"
    progress_percentage: int = Field(default=0, ge=0, le=100)
    date_started: Optional[date] = None
    date_finished: Optional[date] = None
    reading_notes: Optional[str] = None
    user_id: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> Any:
        # Supabase tables may use bigint keys
        return str(value) if isinstance(value, int) else value

    @field_validator("reading_status", mode="before")
    @classmethod
    def _default_status(cls, value: Any) -> Any:
        return "to-read" if value is None else value

    @field_validator("progress_percentage", mode="before")
    @classmethod
    def _default_progress(cls, value: Any) -> Any:
        return 0 if value is None else value

    @model_validator(mode="after")
    def _sync_progress(self) -> "Book":
        self.progress_percentage = consistent_progress(
            self.reading_status, self.progress_percentage
        )
        return self


class BookCreate(BaseModel):
    title: str
    author: str
    category: str
    cover_url: Optional[str] = None
    reading_status: ReadingStatus = "to-read"
    progress_percentage: int = Field(default=0, ge=0, le=100)
    date_started: Optional[date] = None
    date_finished: Optional[date] = None
    reading_notes: Optional[str] = None

    @field_validator("title", "author", "category", mode="before")
    @classmethod
    def _check_required(cls, value: Optional[str]) -> str:
        return _required_text(value)

    @field_validator("cover_url", "reading_notes")
    @classmethod
    def _check_optional(cls, value: Optional[str]) -> Optional[str]:
        return _optional_text(value)

    @model_validator(mode="after")
    def _sync_progress(self) -> "BookCreate":
        self.progress_percentage = consistent_progress(
            self.reading_status, self.progress_percentage
        )
        return self


class BookUpdate(BaseModel):
    """Partial update of a book. Only explicitly sent fields are applied."""

    title: Optional[str] = None
    author: Optional[str] = None
    category: Optional[str] = None
    cover_url: Optional[str] = None
    reading_status: Optional[ReadingStatus] = None
    progress_percentage: Optional[int] = Field(default=None, ge=0, le=100)
    date_started: Optional[date] = None
    date_finished: Optional[date] = None
    reading_notes: Optional[str] = None

    @field_validator("title", "author", "category", mode="before")
    @classmethod
    def _check_required(cls, value: Optional[str]) -> str:
        return _required_text(value)

    @field_validator("cover_url", "reading_notes")
    @classmethod
    def _check_optional(cls, value: Optional[str]) -> Optional[str]:
        return _optional_text(value)

    @field_validator("reading_status", mode="before")
    @classmethod
    def _check_status(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("must not be null")
        return value

    def changes(self, mode: str = "python") -> Dict[str, Any]:
        data = self.model_dump(exclude_unset=True, mode=mode)
        status = data.get("reading_status")
        if status in ("finished", "to-read"):
            data["progress_percentage"] = consistent_progress(status, 0)
        return data


# ---------------------------------------------------------------------------
# Statistics

class CategoryCount(BaseModel):
    category: str
    count: int


class BookStats(BaseModel):
    total_books: int
    categories: Dict[str, int] = Field(default_factory=dict)
    top_categories: List[CategoryCount] = Field(default_factory=list)


class ReadingStats(BaseModel):
    finished: int = 0
    reading: int = 0
    to_read: int = 0


class ProgressStats(BaseModel):
    average_progress: int = 0
    books_with_progress: int = 0


class RecentActivity(BaseModel):
    books_started_this_month: int = 0
    books_finished_this_month: int = 0


class AnalyticsOverview(BaseModel):
    total_books: int
    reading_stats: ReadingStats
    progress_stats: ProgressStats
    category_breakdown: Dict[str, int] = Field(default_factory=dict)
    recent_activity: RecentActivity


# ---------------------------------------------------------------------------
# Recommendations

class BookSummary(BaseModel):
    """The slice of a book the recommender looks at."""

    title: str
    author: str
    category: str = ""
    reading_status: ReadingStatus = "to-read"
    progress_percentage: int = 0

    @field_validator("progress_percentage", mode="before")
    @classmethod
    def _default_progress(cls, value: Any) -> Any:
        return 0 if value is None else value


class Recommendation(BaseModel):
    title: str
    author: str
    reason: str
    confidence: int = Field(default=7, ge=1, le=10)
    genre: str = "General"
    cover_url: Optional[str] = None


class BasedOn(BaseModel):
    completed_books: int
    categories: List[str] = Field(default_factory=list)
    total_books: int


class RecommendationRequest(BaseModel):
    books: Optional[List[BookSummary]] = None


class RecommendationResponse(BaseModel):
    recommendations: List[Recommendation]
    based_on: BasedOn
    # Set when the fixed fallback list was served instead of model output
    error: Optional[str] = None


class ReadingInsight(BaseModel):
    pattern: str
    recommendation: str
    categories: List[str] = Field(default_factory=list)


class BookAnalysisRequest(BaseModel):
    title: str
    author: str

    @field_validator("title", "author", mode="before")
    @classmethod
    def _check_required(cls, value: Optional[str]) -> str:
        return _required_text(value)


class BookAnalysis(BaseModel):
    title: str
    author: str
    analysis: str
