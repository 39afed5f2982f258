"""
REST API for the bookshelf.

Each module defines one ``APIRouter``: books (CRUD and stats),
analytics (overview and HTML dashboard), covers (image upload) and
recommendations (AI suggestions and insights). All JSON responses use
the envelope from ``responses``.
"""

from .analytics import router as analytics_router  # noqa: F401
from .books import router as books_router  # noqa: F401
from .covers import router as covers_router  # noqa: F401
from .recommendations import router as recommendations_router  # noqa: F401
