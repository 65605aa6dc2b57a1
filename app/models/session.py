"""
Session Models
Explicit view state owned by the view controller instead of module globals
"""
from pydantic import BaseModel, Field
from typing import List, Optional


class SearchSession(BaseModel):
    """Transient state of the search debouncer"""
    text: str = ""
    last_query: Optional[str] = None
    page: int = 1
    search_mode: bool = False
    generation: int = 0


class ViewState(BaseModel):
    """What the listing view currently shows"""
    category: str = "hot"
    page: int = 1
    has_next: bool = False
    has_prev: bool = False
    generation: int = 0


class Listing(BaseModel):
    """One rendered listing: movies plus pagination controls"""
    category: str
    page: int = 1
    movies: List[dict] = Field(default_factory=list)
    paginated: bool = False
    hasNext: bool = False
    hasPrev: bool = False
    error: Optional[str] = None
