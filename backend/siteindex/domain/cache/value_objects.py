"""
Cache Value Objects

Immutable value objects for the cache domain: key construction, TTL policy,
and invalidation selectors.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..exceptions import InvalidSelectorError

ALL_ITEMS_SEGMENT = "all"
MAX_KEY_LENGTH = 512


class ListingKeyType(str, Enum):
    """Classification of listing cache keys by which dimensions they filter on."""

    ALL = "all"
    LETTER = "letter"
    CAMPUS = "campus"
    CAMPUS_LETTER = "campus_letter"
    SEARCH = "search"


@dataclass(frozen=True)
class ListingKeyParts:
    """Dimensions decoded from a listing cache key."""

    campus: str
    letter: str
    search: str

    @property
    def key_type(self) -> ListingKeyType:
        if self.search:
            return ListingKeyType.SEARCH
        if self.campus and self.letter:
            return ListingKeyType.CAMPUS_LETTER
        if self.campus:
            return ListingKeyType.CAMPUS
        if self.letter:
            return ListingKeyType.LETTER
        return ListingKeyType.ALL


@dataclass(frozen=True)
class CacheKey:
    """
    Immutable cache key value object.

    Listing keys are built from the ordered filter dimensions
    ``<namespace>:<campus>:<letter>:<search>``; an absent dimension is an
    empty segment. A query with no filters uses ``<namespace>:all``. Because
    keys are derived only from their dimensions, every key touching a given
    campus or letter can be named without keeping an index of live keys.
    """

    value: str

    def __post_init__(self) -> None:
        """Validate cache key format."""
        if not self.value:
            raise ValueError("Cache key cannot be empty")

        if len(self.value) > MAX_KEY_LENGTH:
            raise ValueError(f"Cache key too long (max {MAX_KEY_LENGTH} characters)")

    @staticmethod
    def _check_namespace(namespace: str) -> None:
        if not namespace or ":" in namespace:
            raise ValueError("Cache namespace must be non-empty and contain no ':'")

    @staticmethod
    def normalize_search(term: Optional[str]) -> str:
        """Search terms are cached case-insensitively."""
        return (term or "").strip().lower()

    @classmethod
    def listing(
        cls,
        namespace: str,
        campus: Optional[str] = None,
        letter: Optional[str] = None,
        search: Optional[str] = None,
    ) -> "CacheKey":
        """Create a listing cache key from its filter dimensions."""
        cls._check_namespace(namespace)
        campus = campus or ""
        letter = letter or ""
        search = cls.normalize_search(search)

        if not (campus or letter or search):
            return cls.all_items(namespace)

        for name, segment in (("campus", campus), ("letter", letter)):
            if ":" in segment:
                raise ValueError(f"{name} segment cannot contain ':'")

        return cls(f"{namespace}:{campus}:{letter}:{search}")

    @classmethod
    def all_items(cls, namespace: str) -> "CacheKey":
        """Create the unfiltered listing key."""
        cls._check_namespace(namespace)
        return cls(f"{namespace}:{ALL_ITEMS_SEGMENT}")

    @classmethod
    def dashboard_stats(cls) -> "CacheKey":
        return cls("stats:dashboard")

    @classmethod
    def link_check_results(cls) -> "CacheKey":
        return cls("linkcheck:results")

    @classmethod
    def link_check_summary(cls) -> "CacheKey":
        return cls("linkcheck:summary")

    @classmethod
    def parse_listing(cls, value: str, namespace: str) -> Optional[ListingKeyParts]:
        """
        Decode a listing key back into its dimensions.

        Returns None for keys outside the namespace or not shaped like a
        listing key. The search segment is last so it may itself contain ':'.
        """
        if value == f"{namespace}:{ALL_ITEMS_SEGMENT}":
            return ListingKeyParts(campus="", letter="", search="")

        prefix = f"{namespace}:"
        if not value.startswith(prefix):
            return None

        segments = value[len(prefix):].split(":", 2)
        if len(segments) != 3:
            return None

        campus, letter, search = segments
        return ListingKeyParts(campus=campus, letter=letter, search=search)

    @classmethod
    def record_keys(cls, namespace: str, campus: str, letter: str) -> List["CacheKey"]:
        """
        Every non-search listing key whose result could include a record
        with the given campus and letter.
        """
        return [
            cls.all_items(namespace),
            cls.listing(namespace, letter=letter),
            cls.listing(namespace, campus=campus),
            cls.listing(namespace, campus=campus, letter=letter),
        ]

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TTL:
    """
    Time To Live value object for cache expiration.
    """

    seconds: int

    def __post_init__(self) -> None:
        """Validate TTL value."""
        if self.seconds <= 0:
            raise ValueError("TTL must be positive")
        if self.seconds > 86400 * 365:
            raise ValueError("TTL too large (max 1 year)")

    @classmethod
    def minutes(cls, minutes: int) -> "TTL":
        return cls(minutes * 60)

    @classmethod
    def hours(cls, hours: int) -> "TTL":
        return cls(hours * 3600)

    @classmethod
    def days(cls, days: int) -> "TTL":
        return cls(days * 86400)

    # Common TTL presets
    @classmethod
    def listing(cls) -> "TTL":
        """Listing query TTL (1 hour)."""
        return cls.hours(1)

    @classmethod
    def dashboard_stats(cls) -> "TTL":
        """Dashboard statistics TTL (15 minutes)."""
        return cls.minutes(15)

    @classmethod
    def link_check(cls) -> "TTL":
        """Link check results TTL (24 hours)."""
        return cls.days(1)

    def __str__(self) -> str:
        return f"{self.seconds}s"


class InvalidationSelector(BaseModel):
    """
    Selects cache entries to invalidate.

    Exactly one mode applies, checked in order: a single ``key``, an
    explicit ``keys`` list, or a glob ``pattern`` (``*`` any sequence,
    ``?`` any single character).
    """

    key: Optional[str] = Field(None, min_length=1, description="Single cache key")
    keys: Optional[List[str]] = Field(None, description="Explicit list of cache keys")
    pattern: Optional[str] = Field(None, min_length=1, description="Glob pattern")

    @field_validator("keys")
    @classmethod
    def validate_keys(cls, v):
        if v is None:
            return v
        if len(v) == 0:
            raise ValueError("Keys array must not be empty")
        if any(not key for key in v):
            raise ValueError("Keys must be non-empty strings")
        return v

    @model_validator(mode="after")
    def validate_selects_something(self) -> "InvalidationSelector":
        if not (self.key or self.keys or self.pattern):
            raise ValueError("At least one of key, keys, or pattern must be provided")
        return self

    @classmethod
    def for_keys(cls, keys: Iterable[str]) -> "InvalidationSelector":
        """Build a deduplicated explicit-keys selector, preserving first-seen order."""
        unique = list(dict.fromkeys(str(key) for key in keys))
        if not unique:
            raise InvalidSelectorError("Keys array must not be empty")
        return cls(keys=unique)


@dataclass(frozen=True)
class InvalidationResult:
    """Outcome of an invalidation call."""

    invalidated_count: int
    mode: str = "keys"
