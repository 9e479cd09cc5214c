"""
Typed request descriptors for WaniKani API v2 endpoints.

A Resource describes one endpoint call: HTTP method, path, query filters,
optional JSON body and the type its payload decodes into. Collections are
paginated; the client pairs each decoded page with a Page whose `next`
PageOptions continue the walk.

Example:
    resource = subjects(levels=[1, 2], updated_after=last_sync)
    response = await client.send(resource)
    while response.page and response.page.next:
        response = await client.send(resource, response.page.next)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generic, Iterable, TypeVar

import httpx

from wanikani_client.types import (
    Assignment,
    LevelProgression,
    Preferences,
    Reset,
    Review,
    ReviewStatistic,
    SpacedRepetitionSystem,
    StudyMaterial,
    Subject,
    Summary,
    User,
    VoiceActor,
)

ContentT = TypeVar("ContentT")


@dataclass(frozen=True)
class PageOptions:
    """
    Continuation for a paginated collection.

    WaniKani paginates by cursor: `page_after_id` walks forward,
    `page_before_id` walks backward. The values are opaque to callers and
    only ever come from a previous response's `pages` object.

    Attributes:
        after_id: Return items whose id follows this one.
        before_id: Return items whose id precedes this one.
        per_page: Page size, where the endpoint allows choosing it.
    """

    after_id: int | None = None
    before_id: int | None = None
    per_page: int | None = None

    def to_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.after_id is not None:
            params["page_after_id"] = str(self.after_id)
        if self.before_id is not None:
            params["page_before_id"] = str(self.before_id)
        if self.per_page is not None:
            params["per_page"] = str(self.per_page)
        return params

    @classmethod
    def from_url(cls, url: str | None) -> "PageOptions | None":
        """Extract the cursor from a `pages.next_url` / `pages.previous_url`."""
        if not url:
            return None
        params = httpx.URL(url).params
        after_id = params.get("page_after_id")
        before_id = params.get("page_before_id")
        per_page = params.get("per_page")
        if after_id is None and before_id is None:
            return None
        return cls(
            after_id=int(after_id) if after_id is not None else None,
            before_id=int(before_id) if before_id is not None else None,
            per_page=int(per_page) if per_page is not None else None,
        )


@dataclass(frozen=True)
class Page:
    """Pagination descriptor attached to collection responses."""

    next: PageOptions | None = None
    previous: PageOptions | None = None
    per_page: int | None = None
    total_count: int | None = None


@dataclass(frozen=True)
class Resource(Generic[ContentT]):
    """
    Description of one API endpoint call.

    Attributes:
        method: HTTP method.
        path: Path relative to the API base URL.
        content: Type a single payload item decodes into.
        collection: True when the endpoint returns a paginated collection,
            in which case the response data is a list of `content`.
        query: Filter parameters, already encoded as strings.
        body: JSON body for write endpoints.
    """

    method: str
    path: str
    content: Any
    collection: bool = False
    query: dict[str, str] = field(default_factory=dict)
    body: dict[str, Any] | None = None


@dataclass(frozen=True)
class Response(Generic[ContentT]):
    """Decoded content plus the page descriptor for collections."""

    data: ContentT
    page: Page | None = None


# =============================================================================
# Query encoding
# =============================================================================


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC timestamp as the API expects it; naive values are UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _encode(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return ",".join(_encode(v) for v in value)
    return str(value)


def _filters(**filters: Any) -> dict[str, str]:
    return {name: _encode(value) for name, value in filters.items() if value is not None}


def _ids(values: Iterable[int] | None) -> list[int] | None:
    return list(values) if values is not None else None


# =============================================================================
# User
# =============================================================================


def me() -> Resource[User]:
    return Resource("GET", "/user", User)


def update_user(preferences: Preferences | dict[str, Any]) -> Resource[User]:
    if isinstance(preferences, Preferences):
        preferences = preferences.model_dump(mode="json", exclude_none=True)
    return Resource("PUT", "/user", User, body={"user": {"preferences": preferences}})


def summary() -> Resource[Summary]:
    return Resource("GET", "/summary", Summary)


# =============================================================================
# Subjects
# =============================================================================


def subjects(
    ids: Iterable[int] | None = None,
    types: Iterable[str] | None = None,
    slugs: Iterable[str] | None = None,
    levels: Iterable[int] | None = None,
    hidden: bool | None = None,
    updated_after: datetime | None = None,
) -> Resource[list[Subject]]:
    """List subjects, optionally only those updated after a timestamp."""
    return Resource(
        "GET",
        "/subjects",
        Subject,
        collection=True,
        query=_filters(
            ids=_ids(ids),
            types=list(types) if types is not None else None,
            slugs=list(slugs) if slugs is not None else None,
            levels=_ids(levels),
            hidden=hidden,
            updated_after=updated_after,
        ),
    )


def subject(subject_id: int) -> Resource[Subject]:
    return Resource("GET", f"/subjects/{subject_id}", Subject)


# =============================================================================
# Assignments
# =============================================================================


def assignments(
    ids: Iterable[int] | None = None,
    subject_ids: Iterable[int] | None = None,
    subject_types: Iterable[str] | None = None,
    levels: Iterable[int] | None = None,
    srs_stages: Iterable[int] | None = None,
    available_after: datetime | None = None,
    available_before: datetime | None = None,
    burned: bool | None = None,
    hidden: bool | None = None,
    started: bool | None = None,
    unlocked: bool | None = None,
    in_review: bool | None = None,
    immediately_available_for_lessons: bool | None = None,
    immediately_available_for_review: bool | None = None,
    updated_after: datetime | None = None,
) -> Resource[list[Assignment]]:
    return Resource(
        "GET",
        "/assignments",
        Assignment,
        collection=True,
        query=_filters(
            ids=_ids(ids),
            subject_ids=_ids(subject_ids),
            subject_types=list(subject_types) if subject_types is not None else None,
            levels=_ids(levels),
            srs_stages=_ids(srs_stages),
            available_after=available_after,
            available_before=available_before,
            burned=burned,
            hidden=hidden,
            started=started,
            unlocked=unlocked,
            in_review=in_review,
            immediately_available_for_lessons=immediately_available_for_lessons,
            immediately_available_for_review=immediately_available_for_review,
            updated_after=updated_after,
        ),
    )


def assignment(assignment_id: int) -> Resource[Assignment]:
    return Resource("GET", f"/assignments/{assignment_id}", Assignment)


def start_assignment(
    assignment_id: int, started_at: datetime | None = None
) -> Resource[Assignment]:
    body = {"started_at": format_timestamp(started_at)} if started_at else {}
    return Resource("PUT", f"/assignments/{assignment_id}/start", Assignment, body=body)


# =============================================================================
# Level progressions and resets
# =============================================================================


def level_progressions(
    ids: Iterable[int] | None = None, updated_after: datetime | None = None
) -> Resource[list[LevelProgression]]:
    return Resource(
        "GET",
        "/level_progressions",
        LevelProgression,
        collection=True,
        query=_filters(ids=_ids(ids), updated_after=updated_after),
    )


def level_progression(progression_id: int) -> Resource[LevelProgression]:
    return Resource("GET", f"/level_progressions/{progression_id}", LevelProgression)


def resets(
    ids: Iterable[int] | None = None, updated_after: datetime | None = None
) -> Resource[list[Reset]]:
    return Resource(
        "GET",
        "/resets",
        Reset,
        collection=True,
        query=_filters(ids=_ids(ids), updated_after=updated_after),
    )


def reset(reset_id: int) -> Resource[Reset]:
    return Resource("GET", f"/resets/{reset_id}", Reset)


# =============================================================================
# Reviews
# =============================================================================


def reviews(
    ids: Iterable[int] | None = None,
    assignment_ids: Iterable[int] | None = None,
    subject_ids: Iterable[int] | None = None,
    updated_after: datetime | None = None,
) -> Resource[list[Review]]:
    return Resource(
        "GET",
        "/reviews",
        Review,
        collection=True,
        query=_filters(
            ids=_ids(ids),
            assignment_ids=_ids(assignment_ids),
            subject_ids=_ids(subject_ids),
            updated_after=updated_after,
        ),
    )


def review(review_id: int) -> Resource[Review]:
    return Resource("GET", f"/reviews/{review_id}", Review)


def create_review(
    assignment_id: int | None = None,
    subject_id: int | None = None,
    incorrect_meaning_answers: int = 0,
    incorrect_reading_answers: int = 0,
    created_at: datetime | None = None,
) -> Resource[Review]:
    """
    Record a completed review for an assignment or subject.

    Raises:
        ValueError: If neither or both of assignment_id and subject_id are given.
    """
    if (assignment_id is None) == (subject_id is None):
        raise ValueError("Exactly one of assignment_id or subject_id is required")
    review_body: dict[str, Any] = {
        "incorrect_meaning_answers": incorrect_meaning_answers,
        "incorrect_reading_answers": incorrect_reading_answers,
    }
    if assignment_id is not None:
        review_body["assignment_id"] = assignment_id
    else:
        review_body["subject_id"] = subject_id
    if created_at is not None:
        review_body["created_at"] = format_timestamp(created_at)
    return Resource("POST", "/reviews", Review, body={"review": review_body})


def review_statistics(
    ids: Iterable[int] | None = None,
    subject_ids: Iterable[int] | None = None,
    subject_types: Iterable[str] | None = None,
    hidden: bool | None = None,
    percentages_greater_than: int | None = None,
    percentages_less_than: int | None = None,
    updated_after: datetime | None = None,
) -> Resource[list[ReviewStatistic]]:
    return Resource(
        "GET",
        "/review_statistics",
        ReviewStatistic,
        collection=True,
        query=_filters(
            ids=_ids(ids),
            subject_ids=_ids(subject_ids),
            subject_types=list(subject_types) if subject_types is not None else None,
            hidden=hidden,
            percentages_greater_than=percentages_greater_than,
            percentages_less_than=percentages_less_than,
            updated_after=updated_after,
        ),
    )


def review_statistic(statistic_id: int) -> Resource[ReviewStatistic]:
    return Resource("GET", f"/review_statistics/{statistic_id}", ReviewStatistic)


# =============================================================================
# Spaced repetition systems
# =============================================================================


def spaced_repetition_systems(
    ids: Iterable[int] | None = None, updated_after: datetime | None = None
) -> Resource[list[SpacedRepetitionSystem]]:
    return Resource(
        "GET",
        "/spaced_repetition_systems",
        SpacedRepetitionSystem,
        collection=True,
        query=_filters(ids=_ids(ids), updated_after=updated_after),
    )


def spaced_repetition_system(system_id: int) -> Resource[SpacedRepetitionSystem]:
    return Resource("GET", f"/spaced_repetition_systems/{system_id}", SpacedRepetitionSystem)


# =============================================================================
# Study materials
# =============================================================================


def study_materials(
    ids: Iterable[int] | None = None,
    subject_ids: Iterable[int] | None = None,
    subject_types: Iterable[str] | None = None,
    hidden: bool | None = None,
    updated_after: datetime | None = None,
) -> Resource[list[StudyMaterial]]:
    return Resource(
        "GET",
        "/study_materials",
        StudyMaterial,
        collection=True,
        query=_filters(
            ids=_ids(ids),
            subject_ids=_ids(subject_ids),
            subject_types=list(subject_types) if subject_types is not None else None,
            hidden=hidden,
            updated_after=updated_after,
        ),
    )


def study_material(material_id: int) -> Resource[StudyMaterial]:
    return Resource("GET", f"/study_materials/{material_id}", StudyMaterial)


def _study_material_body(
    meaning_note: str | None,
    reading_note: str | None,
    meaning_synonyms: list[str] | None,
) -> dict[str, Any]:
    return {
        k: v
        for k, v in {
            "meaning_note": meaning_note,
            "reading_note": reading_note,
            "meaning_synonyms": meaning_synonyms,
        }.items()
        if v is not None
    }


def create_study_material(
    subject_id: int,
    meaning_note: str | None = None,
    reading_note: str | None = None,
    meaning_synonyms: list[str] | None = None,
) -> Resource[StudyMaterial]:
    material = {
        "subject_id": subject_id,
        **_study_material_body(meaning_note, reading_note, meaning_synonyms),
    }
    return Resource("POST", "/study_materials", StudyMaterial, body={"study_material": material})


def update_study_material(
    material_id: int,
    meaning_note: str | None = None,
    reading_note: str | None = None,
    meaning_synonyms: list[str] | None = None,
) -> Resource[StudyMaterial]:
    material = _study_material_body(meaning_note, reading_note, meaning_synonyms)
    return Resource(
        "PUT",
        f"/study_materials/{material_id}",
        StudyMaterial,
        body={"study_material": material},
    )


# =============================================================================
# Voice actors
# =============================================================================


def voice_actors(
    ids: Iterable[int] | None = None, updated_after: datetime | None = None
) -> Resource[list[VoiceActor]]:
    return Resource(
        "GET",
        "/voice_actors",
        VoiceActor,
        collection=True,
        query=_filters(ids=_ids(ids), updated_after=updated_after),
    )


def voice_actor(actor_id: int) -> Resource[VoiceActor]:
    return Resource("GET", f"/voice_actors/{actor_id}", VoiceActor)
