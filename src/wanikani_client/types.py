"""
Pydantic models for WaniKani API v2 payloads.

The API wraps every resource in an envelope:

    {"id": 440, "object": "kanji", "url": "...", "data_updated_at": "...",
     "data": {"level": 1, "characters": "一", ...}}

and collections in a paginated envelope:

    {"object": "collection", "pages": {"next_url": "...", "per_page": 1000},
     "total_count": 2027, "data": [<resource>, ...]}

Resource models flatten the single-resource envelope, so a Kanji has
`id`, `level` and `characters` as sibling fields. The flattening also
accepts already-flat input, which is the shape the subject cache writes
to disk.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class WaniKaniModel(BaseModel):
    """Immutable base for all decoded payloads."""

    model_config = ConfigDict(frozen=True)


class ResourceModel(WaniKaniModel):
    """Model for a single API resource, flattening its `data` envelope."""

    @model_validator(mode="before")
    @classmethod
    def _flatten_envelope(cls, value: Any) -> Any:
        if isinstance(value, dict) and isinstance(value.get("data"), dict):
            envelope = {k: v for k, v in value.items() if k != "data"}
            return {**value["data"], **envelope}
        return value


# =============================================================================
# Pagination
# =============================================================================


class Pages(WaniKaniModel):
    """The `pages` object of a collection response."""

    per_page: int | None = None
    next_url: str | None = None
    previous_url: str | None = None


class Collection(WaniKaniModel):
    """
    Paginated collection envelope.

    Items are kept as raw dicts here; the client validates them against the
    resource's content type so one envelope model serves every collection.
    """

    object: str = "collection"
    url: str | None = None
    pages: Pages = Field(default_factory=Pages)
    total_count: int | None = None
    data_updated_at: datetime | None = None
    data: list[dict[str, Any]]


# =============================================================================
# Subjects
# =============================================================================


class Meaning(WaniKaniModel):
    meaning: str
    primary: bool = False
    accepted_answer: bool = True


class AuxiliaryMeaning(WaniKaniModel):
    meaning: str
    type: str  # "whitelist" or "blacklist"


class CharacterImageMetadata(WaniKaniModel):
    """Metadata for a radical image; SVGs carry inline_styles, PNGs the rest."""

    inline_styles: bool | None = None
    color: str | None = None
    dimensions: str | None = None
    style_name: str | None = None


class CharacterImage(WaniKaniModel):
    url: str
    content_type: str
    metadata: CharacterImageMetadata = Field(default_factory=CharacterImageMetadata)


class ReadingType(str, Enum):
    ONYOMI = "onyomi"
    KUNYOMI = "kunyomi"
    NANORI = "nanori"


class KanjiReading(WaniKaniModel):
    reading: str
    primary: bool = False
    accepted_answer: bool = True
    type: ReadingType


class VocabularyReading(WaniKaniModel):
    reading: str
    primary: bool = False
    accepted_answer: bool = True


class ContextSentence(WaniKaniModel):
    en: str
    ja: str


class PronunciationAudioMetadata(WaniKaniModel):
    gender: str | None = None
    source_id: int | None = None
    pronunciation: str | None = None
    voice_actor_id: int | None = None
    voice_actor_name: str | None = None
    voice_description: str | None = None


class PronunciationAudio(WaniKaniModel):
    url: str
    content_type: str
    metadata: PronunciationAudioMetadata = Field(
        default_factory=PronunciationAudioMetadata
    )


class SubjectBase(ResourceModel):
    """Attributes shared by every subject kind."""

    id: int
    url: str | None = None
    data_updated_at: datetime | None = None
    level: int = Field(ge=1, le=60)
    slug: str
    created_at: datetime
    hidden_at: datetime | None = None
    document_url: str | None = None
    characters: str | None = None
    meanings: list[Meaning] = Field(default_factory=list)
    auxiliary_meanings: list[AuxiliaryMeaning] = Field(default_factory=list)
    meaning_mnemonic: str = ""
    lesson_position: int = 0
    spaced_repetition_system_id: int | None = None

    @property
    def primary_meaning(self) -> str | None:
        for meaning in self.meanings:
            if meaning.primary:
                return meaning.meaning
        return self.meanings[0].meaning if self.meanings else None


class Radical(SubjectBase):
    """A radical; `characters` is None when only images exist."""

    object: Literal["radical"] = "radical"
    character_images: list[CharacterImage] = Field(default_factory=list)
    amalgamation_subject_ids: list[int] = Field(default_factory=list)


class Kanji(SubjectBase):
    object: Literal["kanji"] = "kanji"
    characters: str
    readings: list[KanjiReading] = Field(default_factory=list)
    reading_mnemonic: str = ""
    meaning_hint: str | None = None
    reading_hint: str | None = None
    component_subject_ids: list[int] = Field(default_factory=list)
    amalgamation_subject_ids: list[int] = Field(default_factory=list)
    visually_similar_subject_ids: list[int] = Field(default_factory=list)

    def readings_of_type(self, reading_type: ReadingType) -> list[KanjiReading]:
        return [r for r in self.readings if r.type == reading_type]


class Vocabulary(SubjectBase):
    object: Literal["vocabulary"] = "vocabulary"
    characters: str
    readings: list[VocabularyReading] = Field(default_factory=list)
    reading_mnemonic: str = ""
    parts_of_speech: list[str] = Field(default_factory=list)
    context_sentences: list[ContextSentence] = Field(default_factory=list)
    pronunciation_audios: list[PronunciationAudio] = Field(default_factory=list)
    component_subject_ids: list[int] = Field(default_factory=list)


class KanaVocabulary(SubjectBase):
    """Vocabulary written only in kana; it has no readings or components."""

    object: Literal["kana_vocabulary"] = "kana_vocabulary"
    characters: str
    parts_of_speech: list[str] = Field(default_factory=list)
    context_sentences: list[ContextSentence] = Field(default_factory=list)
    pronunciation_audios: list[PronunciationAudio] = Field(default_factory=list)


Subject = Annotated[
    Union[Radical, Kanji, Vocabulary, KanaVocabulary],
    Field(discriminator="object"),
]
"""Any subject, discriminated by the API's `object` field."""

SubjectId = int


# =============================================================================
# User
# =============================================================================


class LessonsPresentationOrder(str, Enum):
    ASCENDING_LEVEL_THEN_SUBJECT = "ascending_level_then_subject"
    SHUFFLED = "shuffled"
    ASCENDING_LEVEL_THEN_SHUFFLED = "ascending_level_then_shuffled"


class ReviewsPresentationOrder(str, Enum):
    SHUFFLED = "shuffled"
    LOWER_LEVELS_FIRST = "lower_levels_first"


class Preferences(WaniKaniModel):
    default_voice_actor_id: int | None = None
    extra_study_autoplay_audio: bool = False
    lessons_autoplay_audio: bool = False
    lessons_batch_size: int = 5
    lessons_presentation_order: LessonsPresentationOrder = (
        LessonsPresentationOrder.ASCENDING_LEVEL_THEN_SUBJECT
    )
    reviews_autoplay_audio: bool = False
    reviews_display_srs_indicator: bool = True
    reviews_presentation_order: ReviewsPresentationOrder = (
        ReviewsPresentationOrder.SHUFFLED
    )


class Subscription(WaniKaniModel):
    active: bool = False
    type: str = "unknown"  # "free", "recurring", "lifetime", "unknown"
    max_level_granted: int = 3
    period_ends_at: datetime | None = None


class User(ResourceModel):
    """Profile of the authenticated user, as reported by GET /user."""

    id: int | str
    username: str
    level: int
    profile_url: str | None = None
    started_at: datetime | None = None
    current_vacation_started_at: datetime | None = None
    subscription: Subscription = Field(default_factory=Subscription)
    preferences: Preferences = Field(default_factory=Preferences)


# =============================================================================
# Summary and study progress
# =============================================================================


class SummaryBucket(WaniKaniModel):
    available_at: datetime
    subject_ids: list[int] = Field(default_factory=list)


class Summary(ResourceModel):
    """Lessons and reviews report from GET /summary."""

    lessons: list[SummaryBucket] = Field(default_factory=list)
    reviews: list[SummaryBucket] = Field(default_factory=list)
    next_reviews_at: datetime | None = None

    def available_lesson_ids(self, now: datetime) -> list[int]:
        return [i for b in self.lessons if b.available_at <= now for i in b.subject_ids]

    def available_review_ids(self, now: datetime) -> list[int]:
        return [i for b in self.reviews if b.available_at <= now for i in b.subject_ids]


class Assignment(ResourceModel):
    id: int
    subject_id: int
    subject_type: str
    srs_stage: int = 0
    created_at: datetime | None = None
    unlocked_at: datetime | None = None
    started_at: datetime | None = None
    passed_at: datetime | None = None
    burned_at: datetime | None = None
    available_at: datetime | None = None
    resurrected_at: datetime | None = None
    hidden: bool = False


class LevelProgression(ResourceModel):
    id: int
    level: int
    created_at: datetime | None = None
    unlocked_at: datetime | None = None
    started_at: datetime | None = None
    passed_at: datetime | None = None
    completed_at: datetime | None = None
    abandoned_at: datetime | None = None


class Reset(ResourceModel):
    id: int
    original_level: int
    target_level: int
    created_at: datetime | None = None
    confirmed_at: datetime | None = None


class Review(ResourceModel):
    id: int
    assignment_id: int
    subject_id: int
    spaced_repetition_system_id: int | None = None
    starting_srs_stage: int
    ending_srs_stage: int
    incorrect_meaning_answers: int = 0
    incorrect_reading_answers: int = 0
    created_at: datetime | None = None


class ReviewStatistic(ResourceModel):
    id: int
    subject_id: int
    subject_type: str
    meaning_correct: int = 0
    meaning_incorrect: int = 0
    meaning_max_streak: int = 0
    meaning_current_streak: int = 0
    reading_correct: int = 0
    reading_incorrect: int = 0
    reading_max_streak: int = 0
    reading_current_streak: int = 0
    percentage_correct: int = 0
    hidden: bool = False
    created_at: datetime | None = None


class SrsStage(WaniKaniModel):
    position: int
    interval: int | None = None
    interval_unit: str | None = None


class SpacedRepetitionSystem(ResourceModel):
    id: int
    name: str
    description: str = ""
    unlocking_stage_position: int = 0
    starting_stage_position: int = 1
    passing_stage_position: int = 5
    burning_stage_position: int = 9
    stages: list[SrsStage] = Field(default_factory=list)


class StudyMaterial(ResourceModel):
    id: int
    subject_id: int
    subject_type: str
    meaning_note: str | None = None
    reading_note: str | None = None
    meaning_synonyms: list[str] = Field(default_factory=list)
    hidden: bool = False
    created_at: datetime | None = None


class VoiceActor(ResourceModel):
    id: int
    name: str
    gender: str
    description: str = ""
