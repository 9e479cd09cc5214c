"""Grouping and progress helpers over subject and assignment lists."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from wanikani_client.types import (
    Assignment,
    KanaVocabulary,
    Kanji,
    Radical,
    Subject,
    SubjectId,
    Vocabulary,
)

# Share of a level's kanji that must be passed to level up
KANJI_PASS_RATIO = 0.9


@dataclass
class SubjectGroups:
    """
    Subjects split by kind.

    Iterating yields radicals, then kanji, then vocabulary (kana-only
    vocabulary last), each group in input order.

    Example:
        groups = SubjectGroups.from_subjects(cache.subjects())
        print(len(groups.kanji), groups.count)
    """

    radicals: list[Radical] = field(default_factory=list)
    kanji: list[Kanji] = field(default_factory=list)
    vocabulary: list[Vocabulary] = field(default_factory=list)
    kana_vocabulary: list[KanaVocabulary] = field(default_factory=list)

    @classmethod
    def from_subjects(cls, subjects: Iterable[Subject]) -> "SubjectGroups":
        groups = cls()
        for subject in subjects:
            if isinstance(subject, Radical):
                groups.radicals.append(subject)
            elif isinstance(subject, Kanji):
                groups.kanji.append(subject)
            elif isinstance(subject, Vocabulary):
                groups.vocabulary.append(subject)
            else:
                groups.kana_vocabulary.append(subject)
        return groups

    def __iter__(self) -> Iterator[Subject]:
        yield from self.radicals
        yield from self.kanji
        yield from self.vocabulary
        yield from self.kana_vocabulary

    def __len__(self) -> int:
        return self.count

    @property
    def ids(self) -> list[SubjectId]:
        return [subject.id for subject in self]

    @property
    def count(self) -> int:
        return (
            len(self.radicals)
            + len(self.kanji)
            + len(self.vocabulary)
            + len(self.kana_vocabulary)
        )


@dataclass(frozen=True)
class Progress:
    passed: int
    total: int

    @property
    def remaining(self) -> int:
        return self.total - self.passed


@dataclass(frozen=True)
class LevelProgress:
    """Radical and kanji progress towards the next level."""

    radicals: Progress
    kanji: Progress

    @classmethod
    def from_assignments(cls, assignments: Iterable[Assignment]) -> "LevelProgress":
        """
        Count passed radical and kanji assignments.

        Kanji progress is capped at the number needed to level up, so a
        level counts as done once that many kanji are passed.
        """
        assignments = list(assignments)
        radicals = [a for a in assignments if a.subject_type == "radical"]
        kanji = [a for a in assignments if a.subject_type == "kanji"]
        passed_radicals = sum(1 for a in radicals if a.passed_at is not None)
        passed_kanji = sum(1 for a in kanji if a.passed_at is not None)
        kanji_needed = int(len(kanji) * KANJI_PASS_RATIO)
        return cls(
            radicals=Progress(min(passed_radicals, len(radicals)), len(radicals)),
            kanji=Progress(min(passed_kanji, kanji_needed), kanji_needed),
        )
