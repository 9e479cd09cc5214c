"""Tests for subject grouping and level progress."""

from payloads import assignment, kana_vocabulary, kanji, radical, vocabulary
from wanikani_client.subjects import LevelProgress, SubjectGroups
from wanikani_client.types import Assignment, KanaVocabulary, Kanji, Radical, Vocabulary


def sample_subjects():
    return [
        Vocabulary.model_validate(vocabulary(2467)),
        Kanji.model_validate(kanji(440)),
        Radical.model_validate(radical(1)),
        KanaVocabulary.model_validate(kana_vocabulary(9210)),
        Radical.model_validate(radical(2, characters=None)),
    ]


class TestSubjectGroups:
    """Tests for SubjectGroups."""

    def test_groups_by_kind(self):
        groups = SubjectGroups.from_subjects(sample_subjects())

        assert [s.id for s in groups.radicals] == [1, 2]
        assert [s.id for s in groups.kanji] == [440]
        assert [s.id for s in groups.vocabulary] == [2467]
        assert [s.id for s in groups.kana_vocabulary] == [9210]

    def test_iterates_radicals_kanji_vocabulary(self):
        """Iteration order is by kind, then input order."""
        groups = SubjectGroups.from_subjects(sample_subjects())

        assert groups.ids == [1, 2, 440, 2467, 9210]
        assert [s.id for s in groups] == groups.ids

    def test_count(self):
        groups = SubjectGroups.from_subjects(sample_subjects())

        assert groups.count == 5
        assert len(groups) == 5

    def test_empty(self):
        groups = SubjectGroups.from_subjects([])

        assert groups.count == 0
        assert list(groups) == []


class TestLevelProgress:
    """Tests for LevelProgress."""

    def test_counts_passed(self):
        assignments = [
            Assignment.model_validate(assignment(1, 1, "radical", passed=True)),
            Assignment.model_validate(assignment(2, 2, "radical", passed=False)),
        ] + [
            Assignment.model_validate(assignment(10 + i, 100 + i, "kanji", passed=i < 4))
            for i in range(10)
        ]

        progress = LevelProgress.from_assignments(assignments)

        assert (progress.radicals.passed, progress.radicals.total) == (1, 2)
        assert (progress.kanji.passed, progress.kanji.total) == (4, 9)
        assert progress.kanji.remaining == 5

    def test_kanji_capped_at_level_up_threshold(self):
        assignments = (
            Assignment.model_validate(assignment(i, 100 + i, "kanji", passed=True))
            for i in range(10)
        )

        progress = LevelProgress.from_assignments(assignments)

        assert progress.kanji.passed == 9
        assert progress.kanji.remaining == 0

    def test_vocabulary_ignored(self):
        progress = LevelProgress.from_assignments(
            [Assignment.model_validate(assignment(1, 2467, "vocabulary", passed=True))]
        )

        assert progress.radicals.total == 0
        assert progress.kanji.total == 0
