"""
Tests for the curriculum catalog.
"""

from __future__ import annotations

import pytest

from shelf.config import SAMPLE_PDF_URL
from shelf.exceptions import UnknownSubjectError
from shelf.library.catalog import CURRICULUM, PHYSICS_11_URL, find_subject, get_grade


class TestCatalog:
    """Catalog contents and lookups."""

    def test_grades_and_subjects(self) -> None:
        assert [g.id for g in CURRICULUM] == ["11", "12"]
        for grade in CURRICULUM:
            assert len(grade.subjects) == 5

    def test_grade_11_physics_has_real_textbook(self) -> None:
        physics = find_subject("11", "phy11")

        assert physics.pdf_url == PHYSICS_11_URL
        assert physics.start_page == 7

    def test_other_subjects_use_sample(self) -> None:
        assert find_subject("12", "physics").pdf_url == SAMPLE_PDF_URL
        assert find_subject("11", "math11").start_page is None

    def test_lookup_by_name_is_case_insensitive(self) -> None:
        assert find_subject("11", "  Chemistry ").id == "chem11"

    def test_unknown_grade(self) -> None:
        with pytest.raises(UnknownSubjectError) as exc_info:
            get_grade("9")

        assert exc_info.value.context["available"] == ["11", "12"]

    def test_unknown_subject(self) -> None:
        with pytest.raises(UnknownSubjectError) as exc_info:
            find_subject("11", "history")

        assert "Unknown subject" in str(exc_info.value)
