"""
Curriculum catalog.

Static list of grades and subjects with the textbook each one opens.
Subjects without a published textbook point at the sample document.
"""

from __future__ import annotations

from shelf.config import SAMPLE_PDF_URL
from shelf.exceptions import UnknownSubjectError
from shelf.types import GradeLevel, Subject

PHYSICS_11_URL = (
    "https://raw.githubusercontent.com/mikiasendale/books/main/"
    "grade%2011-physics_fetena_net_e906.pdf"
)

CURRICULUM: tuple[GradeLevel, ...] = (
    GradeLevel(
        id="11",
        label="Grade 11",
        subjects=(
            Subject(id="phy11", name="Physics", pdf_url=PHYSICS_11_URL, start_page=7),
            Subject(id="math11", name="Mathematics", pdf_url=SAMPLE_PDF_URL),
            Subject(id="bio11", name="Biology", pdf_url=SAMPLE_PDF_URL),
            Subject(id="chem11", name="Chemistry", pdf_url=SAMPLE_PDF_URL),
            Subject(id="eng11", name="English", pdf_url=SAMPLE_PDF_URL),
        ),
    ),
    GradeLevel(
        id="12",
        label="Grade 12",
        subjects=(
            Subject(id="phy12", name="Physics", pdf_url=SAMPLE_PDF_URL),
            Subject(id="math12", name="Mathematics", pdf_url=SAMPLE_PDF_URL),
            Subject(id="bio12", name="Biology", pdf_url=SAMPLE_PDF_URL),
            Subject(id="chem12", name="Chemistry", pdf_url=SAMPLE_PDF_URL),
            Subject(id="eng12", name="English", pdf_url=SAMPLE_PDF_URL),
        ),
    ),
)


def get_grade(grade_id: str, curriculum: tuple[GradeLevel, ...] = CURRICULUM) -> GradeLevel:
    """Look up a grade by id.

    Raises:
        UnknownSubjectError: If no grade has that id.
    """
    for grade in curriculum:
        if grade.id == grade_id:
            return grade
    raise UnknownSubjectError(
        "Unknown grade",
        context={"grade": grade_id, "available": [g.id for g in curriculum]},
    )


def find_subject(
    grade_id: str,
    subject: str,
    curriculum: tuple[GradeLevel, ...] = CURRICULUM,
) -> Subject:
    """Look up a subject within a grade.

    The subject matches on id ("phy11") or, case-insensitively, on its
    name ("physics").

    Raises:
        UnknownSubjectError: If the grade or subject is not in the catalog.
    """
    grade = get_grade(grade_id, curriculum)
    wanted = subject.strip().lower()
    for candidate in grade.subjects:
        if candidate.id == wanted or candidate.name.lower() == wanted:
            return candidate
    raise UnknownSubjectError(
        "Unknown subject",
        context={
            "grade": grade_id,
            "subject": subject,
            "available": [s.id for s in grade.subjects],
        },
    )
