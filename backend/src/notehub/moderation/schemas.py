"""Pydantic schemas for moderation endpoints"""

from typing import Optional

from pydantic import BaseModel, Field


class CuratedFields(BaseModel):
    """Admin-corrected metadata submitted with an approval or edit.

    Completeness is checked by the curation rules, not here, so a single
    response can list every missing field at once.
    """
    title: Optional[str] = Field(None, max_length=300)
    subject: Optional[str] = Field(None, max_length=200)
    course: Optional[str] = Field(None, max_length=200)
    branch: Optional[str] = Field(None, max_length=100)
    semester: Optional[str] = Field(None, max_length=20)
    exam_type: Optional[str] = None
    academic_year: Optional[str] = Field(None, max_length=20)
    semester_type: Optional[str] = None
    expected_version: Optional[int] = Field(None, ge=1)

    def curated(self, only_set: bool = False) -> dict:
        return self.model_dump(exclude={"expected_version"}, exclude_unset=only_set)
