"""Education track draft produced by the model for superadmin review."""

from __future__ import annotations

import re
import unicodedata
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

ANCHOR_FIELD = "slug"
MIN_MODULES = 3
MAX_MODULES = 5

ModuleType = Literal["psychology", "practicalExperiences", "microHabits", "narrative", "finalQuiz", "tool"]

_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    ascii_value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    return _SLUG_CHARS.sub("-", ascii_value.lower()).strip("-")


class DetailPoint(BaseModel):
    title: str = Field(..., min_length=1)
    details: str = Field(..., min_length=1)


class Experience(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    details: str = Field(..., min_length=1)


class QuizQuestion(BaseModel):
    question: str = Field(..., min_length=1)
    options: list[str] = Field(..., min_length=2)
    correct_answer: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def answer_is_an_option(self) -> "QuizQuestion":
        if self.correct_answer not in self.options:
            raise ValueError("correct_answer must be one of the options")
        return self


class EducationModule(BaseModel):
    type: ModuleType
    title: str = Field(..., min_length=1)
    subtitle: Optional[str] = None
    description: Optional[str] = None
    points: Optional[list[DetailPoint]] = None
    experiences: Optional[list[Experience]] = None
    habits: Optional[list[str]] = None
    questions: Optional[list[QuizQuestion]] = None
    component_name: Optional[str] = None

    @model_validator(mode="after")
    def has_content_for_type(self) -> "EducationModule":
        required = {
            "narrative": self.description,
            "psychology": self.points,
            "practicalExperiences": self.experiences,
            "microHabits": self.habits,
            "finalQuiz": self.questions,
            "tool": self.component_name,
        }[self.type]
        if not required:
            raise ValueError(f"{self.type} module has no content")
        return self


class EducationTrackDraft(BaseModel):
    title: str = Field(..., min_length=1, description="Título curto e impactante.")
    slug: str = Field(..., min_length=1, description="Slug de URL: minúsculas, números e hifens.")
    description: str = Field("", description="Descrição curta (até 2 frases) para o card da trilha.")
    icon: str = Field("BookOpen", description="Nome de um ícone lucide-react (ex: 'PiggyBank').")
    introduction: str = Field("", description="Parágrafo de introdução em markdown.")
    modules: list[EducationModule] = Field(..., min_length=1, description="3 a 5 módulos de tipos variados.")

    @field_validator("slug", mode="before")
    @classmethod
    def normalize_slug(cls, v):
        if not isinstance(v, str):
            return v
        slug = slugify(v)
        if not slug:
            raise ValueError("slug has no URL-safe characters")
        return slug

    @field_validator("modules", mode="after")
    @classmethod
    def cap_modules(cls, v: list[EducationModule]) -> list[EducationModule]:
        return v[:MAX_MODULES]
