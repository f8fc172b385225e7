"""
Data models for LearnPath.

Two families live here:

- Plain dataclasses for the records the store hands back (Course, Milestone,
  ProgressRecord, Certificate) and for caller-built requests.
- Pydantic models for the loosely-typed JSON that comes back from the LLM.
  Every model payload is validated against these at the trust boundary
  before anything is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ─── Enumerations ────────────────────────────────────────────────────────────

class MilestoneStatus(str, Enum):
    """Per-user state of one milestone."""
    LOCKED    = "locked"     # previous milestone not yet passed
    ACTIVE    = "active"     # the frontier – quiz may be taken
    COMPLETED = "completed"  # quiz passed; read-only review


class CourseStatus(str, Enum):
    ACTIVE    = "active"
    COMPLETED = "completed"


class RoadmapSource(str, Enum):
    """Where a course's roadmap came from – lets operators spot degraded output."""
    LLM       = "llm"        # parsed and validated model output
    SYNTHETIC = "synthetic"  # model answered but output was unusable
    MOCK      = "mock"       # no model configured


# ─── Onboarding vocabulary ───────────────────────────────────────────────────

DURATION_OPTIONS:    list[str] = ["1 week", "2 weeks", "4 weeks"]
PREFERENCE_OPTIONS:  list[str] = ["Videos", "Notes", "Interactive"]
SKILL_LEVEL_OPTIONS: list[str] = ["Beginner", "Intermediate", "Advanced"]
GOAL_OPTIONS:        list[str] = ["Exam", "Project", "Placement", "Other"]


# ─── Milestone-count policy ──────────────────────────────────────────────────

MILESTONES_BY_DURATION: dict[str, int] = {
    "1 week":  3,
    "2 weeks": 4,
    "4 weeks": 5,
}
DEFAULT_MILESTONE_COUNT = 4


def normalise_duration(duration: str) -> str:
    return " ".join((duration or "").lower().split())


def milestone_count_for(duration: str) -> int:
    """Return the milestone count for *duration*, falling back to the default."""
    return MILESTONES_BY_DURATION.get(normalise_duration(duration), DEFAULT_MILESTONE_COUNT)


# ─── Caller context & requests ───────────────────────────────────────────────

@dataclass(frozen=True)
class UserContext:
    """The signed-in learner, passed explicitly into every operation."""
    user_id: int
    name:    str


@dataclass
class RoadmapRequest:
    """Answers collected by the onboarding flow."""
    topic:       str     # e.g. "React Development"
    duration:    str     # e.g. "2 weeks"
    skill_level: str     # Beginner | Intermediate | Advanced
    preference:  str     # Videos | Notes | Interactive
    goal:        str     # Exam | Project | Placement | Other


# ─── LLM payload schemas (trust boundary) ────────────────────────────────────

class YouTubeVideo(BaseModel):
    title:   str
    channel: str = ""
    url:     str


class AdditionalResource(BaseModel):
    title: str
    url:   str
    type:  str = "article"


def _linkable(items: Any, defaults: dict[str, str]) -> list[Any]:
    """
    Keep the resource entries that carry a usable URL.

    A missing title falls back to the URL; missing or null optional fields
    take *defaults*.  Entries without a URL are dropped rather than failing
    the whole roadmap.
    """
    if not isinstance(items, list):
        return []
    kept: list[Any] = []
    for item in items:
        if isinstance(item, BaseModel):
            kept.append(item)
            continue
        if not isinstance(item, dict):
            continue
        url = item.get("url")
        if not isinstance(url, str) or not url.strip():
            continue
        title = item.get("title")
        entry = {
            "url":   url.strip(),
            "title": title.strip() if isinstance(title, str) and title.strip() else url.strip(),
        }
        for key, default in defaults.items():
            value = item.get(key)
            entry[key] = value if isinstance(value, str) and value else default
        kept.append(entry)
    return kept


class MilestoneResources(BaseModel):
    """Study material for one milestone; every part is optional."""
    website:    Optional[str]            = None
    youtube:    list[YouTubeVideo]       = Field(default_factory=list)
    additional: list[AdditionalResource] = Field(default_factory=list)

    @field_validator("website", mode="before")
    @classmethod
    def _website_or_none(cls, value: Any) -> Optional[str]:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    @field_validator("youtube", mode="before")
    @classmethod
    def _usable_videos(cls, value: Any) -> list[Any]:
        return _linkable(value, {"channel": ""})

    @field_validator("additional", mode="before")
    @classmethod
    def _usable_links(cls, value: Any) -> list[Any]:
        return _linkable(value, {"type": "article"})


class QuizItem(BaseModel):
    """One multiple-choice question. ``correct`` is the wire name of the answer key."""
    model_config = ConfigDict(populate_by_name=True)

    question:      str       = Field(min_length=1)
    options:       list[str] = Field(min_length=2)
    correct_index: int       = Field(alias="correct", ge=0)

    @model_validator(mode="after")
    def _answer_key_in_range(self) -> "QuizItem":
        if self.correct_index >= len(self.options):
            raise ValueError(
                f"correct index {self.correct_index} out of range for "
                f"{len(self.options)} options"
            )
        return self


class MilestoneDraft(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title:     str                = Field(min_length=1)
    order:     Optional[int]      = None
    resources: MilestoneResources = Field(default_factory=MilestoneResources)
    quiz:      list[QuizItem]     = Field(min_length=1)


class RoadmapDocument(BaseModel):
    """Validated roadmap as requested from the model."""
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    course_name: str                  = Field(alias="courseName", min_length=1)
    duration:    str                  = ""
    milestones:  list[MilestoneDraft] = Field(min_length=1)

    def ordered_milestones(self) -> list[tuple[int, MilestoneDraft]]:
        """
        Pair each milestone with its 1-based order index.

        The model's ``order`` values are honoured only when they form a
        permutation of 1..N; otherwise array position wins.
        """
        n = len(self.milestones)
        orders = [m.order for m in self.milestones]
        if None not in orders and sorted(orders) == list(range(1, n + 1)):
            return sorted(zip(orders, self.milestones), key=lambda pair: pair[0])
        return [(i + 1, m) for i, m in enumerate(self.milestones)]


class SuggestionList(BaseModel):
    title: str
    items: list[str] = Field(default_factory=list)


class NextStep(BaseModel):
    name:        str
    description: str = ""
    impact:      str = ""


class NextStepList(BaseModel):
    title: str
    items: list[NextStep] = Field(default_factory=list)


class SuggestionDocument(BaseModel):
    """Career / next-course suggestions for a completed course."""
    model_config = ConfigDict(populate_by_name=True)

    current_opportunities: SuggestionList = Field(alias="currentOpportunities")
    next_steps:            NextStepList   = Field(alias="nextSteps")
    career_paths:          SuggestionList = Field(alias="careerPaths")


# ─── Stored records ──────────────────────────────────────────────────────────

@dataclass
class Course:
    id:             int
    user_id:        int
    name:           str
    duration:       str
    status:         CourseStatus
    roadmap:        dict                 # RoadmapDocument dumped by alias
    roadmap_source: RoadmapSource = RoadmapSource.LLM
    created_at:     str = ""


@dataclass
class Milestone:
    id:          int
    course_id:   int
    title:       str
    order_index: int                     # 1-based, unique per course
    resources:   MilestoneResources
    quiz:        list[QuizItem] = field(default_factory=list)


@dataclass
class ProgressRecord:
    user_id:      int
    course_id:    int
    milestone_id: int
    status:       MilestoneStatus
    quiz_score:   Optional[int] = None   # score of the passing attempt, 0–100


@dataclass
class CertificateData:
    recipient_name:  str
    course_name:     str
    duration:        str
    completion_date: str                 # ISO-8601
    issuer:          str
    certificate_id:  str


@dataclass
class Certificate:
    id:               str                  # certificate_id, e.g. "CERT-1A2B3C4D"
    user_id:          int
    course_id:        int
    certificate_data: CertificateData
    created_at:       str = ""
