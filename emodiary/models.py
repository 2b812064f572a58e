from datetime import date as CalendarDate, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_SUMMARY_LENGTH = 1000
KEYWORD_COUNT = 2
PRIORITIES = ("high", "medium", "low")
DEFAULT_PRIORITY = "medium"


# --- Inbound ---

class EntryDraft(BaseModel):
    """What the user submits for a day: the text plus the check-in metrics."""
    content: str = Field(..., max_length=5000)
    mood_rating: Optional[int] = Field(None, ge=1, le=10)
    stress_level: Optional[int] = Field(None, ge=1, le=10)
    sleep_hours: Optional[int] = Field(None, ge=1, le=16)
    main_worry: Optional[str] = Field(None, max_length=255)


# --- Stored ---

class JournalEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    user_id: int
    content: str
    created_at: datetime

    mood_rating: Optional[int] = None
    stress_level: Optional[int] = None
    sleep_hours: Optional[int] = None
    main_worry: Optional[str] = None

    detected_emotion: Optional[str] = None
    intensity: Optional[int] = None
    summary: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)

    def to_response(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "content": self.content,
            "createdAt": self.created_at.isoformat(),
            "moodRating": self.mood_rating,
            "stressLevel": self.stress_level,
            "sleepHours": self.sleep_hours,
            "mainWorry": self.main_worry,
            "detectedEmotion": self.detected_emotion,
            "intensity": self.intensity,
            "keywords": list(self.keywords),
            "summary": self.summary,
        }


# --- Provider results ---

class AnalysisResult(BaseModel):
    emotion: str
    intensity: int
    summary: str = ""
    keywords: List[str] = Field(default_factory=list)

    @field_validator("emotion")
    @classmethod
    def _emotion_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("emotion is blank")
        return v

    @field_validator("intensity")
    @classmethod
    def _clamp_intensity(cls, v: int) -> int:
        return max(1, min(10, v))

    @field_validator("summary", mode="before")
    @classmethod
    def _bound_summary(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v).strip()[:MAX_SUMMARY_LENGTH]

    @field_validator("keywords", mode="before")
    @classmethod
    def _two_keywords(cls, v: Any) -> List[str]:
        if not v:
            return []
        if isinstance(v, str):
            v = v.split(",")
        elif not isinstance(v, (list, tuple)):
            raise ValueError("keywords must be a list")
        words = [str(k).strip() for k in v if k is not None and str(k).strip()]
        return words[:KEYWORD_COUNT]


class RecommendationSuggestion(BaseModel):
    """One raw item of the provider's `recommendations` array."""
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[str] = None


class RecommendationItem(BaseModel):
    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    priority: str = DEFAULT_PRIORITY


# --- Weekly stats ---

class StressHistoryItem(BaseModel):
    date: CalendarDate
    value: float


class SleepStressDataItem(BaseModel):
    date: CalendarDate
    sleep: float
    stress: float


class WorryDistributionItem(BaseModel):
    category: str
    count: int


class WeeklyStats(BaseModel):
    average_stress: float
    previous_week_stress: float
    average_sleep: float
    main_worry: str
    stress_history: List[StressHistoryItem]
    # Sleep vs stress correlation chart
    sleep_stress_data: List[SleepStressDataItem]
    # Worry category chart
    worries_distribution: List[WorryDistributionItem]
