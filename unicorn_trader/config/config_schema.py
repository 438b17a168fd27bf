"""
Configuration schema using Pydantic for validation.
"""

from datetime import datetime, time
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


# NYSE full-day closures
DEFAULT_HOLIDAYS: Dict[str, str] = {
    # 2025
    "2025-01-01": "New Year's Day",
    "2025-01-20": "Martin Luther King Jr. Day",
    "2025-02-17": "Presidents' Day",
    "2025-04-18": "Good Friday",
    "2025-05-26": "Memorial Day",
    "2025-06-19": "Juneteenth",
    "2025-07-04": "Independence Day",
    "2025-09-01": "Labor Day",
    "2025-11-27": "Thanksgiving Day",
    "2025-12-25": "Christmas Day",
    # 2026
    "2026-01-01": "New Year's Day",
    "2026-01-19": "Martin Luther King Jr. Day",
    "2026-02-16": "Presidents' Day",
    "2026-04-03": "Good Friday",
    "2026-05-25": "Memorial Day",
    "2026-06-19": "Juneteenth",
    "2026-07-03": "Independence Day (observed)",
    "2026-09-07": "Labor Day",
    "2026-11-26": "Thanksgiving Day",
    "2026-12-25": "Christmas Day",
}


class DatabaseConfig(BaseModel):
    path: str = Field(default="data/unicorn.db", description="SQLite database file")
    busy_timeout_seconds: float = Field(default=10.0, gt=0, description="Wait for the write lock before failing")


class QuoteConfig(BaseModel):
    """Live quote provider (Finnhub) and the in-process cache in front of it"""
    provider: Literal["finnhub"] = "finnhub"
    base_url: str = "https://finnhub.io/api/v1"
    api_key: Optional[str] = Field(default=None, description="Finnhub API token")
    timeout_seconds: float = Field(default=5.0, gt=0)
    cache_ttl_seconds: int = Field(default=300, gt=0, description="Fresh-quote lifetime")


class LLMConfig(BaseModel):
    provider: Literal["openai", "anthropic"] = "openai"
    model: str = "gpt-4o-mini"
    api_key: Optional[str] = None
    temperature: float = Field(default=0.8, ge=0.0, le=1.0)
    max_tokens: int = Field(default=800, gt=0)
    timeout_seconds: float = Field(default=20.0, gt=0)
    max_retries: int = Field(default=0, ge=0, description="SDK-level retries; the engine itself never retries")


class SessionWindow(BaseModel):
    label: str
    start: str = Field(description="Session start as HH:MM in the schedule timezone")

    @field_validator('start')
    @classmethod
    def validate_start(cls, v: str) -> str:
        try:
            parsed = datetime.strptime(v.strip(), "%H:%M")
        except ValueError:
            raise ValueError(f"Invalid session start '{v}', expected HH:MM")
        # Always zero-padded: "9:30" -> "09:30"
        return f"{parsed:%H:%M}"

    @property
    def start_time(self) -> time:
        return datetime.strptime(self.start, "%H:%M").time()


class ScheduleConfig(BaseModel):
    """
    Trading slot definition.

    A slot is (calendar date in `timezone`, session label). The session is the
    last window whose start is at or before the local time of day.
    """
    timezone: str = "America/New_York"
    sessions: List[SessionWindow] = Field(default_factory=lambda: [
        SessionWindow(label="morning", start="00:00"),
        SessionWindow(label="afternoon", start="12:00"),
    ])
    holidays: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_HOLIDAYS))
    retry_failed_slots: bool = Field(default=False, description="Allow a FAILED slot to be claimed again")

    @field_validator('holidays')
    @classmethod
    def validate_holidays(cls, v: Dict[str, str]) -> Dict[str, str]:
        for day in v:
            try:
                datetime.strptime(day, "%Y-%m-%d")
            except ValueError:
                raise ValueError(f"Invalid holiday date '{day}', expected YYYY-MM-DD")
        return v

    @field_validator('sessions')
    @classmethod
    def validate_sessions(cls, v: List[SessionWindow]) -> List[SessionWindow]:
        if not v:
            raise ValueError("At least one session window is required")
        labels = [s.label for s in v]
        if len(set(labels)) != len(labels):
            raise ValueError(f"Duplicate session labels: {labels}")
        return sorted(v, key=lambda s: s.start_time)


class BatchConfig(BaseModel):
    wall_clock_budget_seconds: float = Field(default=55.0, gt=0, description="Overall budget for one batch run")
    inter_persona_delay_seconds: float = Field(default=0.5, ge=0, description="Pause between personas (rate limits)")


class AuditConfig(BaseModel):
    enabled: bool = True
    queue_size: int = Field(default=256, gt=0)


class ApiConfig(BaseModel):
    cron_secret: Optional[str] = Field(default=None, description="Bearer token expected by the cron endpoint")
    sso_verify_url: str = "https://www.manaboodle.com/api/sso/verify"
    sso_cookie_name: str = "manaboodle_sso_token"
    sso_timeout_seconds: float = Field(default=5.0, gt=0)


class Config(BaseModel):
    """Main configuration"""
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    quotes: QuoteConfig = Field(default_factory=QuoteConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    starting_balance: float = Field(default=1_000_000.0, gt=0, description="MTK granted to new accounts")
