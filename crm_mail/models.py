"""Data models for the mail processor run lifecycle."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ProcessorStatus(str, Enum):
    """Where a processor instance is in its run lifecycle."""

    IDLE = "idle"
    CONNECTED = "connected"
    SCANNING = "scanning"
    EXPUNGING = "expunging"
    DISCONNECTED = "disconnected"


class RunSummary(BaseModel):
    """Counters reported once at the end of a run."""

    archived: int = Field(default=0, description="Messages handled and marked seen")
    discarded: int = Field(default=0, description="Messages rejected or failed, flagged deleted")

    @property
    def processed(self) -> int:
        return self.archived + self.discarded
