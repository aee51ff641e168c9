"""
Scoring Engine Schemas.

Risk scores for business proposals and aggregate portfolio metrics.
"""

from datetime import datetime
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, Field


class RiskLevel(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"


class RiskFactor(BaseModel):
    score: int = Field(..., ge=0, le=100)
    weight: float
    details: dict = Field(default_factory=dict)


class RiskScore(BaseModel):
    """Output of the pure risk scoring function."""

    score: int = Field(..., ge=0, le=100)
    level: RiskLevel
    factors: dict[str, RiskFactor]
    recommendations: list[str]


class Investment(BaseModel):
    """One holding inside ``portfolios/{investorId}.investments``."""

    business_idea_id: Optional[str] = None
    category: str = "Unknown"
    amount: float = 0.0
    current_value: Optional[float] = None
    equity: float = 0.0
    status: str = "active"

    @classmethod
    def from_record(cls, record: dict) -> "Investment":
        return cls(
            business_idea_id=record.get("businessIdeaId"),
            category=record.get("category") or "Unknown",
            amount=float(record.get("amount") or 0),
            current_value=record.get("currentValue"),
            equity=float(record.get("equity") or 0),
            status=record.get("status") or "active",
        )

    @property
    def value(self) -> float:
        return self.current_value if self.current_value is not None else self.amount


class PortfolioMetrics(BaseModel):
    total_invested: float = 0.0
    total_value: float = 0.0
    roi: float = 0.0
    investment_count: int = 0
    performance_by_category: dict[str, float] = Field(default_factory=dict)
    best_category: Optional[str] = None
    worst_category: Optional[str] = None
    diversification_score: float = 0.0
    category_count: int = 0
    diversification_note: str = ""

    def to_record(self) -> dict:
        """Stored shape on the portfolio document."""
        return {
            "totalInvested": self.total_invested,
            "totalValue": self.total_value,
            "roi": self.roi,
            "performance": {
                "byCategory": dict(self.performance_by_category),
                "bestPerforming": self.best_category,
                "worstPerforming": self.worst_category,
            },
            "diversification": {
                "score": self.diversification_score,
                "categories": self.category_count,
                "recommendation": self.diversification_note,
            },
        }


class RiskAssessmentRecord(BaseModel):
    """A persisted RiskAssessment. Several may exist per proposal; newest wins."""

    id: str
    business_idea_id: str
    target_user_id: Optional[str] = None
    assessor_id: str
    risk_score: int
    risk_level: RiskLevel
    factors: dict[str, RiskFactor] = Field(default_factory=dict)
    recommendations: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc) -> "RiskAssessmentRecord":
        return cls(
            id=doc.id,
            business_idea_id=doc.get("businessIdeaId"),
            target_user_id=doc.get("targetUserId"),
            assessor_id=doc.get("assessorId"),
            risk_score=doc.get("riskScore"),
            risk_level=doc.get("riskLevel"),
            factors=doc.get("factors") or {},
            recommendations=doc.get("recommendations") or [],
            created_at=doc.created_at,
        )
