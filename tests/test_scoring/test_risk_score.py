"""
Risk Scoring Tests.

score() is pure: identical inputs give identical output, and every factor
and the final score stay within 0-100.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from investbridge.scoring.risk import (
    LEVEL_BANDS,
    WEIGHTS,
    level_for,
    owner_experience,
    parse_budget,
    parse_years,
    score,
    technology_factor,
)
from investbridge.scoring.schemas import RiskLevel


def _proposal(**overrides) -> dict:
    proposal = {
        "category": "Technology",
        "budget": "₹800,00,000",
        "description": "An AI assistant for small retailers",
        "teamSize": 1,
    }
    proposal.update(overrides)
    return proposal


class TestReferenceScenario:
    def test_technology_ai_large_budget(self):
        result = score(_proposal(), {"profile": {"experience": "1 year"}})

        assert result.factors["market"].score == 75
        assert result.factors["team"].score == 50
        assert result.factors["financial"].score == 40
        assert result.factors["technology"].score == 60
        assert result.factors["competition"].score == 70
        # 15 + 12.5 + 12 + 9 + 7 = 55.5, rounded half up
        assert result.score == 56
        assert result.level == RiskLevel.HIGH
        assert result.recommendations == ["High risk. Consider staged funding tied to milestones."]

    def test_deterministic(self):
        owner = {"experienceYears": 4}
        assert score(_proposal(), owner) == score(_proposal(), owner)


class TestFactors:
    def test_weights_sum_to_one(self):
        assert sum(WEIGHTS.values()) == 1

    def test_experienced_team(self):
        result = score(_proposal(teamSize=4), {"profile": {"experienceYears": 8}})
        assert result.factors["team"].score == 85

    def test_two_person_team_mid_experience(self):
        result = score(_proposal(teamSize=2), {"experience": "3 years"})
        assert result.factors["team"].score == 70

    @pytest.mark.parametrize(
        "budget, expected",
        [
            ("₹4,00,000", 85),
            ("₹7,50,000", 75),
            ("₹20,00,000", 60),
            ("₹1,00,00,000", 40),
            (None, 85),
        ],
    )
    def test_financial_bands(self, budget, expected):
        assert score(_proposal(budget=budget)).factors["financial"].score == expected

    def test_crowded_market(self):
        result = score(_proposal(category="E-commerce"))
        assert result.factors["competition"].score == 45
        assert result.factors["market"].score == 50

    @pytest.mark.parametrize("text", ["Uses blockchain escrow", "IoT sensors for farms", "machine   learning"])
    def test_complex_technology(self, text):
        assert technology_factor({"description": text})[0] == 60

    @pytest.mark.parametrize("text", ["A fair trade cafe", "Daily grain market", "Bakery chain"])
    def test_keywords_need_whole_words(self, text):
        assert technology_factor({"description": text})[0] == 75


class TestHelpers:
    def test_parse_budget_digits(self):
        assert parse_budget("₹800,00,000") == 80000000
        assert parse_budget(2500000) == 2500000
        assert parse_budget("not disclosed") == 0

    def test_parse_years(self):
        assert parse_years("3 years") == 3.0
        assert parse_years(2.5) == 2.5
        assert parse_years("none") == 0.0

    def test_owner_experience_prefers_profile(self):
        assert owner_experience({"profile": {"experienceYears": 6}, "experience": 1}) == 6.0
        assert owner_experience({}) == 0.0


class TestLevels:
    @pytest.mark.parametrize(
        "value, level",
        [(100, RiskLevel.LOW), (80, RiskLevel.LOW), (79, RiskLevel.MEDIUM), (60, RiskLevel.MEDIUM),
         (59, RiskLevel.HIGH), (40, RiskLevel.HIGH), (39, RiskLevel.VERY_HIGH), (0, RiskLevel.VERY_HIGH)],
    )
    def test_band_edges(self, value, level):
        assert level_for(value)[0] == level

    def test_one_recommendation_per_band(self):
        assert len({rec for _, _, rec in LEVEL_BANDS}) == len(LEVEL_BANDS)


class TestScoreProperties:
    @given(
        category=st.sampled_from(["Technology", "Retail", "Food Delivery", "Healthcare", ""]),
        budget=st.integers(min_value=0, max_value=10**10),
        team=st.integers(min_value=0, max_value=50),
        experience=st.floats(min_value=0, max_value=60, allow_nan=False),
        description=st.text(max_size=80),
    )
    @settings(max_examples=60)
    def test_bounded(self, category, budget, team, experience, description):
        result = score(
            {"category": category, "budget": budget, "teamSize": team, "description": description},
            {"experienceYears": experience},
        )
        assert 0 <= result.score <= 100
        for factor in result.factors.values():
            assert 0 <= factor.score <= 100
        assert result.level == level_for(result.score)[0]
