import numpy as np
import pytest

from policy_valuation.data.base import DEFAULT_MARKET_SNAPSHOT, MarketSnapshot
from policy_valuation.valuation.aggregate import (
    aggregate,
    document_adjustment,
    market_projections,
    overall_confidence,
    scenario_values,
)
from policy_valuation.valuation.grading import GRADE_LADDER, grade_for
from policy_valuation.valuation.types import (
    DocumentAssessment,
    LiquidityAssessment,
    MarketAdjustment,
    RealEstateAssessment,
    RegulatoryAssessment,
    RiskAssessment,
    RiskFactors,
    RiskGrade,
)


def _document(confidence=1.0, missing=(), errors=()):
    return DocumentAssessment(
        confidence=confidence,
        missing_fields=tuple(missing),
        validation_errors=tuple(errors),
        suggested_corrections={},
        provided=True,
    )


def _market(factor=1.0, sub=0.9):
    return MarketAdjustment(factor, 0.3, sub, 0.0, 0.0, 0.0, 0.0)


def _risk(composite=0.2, adjustment=None):
    factors = RiskFactors(0.9, 0.7, 0.3, 0.0, 0.2)
    return RiskAssessment(factors, composite, adjustment if adjustment is not None else 1 - composite * 0.2)


def _liquidity(score=0.75, adjustment=None):
    adj = adjustment if adjustment is not None else 0.8 + score * 0.4
    return LiquidityAssessment(0.8, 0.7, 0.7, 0.8, score, adj)


def _regulatory(risk=0.0):
    return RegulatoryAssessment(1 - risk, risk, max(0.9, 1 - risk * 0.1))


class TestAggregator:
    def test_multiplicative_composition(self):
        out = aggregate(10000, _market(1.1), _risk(0.25), _liquidity(0.5), _regulatory(0.5), _document(0.8))
        expected = 10000 * 1.1 * 0.95 * 1.0 * 0.95
        assert out["adjusted_value"] == pytest.approx(expected)
        assert out["document_adjustment"] == 0.0
        assert out["final_value"] == pytest.approx(expected)
        assert out["floor_applied"] is False

    def test_floor_holds_under_worst_adjustments(self):
        out = aggregate(
            10000,
            _market(0.5),
            _risk(1.0, adjustment=0.1),
            _liquidity(0.0, adjustment=0.1),
            _regulatory(1.0),
            _document(0.0, missing=("a", "b", "c", "d"), errors=("x",) * 4),
        )
        assert out["market_adjustment"] == 0.8
        assert out["risk_adjustment"] == 0.7
        assert out["liquidity_adjustment"] == 0.6
        assert out["final_value"] == pytest.approx(5000)
        assert out["floor_applied"] is True

    def test_real_estate_is_added_not_multiplied(self):
        rider = RealEstateAssessment(1000, 500, 250, 0.2, 1575.0, 0.8)
        without = aggregate(10000, _market(), _risk(0.0), _liquidity(0.5), _regulatory(), _document(0.8))
        with_rider = aggregate(10000, _market(), _risk(0.0), _liquidity(0.5), _regulatory(), _document(0.8), rider)
        assert with_rider["adjusted_value"] == pytest.approx(without["adjusted_value"])
        assert with_rider["final_value"] - without["final_value"] == pytest.approx(1575.0)

    def test_breakdown_keys(self):
        out = aggregate(10000, _market(), _risk(), _liquidity(), _regulatory(), _document())
        assert set(out) == {
            "base_value", "market_adjustment", "risk_adjustment", "liquidity_adjustment",
            "regulatory_adjustment", "real_estate_adjustment", "document_adjustment",
            "adjusted_value", "floor_value", "floor_applied", "final_value",
        }

    def test_scenarios_bracket_realistic(self):
        scenarios = scenario_values(10000, _market(), _risk(), _liquidity(), _regulatory(), _document())
        realistic = aggregate(10000, _market(), _risk(), _liquidity(), _regulatory(), _document())["final_value"]
        assert scenarios["realistic"] == pytest.approx(realistic)
        assert scenarios["conservative"] < scenarios["realistic"] < scenarios["optimistic"]


class TestProjections:
    def test_compounds_at_snapshot_rate(self):
        out = market_projections(10000, DEFAULT_MARKET_SNAPSHOT)
        assert list(out) == ["six_month", "one_year", "three_year", "five_year"]
        assert out["one_year"] == pytest.approx(10450)
        assert out["five_year"] == pytest.approx(10000 * 1.045 ** 5)
        assert 10000 < out["six_month"] < out["one_year"] < out["three_year"] < out["five_year"]

    def test_negative_rate_projects_decline(self):
        out = market_projections(10000, MarketSnapshot(-0.01, 0.0, 1.0, 0.1))
        assert out["five_year"] < out["one_year"] < 10000


class TestDocumentAdjustment:
    @pytest.mark.parametrize("confidence,share", [(0.95, 0.02), (0.9, 0.02), (0.75, 0.0), (0.5, -0.01), (0.1, -0.02)])
    def test_tiers(self, confidence, share):
        assert document_adjustment(10000, _document(confidence)) == pytest.approx(10000 * share)

    def test_per_field_penalties(self):
        doc = _document(0.75, missing=("insured_name",), errors=("issue_date: bad",))
        assert document_adjustment(10000, doc) == pytest.approx(10000 * (-0.005 - 0.01))


class TestConfidence:
    def test_formula(self):
        value = overall_confidence(_document(1.0), _market(sub=0.9), _risk(0.2), _liquidity(0.75), _regulatory(0.1))
        assert value == pytest.approx(0.8 * 0.9 * (1 - 0.06) * 0.75 * (1 - 0.02))

    def test_real_estate_and_rating_multipliers(self):
        rider = RealEstateAssessment(0, 0, 0, 0.0, 0.0, 0.5)
        base = overall_confidence(_document(1.0), _market(), _risk(), _liquidity(), _regulatory())
        assert overall_confidence(_document(1.0), _market(), _risk(), _liquidity(), _regulatory(), rider) == \
            pytest.approx(base * 0.5)
        assert overall_confidence(
            _document(1.0), _market(), _risk(), _liquidity(), _regulatory(), rating_confidence=0.85
        ) == pytest.approx(base * 0.85)

    def test_floor(self):
        assert overall_confidence(_document(0.0), _market(), _risk(), _liquidity(), _regulatory()) == 0.1

    def test_ceiling(self):
        value = overall_confidence(_document(1.0), _market(sub=1.0), _risk(0.0), _liquidity(1.0), _regulatory())
        assert 0.1 <= value <= 1.0


class TestRiskGrader:
    def test_ten_grades_in_order(self):
        grades = [grade for _, grade in GRADE_LADDER]
        assert len(set(grades)) == 9
        assert grade_for(0.0) is RiskGrade.AAA
        assert grade_for(0.95) is RiskGrade.D
        assert [g.rank for g in RiskGrade] == list(range(10))

    @pytest.mark.parametrize("risk,grade", [
        (0.099, RiskGrade.AAA), (0.1, RiskGrade.AA), (0.35, RiskGrade.BBB),
        (0.5, RiskGrade.B), (0.89, RiskGrade.C), (0.9, RiskGrade.D), (1.0, RiskGrade.D),
    ])
    def test_bounds_are_upper_exclusive(self, risk, grade):
        assert grade_for(risk) is grade

    def test_out_of_range_inputs_are_clamped(self):
        assert grade_for(-0.3) is RiskGrade.AAA
        assert grade_for(7.0) is RiskGrade.D

    def test_monotonic(self):
        ranks = [grade_for(r).rank for r in np.linspace(0.0, 1.0, 1001)]
        assert ranks == sorted(ranks)
        assert ranks[0] == 0 and ranks[-1] == 9
