from decimal import Decimal

import pytest

from solscope.config import USDC_MINT, WRAPPED_SOL_MINT
from solscope.core.risk import classify, is_known_stable, risk_score, tier_ratios, tier_values
from solscope.types import Holding, RiskTier


def _holding(asset_id="Mint1111111111111111111111111111111", *, quantity="1", price="1", market_cap=None, tier=None):
    return Holding(
        asset_id=asset_id,
        quantity=Decimal(quantity),
        price_usd=None if price is None else Decimal(price),
        market_cap_usd=None if market_cap is None else Decimal(str(market_cap)),
        risk_tier=tier,
    )


class TestClassify:
    def test_market_cap_boundaries_are_inclusive(self):
        assert classify(_holding(market_cap=100_000_000)) == RiskTier.LOW
        assert classify(_holding(market_cap=99_999_999)) == RiskTier.MEDIUM
        assert classify(_holding(market_cap=20_000_000)) == RiskTier.MEDIUM
        assert classify(_holding(market_cap=19_999_999)) == RiskTier.HIGH

    def test_known_stable_wins_over_market_cap(self):
        assert classify(_holding(market_cap=5), is_known_stable=True) == RiskTier.STABLE
        assert classify(_holding(market_cap=10**12), is_known_stable=True) == RiskTier.STABLE

    @pytest.mark.parametrize(
        "market_cap",
        [None, 0, -5, Decimal("-1e30"), float("nan"), float("inf"), "not-a-number", True],
    )
    def test_unusable_market_caps_fall_through_to_high(self, market_cap):
        assert classify(market_cap) == RiskTier.HIGH

    def test_huge_market_cap_is_low(self):
        assert classify(Decimal("1e40")) == RiskTier.LOW
        assert classify(_holding(market_cap=10**18)) == RiskTier.LOW


def test_is_known_stable_uses_configured_mints():
    assert is_known_stable(WRAPPED_SOL_MINT) is True
    assert is_known_stable(USDC_MINT) is True
    assert is_known_stable("Mint1111111111111111111111111111111") is False
    assert is_known_stable("custom", stable_ids=["custom"]) is True


def test_risk_score_weights_tiers_by_value():
    holdings = [
        _holding("a", quantity="50", price="1", tier=RiskTier.STABLE),
        _holding("b", quantity="25", price="1", tier=RiskTier.MEDIUM),
        _holding("c", quantity="25", price="1", tier=RiskTier.HIGH),
    ]

    # 0.25 * 33 + 0.25 * 100
    assert risk_score(holdings) == pytest.approx(33.25)
    assert tier_values(holdings)[RiskTier.STABLE] == Decimal("50")
    assert tier_ratios(holdings)[RiskTier.HIGH] == pytest.approx(25.0)


def test_risk_score_is_zero_for_empty_or_valueless_portfolios():
    assert risk_score([]) == 0.0
    assert risk_score([_holding(price=None, tier=RiskTier.HIGH)]) == 0.0
    assert risk_score([_holding(price="0", tier=RiskTier.HIGH)]) == 0.0


def test_risk_score_stays_within_bounds():
    all_high = [_holding(str(i), quantity="3", price="7", tier=RiskTier.HIGH) for i in range(5)]
    assert risk_score(all_high) == pytest.approx(100.0)

    all_low = [_holding(str(i), quantity="3", price="7", tier=RiskTier.LOW) for i in range(5)]
    assert risk_score(all_low) == 0.0


def test_medium_high_tier_carries_its_weight():
    holdings = [
        _holding("a", quantity="1", price="1", tier=RiskTier.MEDIUM_HIGH),
        _holding("b", quantity="1", price="1", tier=RiskTier.LOW),
    ]
    assert risk_score(holdings) == pytest.approx(33.0)
