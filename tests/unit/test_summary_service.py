"""Unit tests for the aggregation of parsed transactions into a summary."""

import pytest

from tests.fixtures.common import MINT_A, MINT_B, make_analysis, make_parsed_transaction
from wallet_trades.services.summary_service import (
    calculate_global_summary,
    format_sol,
    format_usd,
    to_fixed,
    to_grouped,
)


class TestFormatting:
    """Test suite for number formatting helpers."""

    def test_to_fixed_rounds_half_away_from_zero(self):
        assert to_fixed(2.5, 0) == "3"
        assert to_fixed(-2.5, 0) == "-3"
        assert to_fixed(50.0, 2) == "50.00"

    def test_to_fixed_non_finite(self):
        assert to_fixed(float("nan"), 2) == "NaN"
        assert to_fixed(float("inf"), 2) == "Infinity"

    def test_to_grouped(self):
        assert to_grouped(1234567.891, 2) == "1,234,567.89"
        assert to_grouped(1234.5, 2) == "1,234.5"
        assert to_grouped(1500.4, 0) == "1,500"

    def test_currency_and_sol(self):
        assert format_usd(10.0) == "$10"
        assert format_usd(0.125) == "$0.13"
        assert format_sol(-0.25) == "-0.2500 SOL"

    def test_to_fixed_uses_exponent_from_1e21(self):
        assert to_fixed(1e27, 2) == "1e+27"
        assert to_fixed(-1.5e22, 2) == "-1.5e+22"
        assert to_fixed(1e20, 2) == "100000000000000000000.00"

    def test_to_grouped_keeps_large_values(self):
        assert to_grouped(1e27, 2) == "1,000,000,000,000,000,000,000,000,000"

    def test_grouped_rounds_shortest_decimal_form(self):
        assert format_usd(1.005) == "$1.01"
        assert to_fixed(1.005, 2) == "1.00"


class TestCalculateGlobalSummary:
    """Test suite for calculate_global_summary."""

    def test_single_trade_scenario(self):
        transactions = [
            make_parsed_transaction("sig1", [(MINT_A, 10.0, make_analysis(1.0, 1.5, 2.0))]),
        ]

        summary = calculate_global_summary(transactions)

        assert summary.performance.total_gain_loss == "50.00%"
        assert summary.performance.total_missed_ath == "25.00%"
        assert summary.performance.average_gain_loss == "50.00%"
        assert summary.overview.win_rate == "100.00%"
        assert summary.volume.total_volume_usd == "$10"
        assert summary.best_trade.gain_loss == "50.00%"
        assert summary.best_trade.gain_loss_usd == "$5.00"
        assert summary.best_trade.gain_loss_sol == "0.0333 SOL"

    def test_best_and_worst_trade_tie_break_by_encounter_order(self):
        transactions = [
            make_parsed_transaction("sig1", [(MINT_A, 10.0, make_analysis(1.0, 1.10))]),
            make_parsed_transaction("sig2", [(MINT_A, 10.0, make_analysis(1.0, 0.95, 1.0))]),
            make_parsed_transaction("sig3", [(MINT_B, 10.0, make_analysis(1.0, 1.10))]),
            make_parsed_transaction("sig4", [(MINT_B, 10.0, make_analysis(1.0, 0.80, 1.0))]),
        ]

        summary = calculate_global_summary(transactions)

        assert summary.best_trade.signature == "sig1"
        assert summary.best_trade.gain_loss == "10.00%"
        assert summary.worst_trade.signature == "sig4"
        assert summary.worst_trade.gain_loss == "-20.00%"
        assert summary.overview.profitable_trades == 2
        assert summary.overview.losing_trades == 2
        assert summary.overview.win_rate == "50.00%"

    def test_zero_change_trade_only_counts_as_no_change(self):
        transactions = [
            make_parsed_transaction("sig1", [
                (MINT_A, 0.0, make_analysis(1.0, 2.0)),
                (MINT_B, 5.0, make_analysis(1.0, 2.0)),
            ]),
        ]

        summary = calculate_global_summary(transactions)

        assert summary.overview.no_change == 1
        assert summary.overview.purchases == 1
        assert summary.overview.total_trades == 1
        assert summary.overview.unique_tokens == 1
        assert summary.volume.total_tokens_traded == "5"
        assert [token.mint for token in summary.tokens] == [MINT_B]

    def test_unpriced_trades_are_counted_but_not_scored(self):
        transactions = [
            make_parsed_transaction("sig1", [
                (MINT_A, -3.0, None),
                (MINT_B, 2.0, make_analysis(0.0, 1.0, 1.0)),
            ]),
        ]

        summary = calculate_global_summary(transactions)

        assert summary.overview.total_trades == 2
        assert summary.overview.unpriced_trades == 2
        assert summary.overview.sales == 1
        assert summary.overview.profitable_trades == 0
        assert summary.overview.losing_trades == 0
        assert summary.best_trade is None
        assert summary.worst_trade is None
        assert summary.tokens == []

    def test_dust_purchase_price_still_yields_summary(self):
        transactions = [
            make_parsed_transaction("sig1", [(MINT_A, 10.0, make_analysis(1e-26, 1.0, 1.0))]),
        ]

        summary = calculate_global_summary(transactions)

        assert "e+" in summary.best_trade.gain_loss
        assert summary.best_trade.gain_loss_usd == "$10.00"
        assert summary.volume.total_volume_usd == "$0"
        assert summary.performance.total_missed_ath == "0.00%"

    def test_empty_input(self):
        summary = calculate_global_summary([])

        assert summary.overview.total_transactions == 0
        assert summary.overview.win_rate == "0%"
        assert summary.volume.average_trade_size_usd == "$0.00"
        assert summary.volume.total_volume_sol == "0.0000 SOL"
        assert summary.performance.average_gain_loss == "0.00%"
        assert summary.best_trade is None

    def test_sol_volume_counts_every_transaction(self):
        transactions = [
            make_parsed_transaction("sig1", [(MINT_A, 1.0, None)], sol_change=-0.25),
            make_parsed_transaction("sig2", [(MINT_A, -1.0, None)], sol_change=0.1),
        ]

        summary = calculate_global_summary(transactions)

        assert summary.volume.total_volume_sol == "0.3500 SOL"

    def test_tokens_sorted_by_volume_with_running_extremes(self):
        transactions = [
            make_parsed_transaction("sig1", [(MINT_A, 10.0, make_analysis(1.0, 1.10))]),
            make_parsed_transaction("sig2", [(MINT_A, 10.0, make_analysis(1.0, 0.80, 1.0))]),
            make_parsed_transaction("sig3", [(MINT_B, 100.0, make_analysis(1.0, 1.0))]),
        ]

        summary = calculate_global_summary(transactions)

        assert [token.mint for token in summary.tokens] == [MINT_B, MINT_A]
        token_a = summary.tokens[1]
        assert token_a.trades == 2
        assert token_a.best_gain_loss == pytest.approx(10.0)
        assert token_a.worst_gain_loss == pytest.approx(-20.0)
        assert token_a.average_gain_loss == pytest.approx(-5.0)
        assert token_a.total_volume_usd == pytest.approx(20.0)

    def test_summary_uses_camel_case_aliases(self):
        transactions = [
            make_parsed_transaction("sig1", [(MINT_A, 10.0, make_analysis(1.0, 1.5, 2.0))]),
        ]

        dumped = calculate_global_summary(transactions).model_dump(by_alias=True)

        assert dumped["overview"]["winRate"] == "100.00%"
        assert dumped["volume"]["totalVolumeUSD"] == "$10"
        assert dumped["performance"]["totalMissedATH"] == "25.00%"
        assert dumped["bestTrade"]["gainLossUSD"] == "$5.00"

    def test_aggregation_is_idempotent(self):
        transactions = [
            make_parsed_transaction("sig1", [(MINT_A, 10.0, make_analysis(1.0, 1.5, 2.0))]),
            make_parsed_transaction("sig2", [(MINT_B, -4.0, make_analysis(2.0, 1.0, 3.0))]),
        ]

        first = calculate_global_summary(transactions)
        second = calculate_global_summary(transactions)

        assert first.model_dump() == second.model_dump()
