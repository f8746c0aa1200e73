"""Property-based tests for full ledger replay.

**Feature: roll-pot-ledger**
"""

from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from conftest import build_valid_history, make_trade, step_strategy
from rollpot.engine.recompute import (
    RecomputeRejection,
    Recomputed,
    changed_records,
    recompute_all,
)
from rollpot.engine.rules import LedgerRules
from rollpot.engine.transition import Transition, apply_trade

D = Decimal

histories = st.lists(step_strategy, min_size=0, max_size=30)


class TestReplayInvariants:
    """
    **Property 6: Replay invariants**

    *For any* valid history, sequence numbers are dense 1..N and every
    record's total wealth is the sum of its balances.
    """

    @given(steps=histories)
    @settings(max_examples=100)
    def test_dense_numbering_and_wealth_sum(self, steps):
        trades = build_valid_history(steps)
        result = recompute_all(trades)

        assert isinstance(result, Recomputed)
        assert [t.trade_number for t in result.records] == list(range(1, len(trades) + 1))
        for record in result.records:
            assert record.total_wealth_after == record.roll_pot_after + record.bank_total_after

    @given(steps=histories)
    @settings(max_examples=100)
    def test_replay_is_idempotent(self, steps):
        """
        *For any* valid history, replaying the replayed ledger yields
        identical records.
        """
        first = recompute_all(build_valid_history(steps))
        second = recompute_all(first.records)

        assert isinstance(second, Recomputed)
        assert [r.model_dump() for r in second.records] == [r.model_dump() for r in first.records]
        assert [str(r.bank_total_after) for r in second.records] == [
            str(r.bank_total_after) for r in first.records
        ]

    @given(steps=histories, base=st.sampled_from(["total_return", "profit"]))
    @settings(max_examples=100)
    def test_each_record_follows_from_previous(self, steps, base):
        """
        *For any* record i, its balances are the transition of record i-1's
        balances (or the starting state) with its own inputs.
        """
        rules = LedgerRules(allocation_base=base)
        result = recompute_all(build_valid_history(steps, rules), rules)

        roll, bank = rules.starting_roll_pot, rules.starting_bank
        for record in result.records:
            step = apply_trade(
                roll, bank, record.stake, record.multiplier, record.outcome,
                allocation_base=base,
            )
            assert isinstance(step, Transition)
            assert record.roll_pot_after == step.new_roll
            assert record.bank_total_after == step.new_bank
            assert record.profit_loss == step.profit_loss
            assert record.amount_banked == step.amount_banked
            roll, bank = record.roll_pot_after, record.bank_total_after

    def test_empty_history(self):
        result = recompute_all([])

        assert isinstance(result, Recomputed)
        assert result.records == []

    def test_identity_and_creation_time_are_kept(self):
        trade = make_trade(100, 2, trade_id="abc", trade_number=7)
        result = recompute_all([trade])

        record = result.records[0]
        assert record.id == "abc"
        assert record.created_at == trade.created_at
        assert record.trade_number == 1


class TestAllOrNothing:
    """
    **Property 7: All-or-nothing replay**

    *For any* history containing an illegal record, the replay aborts at
    that record and returns no records.
    """

    def test_reports_first_failing_position(self):
        trades = [
            make_trade(100, 2, trade_id="a"),
            make_trade(500, 2, trade_id="b"),
            make_trade(0, 2, trade_id="c"),
        ]
        result = recompute_all(trades)

        assert isinstance(result, RecomputeRejection)
        assert result.position == 2
        assert result.trade_id == "b"
        assert result.reason.startswith("Trade #2:")
        assert "Roll Pot" in result.reason

    def test_profit_policy_sequence(self):
        rules = LedgerRules(allocation_base="profit")
        trades = [
            make_trade(100, 2, "win", trade_id="a"),
            make_trade(70, 3, "win", trade_id="b"),
            make_trade(50, 2, "loss", trade_id="c"),
            make_trade(100, 2, "win", trade_id="d"),
        ]
        result = recompute_all(trades, rules)

        assert isinstance(result, RecomputeRejection)
        assert result.position == 4
        assert "Roll Pot" in result.reason

        ok = recompute_all(trades[:3], rules)
        assert [(r.roll_pot_after, r.bank_total_after) for r in ok.records] == [
            (D("70"), D("2930")),
            (D("98"), D("2972")),
            (D("48"), D("2972")),
        ]


class TestEditCascade:
    """
    **Property 8: Edit cascade**

    *For any* edit of an early trade, every later trade's derived fields
    are recomputed, and an edit that makes a later stake unaffordable is
    rejected as a whole.
    """

    def _history(self):
        result = recompute_all([
            make_trade(100, 2, "win", trade_id="a"),
            make_trade(140, 3, "win", trade_id="b"),
            make_trade(50, 2, "loss", trade_id="c"),
        ])
        assert isinstance(result, Recomputed)
        return result.records

    def test_edit_changes_downstream_records(self):
        stored = self._history()
        edited = [stored[0].model_copy(update={"multiplier": D("3")})] + stored[1:]

        result = recompute_all(edited)

        assert isinstance(result, Recomputed)
        for before, after in zip(stored, result.records):
            assert before.roll_pot_after != after.roll_pot_after
        changed = changed_records(stored, result.records)
        assert [t.id for t in changed] == ["a", "b", "c"]

    def test_edit_that_starves_a_later_trade_is_rejected(self):
        stored = self._history()
        # trade #1 now leaves 70 in the Roll Pot; trade #2 stakes 140
        edited = [stored[0].model_copy(update={"stake": D("50")})] + stored[1:]

        result = recompute_all(edited)

        assert isinstance(result, RecomputeRejection)
        assert result.position == 2
        assert result.trade_id == "b"

    def test_editing_last_trade_only_changes_it(self):
        stored = self._history()
        edited = stored[:2] + [stored[2].model_copy(update={"description": "renamed"})]

        result = recompute_all(edited)

        assert [t.id for t in changed_records(stored, result.records)] == ["c"]

    def test_unchanged_history_has_no_changes(self):
        stored = self._history()
        result = recompute_all(stored)

        assert changed_records(stored, result.records) == []
