"""
Allocation ledger: recording, vesting queries and claim settlement in both
shapes ("sweep" and "front").
"""
import pytest

from tokensale.errors import NoAllocation, NothingVested
from tokensale.ledger import AllocationLedger, DAY, SettlementMode, VestingSchedule

YEAR = 365 * DAY
T = 1_700_000_000
A = "0x" + "1" * 40


def _ledger(mode: SettlementMode = SettlementMode.SWEEP) -> AllocationLedger:
    return AllocationLedger(VestingSchedule(cliff_seconds=YEAR, period_seconds=YEAR), mode)


def _two_purchases(ledger: AllocationLedger) -> None:
    ledger.record(A, 1000, T)               # seq 0
    ledger.record(A, 2000, T + 10 * DAY)    # seq 1


# At T + YEAR + 182.5 days: seq 0 is half vested (500), seq 1 has
# 172.5 days of its period behind it: floor(2000 * 14904000 / 31536000) = 945.
HALFWAY = T + YEAR + YEAR // 2


def test_record_assigns_sequence_and_vesting_start():
    ledger = _ledger()
    a0 = ledger.record(A, 1000, T)
    a1 = ledger.record(A, 5, T + 1)
    assert (a0.seq, a1.seq) == (0, 1)
    assert a0.vesting_start == T + YEAR
    assert ledger.purchased_amount(A) == 1005
    assert [a.seq for a in ledger.allocations(A)] == [0, 1]


def test_record_rejects_zero_amount():
    with pytest.raises(ValueError):
        _ledger().record(A, 0, T)


def test_claim_without_allocations_raises_no_allocation():
    with pytest.raises(NoAllocation):
        _ledger().claim(A, T)


def test_claim_before_cliff_raises_nothing_vested():
    ledger = _ledger()
    _two_purchases(ledger)
    with pytest.raises(NothingVested):
        ledger.claim(A, T + YEAR - 1)
    assert ledger.released_amount(A) == 0


def test_sweep_settles_every_allocation_oldest_first():
    ledger = _ledger()
    _two_purchases(ledger)
    assert ledger.releasable_amount(A, HALFWAY) == 1445

    s = ledger.claim(A, HALFWAY)
    assert s.total == 1445
    assert s.parts == ((0, 500), (1, 945))
    assert ledger.released_amount(A) == 1445
    assert ledger.vested_amount(A, HALFWAY) == 1445
    assert sum(a.amount for a in ledger.allocations(A)) == 3000 - 1445

    with pytest.raises(NothingVested):
        ledger.claim(A, HALFWAY)


def test_front_settles_only_the_oldest_allocation():
    ledger = _ledger(SettlementMode.FRONT)
    _two_purchases(ledger)

    s = ledger.claim(A, HALFWAY)
    assert s.parts == ((0, 500),)
    # the head owes nothing more right now, younger vested units wait their turn
    with pytest.raises(NothingVested):
        ledger.claim(A, HALFWAY)

    # once the head is fully released it is dropped and seq 1 becomes the front
    s = ledger.claim(A, T + 2 * YEAR)
    assert s.parts == ((0, 500),)
    assert [a.seq for a in ledger.allocations(A)] == [1]
    s = ledger.claim(A, T + 2 * YEAR)
    assert s.parts == ((1, 1945),)


@pytest.mark.parametrize("mode", list(SettlementMode))
@pytest.mark.parametrize("now", [T + YEAR - 1, HALFWAY, T + 2 * YEAR, T + 3 * YEAR])
def test_releasable_amount_matches_what_the_next_claim_pays(mode, now):
    ledger = _ledger(mode)
    _two_purchases(ledger)
    ledger.claim(A, HALFWAY)

    expected = ledger.releasable_amount(A, now)
    if expected == 0:
        with pytest.raises(NothingVested):
            ledger.claim(A, now)
    else:
        assert ledger.claim(A, now).total == expected


def test_front_releasable_ignores_vested_units_behind_the_head():
    ledger = _ledger(SettlementMode.FRONT)
    _two_purchases(ledger)
    ledger.claim(A, HALFWAY)
    assert ledger.releasable_amount(A, HALFWAY) == 0
    # seq 1 has vested 945 units, still counted as vested
    assert ledger.vested_amount(A, HALFWAY) == 500 + 945


def test_full_release_exhausts_everything():
    ledger = _ledger()
    _two_purchases(ledger)
    s = ledger.claim(A, T + 3 * YEAR)
    assert s.total == 3000
    assert ledger.allocations(A) == []
    with pytest.raises(NoAllocation):
        ledger.claim(A, T + 4 * YEAR)
    assert ledger.vested_amount(A, T + 4 * YEAR) == 3000


def test_sweep_skips_a_rounded_down_older_allocation():
    # With a tiny older tranche floor rounding can leave it owing 0 while a
    # larger younger tranche already owes units; sweep must not stop early.
    ledger = AllocationLedger(VestingSchedule(cliff_seconds=0, period_seconds=100))
    ledger.record(A, 1, 0)
    ledger.record(A, 1000, 0)
    s = ledger.claim(A, 10)
    assert s.parts == ((1, 100),)


def test_plan_does_not_mutate_and_queries_return_copies():
    ledger = _ledger()
    _two_purchases(ledger)
    plan = ledger.plan_claim(A, HALFWAY)
    assert plan.total == 1445
    assert ledger.released_amount(A) == 0

    copies = ledger.allocations(A)
    copies[0].amount = 0
    assert ledger.allocations(A)[0].amount == 1000


def test_account_checkpoint_restore():
    ledger = _ledger()
    ledger.record(A, 1000, T)
    snap = ledger.snapshot_account(A)
    ledger.record(A, 7, T + 1)
    ledger.restore_account(A, snap)
    assert ledger.purchased_amount(A) == 1000
    assert len(ledger.allocations(A)) == 1

    ledger.restore_account("0xnew", None)
    assert ledger.peek("0xnew") is None


def test_dump_and_load_preserve_settlement_progress():
    ledger = _ledger(SettlementMode.FRONT)
    _two_purchases(ledger)
    ledger.claim(A, HALFWAY)

    clone = AllocationLedger.load(ledger.dump())
    assert clone.mode is SettlementMode.FRONT
    assert clone.schedule == ledger.schedule
    assert clone.released_amount(A) == 500
    assert clone.releasable_amount(A, T + 3 * YEAR) == 500
    assert clone.vested_amount(A, T + 3 * YEAR) == 3000
    assert clone.account(A).next_seq == 2
