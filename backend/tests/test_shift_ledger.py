from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from shiftpay.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from shiftpay.models.shift import Shift, ShiftStatus
from shiftpay.models.worker import WorkerRole
from shiftpay.services.rates import directory_rate_lookup
from shiftpay.services.shift_ledger import ShiftLedger, compute_payout
from support import T0, FixedClock


def _ledger(db, rates=None, at=T0):
    lookup = rates.get if rates is not None else directory_rate_lookup(db)
    return ShiftLedger(db, lookup, now=FixedClock(at))


def _open_count(db, worker_id):
    return db.query(Shift).filter(Shift.worker_id == worker_id, Shift.status == ShiftStatus.OPEN).count()


def test_compute_payout_rounds_to_nearest_minute():
    assert compute_payout(Decimal("6000"), T0, T0 + timedelta(minutes=10, seconds=29)).minutes_worked == 10
    assert compute_payout(Decimal("6000"), T0, T0 + timedelta(minutes=10, seconds=30)).minutes_worked == 11


def test_compute_payout_keeps_cents():
    result = compute_payout(Decimal("8200"), T0, T0 + timedelta(minutes=7))
    assert result.payout == Decimal("956.67")
    assert result.hours_worked == Decimal(7) / Decimal(60)


def test_scenario_a_open_and_close(db, make_worker):
    worker = make_worker(hourly_rate="5000")
    ledger = _ledger(db)

    shift = ledger.open_shift(worker.id, opened_at=T0)
    assert shift.status == ShiftStatus.OPEN
    assert shift.hourly_rate_snapshot == Decimal("5000")
    assert shift.minutes_worked is None
    assert shift.payout is None

    closed = ledger.close_shift(shift.id, worker.id, WorkerRole.worker, closed_at=T0 + timedelta(hours=4, minutes=30))
    assert closed.status == ShiftStatus.CLOSED
    assert closed.minutes_worked == 270
    assert closed.payout == Decimal("22500")
    assert closed.closed_at == T0 + timedelta(hours=4, minutes=30)


def test_open_defaults_to_clock(db, make_worker):
    worker = make_worker()
    shift = _ledger(db, at=T0 + timedelta(minutes=5)).open_shift(worker.id)
    assert shift.opened_at == T0 + timedelta(minutes=5)


def test_close_defaults_to_clock(db, make_worker):
    worker = make_worker(hourly_rate="6000")
    shift = _ledger(db).open_shift(worker.id, opened_at=T0)

    closed = _ledger(db, at=T0 + timedelta(hours=2)).close_shift(shift.id, worker.id, WorkerRole.worker)
    assert closed.minutes_worked == 120
    assert closed.payout == Decimal("12000")


def test_explicit_offset_is_stored_as_utc(db, make_worker):
    worker = make_worker()
    local = datetime.fromisoformat("2025-03-03T03:00:00-06:00")
    shift = _ledger(db).open_shift(worker.id, opened_at=local)
    assert shift.opened_at == T0
    assert shift.opened_at.utcoffset() == timedelta(0)


def test_naive_timestamp_is_rejected(db, make_worker):
    worker = make_worker()
    with pytest.raises(ValidationError):
        _ledger(db).open_shift(worker.id, opened_at=datetime(2025, 3, 3, 9, 0))
    assert _open_count(db, worker.id) == 0


def test_second_open_for_same_worker_conflicts(db, make_worker):
    worker = make_worker()
    ledger = _ledger(db)
    ledger.open_shift(worker.id, opened_at=T0)

    with pytest.raises(ConflictError):
        ledger.open_shift(worker.id, opened_at=T0 + timedelta(minutes=1))
    assert _open_count(db, worker.id) == 1


def test_open_after_close_is_allowed(db, make_worker):
    worker = make_worker()
    ledger = _ledger(db)
    first = ledger.open_shift(worker.id, opened_at=T0)
    ledger.close_shift(first.id, worker.id, WorkerRole.worker, closed_at=T0 + timedelta(hours=1))

    second = ledger.open_shift(worker.id, opened_at=T0 + timedelta(hours=2))
    assert second.id != first.id
    assert _open_count(db, worker.id) == 1


def test_different_workers_may_each_have_an_open_shift(db, make_worker):
    ana = make_worker(name="Ana")
    luis = make_worker(name="Luis")
    ledger = _ledger(db)
    ledger.open_shift(ana.id, opened_at=T0)
    ledger.open_shift(luis.id, opened_at=T0)
    assert _open_count(db, ana.id) == 1
    assert _open_count(db, luis.id) == 1


def test_open_for_unknown_worker_is_not_found(db):
    with pytest.raises(NotFoundError):
        _ledger(db).open_shift(999, opened_at=T0)


def test_open_for_inactive_worker_is_not_found(db, make_worker):
    worker = make_worker(is_active=False)
    with pytest.raises(NotFoundError):
        _ledger(db).open_shift(worker.id, opened_at=T0)


def test_lost_race_on_index_becomes_conflict(db, make_worker, monkeypatch):
    worker = make_worker()
    ledger = _ledger(db)
    ledger.open_shift(worker.id, opened_at=T0)

    # Simulate a request that checked before the first insert committed.
    monkeypatch.setattr(ledger, "_find_open_shift", lambda worker_id: None)
    with pytest.raises(ConflictError):
        ledger.open_shift(worker.id, opened_at=T0 + timedelta(seconds=1))

    assert _open_count(db, worker.id) == 1


def test_two_requests_opening_together_only_one_wins(db, session_factory, make_worker):
    worker = make_worker()
    first = _ledger(db)

    with session_factory() as other_session:
        second = _ledger(other_session)
        # Both requests run their pre-check before either insert lands.
        assert first._find_open_shift(worker.id) is None
        seen_by_second = second._find_open_shift(worker.id)
        second._find_open_shift = lambda worker_id: seen_by_second

        first.open_shift(worker.id, opened_at=T0)
        with pytest.raises(ConflictError):
            second.open_shift(worker.id, opened_at=T0)

    assert _open_count(db, worker.id) == 1



def test_rate_change_after_open_does_not_touch_snapshot(db, make_worker):
    worker = make_worker(hourly_rate="5000")
    ledger = _ledger(db)
    shift = ledger.open_shift(worker.id, opened_at=T0)

    worker.hourly_rate = Decimal("9000")
    db.commit()

    closed = ledger.close_shift(shift.id, worker.id, WorkerRole.worker, closed_at=T0 + timedelta(hours=1))
    assert closed.hourly_rate_snapshot == Decimal("5000")
    assert closed.payout == Decimal("5000")


def test_rate_lookup_is_consulted_only_at_open(db, make_worker):
    worker = make_worker()
    calls = []

    def lookup(worker_id):
        calls.append(worker_id)
        return Decimal("4000")

    ledger = ShiftLedger(db, lookup, now=FixedClock(T0))
    shift = ledger.open_shift(worker.id)
    ledger.close_shift(shift.id, worker.id, WorkerRole.worker, closed_at=T0 + timedelta(hours=1))
    assert calls == [worker.id]



def test_stub_lookup_snapshot_survives_rate_change(db, make_worker):
    worker = make_worker(hourly_rate="1")
    rates = {worker.id: Decimal("4000")}
    ledger = _ledger(db, rates=rates)
    shift = ledger.open_shift(worker.id, opened_at=T0)

    rates[worker.id] = Decimal("12000")
    closed = ledger.close_shift(shift.id, worker.id, WorkerRole.worker, closed_at=T0 + timedelta(minutes=90))
    assert closed.hourly_rate_snapshot == Decimal("4000")
    assert closed.payout == Decimal("6000")


@pytest.mark.parametrize("delta", [timedelta(0), timedelta(seconds=10), timedelta(hours=-3)])
def test_close_never_bills_less_than_a_minute(db, make_worker, delta):
    worker = make_worker(hourly_rate="6000")
    ledger = _ledger(db)
    shift = ledger.open_shift(worker.id, opened_at=T0)

    closed = ledger.close_shift(shift.id, worker.id, WorkerRole.worker, closed_at=T0 + delta)
    assert closed.minutes_worked == 1
    assert closed.payout == Decimal("100")


def test_second_close_conflicts_and_keeps_first_result(db, make_worker):
    worker = make_worker(hourly_rate="5000")
    ledger = _ledger(db)
    shift = ledger.open_shift(worker.id, opened_at=T0)
    first = ledger.close_shift(shift.id, worker.id, WorkerRole.worker, closed_at=T0 + timedelta(hours=2))

    with pytest.raises(ConflictError):
        ledger.close_shift(shift.id, worker.id, WorkerRole.worker, closed_at=T0 + timedelta(hours=5), notes="again")

    db.expire_all()
    reloaded = ledger.get_shift(shift.id)
    assert reloaded.closed_at == first.closed_at == T0 + timedelta(hours=2)
    assert reloaded.minutes_worked == 120
    assert reloaded.payout == Decimal("10000")
    assert reloaded.notes is None


def test_close_race_on_status_becomes_conflict(db, session_factory, make_worker):
    worker = make_worker()
    ledger = _ledger(db)
    shift = ledger.open_shift(worker.id, opened_at=T0)

    # A second request loads the shift while it is still OPEN...
    with session_factory() as other:
        stale = ShiftLedger(other, directory_rate_lookup(other), now=FixedClock(T0))
        stale_shift = stale.get_shift(shift.id)
        assert stale_shift.status == ShiftStatus.OPEN

        # ...then loses to this close.
        ledger.close_shift(shift.id, worker.id, WorkerRole.worker, closed_at=T0 + timedelta(hours=1))

        stale.get_shift = lambda shift_id: stale_shift
        with pytest.raises(ConflictError):
            stale.close_shift(shift.id, worker.id, WorkerRole.worker, closed_at=T0 + timedelta(hours=8))

    db.expire_all()
    assert ledger.get_shift(shift.id).minutes_worked == 60


def test_worker_cannot_close_someone_elses_shift(db, make_worker):
    ana = make_worker(name="Ana")
    luis = make_worker(name="Luis")
    ledger = _ledger(db)
    shift = ledger.open_shift(ana.id, opened_at=T0)

    with pytest.raises(ForbiddenError):
        ledger.close_shift(shift.id, luis.id, WorkerRole.worker, closed_at=T0 + timedelta(hours=1))
    assert ledger.get_shift(shift.id).status == ShiftStatus.OPEN


def test_admin_can_close_any_shift(db, make_worker):
    ana = make_worker(name="Ana")
    boss = make_worker(name="Catalina", role=WorkerRole.admin)
    ledger = _ledger(db)
    shift = ledger.open_shift(ana.id, opened_at=T0)

    closed = ledger.close_shift(shift.id, boss.id, WorkerRole.admin, closed_at=T0 + timedelta(hours=1))
    assert closed.status == ShiftStatus.CLOSED
    assert closed.worker_id == ana.id


def test_close_missing_shift_is_not_found(db):
    with pytest.raises(NotFoundError):
        _ledger(db).close_shift(404, 1, WorkerRole.admin, closed_at=T0)


def test_close_keeps_notes_unless_new_ones_given(db, make_worker):
    worker = make_worker()
    ledger = _ledger(db)

    kept = ledger.open_shift(worker.id, opened_at=T0, notes="covering for Luis")
    kept = ledger.close_shift(kept.id, worker.id, WorkerRole.worker, closed_at=T0 + timedelta(hours=1))
    assert kept.notes == "covering for Luis"

    replaced = ledger.open_shift(worker.id, opened_at=T0 + timedelta(hours=2), notes="morning")
    replaced = ledger.close_shift(
        replaced.id, worker.id, WorkerRole.worker, closed_at=T0 + timedelta(hours=3), notes="left early"
    )
    assert replaced.notes == "left early"


def test_list_shifts_for_worker_newest_first(db, make_worker):
    ana = make_worker(name="Ana")
    luis = make_worker(name="Luis")
    ledger = _ledger(db)
    for day in range(3):
        s = ledger.open_shift(ana.id, opened_at=T0 + timedelta(days=day))
        ledger.close_shift(s.id, ana.id, WorkerRole.worker, closed_at=T0 + timedelta(days=day, hours=1))
    ledger.open_shift(luis.id, opened_at=T0)

    shifts = ledger.list_shifts_for_worker(ana.id)
    assert [s.opened_at for s in shifts] == [T0 + timedelta(days=d) for d in (2, 1, 0)]
    assert len(ledger.list_shifts_for_worker(ana.id, limit=2)) == 2


def test_list_shifts_in_range_filters_on_opened_at(db, make_worker):
    ana = make_worker(name="Ana")
    luis = make_worker(name="Luis")
    ledger = _ledger(db)
    ledger.open_shift(ana.id, opened_at=T0)
    ledger.open_shift(luis.id, opened_at=T0 + timedelta(days=2))

    in_range = ledger.list_shifts_in_range(start=T0, end=T0 + timedelta(days=1))
    assert [s.worker_id for s in in_range] == [ana.id]

    everything = ledger.list_shifts_in_range()
    assert len(everything) == 2

    only_luis = ledger.list_shifts_in_range(worker_id=luis.id)
    assert [s.worker_id for s in only_luis] == [luis.id]
