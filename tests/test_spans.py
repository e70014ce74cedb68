from datetime import date

from twin_optimiser.dates import build_date_range
from twin_optimiser.models import BookingCell, TaskCell
from twin_optimiser.spans import compress_row

DATES = build_date_range(date(2024, 1, 1), 3)


def _booking(booking_id: str) -> BookingCell:
    return BookingCell(booking_id=booking_id, checkin=date(2024, 1, 1), checkout=date(2024, 1, 4))


def _task(task_id: str, day: date) -> TaskCell:
    return TaskCell(task_id=task_id, task_date=day)


def _lengths(cells) -> list:
    return [span.length for span in compress_row(cells, DATES)]


def test_same_booking_merges_into_one_span() -> None:
    spans = list(compress_row({d: _booking("7") for d in DATES}, DATES))

    assert len(spans) == 1
    assert spans[0].start == DATES[0]
    assert spans[0].length == 3
    assert spans[0].cell.booking_id == "7"


def test_different_booking_in_the_middle_splits() -> None:
    cells = {DATES[0]: _booking("7"), DATES[1]: _booking("8"), DATES[2]: _booking("7")}
    assert _lengths(cells) == [1, 1, 1]


def test_vacant_gap_splits() -> None:
    spans = list(compress_row({DATES[0]: _booking("7"), DATES[2]: _booking("7")}, DATES))

    assert [s.length for s in spans] == [1, 1, 1]
    assert spans[1].cell is None


def test_vacant_dates_are_never_merged() -> None:
    assert _lengths({}) == [1, 1, 1]


def test_task_spans_merge_by_task_id() -> None:
    cells = {d: _task("t1", d) for d in DATES[:2]}
    cells[DATES[2]] = _task("t2", DATES[2])

    assert _lengths(cells) == [2, 1]


def test_booking_and_task_with_same_id_do_not_merge() -> None:
    cells = {DATES[0]: _booking("5"), DATES[1]: _task("5", DATES[1])}
    assert _lengths(cells) == [1, 1, 1]


def test_span_lengths_cover_the_row() -> None:
    cells = {DATES[1]: _booking("1"), DATES[2]: _booking("1")}
    assert sum(_lengths(cells)) == len(DATES)
