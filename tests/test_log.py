import logging

from schedule_draft.core.log import ContextFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("schedule", logging.INFO, __file__, 1, "Booking updated", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_known_context_fields_in_order():
    formatter = ContextFormatter("%(message)s")

    line = formatter.format(_record(count=2, appointment_id="5", unrelated="x"))

    assert line == "Booking updated | appointment_id=5 count=2"


def test_formatter_skips_empty_context():
    formatter = ContextFormatter("%(message)s")

    assert formatter.format(_record(error="", status=None)) == "Booking updated"
