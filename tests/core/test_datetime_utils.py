from datetime import UTC, datetime, timedelta

import pytest

from conectado.core.datetime_utils import as_utc, time_ago

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=UTC)


class TestTimeAgo:
    @pytest.mark.parametrize(
        ("delta", "expected"),
        [
            (timedelta(seconds=30), "ahora"),
            (timedelta(minutes=1), "hace 1 minuto"),
            (timedelta(minutes=45), "hace 45 minutos"),
            (timedelta(hours=1, minutes=59), "hace 1 hora"),
            (timedelta(hours=5), "hace 5 horas"),
            (timedelta(days=1, hours=5), "hace 1 día"),
            (timedelta(days=12), "hace 12 días"),
        ],
    )
    def test_should_report_largest_whole_unit(self, delta, expected):
        assert time_ago(NOW - delta, now=NOW) == expected

    def test_should_use_custom_just_now_text(self):
        assert time_ago(NOW, now=NOW, just_now="hace un momento") == "hace un momento"

    def test_should_treat_naive_values_as_utc(self):
        naive = (NOW - timedelta(hours=2)).replace(tzinfo=None)

        assert time_ago(naive, now=NOW) == "hace 2 horas"


class TestAsUtc:
    def test_should_convert_aware_values(self):
        offset = datetime(2025, 3, 10, 8, 0, tzinfo=UTC).astimezone()

        assert as_utc(offset) == datetime(2025, 3, 10, 8, 0, tzinfo=UTC)
        assert as_utc(offset).tzinfo == UTC
