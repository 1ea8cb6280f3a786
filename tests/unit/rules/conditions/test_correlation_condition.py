"""Tests for EventCorrelationCondition."""

from datetime import UTC, datetime, timedelta

from enrollwatch.core.models import Event
from enrollwatch.rules.conditions.correlation import EventCorrelationCondition
from enrollwatch.rules.models import RuleCondition

BASE_TIME = datetime(2026, 3, 1, 9, 0, 0, tzinfo=UTC)


def _event(event_type: str, offset: int, event_id: str | None = None, message: str = "", **data) -> Event:
    kwargs = {"event_id": event_id} if event_id else {}
    return Event(
        event_type=event_type,
        timestamp=BASE_TIME + timedelta(seconds=offset),
        sequence=offset,
        message=message,
        data=data,
        **kwargs,
    )


def _condition(**overrides) -> RuleCondition:
    fields = {
        "signal": "low_disk_at_failure",
        "source": "event_correlation",
        "event_type": "app_install_failed",
        "correlate_event_type": "performance_snapshot",
        "join_field": "appId",
        "time_window_seconds": 300,
        "data_field": "disk_free_gb",
        "operator": "gt",
        "value": "10",
    }
    fields.update(overrides)
    return RuleCondition(**fields)


class TestEventCorrelationCondition:
    """Tests for EventCorrelationCondition class."""

    def test_matching_pair_within_window(self) -> None:
        events = [
            _event("app_install_failed", 0, event_id="a", message="Install failed", appId="office"),
            _event("performance_snapshot", 120, event_id="b", appId="office", disk_free_gb=15),
        ]

        matched, evidence = EventCorrelationCondition().evaluate(_condition(), events)

        assert matched is True
        assert evidence["eventA"]["eventId"] == "a"
        assert evidence["eventA"]["message"] == "Install failed"
        assert evidence["eventB"]["eventId"] == "b"
        assert evidence["joinField"] == "appId"
        assert evidence["joinValue"] == "office"
        assert evidence["timeDeltaSeconds"] == 120

    def test_different_join_values_never_match(self) -> None:
        """Both event types present and inside the window, but the join values differ."""
        events = [
            _event("app_install_failed", 0, appId="office"),
            _event("performance_snapshot", 10, appId="teams", disk_free_gb=15),
        ]

        matched, evidence = EventCorrelationCondition().evaluate(_condition(), events)

        assert matched is False
        assert evidence == "no correlated event pair"

    def test_window_applies_in_both_directions(self) -> None:
        before = [
            _event("performance_snapshot", 0, appId="office", disk_free_gb=15),
            _event("app_install_failed", 200, appId="office"),
        ]
        too_far = [
            _event("app_install_failed", 0, appId="office"),
            _event("performance_snapshot", 301, appId="office", disk_free_gb=15),
        ]

        matched, evidence = EventCorrelationCondition().evaluate(_condition(), before)
        assert matched is True
        assert evidence["timeDeltaSeconds"] == -200

        assert EventCorrelationCondition().evaluate(_condition(), too_far)[0] is False

    def test_no_window_means_any_distance(self) -> None:
        events = [
            _event("app_install_failed", 0, appId="office"),
            _event("performance_snapshot", 86_400, appId="office", disk_free_gb=15),
        ]

        assert EventCorrelationCondition().evaluate(_condition(time_window_seconds=None), events)[0] is True

    def test_event_b_filter(self) -> None:
        events = [
            _event("app_install_failed", 0, appId="office"),
            _event("performance_snapshot", 60, appId="office", disk_free_gb=4),
        ]

        matched, evidence = EventCorrelationCondition().evaluate(_condition(), events)

        assert matched is False
        assert evidence == "no event B candidates"

    def test_event_a_filter(self) -> None:
        condition = _condition(
            event_a_filter_field="errorCode",
            event_a_filter_operator="equals",
            event_a_filter_value="0x80070070",
            data_field=None,
            operator=None,
            value=None,
        )
        events = [
            _event("app_install_failed", 0, event_id="other", appId="office", errorCode="0x1"),
            _event("app_install_failed", 5, event_id="disk", appId="office", errorCode="0x80070070"),
            _event("performance_snapshot", 30, appId="office"),
        ]

        matched, evidence = EventCorrelationCondition().evaluate(condition, events)

        assert matched is True
        assert evidence["eventA"]["eventId"] == "disk"

    def test_event_a_without_join_value_is_skipped(self) -> None:
        events = [
            _event("app_install_failed", 0, event_id="anonymous"),
            _event("app_install_failed", 5, event_id="known", appId="office"),
            _event("performance_snapshot", 30, appId="office", disk_free_gb=20),
        ]

        matched, evidence = EventCorrelationCondition().evaluate(_condition(), events)

        assert matched is True
        assert evidence["eventA"]["eventId"] == "known"

    def test_join_is_case_insensitive(self) -> None:
        events = [
            _event("app_install_failed", 0, appId="Office"),
            _event("performance_snapshot", 30, appId="OFFICE", disk_free_gb=20),
        ]

        assert EventCorrelationCondition().evaluate(_condition(), events)[0] is True

    def test_same_type_correlation_never_pairs_event_with_itself(self) -> None:
        condition = _condition(
            correlate_event_type="app_install_failed", data_field=None, operator=None, value=None
        )

        single = [_event("app_install_failed", 0, appId="office")]
        pair = single + [_event("app_install_failed", 60, appId="office")]

        assert EventCorrelationCondition().evaluate(condition, single)[0] is False
        assert EventCorrelationCondition().evaluate(condition, pair)[0] is True

    def test_missing_join_field_never_matches(self) -> None:
        events = [
            _event("app_install_failed", 0, appId="office"),
            _event("performance_snapshot", 30, appId="office", disk_free_gb=20),
        ]

        matched, evidence = EventCorrelationCondition().evaluate(_condition(join_field=None), events)

        assert matched is False
        assert evidence == "incomplete correlation condition"
