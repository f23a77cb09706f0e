from restmode.platform.notifier import TrayNotifier


class FakeTray:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def showMessage(self, title, body, icon, timeout) -> None:  # noqa: N802
        self.messages.append((title, body))


def make_notifier(enabled: bool) -> tuple[TrayNotifier, FakeTray]:
    tray = FakeTray()
    notifier = TrayNotifier(tray, clock=lambda: 1000.0)
    notifier.enabled = enabled
    return notifier, tray


def test_future_notification_is_pending_until_cancelled(qapp) -> None:
    notifier, _tray = make_notifier(enabled=True)

    notifier.schedule_notification(1060.0, "Break", "Look away")

    assert notifier.has_pending is True
    assert notifier._timer.isActive()  # noqa: SLF001 - inspect the single-shot timer
    assert 0 < notifier._timer.interval() <= 60_000  # noqa: SLF001

    notifier.cancel_all_pending()

    assert notifier.has_pending is False
    assert not notifier._timer.isActive()  # noqa: SLF001


def test_past_or_current_fire_time_is_not_scheduled(qapp) -> None:
    notifier, _tray = make_notifier(enabled=True)

    notifier.schedule_notification(1000.0, "Break", "Now")
    assert notifier.has_pending is False
    notifier.schedule_notification(900.0, "Break", "Past")
    assert notifier.has_pending is False
    assert not notifier._timer.isActive()  # noqa: SLF001


def test_rescheduling_replaces_pending_notification(qapp) -> None:
    notifier, tray = make_notifier(enabled=True)
    notifier.schedule_notification(1060.0, "First", "a")
    notifier.schedule_notification(1120.0, "Second", "b")

    notifier._deliver()  # noqa: SLF001 - fire the timeout by hand

    assert tray.messages == [("Second", "b")]
    assert notifier.has_pending is False


def test_disabled_notifier_ignores_scheduling(qapp) -> None:
    notifier, tray = make_notifier(enabled=False)

    notifier.schedule_notification(1060.0, "Break", "Look away")
    notifier._deliver()  # noqa: SLF001

    assert notifier.has_pending is False
    assert not notifier._timer.isActive()  # noqa: SLF001
    assert tray.messages == []
