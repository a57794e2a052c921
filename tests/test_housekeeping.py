from utils.housekeeping import purge_stale_guests


def test_purge_drops_only_stale_unverified_guests(otp_service, store, channel, clock):
    otp_service.issue("+15551110001")  # abandoned
    otp_service.issue("+15551110002")  # verified
    otp_service.verify("+15551110002", channel.last_code("+15551110002"))

    clock.advance(hours=80)
    otp_service.issue("+15551110003")  # recent

    deleted = purge_stale_guests(store, retention_hours=72, now=clock.now)

    assert deleted == 1
    assert store.get_guest_by_mobile("+15551110001") is None
    assert store.get_guest_by_mobile("+15551110002") is not None
    assert store.get_guest_by_mobile("+15551110003") is not None


def test_purge_keeps_guests_inside_window(otp_service, store, clock):
    otp_service.issue("+15551110004")
    clock.advance(hours=71)
    assert purge_stale_guests(store, retention_hours=72, now=clock.now) == 0
    clock.advance(hours=2)
    assert purge_stale_guests(store, retention_hours=72, now=clock.now) == 1
