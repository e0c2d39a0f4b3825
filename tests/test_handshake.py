import pytest

from fakes import ACTIVE_REPLY, BAD_REPLY, GOOD_REPLY, TIMER_REPLY, FakeTransport
from imu_3dm_gx3.driver.handshake import HandshakeEngine, HandshakeState
from imu_3dm_gx3.errors import ChecksumError, StartupError, TransportError
from imu_3dm_gx3.protocol import commands as cmd

STOP = bytes([0xFA, 0x75, 0xB4])
QUERY = bytes([0xD4, 0xA3, 0x47, 0x00])
SET_ACTIVE = bytes([0xD4, 0xA3, 0x47, 0x01])
SET_CONTINUOUS = bytes([0xD4, 0xA3, 0x47, 0x02])
PRESET = bytes([0xD6, 0xC6, 0x6B, 0xCC])
RESET_TIMER = bytes([0xD7, 0xC1, 0x29, 0x01, 0x00, 0x00, 0x00, 0x00])


def _engine(transport, **kw):
    sleeps = []
    kw.setdefault("clock", lambda: 1000.0)
    eng = HandshakeEngine(transport, sleep=sleeps.append, **kw)
    return eng, sleeps


def test_commands_match_device_protocol():
    assert cmd.STOP_CONTINUOUS == STOP
    assert cmd.mode_command(cmd.MODE_QUERY) == QUERY
    assert cmd.mode_command(cmd.DeviceMode.ACTIVE) == SET_ACTIVE
    assert cmd.mode_command(cmd.DeviceMode.CONTINUOUS) == SET_CONTINUOUS
    assert cmd.CONTINUOUS_PRESET == PRESET
    assert cmd.RESET_TIMER == RESET_TIMER


def test_full_sequence_from_unknown_mode():
    t = FakeTransport([GOOD_REPLY, GOOD_REPLY, GOOD_REPLY, GOOD_REPLY, TIMER_REPLY])
    eng, sleeps = _engine(t)

    t0 = eng.run()

    assert t0 == 1000.0
    assert eng.state is HandshakeState.STREAMING
    assert t.writes == [STOP, QUERY, SET_ACTIVE, PRESET, SET_CONTINUOUS, RESET_TIMER]
    assert sleeps == [0.1]
    assert eng.history == [
        HandshakeState.INIT,
        HandshakeState.STREAMING_STOPPED,
        HandshakeState.MODE_QUERIED,
        HandshakeState.MODE_ENSURED_ACTIVE,
        HandshakeState.PRESET_SET,
        HandshakeState.CONTINUOUS_MODE_SET,
        HandshakeState.TIMER_RESET,
        HandshakeState.STREAMING,
    ]
    assert t.is_open


def test_already_active_skips_set_active():
    t = FakeTransport([ACTIVE_REPLY, GOOD_REPLY, GOOD_REPLY, TIMER_REPLY])
    eng, _ = _engine(t)
    eng.run()
    assert eng.reported_mode == 0x01
    assert SET_ACTIVE not in t.writes
    assert t.writes == [STOP, QUERY, PRESET, SET_CONTINUOUS, RESET_TIMER]
    assert eng.state is HandshakeState.STREAMING


def test_timer_reply_is_not_validated():
    junk_timer = bytes([0xFF] * 7)
    t = FakeTransport([GOOD_REPLY, GOOD_REPLY, GOOD_REPLY, GOOD_REPLY, junk_timer])
    eng, _ = _engine(t)
    eng.run()
    assert eng.state is HandshakeState.STREAMING


def test_bad_first_mode_reply_recovers_after_reinit():
    t = FakeTransport([BAD_REPLY, GOOD_REPLY, GOOD_REPLY, GOOD_REPLY, GOOD_REPLY, TIMER_REPLY])
    eng, sleeps = _engine(t)

    eng.run()

    assert eng.state is HandshakeState.STREAMING
    assert HandshakeState.REINIT_PENDING in eng.history
    assert t.closes == 1
    assert t.opens == 1
    assert t.writes[:3] == [STOP, QUERY, QUERY]
    assert sleeps == [0.1, 0.1]


def test_bad_mode_reply_twice_fails():
    t = FakeTransport([BAD_REPLY, BAD_REPLY])
    eng, _ = _engine(t)

    with pytest.raises(StartupError) as ei:
        eng.run()

    assert ei.value.step == "get mode"
    assert isinstance(ei.value.cause, ChecksumError)
    assert eng.state is HandshakeState.FAILED
    assert not t.is_open


def test_no_reinit_when_attempts_is_zero():
    t = FakeTransport([BAD_REPLY])
    eng, _ = _engine(t, reinit_attempts=0)
    with pytest.raises(StartupError):
        eng.run()
    assert HandshakeState.REINIT_PENDING not in eng.history
    assert t.opens == 0


def test_two_reinit_attempts():
    t = FakeTransport([BAD_REPLY, BAD_REPLY, GOOD_REPLY, GOOD_REPLY, GOOD_REPLY, GOOD_REPLY, TIMER_REPLY])
    eng, _ = _engine(t, reinit_attempts=2)
    eng.run()
    assert eng.history.count(HandshakeState.REINIT_PENDING) == 2
    assert eng.state is HandshakeState.STREAMING


def test_reopen_failure_is_fatal():
    t = FakeTransport([BAD_REPLY], fail_open=True)
    eng, _ = _engine(t)
    with pytest.raises(StartupError) as ei:
        eng.run()
    assert ei.value.step == "reopen port"
    assert eng.state is HandshakeState.FAILED


def test_bad_preset_reply_fails_without_retry():
    t = FakeTransport([GOOD_REPLY, GOOD_REPLY, BAD_REPLY])
    eng, _ = _engine(t)

    with pytest.raises(StartupError) as ei:
        eng.run()

    assert ei.value.step == "set continuous mode preset"
    assert eng.state is HandshakeState.FAILED
    assert HandshakeState.PRESET_SET not in eng.history
    assert t.closes == 1
    assert not t.is_open
    assert t.writes[-1] == PRESET


def test_bad_set_active_reply_fails():
    t = FakeTransport([GOOD_REPLY, BAD_REPLY])
    eng, _ = _engine(t)
    with pytest.raises(StartupError) as ei:
        eng.run()
    assert ei.value.step == "set mode to active"
    assert eng.state is HandshakeState.FAILED


def test_bad_continuous_reply_fails():
    t = FakeTransport([GOOD_REPLY, GOOD_REPLY, GOOD_REPLY, BAD_REPLY])
    eng, _ = _engine(t)
    with pytest.raises(StartupError) as ei:
        eng.run()
    assert ei.value.step == "set mode to continuous output"


def test_transport_error_names_step():
    t = FakeTransport([GOOD_REPLY, GOOD_REPLY])  # device goes silent after set-active
    eng, _ = _engine(t)
    with pytest.raises(StartupError) as ei:
        eng.run()
    assert ei.value.step == "set continuous mode preset"
    assert isinstance(ei.value.cause, TransportError)
    assert not t.is_open
