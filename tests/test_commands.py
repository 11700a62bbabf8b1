import pytest

from panel.commands import CommandDispatcher
from panel.errors import InvalidArgumentError, NotConnectedError
from panel.types import Difficulty


@pytest.fixture
def commands(bridge):
    return CommandDispatcher(bridge)


@pytest.mark.parametrize(
    ("method", "args", "wire"),
    [
        ("power_on", (), "P"),
        ("power_off", (), "O"),
        ("lock_in", (), "L"),
        ("set_difficulty", (0,), "D:0"),
        ("set_difficulty", (2,), "D:2"),
        ("test_leds", (), "T"),
        ("servo_unlock", (), "U"),
        ("servo_lock", (), "K"),
    ],
)
def test_one_line_and_one_log_entry_per_command(commands, bridge, link, method, args, wire):
    before = len(bridge.debug_log)
    getattr(commands, method)(*args)

    assert link.written == [wire]
    assert len(bridge.debug_log) == before + 1
    assert bridge.debug_log.lines()[-1].endswith(f"] Sending: {wire}")


def test_power_on_off_track_game_status(commands, bridge):
    commands.power_on()
    assert bridge.state.snapshot()["gameStatus"] == "RUNNING"
    assert bridge.state.powered

    commands.power_off()
    assert bridge.state.snapshot()["gameStatus"] == "STANDBY"
    assert not bridge.state.powered


def test_set_difficulty_returns_label(commands, bridge):
    assert commands.set_difficulty(0) == "Easy"
    assert bridge.state.difficulty is Difficulty.EASY
    assert commands.set_difficulty(2) == "Hard"
    assert bridge.state.snapshot()["difficulty"] == "Hard"


@pytest.mark.parametrize("level", [-1, 3, 9, "2", True, None])
def test_invalid_difficulty_never_sent(commands, bridge, link, level):
    before = len(bridge.debug_log)
    with pytest.raises(InvalidArgumentError):
        commands.set_difficulty(level)

    assert link.written == []
    assert len(bridge.debug_log) == before
    assert bridge.state.snapshot()["difficulty"] == "Moderate"


def test_invalid_difficulty_rejected_even_without_device(offline_bridge):
    with pytest.raises(InvalidArgumentError):
        CommandDispatcher(offline_bridge).set_difficulty(5)


def test_power_commands_without_device_do_not_mutate(offline_bridge):
    commands = CommandDispatcher(offline_bridge)
    offline_bridge.state.update(game_status="SWEEPING")

    with pytest.raises(NotConnectedError):
        commands.power_on()
    with pytest.raises(NotConnectedError):
        commands.power_off()

    assert offline_bridge.state.snapshot()["gameStatus"] == "SWEEPING"
    assert not offline_bridge.state.powered


def test_lock_in_leaves_score_and_attempts_to_device(commands, bridge, link):
    link.feed("ATTEMPTS:3")
    link.feed("SCORE:0")

    for _ in range(3):
        commands.lock_in()
    snap = bridge.state.snapshot()
    assert (snap["attemptsRemaining"], snap["score"]) == (3, 0)

    link.feed("RESULT:WRONG,2")
    assert bridge.state.snapshot()["attemptsRemaining"] == 2
