import pytest

from mediabox.errors import InvalidInputError
from mediabox.pins import PinVault


def test_verify_without_pin_is_false():
    vault = PinVault()

    assert vault.verify_pin("photos", "1234") is False
    assert vault.is_locked("photos") is False


def test_verify_matches_only_latest_pin():
    vault = PinVault()
    vault.set_pin("photos", "1234")
    vault.set_pin("photos", "98765432")

    assert vault.verify_pin("photos", "98765432") is True
    assert vault.verify_pin("photos", "1234") is False
    assert vault.verify_pin("other", "98765432") is False
    assert vault.is_locked("photos")


def test_remove_pin():
    vault = PinVault()
    vault.set_pin("photos", "1234")

    assert vault.remove_pin("photos") is True
    assert vault.remove_pin("photos") is False
    assert vault.verify_pin("photos", "1234") is False


@pytest.mark.parametrize("pin", ["123", "123456789", "12a4", "", None, 1234, "١٢٣٤"])
def test_invalid_pins_are_rejected(pin):
    vault = PinVault()

    with pytest.raises(InvalidInputError):
        vault.set_pin("photos", pin)
    assert not vault.is_locked("photos")


def test_pin_is_not_stored_in_clear():
    vault = PinVault()
    vault.set_pin("photos", "4321")

    assert b"4321" not in vault._pins["photos"]
    assert len(vault._pins["photos"]) == 32


def test_move_and_discard_are_segment_aware():
    vault = PinVault()
    vault.set_pin("trip", "1111")
    vault.set_pin("trip/day1", "2222")
    vault.set_pin("trip2", "3333")

    assert vault.move("trip", "vacation") == 2
    assert vault.verify_pin("vacation", "1111")
    assert vault.verify_pin("vacation/day1", "2222")
    assert vault.verify_pin("trip2", "3333")
    assert not vault.is_locked("trip")

    assert vault.discard_under("vacation") == 2
    assert vault.locked_paths() == ["trip2"]
