import pytest

from taxbook_core.common.result import Err, Ok, UnwrapError, collect, err, ok


def test_ok_and_err_flags():
    assert Ok(1).is_ok and not Ok(1).is_err
    assert Err("x").is_err and not Err("x").is_ok


def test_unwrap_raises_on_err_with_the_error_attached():
    with pytest.raises(UnwrapError) as exc:
        Err("boom").unwrap()
    assert exc.value.error == "boom"
    assert Err("boom").unwrap_or(5) == 5
    assert Ok(3).unwrap_or(5) == 3


def test_map_only_touches_its_own_side():
    assert Ok(2).map(lambda v: v * 10) == Ok(20)
    assert Err("e").map(lambda v: v * 10) == Err("e")
    assert Err("e").map_err(str.upper) == Err("E")
    assert Ok(2).map_err(str.upper) == Ok(2)


def test_and_then_chains_until_first_err():
    half = lambda v: Ok(v // 2) if v % 2 == 0 else Err(f"{v} is odd")  # noqa: E731

    assert Ok(8).and_then(half).and_then(half) == Ok(2)
    assert Ok(6).and_then(half).and_then(half) == Err("3 is odd")


def test_collect_returns_first_err():
    assert collect([ok(1), ok(2)]) == Ok([1, 2])
    assert collect([ok(1), err("a"), err("b")]) == Err("a")
    assert ok() == Ok(None)
