import pytest

from parlance.colors import DEFAULT_PALETTE, ColorAssigner, ColorCache
from parlance.models import User


def test_assign_is_stable_for_a_user():
    assigner = ColorAssigner()

    first = assigner.assign("42")
    assigner.assign("43")
    assigner.assign("44")

    assert assigner.assign("42") == first


def test_assign_walks_the_palette():
    assigner = ColorAssigner(["red", "green", "blue"])

    assert [assigner.assign(str(n)) for n in range(4)] == ["red", "green", "blue", "red"]


def test_assign_remembers_in_the_given_cache():
    cache = ColorCache()
    assigner = ColorAssigner(DEFAULT_PALETTE, cache)

    color = assigner.assign("42")

    assert cache.get("42") == color
    assert "42" in cache
    assert len(cache) == 1


def test_cache_never_overwrites():
    cache = ColorCache()

    assert cache.store("42", "red") == "red"
    assert cache.store("42", "blue") == "red"


def test_colorize_fills_in_missing_color():
    assigner = ColorAssigner(["red"])
    user = User("42", "bob", "Bob")

    assert assigner.colorize(user) == "red"
    assert user.color == "red"


def test_colorize_keeps_chosen_color():
    assigner = ColorAssigner(["red"])
    user = User("42", "bob", "Bob", color="#123456")

    assert assigner.colorize(user) == "#123456"
    assert "42" not in assigner.cache


def test_clear_forgets_assignments():
    assigner = ColorAssigner(["red", "green"])
    assigner.assign("1")
    assigner.assign("2")

    assigner.clear()

    assert len(assigner.cache) == 0
    assert assigner.assign("2") == "red"


def test_empty_palette_is_refused():
    with pytest.raises(ValueError):
        ColorAssigner([])
