from threading import Thread

from tileserver.utils.locks import KeyedLock


def test_hold_releases_and_forgets_the_key():
    locks = KeyedLock()

    with locks.hold("image"):
        assert locks.is_held("image")
        assert len(locks) == 1

    assert not locks.is_held("image")
    assert len(locks) == 0


def test_same_key_is_serialized():
    locks = KeyedLock()
    order = []

    def second():
        with locks.hold("image"):
            order.append("second")

    with locks.hold("image"):
        thread = Thread(target=second)
        thread.start()
        thread.join(timeout=0.2)
        assert thread.is_alive()
        order.append("first")

    thread.join(timeout=5)

    assert order == ["first", "second"]
    assert len(locks) == 0


def test_different_keys_do_not_block_each_other():
    locks = KeyedLock()

    with locks.hold("a"):
        with locks.hold("b"):
            assert locks.is_held("a")
            assert locks.is_held("b")


def test_lock_is_released_when_the_body_raises():
    locks = KeyedLock()

    try:
        with locks.hold("image"):
            raise RuntimeError("boom")
    except RuntimeError:
        pass

    assert not locks.is_held("image")
    assert len(locks) == 0
