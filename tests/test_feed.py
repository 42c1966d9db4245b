import asyncio
import threading

from pictureframe.feed import ChangeFeed


def test_subscriber_sees_only_latest_value():
    feed = ChangeFeed(0)
    sub = feed.subscribe()
    for value in range(1, 6):
        feed.publish(value)
    assert sub.has_changed()
    assert sub.borrow_and_update() == 5
    assert not sub.has_changed()


def test_subscribers_are_independent():
    feed = ChangeFeed("a")
    first, second = feed.subscribe(), feed.subscribe()
    feed.publish("b")
    assert first.borrow_and_update() == "b"
    assert second.has_changed()
    feed.publish("c")
    assert first.borrow_and_update() == "c"
    assert second.borrow_and_update() == "c"


def test_new_subscriber_starts_at_current_value():
    feed = ChangeFeed(1)
    feed.publish(2)
    sub = feed.subscribe()
    assert not sub.has_changed()
    assert sub.borrow_and_update() == 2
    assert feed.latest() == 2


def test_wait_times_out_without_publish():
    feed = ChangeFeed(0)
    assert feed.subscribe().wait(timeout=0.01) is None


def test_wait_wakes_on_publish_from_other_thread():
    feed = ChangeFeed(0)
    sub = feed.subscribe()
    timer = threading.Timer(0.05, feed.publish, args=(7,))
    timer.start()
    try:
        assert sub.wait(timeout=5) == 7
    finally:
        timer.cancel()


def test_publish_does_not_wait_for_absent_subscribers():
    feed = ChangeFeed(0)
    subs = [feed.subscribe() for _ in range(100)]
    for value in range(1000):
        feed.publish(value)
    assert all(s.borrow_and_update() == 999 for s in subs)


def test_async_changed_receives_value_from_thread():
    feed = ChangeFeed(0)
    sub = feed.subscribe()

    async def scenario():
        waiter = asyncio.create_task(sub.changed())
        await asyncio.sleep(0)
        threading.Thread(target=feed.publish, args=(3,)).start()
        return await asyncio.wait_for(waiter, 5)

    assert asyncio.run(scenario()) == 3


def test_async_changed_returns_immediately_when_already_unseen():
    feed = ChangeFeed(0)
    sub = feed.subscribe()
    feed.publish(1)
    feed.publish(2)
    assert asyncio.run(asyncio.wait_for(sub.changed(), 1)) == 2
