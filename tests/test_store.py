"""Tests for the reminder store backends."""

import logging
import pytest
from unittest.mock import Mock, MagicMock
from redis.exceptions import ConnectionError as RedisConnectionError

from reminder_bot.errors import StoreUnavailable
from reminder_bot.store import Reminder, RedisReminderStore


@pytest.fixture(params=["store", "sql_store", "redis_store"])
def any_store(request):
    """Run the contract tests against every backend."""
    return request.getfixturevalue(request.param)


class TestReminder:
    def test_blank_task_rejected(self):
        with pytest.raises(ValueError):
            Reminder(due_at_ms=1000, task="   ")

    def test_json_member_keeps_identity(self):
        reminder = Reminder(due_at_ms=1000, task="take medicine 💊")
        assert Reminder.from_json(reminder.to_json()) == reminder

    def test_ids_are_unique(self):
        assert Reminder(1000, "a").id != Reminder(1000, "a").id


class TestStoreContract:
    """Behaviour every ReminderStore must share."""

    def test_due_before_orders_by_due_time(self, any_store):
        any_store.insert("u1", Reminder(3000, "third"))
        any_store.insert("u1", Reminder(1000, "first"))
        any_store.insert("u1", Reminder(2000, "second"))

        due = any_store.due_before("u1", 5000)

        assert [r.task for r in due] == ["first", "second", "third"]

    def test_cutoff_is_inclusive_and_never_early(self, any_store):
        any_store.insert("u1", Reminder(2000, "at cutoff"))
        any_store.insert("u1", Reminder(2001, "after cutoff"))

        assert any_store.due_before("u1", 1999) == []
        assert [r.task for r in any_store.due_before("u1", 2000)] == ["at cutoff"]

    def test_duplicates_are_kept(self, any_store):
        any_store.insert("u1", Reminder(1000, "drink water"))
        any_store.insert("u1", Reminder(1000, "drink water"))

        assert len(any_store.due_before("u1", 1000)) == 2

    def test_users_are_isolated(self, any_store):
        any_store.insert("u1", Reminder(1000, "mine"))
        any_store.insert("u2", Reminder(1000, "theirs"))

        assert [r.task for r in any_store.due_before("u1", 1000)] == ["mine"]
        assert any_store.user_keys() == ["u1", "u2"]

    def test_remove_due_before_by_cutoff(self, any_store):
        any_store.insert("u1", Reminder(1000, "old"))
        any_store.insert("u1", Reminder(5000, "later"))

        removed = any_store.remove_due_before("u1", 1000)

        assert removed == 1
        assert any_store.due_before("u1", 1000) == []
        assert [r.task for r in any_store.due_before("u1", 5000)] == ["later"]

    def test_remove_exact_set_spares_concurrent_insert(self, any_store):
        """Only what was read is removed; a reminder inserted afterwards waits."""
        any_store.insert("u1", Reminder(1000, "read"))
        read = any_store.due_before("u1", 2000)

        any_store.insert("u1", Reminder(500, "inserted meanwhile"))
        removed = any_store.remove_due_before("u1", 2000, read)

        assert removed == 1
        assert [r.task for r in any_store.due_before("u1", 2000)] == ["inserted meanwhile"]

    def test_remove_with_nothing_matching_is_noop(self, any_store):
        assert any_store.remove_due_before("nobody", 1000) == 0
        assert any_store.remove_due_before("nobody", 1000, []) == 0

        any_store.insert("u1", Reminder(5000, "later"))
        assert any_store.remove_due_before("u1", 1000) == 0
        assert any_store.user_keys() == ["u1"]

    def test_user_disappears_when_list_empties(self, any_store):
        any_store.insert("u1", Reminder(1000, "only"))
        any_store.remove_due_before("u1", 1000)

        assert any_store.user_keys() == []

    def test_scan_due_across_users(self, any_store):
        any_store.insert("u1", Reminder(1000, "a"))
        any_store.insert("u2", Reminder(2000, "b"))
        any_store.insert("u2", Reminder(9000, "not yet"))

        pairs = [(user, r.task) for user, r in any_store.scan_due(5000)]

        assert pairs == [("u1", "a"), ("u2", "b")]


class TestRedisReminderStore:
    """Redis commands issued by the store, checked against a mocked client."""

    @pytest.fixture
    def client(self):
        client = MagicMock()
        client.register_script.return_value = Mock(return_value=1)
        return client

    def test_insert_adds_member_and_indexes_user(self, client):
        store = RedisReminderStore(client, prefix="reminders")
        reminder = Reminder(1000, "take medicine")
        pipe = client.pipeline.return_value

        store.insert("U123", reminder)

        pipe.zadd.assert_called_once_with("reminders:U123", {reminder.to_json(): 1000})
        pipe.sadd.assert_called_once_with("reminders_users", "U123")
        pipe.execute.assert_called_once()

    def test_insert_without_index(self, client):
        store = RedisReminderStore(client, use_index=False)
        store.insert("U123", Reminder(1000, "x"))

        client.pipeline.return_value.sadd.assert_not_called()

    def test_user_keys_from_index(self, client):
        client.smembers.return_value = {"U2", "U1"}
        store = RedisReminderStore(client)

        assert store.user_keys() == ["U1", "U2"]
        client.scan_iter.assert_not_called()

    def test_user_keys_by_scan_without_index(self, client):
        client.scan_iter.return_value = iter(["reminders:U2", "reminders:U1"])
        store = RedisReminderStore(client, use_index=False)

        assert store.user_keys() == ["U1", "U2"]
        client.scan_iter.assert_called_once_with(match="reminders:*")

    def test_due_before_decodes_members(self, client):
        reminder = Reminder(1000, "take medicine")
        client.zrangebyscore.return_value = [reminder.to_json()]
        store = RedisReminderStore(client)

        assert store.due_before("U1", 2000) == [reminder]
        client.zrangebyscore.assert_called_once_with("reminders:U1", "-inf", 2000)

    def test_remove_exact_members(self, client):
        store = RedisReminderStore(client)
        script = client.register_script.return_value
        read = [Reminder(1000, "a"), Reminder(3000, "after cutoff")]

        assert store.remove_due_before("U1", 2000, read) == 1

        script.assert_called_once_with(
            keys=["reminders:U1", "reminders_users"],
            args=["U1", 2000, read[0].to_json()],
        )

    def test_remove_by_range(self, client):
        store = RedisReminderStore(client, use_index=False)
        script = client.register_script.return_value

        store.remove_due_before("U1", 2000)

        script.assert_called_once_with(keys=["reminders:U1", ""], args=["U1", 2000])

    def test_remove_empty_set_skips_redis(self, client):
        store = RedisReminderStore(client)

        assert store.remove_due_before("U1", 2000, []) == 0
        client.register_script.return_value.assert_not_called()

    def test_redis_errors_become_store_unavailable(self, client):
        client.smembers.side_effect = RedisConnectionError("connection refused")
        client.zrangebyscore.side_effect = RedisConnectionError("connection refused")
        client.pipeline.return_value.execute.side_effect = RedisConnectionError("down")
        client.register_script.return_value.side_effect = RedisConnectionError("down")
        store = RedisReminderStore(client)

        with pytest.raises(StoreUnavailable):
            store.user_keys()
        with pytest.raises(StoreUnavailable):
            store.due_before("U1", 1000)
        with pytest.raises(StoreUnavailable):
            store.insert("U1", Reminder(1000, "x"))
        with pytest.raises(StoreUnavailable):
            store.remove_due_before("U1", 1000)


class TestRedisScript:
    """Removal script and index upkeep, run on an in-process Redis."""

    def test_exact_removal_keeps_index_while_list_not_empty(self, redis_client, redis_store):
        first = Reminder(1000, "first")
        redis_store.insert("U1", first)
        redis_store.insert("U1", Reminder(1500, "second"))

        assert redis_store.remove_due_before("U1", 2000, [first]) == 1

        assert redis_client.zcard("reminders:U1") == 1
        assert redis_client.smembers("reminders_users") == {"U1"}

    def test_exact_removal_of_last_entry_drops_user_from_index(self, redis_client, redis_store):
        only = Reminder(1000, "only")
        redis_store.insert("U1", only)

        assert redis_store.remove_due_before("U1", 1000, [only]) == 1

        assert redis_client.exists("reminders:U1") == 0
        assert redis_client.smembers("reminders_users") == set()

    def test_range_removal_respects_cutoff(self, redis_client, redis_store):
        redis_store.insert("U1", Reminder(1000, "due"))
        redis_store.insert("U1", Reminder(3000, "later"))

        assert redis_store.remove_due_before("U1", 2000) == 1

        assert [r.task for r in redis_store.due_before("U1", 5000)] == ["later"]
        assert redis_store.user_keys() == ["U1"]

    def test_scan_enumeration_without_index(self, redis_client):
        store = RedisReminderStore(redis_client, use_index=False)
        store.insert("U2", Reminder(1000, "b"))
        store.insert("U1", Reminder(1000, "a"))

        assert store.user_keys() == ["U1", "U2"]
        assert not redis_client.exists("reminders_users")

        store.remove_due_before("U1", 1000)
        assert store.user_keys() == ["U2"]

    def test_unreadable_member_is_skipped_and_logged(self, redis_client, redis_store, caplog):
        good = Reminder(1000, "take medicine")
        redis_store.insert("U1", good)
        redis_client.zadd("reminders:U1", {"take medicine": 900})
        redis_client.zadd("reminders:U1", {'{"task": "no id"}': 950})

        with caplog.at_level(logging.ERROR):
            due = redis_store.due_before("U1", 2000)

        assert due == [good]
        assert "Skipping unreadable reminder entry" in caplog.text
