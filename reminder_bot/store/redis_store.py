"""Redis-backed reminder store: one sorted set per user, scored by due time."""

import logging
from typing import List, Optional, Sequence

import redis
from redis.exceptions import RedisError

from reminder_bot.errors import StoreUnavailable
from .base import Reminder, ReminderStore

logger = logging.getLogger(__name__)

# KEYS[1] user's sorted set, KEYS[2] user index set ('' when disabled)
# ARGV[1] user key, ARGV[2] cutoff, ARGV[3..] exact members to remove
REMOVE_DUE_SCRIPT = """
local unpack = unpack or table.unpack
local removed
if #ARGV > 2 then
  removed = redis.call('ZREM', KEYS[1], unpack(ARGV, 3))
else
  removed = redis.call('ZREMRANGEBYSCORE', KEYS[1], '-inf', ARGV[2])
end
if KEYS[2] ~= '' and redis.call('EXISTS', KEYS[1]) == 0 then
  redis.call('SREM', KEYS[2], ARGV[1])
end
return removed
"""


class RedisReminderStore(ReminderStore):
    """
    Reminders live at "<prefix>:<user_key>" with the due time in epoch millis as
    score and the JSON-encoded reminder as member. With use_index enabled, the
    set "<prefix>_users" tracks which users have pending reminders so the sweep
    does not have to scan the whole keyspace.
    """

    def __init__(self, client: redis.Redis, prefix: str = "reminders", use_index: bool = True):
        self._client = client
        self.prefix = prefix
        self.use_index = use_index
        self._remove_due = client.register_script(REMOVE_DUE_SCRIPT)

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisReminderStore":
        return cls(redis.Redis.from_url(url, decode_responses=True), **kwargs)

    @property
    def index_key(self) -> str:
        return f"{self.prefix}_users"

    def list_key(self, user_key: str) -> str:
        return f"{self.prefix}:{user_key}"

    def insert(self, user_key: str, reminder: Reminder) -> None:
        try:
            pipe = self._client.pipeline(transaction=True)
            pipe.zadd(self.list_key(user_key), {reminder.to_json(): reminder.due_at_ms})
            if self.use_index:
                pipe.sadd(self.index_key, user_key)
            pipe.execute()
        except RedisError as e:
            raise StoreUnavailable(f"Could not save reminder for {user_key}: {e}") from e

    def user_keys(self) -> List[str]:
        try:
            if self.use_index:
                return sorted(self._client.smembers(self.index_key))

            marker = f"{self.prefix}:"
            return sorted(
                key[len(marker):] for key in self._client.scan_iter(match=f"{marker}*")
            )
        except RedisError as e:
            raise StoreUnavailable(f"Could not list reminder users: {e}") from e

    def due_before(self, user_key: str, cutoff_ms: int) -> List[Reminder]:
        try:
            members = self._client.zrangebyscore(self.list_key(user_key), "-inf", cutoff_ms)
        except RedisError as e:
            raise StoreUnavailable(f"Could not read reminders for {user_key}: {e}") from e
        reminders = []
        for member in members:
            try:
                reminders.append(Reminder.from_json(member))
            except (ValueError, KeyError, TypeError) as e:
                logger.error(f"Skipping unreadable reminder entry for {user_key}: {member!r} ({e})")
        return reminders

    def remove_due_before(
        self, user_key: str, cutoff_ms: int, reminders: Optional[Sequence[Reminder]] = None
    ) -> int:
        args = [user_key, cutoff_ms]
        if reminders is not None:
            members = [r.to_json() for r in reminders if r.due_at_ms <= cutoff_ms]
            if not members:
                return 0
            args.extend(members)

        keys = [self.list_key(user_key), self.index_key if self.use_index else ""]
        try:
            return int(self._remove_due(keys=keys, args=args))
        except RedisError as e:
            raise StoreUnavailable(f"Could not remove reminders for {user_key}: {e}") from e

    def close(self) -> None:
        self._client.close()
