import threading
import time

import structlog
from redis import Redis
from redis.exceptions import RedisError

log = structlog.get_logger(__name__)


class LoginThrottle:
    """Fixed-window attempt counter keyed by client ip or login identity.

    Counts live in Redis when a URL is configured so every worker shares them;
    otherwise (or while Redis is unreachable) they are kept per process.
    """

    def __init__(self, redis_url: str | None = None, key_prefix: str = "bookkeeper") -> None:
        self._windows: dict[str, tuple[int, int]] = {}
        self._lock = threading.Lock()
        self._key_prefix = key_prefix
        self._redis = None
        if redis_url:
            try:
                client = Redis.from_url(redis_url, decode_responses=True)
                client.ping()
                self._redis = client
            except RedisError:
                log.warning("redis_unavailable", redis_url=redis_url)

    def _bucket(self, window_seconds: int) -> int:
        return int(time.time()) // window_seconds

    def _hit_redis(self, key: str, bucket: int, window_seconds: int) -> int | None:
        if self._redis is None:
            return None
        redis_key = f"{self._key_prefix}:login:{key}:{bucket}"
        try:
            pipe = self._redis.pipeline()
            pipe.incr(redis_key)
            pipe.expire(redis_key, window_seconds + 1)
            count, _ = pipe.execute()
            return int(count)
        except RedisError:
            return None

    def hit(self, key: str, limit: int, window_seconds: int) -> bool:
        """Register one attempt; True once ``key`` went over ``limit`` in the current window."""
        limit = max(1, int(limit))
        window_seconds = max(1, int(window_seconds))
        bucket = self._bucket(window_seconds)

        count = self._hit_redis(key, bucket, window_seconds)
        if count is None:
            with self._lock:
                current_bucket, current = self._windows.get(key, (bucket, 0))
                if current_bucket != bucket:
                    current = 0
                count = current + 1
                self._windows[key] = (bucket, count)
        return count > limit
