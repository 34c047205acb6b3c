"""
Redis query cache with per-key stale times and targeted invalidation
"""
import redis
import json
import logging
from typing import Optional, Any, Callable
from app.config import settings

logger = logging.getLogger(__name__)


class QueryKeys:
    """Centralized cache keys so reads and invalidations agree"""

    USERS = "users"
    QUIZZES = "quizzes"
    QUIZ_ATTEMPTS = "quiz-attempts"
    LEADERBOARD = "leaderboard"
    ANALYTICS = "analytics"

    @staticmethod
    def user(user_id) -> str:
        return f"users:{user_id}"

    @staticmethod
    def quiz(quiz_id) -> str:
        return f"quizzes:{quiz_id}"

    @staticmethod
    def user_attempts(user_id) -> str:
        return f"quiz-attempts:user:{user_id}"

    @staticmethod
    def user_quiz_attempts(user_id, quiz_id) -> str:
        return f"quiz-attempts:user:{user_id}:quiz:{quiz_id}"

    @staticmethod
    def quiz_results(quiz_id) -> str:
        return f"quiz-attempts:quiz:{quiz_id}"

    @staticmethod
    def quiz_leaderboard(quiz_id) -> str:
        return f"leaderboard:quiz:{quiz_id}"

    @staticmethod
    def analytics(time_range: str) -> str:
        return f"analytics:{time_range}"


# Stale times in seconds
STALE_TIMES = {
    "users": 2 * 60,
    "quizzes": 5 * 60,
    "quiz": 15 * 60,
    "user_attempts": 1 * 60,
    "quiz_results": 2 * 60,
    "leaderboard": 3 * 60,
    "analytics": 5 * 60,
}


class CacheService:
    """Redis-based cache for query results"""

    def __init__(self, redis_url: str = None, enabled: bool = True):
        self.redis_client = None
        if not enabled:
            logger.info("Caching disabled by configuration")
            return

        try:
            self.redis_client = redis.from_url(
                redis_url or settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5
            )
            # Test connection
            self.redis_client.ping()
            logger.info("Redis connection established")
        except Exception as e:
            logger.warning(f"Redis connection failed: {str(e)}. Caching disabled.")
            self.redis_client = None

    @property
    def enabled(self) -> bool:
        return self.redis_client is not None

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache

        Args:
            key: Cache key

        Returns:
            Cached value or None
        """
        if not self.redis_client:
            return None

        try:
            value = self.redis_client.get(key)
            if value:
                logger.debug(f"Cache hit: {key}")
                return json.loads(value)
            logger.debug(f"Cache miss: {key}")
            return None
        except Exception as e:
            logger.error(f"Cache get error: {str(e)}")
            return None

    def set(self, key: str, value: Any, ttl: int) -> bool:
        """
        Set value in cache

        Args:
            key: Cache key
            value: Value to cache (must be JSON serializable)
            ttl: Time to live in seconds

        Returns:
            Success status
        """
        if not self.redis_client:
            return False

        try:
            self.redis_client.setex(key, ttl, json.dumps(value))
            logger.debug(f"Cache set: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"Cache set error: {str(e)}")
            return False

    def get_or_set(self, key: str, ttl: int, loader: Callable[[], Any]) -> Any:
        """Return the cached value for key, loading and caching it on a miss"""
        cached = self.get(key)
        if cached is not None:
            return cached

        value = loader()
        self.set(key, value, ttl)
        return value

    def delete(self, *keys: str) -> bool:
        """Delete keys from cache"""
        if not self.redis_client or not keys:
            return False

        try:
            self.redis_client.delete(*keys)
            logger.debug(f"Cache delete: {', '.join(keys)}")
            return True
        except Exception as e:
            logger.error(f"Cache delete error: {str(e)}")
            return False

    def delete_pattern(self, pattern: str) -> bool:
        """Delete every key matching a glob pattern"""
        if not self.redis_client:
            return False

        try:
            keys = list(self.redis_client.scan_iter(match=pattern))
            if keys:
                self.redis_client.delete(*keys)
                logger.debug(f"Cleared {len(keys)} cache entries for {pattern}")
            return True
        except Exception as e:
            logger.error(f"Cache clear error: {str(e)}")
            return False

    # Invalidation rules applied after mutations

    def invalidate_quizzes(self, quiz_id=None) -> None:
        self.delete(QueryKeys.QUIZZES)
        if quiz_id is not None:
            self.delete(QueryKeys.quiz(quiz_id), QueryKeys.quiz_leaderboard(quiz_id))
        self.delete_pattern(f"{QueryKeys.ANALYTICS}:*")

    def invalidate_attempt(self, user_id, quiz_id, score: int) -> None:
        self.delete(
            QueryKeys.user_attempts(user_id),
            QueryKeys.user_quiz_attempts(user_id, quiz_id),
            QueryKeys.quiz_results(quiz_id),
            QueryKeys.quiz_leaderboard(quiz_id),
        )
        # A zero score cannot move anyone on the global board
        if score > 0:
            self.delete(QueryKeys.LEADERBOARD)
            self.delete_pattern(f"{QueryKeys.ANALYTICS}:*")

    def invalidate_user(self, user_id, role_changed: bool = False) -> None:
        self.delete(QueryKeys.USERS, QueryKeys.user(user_id))
        if role_changed:
            self.delete_pattern(f"{QueryKeys.ANALYTICS}:*")


# Global instance
cache_service = CacheService(enabled=settings.CACHE_ENABLED)
