"""
Redis cache for terminal code execution results
"""
import os
import json
from typing import Optional, Dict, Any
import redis


class CacheService:
    """
    Process wide Redis handle for results that never change once written.

    A completed code artifact is immutable, so its result can be served from
    Redis instead of the database. Every call degrades to a miss when Redis
    is unreachable; the database stays the source of truth.
    """

    KEY_PREFIX = 'code_result'

    _instance = None
    _redis_client = None

    def __new__(cls):
        """Singleton pattern"""
        if cls._instance is None:
            cls._instance = super(CacheService, cls).__new__(cls)
            cls._redis_client = cls._connect()
        return cls._instance

    def __init__(self):
        self.redis = self._redis_client

    @staticmethod
    def _connect():
        host = os.getenv('REDIS_HOST', 'localhost')
        port = int(os.getenv('REDIS_PORT', 6379))
        try:
            client = redis.Redis(
                host=host,
                port=port,
                db=int(os.getenv('REDIS_DB', 0)),
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2
            )
            client.ping()
            print(f"[CacheService] Connected to Redis at {host}:{port}")
            return client
        except (redis.ConnectionError, redis.TimeoutError) as e:
            print(f"[CacheService] Warning: Redis not available ({e}). Code results served from the database.")
            return None

    def is_available(self) -> bool:
        return self.redis is not None

    @classmethod
    def code_result_key(cls, artifact_id: int) -> str:
        return f"{cls.KEY_PREFIX}:{artifact_id}"

    def get_code_result(self, artifact_id: int) -> Optional[Dict[str, Any]]:
        """Cached terminal result of an artifact, None on miss or Redis failure"""
        if not self.is_available():
            return None

        key = self.code_result_key(artifact_id)
        try:
            value = self.redis.get(key)
            return json.loads(value) if value else None
        except (redis.RedisError, ValueError) as e:
            print(f"[CacheService] Error reading {key}: {e}")
            return None

    def store_code_result(self, artifact_id: int, result: Dict[str, Any], ttl: int) -> bool:
        """
        Cache a terminal result

        Args:
            artifact_id: Code artifact ID
            result: JSON-serializable result dict
            ttl: Time to live in seconds

        Returns:
            True if stored, False when Redis is unavailable or failed
        """
        if not self.is_available():
            return False

        key = self.code_result_key(artifact_id)
        try:
            self.redis.setex(key, ttl, json.dumps(result))
            return True
        except (redis.RedisError, TypeError) as e:
            print(f"[CacheService] Error writing {key}: {e}")
            return False


# Singleton instance
cache_service = CacheService()
