from music_tutoring.config import get_settings
import redis

class RedisClient:
    """
    Redis client wrapper for caching and token management.

    This class provides a simplified interface for the Redis operations used in the application:
    storing refresh tokens and caching public tutor pages.

    Attributes:
        redis_host (str): Redis server hostname/IP
        redis_port (int): Redis server port
        redis_password (str): Redis server password
        client (redis.StrictRedis): Redis client instance

    The connection is lazy: nothing talks to the server until the first command,
    so importing this module is safe when USE_REDIS is off.
    """

    def __init__(self):
        self.redis_host = get_settings().redis_host
        self.redis_port = get_settings().redis_port
        self.redis_password = get_settings().redis_password

        # decode_responses=True so that every value comes back as str
        self.client = redis.StrictRedis(
            host=self.redis_host,
            port=self.redis_port,
            password=self.redis_password,
            decode_responses=True
        )

    def set_refresh_token(self, token: str, token_id: str, expiration: int):
        """
        Store a refresh token in Redis with an expiration time.

        Args:
            token (str): The refresh token to store
            token_id (str): Unique identifier for the token
            expiration (int): Time in seconds until the token expires
        """
        self.client.setex(f"refresh_{token_id}", expiration, token)

    def get_refresh_token(self, token_id: str) -> str:
        """Retrieve a refresh token, or None if it expired or was revoked."""
        return self.client.get(f"refresh_{token_id}")

    def delete_refresh_token(self, token_id: str):
        self.client.delete(f"refresh_{token_id}")

    def set_cache(self, key: str, value: str, expiration: int):
        """
        Set a cached value with expiration time.

        Args:
            key (str): Cache key
            value (str): Value to cache
            expiration (int): Time in seconds until the cache expires
        """
        self.client.setex(key, expiration, value)

    def get_cache(self, key: str) -> str:
        return self.client.get(key)

    def delete_cache(self, key: str):
        self.client.delete(key)

# Global Redis client instance
redis_client = RedisClient()
