"""
Cache utilities for the Scoreline application
Provides caching decorators and helper functions for leaderboard reads
"""

import functools

from flask import current_app
from redis.exceptions import RedisError

from scoreline import cache


def cached_query(model_name, timeout=None):
    """
    Decorator for caching database query results

    Args:
        model_name: Name of the model for cache key generation
        timeout: Cache timeout in seconds (defaults to LEADERBOARD_CACHE_TIMEOUT)
    """

    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            # Generate cache key from function name and arguments
            args_str = "_".join(str(arg) for arg in args)
            kwargs_str = "_".join(f"{k}_{v}" for k, v in sorted(kwargs.items()))
            cache_key = f"query_{model_name}_{f.__name__}_{args_str}_{kwargs_str}"

            # Try to get from cache
            result = cache.get(cache_key)
            if result is not None:
                current_app.logger.debug(f"Query cache hit: {cache_key}")
                return result

            # Execute query and cache result
            result = f(*args, **kwargs)
            cache.set(
                cache_key,
                result,
                timeout=timeout
                or current_app.config.get("LEADERBOARD_CACHE_TIMEOUT", 60),
            )
            current_app.logger.debug(f"Query cache set: {cache_key}")

            return result

        return wrapped

    return decorator


def invalidate_cache_pattern(pattern):
    """
    Invalidate cache keys matching a pattern

    Args:
        pattern: Pattern to match cache keys
    """
    try:
        # SimpleCache and RedisCache have no pattern delete through
        # Flask-Caching, so the whole prefix is cleared
        cache.clear()
        current_app.logger.info(f"Cache cleared for pattern: {pattern}")
    except RedisError as e:
        # Stale entries expire after LEADERBOARD_CACHE_TIMEOUT
        current_app.logger.error(f"Failed to clear cache: {e}")


def invalidate_model_cache(model_name):
    """
    Invalidate all cache entries for a specific model

    Args:
        model_name: Name of the model to invalidate
    """
    invalidate_cache_pattern(f"*{model_name}*")


def get_cache_stats():
    """Get cache statistics"""
    return {
        "type": current_app.config.get("CACHE_TYPE", "Unknown"),
        "timeout": current_app.config.get("CACHE_DEFAULT_TIMEOUT", 300),
    }
