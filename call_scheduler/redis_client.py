# call_scheduler/redis_client.py

from fastapi import Request
from redis import Redis


def create_redis(redis_url: str, socket_timeout: float = 2.0) -> Redis:
    return Redis.from_url(
        redis_url,
        decode_responses=True,
        socket_timeout=socket_timeout,
    )


# Dependency for FastAPI
def get_redis(request: Request) -> Redis:
    return request.app.state.redis
