"""
배치 상태용 Redis 연결

- (host, port, db) 별로 한 번만 연결 시도, 결과(클라이언트 또는 실패)를 기억
- 미설정/연결 실패 → None, container 가 인메모리 Job 저장소를 쓴다
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Optional, Tuple

import redis

from examscan.config import ScoringConfig

logger = logging.getLogger(__name__)

SOCKET_TIMEOUT_SECONDS = 5

_Endpoint = Tuple[str, int, int]

_lock = threading.Lock()
_clients: Dict[_Endpoint, Optional[redis.Redis]] = {}


def _connect(config: ScoringConfig) -> Optional[redis.Redis]:
    client = redis.Redis(
        host=config.REDIS_HOST,
        port=config.REDIS_PORT,
        password=config.REDIS_PASSWORD,
        db=config.REDIS_DB,
        decode_responses=True,
        socket_timeout=SOCKET_TIMEOUT_SECONDS,
        socket_connect_timeout=SOCKET_TIMEOUT_SECONDS,
    )
    try:
        client.ping()
    except redis.RedisError as e:
        logger.warning(
            "REDIS_UNAVAILABLE | host=%s:%s | db=%s | error=%s",
            config.REDIS_HOST, config.REDIS_PORT, config.REDIS_DB, e,
        )
        return None
    logger.info("REDIS_CONNECTED | host=%s:%s | db=%s", config.REDIS_HOST, config.REDIS_PORT, config.REDIS_DB)
    return client


def get_redis_client(config: ScoringConfig) -> Optional[redis.Redis]:
    if not config.REDIS_HOST:
        logger.debug("REDIS_DISABLED | REDIS_HOST not set")
        return None

    endpoint: _Endpoint = (config.REDIS_HOST, config.REDIS_PORT, config.REDIS_DB)
    with _lock:
        if endpoint not in _clients:
            _clients[endpoint] = _connect(config)
        return _clients[endpoint]


def reset_redis_state() -> None:
    """테스트용: 기억한 연결 결과 비우기"""
    with _lock:
        _clients.clear()
