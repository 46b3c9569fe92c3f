"""
Retry utilities for upstream calls.

This module provides exponential backoff with jitter. Callers decide
which exceptions are worth retrying.
"""

import asyncio
import random
from typing import Awaitable, Callable, Optional, TypeVar

T = TypeVar('T')

def backoff_delay(attempt: int, base: float, max_delay: float, jitter: bool = True) -> float:
    """
    attempt번째 실패 뒤의 대기 시간을 계산합니다.

    Args:
        attempt: 실패한 시도 번호 (1부터 시작)
        base: 기본 지연 시간 (초)
        max_delay: 최대 지연 시간 (초)
        jitter: 지연을 절반~전체 범위에서 무작위로 줄일지 여부
    """
    delay = min(max_delay, base * (2 ** max(0, attempt - 1)))
    if jitter:
        delay = delay * (0.5 + random.random() * 0.5)
    return delay

async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    jitter: bool = True,
    retry_if: Optional[Callable[[Exception], bool]] = None,
) -> T:
    """
    지수 백오프와 함께 함수를 재시도합니다.
    
    Args:
        func: 재시도할 비동기 함수
        max_retries: 최대 재시도 횟수
        base_delay: 기본 지연 시간 (초)
        max_delay: 최대 지연 시간 (초)
        jitter: 지터 적용 여부
        retry_if: 재시도 여부 판단 함수 (None이면 모든 예외 재시도)
        
    Returns:
        함수 실행 결과
        
    Raises:
        재시도 대상이 아닌 예외 또는 마지막 시도에서 발생한 예외
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await func()
        except Exception as e:
            if attempt > max_retries or (retry_if is not None and not retry_if(e)):
                raise
            await asyncio.sleep(backoff_delay(attempt, base_delay, max_delay, jitter))
