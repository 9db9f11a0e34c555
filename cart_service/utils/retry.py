# cart_service/utils/retry.py
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    wait_random_exponential,
    retry_if_exception_type,
)
import redis
import requests

from cart_service.domain.errors import CartVersionConflictError
from cart_service.utils.settings import CART_CONFLICT_RETRIES


def http_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception_type(requests.RequestException),
    )


#optimistic locking: przy konflikcie wersji caly load -> mutate -> persist od nowa
def conflict_retry(before_sleep=None):
    return retry(
        reraise=True,
        stop=stop_after_attempt(CART_CONFLICT_RETRIES),
        wait=wait_random_exponential(multiplier=0.01, max=0.2),
        retry=retry_if_exception_type(CartVersionConflictError),
        before_sleep=before_sleep,
    )


#cache: krotko, bo po bledzie i tak schodzimy do bazy
def redis_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=0.05, min=0.05, max=0.2),
        retry=retry_if_exception_type(redis.RedisError),
    )
