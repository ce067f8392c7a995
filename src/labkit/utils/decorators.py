"""Decorators shared by the AWS and Docker lab steps."""
import functools
import logging
import time
from typing import Any, Callable, Tuple, Type, TypeVar, cast

from botocore.exceptions import BotoCoreError, ClientError

from labkit.errors import DeploymentError

logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


def deployment_step(step: str) -> Callable[[F], F]:
    """Time one lab step and report AWS failures as `DeploymentError`.

    Args:
        step: Human readable name of the step, used in logs and errors

    Returns:
        Decorator that logs how long the step took, successful or not
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            started = time.time()
            logger.info(f"▶ {step}")
            try:
                result = func(*args, **kwargs)
            except (ClientError, BotoCoreError) as e:
                logger.error(f"❌ {step} failed after {time.time() - started:.2f}s: {str(e)}")
                raise DeploymentError(step, str(e)) from e
            except Exception as e:
                logger.error(f"❌ {step} failed after {time.time() - started:.2f}s: {str(e)}")
                raise
            logger.info(f"✅ {step} completed in {time.time() - started:.2f}s")
            return result
        return cast(F, wrapper)
    return decorator


def retry(max_attempts: int = 3, delay: float = 1.0, backoff: float = 2.0,
          exceptions: Tuple[Type[BaseException], ...] = (Exception,)) -> Callable[[F], F]:
    """Retry a flaky external command with exponential backoff.

    The last exception is re-raised once `max_attempts` calls have failed.
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            wait = delay
            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_attempts:
                        logger.error(f"{func.__name__} gave up after {max_attempts} attempts: {str(e)}")
                        raise
                    logger.warning(f"{func.__name__} attempt {attempt}/{max_attempts} failed, "
                                   f"retrying in {wait:.1f}s: {str(e)}")
                    time.sleep(wait)
                    wait *= backoff
        return cast(F, wrapper)
    return decorator
