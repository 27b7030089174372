"""Decorators for rate-source calls: retry with backoff and timed logging.

Only collaborator I/O is wrapped with these. The selection, overlay and
indicator layers are synchronous and never retry.
"""
import asyncio
import functools
import time
from typing import Callable, Type, Tuple
from maprates.utils.logging import get_logger

logger = get_logger(__name__)


def retry(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,)
):
    """
    Retry an async function with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts
        delay: Initial delay between attempts in seconds
        backoff: Multiplier applied to the delay after each failure
        exceptions: Exception types that trigger a retry

    Example:
        @retry(max_attempts=3, delay=1.0, exceptions=(httpx.HTTPError,))
        async def fetch_series(...):
            ...
    """
    def decorator(func: Callable):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            current_delay = delay

            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_attempts:
                        logger.error(
                            f"Function {func.__name__} failed after {max_attempts} attempts",
                            extra={"error": str(e), "attempts": attempt}
                        )
                        raise

                    logger.warning(
                        f"Function {func.__name__} failed (attempt {attempt}/{max_attempts}), retrying in {current_delay}s",
                        extra={"error": str(e), "delay": current_delay}
                    )
                    await asyncio.sleep(current_delay)
                    current_delay *= backoff

        return wrapper

    return decorator


def log_execution(log_args: bool = True, log_result: bool = False):
    """
    Log start, completion and timing of an async function.

    Args:
        log_args: Whether to log function arguments
        log_result: Whether to log function result
    """
    def decorator(func: Callable):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            func_name = func.__name__

            extra = {"function": func_name}
            if log_args:
                extra["function_args"] = str(args)[:100]
                extra["function_kwargs"] = str(kwargs)[:100]

            logger.info(f"Starting {func_name}", extra=extra)

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                execution_time = (time.time() - start_time) * 1000
                logger.error(
                    f"Failed {func_name}",
                    extra={"function": func_name, "execution_time_ms": round(execution_time, 2), "error": str(e)}
                )
                raise

            execution_time = (time.time() - start_time) * 1000
            log_extra = {"function": func_name, "execution_time_ms": round(execution_time, 2)}
            if log_result:
                log_extra["result"] = str(result)[:100]
            logger.info(f"Completed {func_name}", extra=log_extra)
            return result

        return wrapper

    return decorator
