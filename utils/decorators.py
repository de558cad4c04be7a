import functools
import logging


def notify_on_failure(action: str):
    """Log a failed service mutation, surface it as an error notice and re-raise.

    Expects the decorated coroutine to be a method of an object with a
    `notifications` attribute (NotificationCenter or None).
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                return await func(self, *args, **kwargs)
            except Exception as e:
                logging.getLogger(func.__module__).error(f"❌ Failed to {action}: {e}")
                notifications = getattr(self, "notifications", None)
                if notifications is not None:
                    notifications.error(f"Failed to {action}: {e}")
                raise
        return wrapper
    return decorator
