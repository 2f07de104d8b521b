from bookkeeper.core.config import settings
from bookkeeper.core.rate_limit import LoginThrottle

login_throttle = LoginThrottle(redis_url=settings.redis_url, key_prefix=settings.redis_prefix)
