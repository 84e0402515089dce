from storyweave.scheduler.backoff import RateLimitBackoff, RecheckState
from storyweave.scheduler.rechecker import RecheckScheduler

__all__ = ["RateLimitBackoff", "RecheckState", "RecheckScheduler"]
