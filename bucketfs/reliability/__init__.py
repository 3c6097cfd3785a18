"""
Reliability module: bounded read-after-write polling.
"""

from bucketfs.reliability.waiter import ConsistencyWaiter, WaitPolicy, WaitStats

__all__ = ["ConsistencyWaiter", "WaitPolicy", "WaitStats"]
