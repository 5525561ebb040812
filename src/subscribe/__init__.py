"""
Subscribe - membership and subscription lifecycle core.

This package provides:
- Plan enrollment with trial periods and setup fees
- Plan switching at term end or immediately with proration
- Service status evaluation and cancellation
- Forward billing schedule projection
"""

__version__ = "1.0.0"
