"""
Reliable Queue

A reliable-queue client over Amazon SQS: enqueue, claim with a lease, release,
delete and count, with at-least-once delivery handled by the remote service's
visibility timeouts.
"""

__version__ = "1.0.0"
