"""API Resilience Implementations.

Contains the resilient call executor: credential rotation across the pool,
exponential backoff between attempts and terminal exhaustion errors.
Bounded Context: API Resilience
"""
