"""Credential Pool Implementations.

Contains the in-memory credential pool and the shared error classification
used by both the pool and the resilient call executor.
Bounded Context: Credential Management
"""
