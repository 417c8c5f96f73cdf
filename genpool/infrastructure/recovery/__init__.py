"""Structured-Output Recovery.

Turns best-effort model text into structured JSON values through an ordered
cascade of syntactic repairs.
Bounded Context: Output Recovery
"""
