"""
FinTrack - Source Package

A local-first personal finance tracker: income, expenses, installment
payments, one-time payments, savings goals and savings accounts, with
recurrence-aware projections and AI-generated summaries.

DESIGN PRINCIPLES:
1. Projections are pure functions of one profile snapshot
2. All state lives on this machine (key/value JSON documents)
3. Bad imported data is repaired, not rejected (except structure)
4. Every user mutation is auditable
5. The AI is an optional narrator, never a source of numbers
"""

__version__ = "1.0.0"
__author__ = "FinTrack Team"
