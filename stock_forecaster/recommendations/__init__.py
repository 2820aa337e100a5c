"""
Strategy advice: converts the final day of a forecast run into a
STRONG BUY / BUY / HOLD / CONSIDER SELL / SELL verdict with a one-sentence
rationale.

Modules
-------
strategy : percent_change() + advise() — pure functions, no I/O.
"""
