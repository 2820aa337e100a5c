"""Technical indicators and signals, fundamental rating, and LLM narrative analysis."""
