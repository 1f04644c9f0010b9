"""Funding-rate squeeze monitor with RSI/EMA confluence and cooldown state."""
