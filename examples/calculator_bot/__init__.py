"""Two-number calculator driven by an inline keyboard and FSM states."""
from examples.calculator_bot.handlers import router

__all__ = ["router"]
