from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from examples.calculator_bot.callbacks import Operation


def operations_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [
            InlineKeyboardButton(text="➕ Add", callback_data=Operation.ADD.value),
            InlineKeyboardButton(text="➖ Subtract", callback_data=Operation.SUBTRACT.value),
        ],
    ])
