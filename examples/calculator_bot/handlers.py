import logging

from aiogram import F, Router
from aiogram.filters import CommandStart, StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from examples.calculator_bot.callbacks import Operation
from examples.calculator_bot.keyboards import operations_keyboard
from examples.calculator_bot.states import CalculatorStates
from examples.calculator_bot.templates import CalculatorTemplates

logger = logging.getLogger(__name__)

router = Router()


def _parse_number(text: str) -> int | None:
    try:
        return int(text.strip())
    except ValueError:
        return None


@router.message(CommandStart())
async def on_start(message: Message, state: FSMContext) -> None:
    await state.clear()
    await state.set_state(CalculatorStates.what_do_you_want)
    await message.answer(
        CalculatorTemplates.what_do_you_want(),
        reply_markup=operations_keyboard(),
    )


@router.callback_query(
    StateFilter(CalculatorStates.what_do_you_want),
    F.data.in_({op.value for op in Operation}),
)
async def on_operation(callback: CallbackQuery, state: FSMContext) -> None:
    operation = Operation(callback.data)
    await state.update_data(operation=operation.value)
    await state.set_state(CalculatorStates.first_number)
    await callback.answer()
    await callback.message.answer(CalculatorTemplates.enter_first_number())


@router.message(StateFilter(CalculatorStates.first_number), F.text)
async def on_first_number(message: Message, state: FSMContext) -> None:
    number = _parse_number(message.text)
    if number is None:
        await message.answer(CalculatorTemplates.not_a_number())
        return

    await state.update_data(first_number=number)
    await state.set_state(CalculatorStates.second_number)
    await message.answer(CalculatorTemplates.enter_second_number())


@router.message(StateFilter(CalculatorStates.second_number), F.text)
async def on_second_number(message: Message, state: FSMContext) -> None:
    number = _parse_number(message.text)
    if number is None:
        await message.answer(CalculatorTemplates.not_a_number())
        return

    data = await state.get_data()
    result = Operation(data["operation"]).apply(data["first_number"], number)
    logger.info("Calculated %s for user %d", result, message.from_user.id)

    await state.clear()
    await message.answer(CalculatorTemplates.result(result))


@router.message(StateFilter(CalculatorStates.first_number, CalculatorStates.second_number))
async def on_not_text(message: Message) -> None:
    await message.answer(CalculatorTemplates.send_text())
