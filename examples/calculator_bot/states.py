from aiogram.fsm.state import State, StatesGroup


class CalculatorStates(StatesGroup):
    what_do_you_want = State()
    first_number = State()
    second_number = State()
